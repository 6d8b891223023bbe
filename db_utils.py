"""Database connection utilities for SQLite metadata stores."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any


def get_sqlite_connection(
    db_path: str | Path,
    *,
    timeout: float = 30.0,
    read_only: bool = False,
    exclusive: bool = False,
    **kwargs: Any,
) -> sqlite3.Connection:
    """Get a SQLite connection configured for a single-owner cleanup run.

    Read-only connections are opened in URI mode so a reference store can
    never be modified by accident. Writable connections may additionally
    take an exclusive lock, held from the first write until the
    connection is closed.

    Args:
        db_path: Path to the SQLite database file.
        timeout: Connection timeout in seconds (default: 30.0).
        read_only: If True, open connection in read-only mode.
        exclusive: If True, use ``locking_mode = EXCLUSIVE`` for writers.
        **kwargs: Additional arguments to pass to sqlite3.connect().

    Returns:
        A configured SQLite connection with ``sqlite3.Row`` rows.

    Example:
        >>> conn = get_sqlite_connection("./library.sqlite", read_only=True)
        >>> cursor = conn.execute("SELECT COUNT(*) FROM justinmetadata")
        >>> conn.close()
    """
    uri = False
    target: str = str(db_path)
    if read_only:
        target = f"{Path(db_path).resolve().as_uri()}?mode=ro"
        uri = True

    conn = sqlite3.connect(target, timeout=timeout, uri=uri, **kwargs)
    conn.row_factory = sqlite3.Row

    # Set busy timeout (how long to wait when database is locked)
    conn.execute(f"PRAGMA busy_timeout = {int(timeout * 1000)}")

    if exclusive and not read_only:
        conn.execute("PRAGMA locking_mode = EXCLUSIVE")

    return conn
