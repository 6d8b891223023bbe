"""Filesystem handling for source, working-copy and archive stores."""

from __future__ import annotations

import logging
import os
import sqlite3
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from constants import ARCHIVE_SUFFIX, WORKING_COPY_SUFFIX
from db_utils import get_sqlite_connection

from .errors import StoreIOError

logger = logging.getLogger(__name__)

_SIDE_FILES = ("-journal", "-wal", "-shm")


def require_store(path: Path) -> Path:
    if not path.is_file():
        raise StoreIOError(path, "Database not found")
    return path


def working_copy_path(source: Path) -> Path:
    return source.with_name(f"{source.stem}{WORKING_COPY_SUFFIX}{source.suffix}")


def archive_path_for(source: Path) -> Path:
    return source.with_name(f"{source.stem}{ARCHIVE_SUFFIX}{source.suffix}")


def copy_store(source: Path, destination: Path) -> Path:
    """Snapshot ``source`` into ``destination`` through the SQLite backup API.

    Rows committed to a write-ahead log but not yet checkpointed are part of
    the copy. The copy uses a rollback journal so it is one self-contained
    file. Whatever is at ``destination`` beforehand is replaced.
    """
    discard_store(destination)
    source_conn: sqlite3.Connection | None = None
    dest_conn: sqlite3.Connection | None = None
    try:
        source_conn = get_sqlite_connection(source, read_only=True)
        dest_conn = sqlite3.connect(destination)
        source_conn.backup(dest_conn)
        dest_conn.execute("PRAGMA journal_mode = DELETE")
    except sqlite3.Error as exc:
        if dest_conn is not None:
            dest_conn.close()
            dest_conn = None
        discard_store(destination)
        raise StoreIOError(destination, f"Unable to copy {source} ({exc})") from exc
    finally:
        if dest_conn is not None:
            dest_conn.close()
        if source_conn is not None:
            source_conn.close()
    logger.debug("Copied %s to %s", source, destination)
    return destination


def discard_store(path: Path) -> None:
    for candidate in (path, *(path.with_name(path.name + suffix) for suffix in _SIDE_FILES)):
        try:
            candidate.unlink(missing_ok=True)
        except OSError as exc:
            raise StoreIOError(candidate, f"Unable to remove ({exc.strerror or exc})") from exc


@contextmanager
def pristine_copy(source: Path) -> Iterator[Path]:
    """Yield a temporary pre-mutation copy of ``source`` next to it; removed on exit."""
    fd, raw_path = tempfile.mkstemp(
        prefix=f".{source.stem}-",
        suffix=source.suffix or ".sqlite",
        dir=source.parent,
    )
    os.close(fd)
    temp_path = Path(raw_path)
    try:
        copy_store(source, temp_path)
        yield temp_path
    finally:
        discard_store(temp_path)
