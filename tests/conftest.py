from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any, Callable, Iterable

import pytest

SCHEMA = """
CREATE TABLE justinmetadata (
  rec_ID      INTEGER PRIMARY KEY,
  filename    TEXT,
  pathname    TEXT,
  duration    REAL,
  channels    INTEGER,
  sampleRate  INTEGER,
  bitDepth    INTEGER,
  BWDate      TEXT,
  scannedDate TEXT,
  show        TEXT,
  library     TEXT
)
"""

COLUMNS = (
    "rec_ID",
    "filename",
    "pathname",
    "duration",
    "channels",
    "sampleRate",
    "bitDepth",
    "BWDate",
    "scannedDate",
    "show",
    "library",
)

DEFAULT_ROW: dict[str, Any] = {
    "rec_ID": None,
    "pathname": "/sfx/Audio Files",
    "duration": 1.0,
    "channels": 2,
    "sampleRate": 48000,
    "bitDepth": 24,
    "BWDate": "2020-01-01",
    "scannedDate": "2021-01-01",
    "show": None,
    "library": None,
}

LibraryFactory = Callable[..., Path]


def build_library(path: Path, rows: Iterable[dict[str, Any]]) -> Path:
    conn = sqlite3.connect(path)
    try:
        conn.execute(SCHEMA)
        placeholders = ", ".join(f":{name}" for name in COLUMNS)
        for row in rows:
            conn.execute(
                f"INSERT INTO justinmetadata ({', '.join(COLUMNS)}) VALUES ({placeholders})",
                {**DEFAULT_ROW, **row},
            )
        conn.commit()
    finally:
        conn.close()
    return path


def read_ids(path: Path) -> set[int]:
    conn = sqlite3.connect(path)
    try:
        return {int(row[0]) for row in conn.execute("SELECT rec_ID FROM justinmetadata")}
    finally:
        conn.close()


@pytest.fixture
def make_library(tmp_path: Path) -> LibraryFactory:
    def _make(rows: Iterable[dict[str, Any]], name: str = "library.sqlite") -> Path:
        return build_library(tmp_path / name, rows)

    return _make


@pytest.fixture
def library_ids() -> Callable[[Path], set[int]]:
    return read_ids
