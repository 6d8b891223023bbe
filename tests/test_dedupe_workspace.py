from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from pathlib import Path

import pytest

from media_dedupe.errors import StoreIOError
from media_dedupe.workspace import copy_store, pristine_copy, working_copy_path


@pytest.fixture
def wal_library(make_library) -> Iterator[Path]:
    """A WAL-mode library with two committed rows still only in the -wal file."""
    path = make_library([{"rec_ID": 1, "filename": "a.wav", "duration": 1}])
    writer = sqlite3.connect(path)
    writer.execute("PRAGMA journal_mode = WAL")
    writer.execute("PRAGMA wal_autocheckpoint = 0")
    writer.executemany(
        "INSERT INTO justinmetadata (rec_ID, filename, duration) VALUES (?, ?, ?)",
        [(2, "a.wav", 2), (3, "b.wav", 1)],
    )
    writer.commit()
    try:
        yield path
    finally:
        writer.close()


def test_copy_includes_uncheckpointed_wal_rows(wal_library: Path, library_ids) -> None:
    assert Path(f"{wal_library}-wal").stat().st_size > 0

    copy = copy_store(wal_library, working_copy_path(wal_library))

    assert library_ids(copy) == {1, 2, 3}
    assert not Path(f"{copy}-wal").exists()


def test_copy_replaces_existing_destination(make_library, library_ids, tmp_path: Path) -> None:
    source = make_library([{"rec_ID": 7, "filename": "a.wav"}])
    destination = tmp_path / "library_thinned.sqlite"
    destination.write_bytes(b"stale")

    copy_store(source, destination)

    assert library_ids(destination) == {7}


def test_copy_of_non_database_is_an_io_error(tmp_path: Path) -> None:
    source = tmp_path / "notes.sqlite"
    source.write_text("not a database at all, just some text " * 200, encoding="utf-8")
    destination = tmp_path / "notes_thinned.sqlite"

    with pytest.raises(StoreIOError) as excinfo:
        copy_store(source, destination)

    assert excinfo.value.path == destination
    assert not destination.exists()


def test_pristine_copy_is_removed_on_exit(make_library, library_ids, tmp_path: Path) -> None:
    source = make_library([{"rec_ID": 1, "filename": "a.wav"}])

    with pristine_copy(source) as snapshot:
        assert snapshot.parent == tmp_path
        assert library_ids(snapshot) == {1}

    assert not snapshot.exists()
    assert not list(tmp_path.glob(".library-*"))
