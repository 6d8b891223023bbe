from __future__ import annotations

import logging
import sqlite3

import pytest

from media_dedupe.errors import StoreQueryError
from media_dedupe.models import DetectionMode, RemovalSet
from media_dedupe.mutation import MutationPipeline
from media_dedupe.store import RecordStore


def _removal_set(*ids: int) -> RemovalSet:
    return RemovalSet.from_pairs(
        DetectionMode.DUPLICATE_FILENAME,
        [(record_id, f"{record_id}.wav") for record_id in ids],
    )


def test_apply_removes_exactly_the_removal_set(make_library, library_ids) -> None:
    path = make_library([{"rec_ID": idx, "filename": f"{idx}.wav"} for idx in range(1, 21)])
    removal_set = _removal_set(2, 4, 6, 8, 10, 12, 14)

    with RecordStore.open(path) as store:
        before = store.row_count()
        deleted = MutationPipeline(batch_size=3, show_progress=False).apply(store, removal_set)
        after = store.row_count()

    assert deleted == len(removal_set)
    assert after == before - len(removal_set)
    assert not library_ids(path) & removal_set.ids()


def test_apply_with_empty_set_is_a_no_op(make_library, library_ids) -> None:
    path = make_library([{"rec_ID": 1, "filename": "a.wav"}])
    with RecordStore.open(path) as store:
        assert MutationPipeline(batch_size=10).apply(store, RemovalSet()) == 0
    assert library_ids(path) == {1}


def test_apply_failure_retains_nothing(make_library, library_ids) -> None:
    path = make_library([{"rec_ID": idx, "filename": f"{idx}.wav"} for idx in range(1, 7)])
    conn = sqlite3.connect(path)
    conn.execute(
        """
        CREATE TRIGGER protect_six BEFORE DELETE ON justinmetadata
        WHEN old.rec_ID = 6
        BEGIN
            SELECT RAISE(ABORT, 'record 6 is protected');
        END
        """
    )
    conn.commit()
    conn.close()

    with RecordStore.open(path) as store:
        with pytest.raises(StoreQueryError):
            MutationPipeline(batch_size=2, show_progress=False).apply(store, _removal_set(1, 2, 3, 6))

    assert library_ids(path) == {1, 2, 3, 4, 5, 6}


def test_verbose_logging_names_each_deleted_record(make_library, caplog) -> None:
    path = make_library([{"rec_ID": idx, "filename": f"{idx}.wav"} for idx in range(1, 4)])

    with caplog.at_level(logging.DEBUG, logger="media_dedupe.mutation"):
        with RecordStore.open(path) as store:
            MutationPipeline(batch_size=1, show_progress=False).apply(store, _removal_set(1, 3))

    messages = [record.getMessage() for record in caplog.records]
    assert "Deleting ID: 1 Filename: 1.wav" in messages
    assert "Deleting ID: 3 Filename: 3.wav" in messages
