from __future__ import annotations

import logging
from pathlib import Path

from constants import DEFAULT_TABLE

from .models import RemovalSet
from .store import RecordStore
from .workspace import copy_store, discard_store

logger = logging.getLogger(__name__)


class ArchiveBuilder:
    """Materialize a side store holding exactly the removed records."""

    def __init__(self, archive_path: Path, *, table: str = DEFAULT_TABLE) -> None:
        self.archive_path = archive_path
        self._table = table

    def build_archive(self, snapshot_path: Path, removal_set: RemovalSet) -> Path | None:
        """Copy the pre-deletion store at ``snapshot_path`` and keep only ``removal_set``.

        Returns the archive path, or ``None`` when nothing was removed. An
        archive with zero records is never left on disk.
        """
        if not removal_set:
            logger.info("No records were removed; skipping duplicates archive")
            discard_store(self.archive_path)
            return None

        copy_store(snapshot_path, self.archive_path)
        try:
            with RecordStore.open(
                self.archive_path,
                table=self._table,
                label=self.archive_path.name,
            ) as store:
                dropped = store.delete_complement(removal_set.ids())
                store.reclaim_space()
                kept = store.row_count()
        except Exception:
            discard_store(self.archive_path)
            raise

        if kept == 0:
            logger.warning("Archive %s would be empty; discarding it", self.archive_path)
            discard_store(self.archive_path)
            return None
        if kept != len(removal_set):
            logger.warning(
                "Archive %s holds %d records but %d were selected for removal",
                self.archive_path,
                kept,
                len(removal_set),
            )
        logger.info(
            "Wrote %d removed records to %s (dropped %d kept records)",
            kept,
            self.archive_path,
            dropped,
        )
        return self.archive_path
