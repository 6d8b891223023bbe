from __future__ import annotations

import logging
from collections.abc import Sequence

from .display import ProgressDisplay
from .logging_support import progress_logging
from .models import RemovalSet
from .store import RecordStore

logger = logging.getLogger(__name__)


class MutationPipeline:
    """Apply a removal set to a store in bounded batches, then reclaim space."""

    def __init__(self, *, batch_size: int, show_progress: bool = True) -> None:
        self.batch_size = batch_size
        self.show_progress = show_progress

    def apply(self, store: RecordStore, removal_set: RemovalSet) -> int:
        if not removal_set:
            logger.info("Nothing to remove from %s", store.label)
            return 0

        progress = ProgressDisplay(
            enabled=self.show_progress,
            total_records=len(removal_set),
            label="removed",
        )

        def _on_batch(chunk: Sequence[int], deleted: int) -> None:
            if logger.isEnabledFor(logging.DEBUG):
                for record_id in chunk:
                    candidate = removal_set.get(record_id)
                    logger.debug(
                        "Deleting ID: %d Filename: %s",
                        record_id,
                        candidate.filename if candidate else "<unknown>",
                    )
            progress.advance(deleted)

        logger.info(
            "Removing %d records from %s in batches of %d",
            len(removal_set),
            store.label,
            self.batch_size,
        )
        with progress_logging(progress):
            try:
                deleted = store.delete_batch(
                    removal_set.sorted_ids(),
                    self.batch_size,
                    on_batch=_on_batch,
                )
            finally:
                progress.finish()

        if deleted != len(removal_set):
            logger.warning(
                "Expected to remove %d records from %s but %d rows were deleted",
                len(removal_set),
                store.label,
                deleted,
            )

        logger.info("Reclaiming space in %s", store.label)
        store.reclaim_space()
        return deleted
