from __future__ import annotations

import logging
from collections.abc import Collection, Sequence
from dataclasses import dataclass, field

from .models import (
    DetectionMode,
    GroupingSpec,
    RankingSpec,
    Record,
    RemovalSet,
    TagSpec,
)
from .store import RecordStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ResolutionResult:
    snapshot_size: int
    duplicates: RemovalSet = field(default_factory=RemovalSet)
    overlap: RemovalSet = field(default_factory=RemovalSet)
    tagged: RemovalSet = field(default_factory=RemovalSet)
    combined: RemovalSet = field(init=False)

    def __post_init__(self) -> None:
        self.combined = self.duplicates.union(self.overlap, self.tagged)

    def is_empty(self) -> bool:
        return len(self.combined) == 0


class DuplicateResolver:
    """Compute the removal set for one store snapshot across the enabled detection modes."""

    def __init__(
        self,
        ranking: RankingSpec,
        *,
        grouping: GroupingSpec | None = None,
        check_filenames: bool = True,
        reference_filenames: Collection[str] | None = None,
        tags: TagSpec | None = None,
    ) -> None:
        self.ranking = ranking
        self.grouping = grouping
        self.check_filenames = check_filenames
        self.reference_filenames = reference_filenames
        self.tags = tags

    def resolve(self, store: RecordStore) -> ResolutionResult:
        group_column = self.grouping.column if self.grouping else None
        snapshot = store.fetch_snapshot(group_column=group_column)
        if not snapshot:
            logger.info("%s is empty; nothing to resolve", store.label)
            return ResolutionResult(snapshot_size=0)

        duplicates = RemovalSet()
        if self.check_filenames:
            duplicates = self.find_duplicates(store)
            logger.info(
                "Found %d duplicate filename records to remove%s",
                len(duplicates),
                self._grouping_note(snapshot),
            )

        overlap = RemovalSet()
        if self.reference_filenames is not None:
            overlap = self.find_overlap(snapshot, self.reference_filenames)
            logger.info(
                "Found %d records whose filename exists in the comparison store",
                len(overlap),
            )

        tagged = RemovalSet()
        if self.tags:
            tagged = self.find_tagged(snapshot, self.tags)
            logger.info("Found %d records matching %d tags", len(tagged), len(self.tags))

        result = ResolutionResult(
            snapshot_size=len(snapshot),
            duplicates=duplicates,
            overlap=overlap,
            tagged=tagged,
        )
        self._log_preview(result.combined)
        return result

    def find_duplicates(self, store: RecordStore) -> RemovalSet:
        pairs = store.rank_and_select(self.ranking, self.grouping)
        return RemovalSet.from_pairs(DetectionMode.DUPLICATE_FILENAME, pairs)

    @staticmethod
    def find_overlap(snapshot: Sequence[Record], reference_filenames: Collection[str]) -> RemovalSet:
        return RemovalSet.from_pairs(
            DetectionMode.OVERLAP,
            (
                (record.record_id, record.filename)
                for record in snapshot
                if record.filename is not None and record.filename in reference_filenames
            ),
        )

    @staticmethod
    def find_tagged(snapshot: Sequence[Record], tags: TagSpec) -> RemovalSet:
        return RemovalSet.from_pairs(
            DetectionMode.TAG,
            (
                (record.record_id, record.filename)
                for record in snapshot
                if tags.matches(record.filename)
            ),
        )

    def _grouping_note(self, snapshot: Sequence[Record]) -> str:
        if self.grouping is None:
            return ""
        ungrouped = sum(1 for record in snapshot if not record.has_group_key())
        return (
            f" (grouped by {self.grouping.column}, {self.grouping.null_policy.value} "
            f"{ungrouped} records without a value)"
        )

    @staticmethod
    def _log_preview(removal_set: RemovalSet, *, preview_limit: int = 10) -> None:
        if not logger.isEnabledFor(logging.DEBUG) or not removal_set:
            return
        candidates = removal_set.candidates()
        for candidate in candidates[:preview_limit]:
            logger.debug(
                "  - Record %d | %s | flagged by %s",
                candidate.record_id,
                candidate.filename,
                ", ".join(sorted(mode.value for mode in candidate.modes)),
            )
        if len(candidates) > preview_limit:
            logger.debug("  - ... %d additional records omitted", len(candidates) - preview_limit)
