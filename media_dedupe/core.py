from __future__ import annotations

import logging
import time
from contextlib import ExitStack
from dataclasses import dataclass, field
from pathlib import Path

from constants import DEFAULT_BATCH_SIZE, DEFAULT_TABLE

from .archive import ArchiveBuilder
from .confirmation import ConfirmationGate, GateState, PromptFn
from .errors import ConfigurationError
from .models import (
    CleanupStats,
    GroupingSpec,
    NullPolicy,
    RankingSpec,
    TagSpec,
    validate_identifier,
)
from .mutation import MutationPipeline
from .resolution import DuplicateResolver, ResolutionResult
from .rules import default_ranking_spec
from .store import RecordStore
from .workspace import (
    archive_path_for,
    copy_store,
    discard_store,
    pristine_copy,
    require_store,
    working_copy_path,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CleanupConfig:
    source_path: Path
    compare_path: Path | None = None
    ranking: RankingSpec = field(default_factory=default_ranking_spec)
    group_column: str | None = None
    group_null_policy: NullPolicy = NullPolicy.SKIP
    check_filenames: bool = True
    tags: TagSpec | None = None
    create_archive: bool = False
    archive_path: Path | None = None
    unsafe: bool = False
    auto_confirm: bool = False
    batch_size: int = DEFAULT_BATCH_SIZE
    table: str = DEFAULT_TABLE
    show_progress: bool = True

    def __post_init__(self) -> None:
        if self.unsafe:
            self.auto_confirm = True

    def validate(self) -> CleanupConfig:
        if self.batch_size <= 0:
            raise ConfigurationError("batch_size must be > 0")
        try:
            validate_identifier(self.table)
        except ValueError as exc:
            raise ConfigurationError(f"table: {exc}") from exc
        self.grouping()
        if not self.check_filenames and self.compare_path is None and self.tags is None:
            raise ConfigurationError(
                "Nothing to do: filename check disabled and neither a comparison store nor tags given"
            )
        return self

    def grouping(self) -> GroupingSpec | None:
        if not self.group_column:
            return None
        try:
            return GroupingSpec(column=self.group_column, null_policy=self.group_null_policy)
        except ValueError as exc:
            raise ConfigurationError(f"group: {exc}") from exc

    def resolved_archive_path(self) -> Path:
        return self.archive_path or archive_path_for(self.source_path)


class CleanupOrchestrator:
    """Run detection, confirmation, mutation and archiving for one source store."""

    def __init__(self, config: CleanupConfig, *, prompt: PromptFn | None = None) -> None:
        self.config = config.validate()
        self._prompt = prompt

    def run(self) -> CleanupStats:
        start_time = time.time()
        config = self.config
        source = require_store(config.source_path)
        stats = CleanupStats(source_path=source)

        reference = self._load_reference_filenames()
        resolver = DuplicateResolver(
            config.ranking,
            grouping=config.grouping(),
            check_filenames=config.check_filenames,
            reference_filenames=reference,
            tags=config.tags,
        )

        if config.unsafe:
            logger.warning("Unsafe mode: modifying %s in place", source)
            target_path = source
        else:
            target_path = copy_store(source, working_copy_path(source))
            logger.info("Working on copy %s", target_path)
        stats.working_path = target_path

        with ExitStack() as stack:
            snapshot_path = source
            if config.create_archive and config.unsafe:
                snapshot_path = stack.enter_context(pristine_copy(source))

            applied = False
            try:
                with RecordStore.open(target_path, table=config.table, label=target_path.name) as store:
                    result = resolver.resolve(store)
                    self._record_detection(stats, result)
                    if not result.is_empty():
                        gate = ConfirmationGate(auto_confirm=config.auto_confirm, prompt=self._prompt)
                        if gate.decide(result.combined, target=target_path.name) is GateState.APPROVED:
                            pipeline = MutationPipeline(
                                batch_size=config.batch_size,
                                show_progress=config.show_progress,
                            )
                            stats.removed = pipeline.apply(store, result.combined)
                            applied = True
                        else:
                            stats.aborted = True
                    else:
                        logger.info("No records to remove from %s", target_path.name)
                    stats.remaining_rows = store.row_count()
            except Exception:
                if not applied and not config.unsafe:
                    logger.warning("Cleanup of %s failed; removing working copy %s", source, target_path)
                    discard_store(target_path)
                raise

            if not applied and not config.unsafe:
                discard_store(target_path)
                stats.working_path = None

            if applied and config.create_archive:
                builder = ArchiveBuilder(config.resolved_archive_path(), table=config.table)
                stats.archive_path = builder.build_archive(snapshot_path, result.combined)

        stats.elapsed_time = time.time() - start_time
        return stats

    def _load_reference_filenames(self) -> set[str] | None:
        if self.config.compare_path is None:
            return None
        path = require_store(self.config.compare_path)
        with RecordStore.open(
            path,
            table=self.config.table,
            read_only=True,
            label=path.name,
        ) as reference:
            filenames = reference.fetch_filenames()
        logger.info("Loaded %d filenames from comparison store %s", len(filenames), path)
        return filenames

    @staticmethod
    def _record_detection(stats: CleanupStats, result: ResolutionResult) -> None:
        stats.snapshot_rows = result.snapshot_size
        stats.duplicate_candidates = len(result.duplicates)
        stats.overlap_candidates = len(result.overlap)
        stats.tag_candidates = len(result.tagged)
        stats.removal_total = len(result.combined)
