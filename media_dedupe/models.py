from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Iterator, Tuple

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

RankValue = int | float | str


class Direction(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


class NullPolicy(str, Enum):
    SKIP = "skip"
    INCLUDE = "include"


class DetectionMode(str, Enum):
    DUPLICATE_FILENAME = "duplicate_filename"
    OVERLAP = "overlap"
    TAG = "tag"


def validate_identifier(name: str) -> str:
    """Return ``name`` stripped, or raise ``ValueError`` if it is not a plain SQL identifier."""
    cleaned = name.strip() if isinstance(name, str) else ""
    if not _IDENTIFIER.match(cleaned):
        raise ValueError(f"invalid column name {name!r}")
    return cleaned


class RankingRule(BaseModel):
    """One ordering rule: a column, or a LIKE test on a column mapped to two rank values."""

    model_config = ConfigDict(frozen=True)

    column: str
    direction: Direction = Direction.ASC
    pattern: str | None = None
    match_value: RankValue | None = None
    else_value: RankValue | None = None

    @field_validator("column")
    @classmethod
    def _check_column(cls, value: str) -> str:
        return validate_identifier(value)

    @field_validator("direction", mode="before")
    @classmethod
    def _normalize_direction(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @model_validator(mode="after")
    def _check_conditional(self) -> RankingRule:
        if self.pattern is not None and (self.match_value is None or self.else_value is None):
            raise ValueError("conditional rules need both a match value and an else value")
        return self

    @property
    def is_conditional(self) -> bool:
        return self.pattern is not None

    def describe(self) -> str:
        if self.is_conditional:
            return (
                f"CASE WHEN {self.column} LIKE '{self.pattern}' "
                f"THEN {self.match_value} ELSE {self.else_value} END {self.direction.value}"
            )
        return f"{self.column} {self.direction.value}"


@dataclass(frozen=True, slots=True)
class RankingSpec:
    rules: tuple[RankingRule, ...] = ()

    @classmethod
    def from_rules(cls, rules: Iterable[RankingRule]) -> RankingSpec:
        return cls(rules=tuple(rules))

    def __iter__(self) -> Iterator[RankingRule]:
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)

    def columns(self) -> tuple[str, ...]:
        return tuple(dict.fromkeys(rule.column for rule in self.rules))


@dataclass(frozen=True, slots=True)
class GroupingSpec:
    column: str
    null_policy: NullPolicy = NullPolicy.SKIP

    def __post_init__(self) -> None:
        object.__setattr__(self, "column", validate_identifier(self.column))


@dataclass(frozen=True, slots=True)
class TagSpec:
    tags: tuple[str, ...] = ()

    @classmethod
    def from_iterable(cls, tags: Iterable[str]) -> TagSpec:
        cleaned = (tag.strip() for tag in tags)
        return cls(tags=tuple(dict.fromkeys(tag for tag in cleaned if tag)))

    def first_match(self, filename: str | None) -> str | None:
        if not filename:
            return None
        for tag in self.tags:
            if tag in filename:
                return tag
        return None

    def matches(self, filename: str | None) -> bool:
        return self.first_match(filename) is not None

    def __len__(self) -> int:
        return len(self.tags)


@dataclass(slots=True)
class Record:
    record_id: int
    filename: str
    group_key: str | None = None
    attributes: dict[str, Any] = field(default_factory=dict)

    def has_group_key(self) -> bool:
        return self.group_key is not None and str(self.group_key) != ""


@dataclass(frozen=True, slots=True)
class RemovalCandidate:
    record_id: int
    filename: str
    modes: frozenset[DetectionMode]

    def merged_with(self, other: RemovalCandidate) -> RemovalCandidate:
        return RemovalCandidate(
            record_id=self.record_id,
            filename=self.filename,
            modes=self.modes | other.modes,
        )


class RemovalSet:
    """Immutable set of record ids selected for removal, keyed by ``record_id``."""

    __slots__ = ("_candidates",)

    def __init__(self, candidates: Iterable[RemovalCandidate] = ()) -> None:
        merged: dict[int, RemovalCandidate] = {}
        for candidate in candidates:
            existing = merged.get(candidate.record_id)
            merged[candidate.record_id] = (
                existing.merged_with(candidate) if existing else candidate
            )
        self._candidates = merged

    @classmethod
    def from_pairs(
        cls,
        mode: DetectionMode,
        pairs: Iterable[Tuple[int, str]],
    ) -> RemovalSet:
        modes = frozenset({mode})
        return cls(
            RemovalCandidate(record_id=int(record_id), filename=filename, modes=modes)
            for record_id, filename in pairs
        )

    def union(self, *others: RemovalSet) -> RemovalSet:
        candidates = list(self._candidates.values())
        for other in others:
            candidates.extend(other._candidates.values())
        return RemovalSet(candidates)

    def ids(self) -> frozenset[int]:
        return frozenset(self._candidates)

    def sorted_ids(self) -> list[int]:
        return sorted(self._candidates)

    def candidates(self) -> list[RemovalCandidate]:
        return [self._candidates[record_id] for record_id in self.sorted_ids()]

    def get(self, record_id: int) -> RemovalCandidate | None:
        return self._candidates.get(record_id)

    def count_by_mode(self) -> dict[DetectionMode, int]:
        counts = {mode: 0 for mode in DetectionMode}
        for candidate in self._candidates.values():
            for mode in candidate.modes:
                counts[mode] += 1
        return counts

    def __len__(self) -> int:
        return len(self._candidates)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._candidates

    def __iter__(self) -> Iterator[RemovalCandidate]:
        return iter(self.candidates())

    def __repr__(self) -> str:
        return f"RemovalSet(size={len(self)})"


@dataclass(slots=True)
class CleanupStats:
    source_path: Path
    working_path: Path | None = None
    archive_path: Path | None = None
    snapshot_rows: int = 0
    duplicate_candidates: int = 0
    overlap_candidates: int = 0
    tag_candidates: int = 0
    removal_total: int = 0
    removed: int = 0
    remaining_rows: int = 0
    aborted: bool = False
    elapsed_time: float = 0.0

    def as_dict(self) -> dict[str, Any]:
        return {
            "source_path": str(self.source_path),
            "working_path": str(self.working_path) if self.working_path else None,
            "archive_path": str(self.archive_path) if self.archive_path else None,
            "snapshot_rows": self.snapshot_rows,
            "duplicate_candidates": self.duplicate_candidates,
            "overlap_candidates": self.overlap_candidates,
            "tag_candidates": self.tag_candidates,
            "removal_total": self.removal_total,
            "removed": self.removed,
            "remaining_rows": self.remaining_rows,
            "aborted": self.aborted,
            "elapsed_time": self.elapsed_time,
        }
