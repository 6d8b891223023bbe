"""Duplicate removal for Soundminer-style media metadata databases."""

from .core import CleanupConfig, CleanupOrchestrator
from .errors import CleanupError, ConfigurationError, StoreIOError, StoreQueryError
from .models import (
    CleanupStats,
    DetectionMode,
    Direction,
    GroupingSpec,
    NullPolicy,
    RankingRule,
    RankingSpec,
    Record,
    RemovalCandidate,
    RemovalSet,
    TagSpec,
)

__all__ = [
    "CleanupConfig",
    "CleanupOrchestrator",
    "CleanupError",
    "ConfigurationError",
    "StoreIOError",
    "StoreQueryError",
    "CleanupStats",
    "DetectionMode",
    "Direction",
    "GroupingSpec",
    "NullPolicy",
    "RankingRule",
    "RankingSpec",
    "Record",
    "RemovalCandidate",
    "RemovalSet",
    "TagSpec",
]
