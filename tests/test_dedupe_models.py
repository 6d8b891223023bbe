from __future__ import annotations

import pytest
from pydantic import ValidationError

from media_dedupe.models import (
    DetectionMode,
    Direction,
    GroupingSpec,
    RankingRule,
    RemovalCandidate,
    RemovalSet,
    TagSpec,
)


def test_removal_set_merges_modes_for_repeated_ids() -> None:
    duplicates = RemovalSet.from_pairs(DetectionMode.DUPLICATE_FILENAME, [(3, "a.wav"), (5, "b.wav")])
    tagged = RemovalSet.from_pairs(DetectionMode.TAG, [(5, "b.wav"), (9, "c-RVRS_.wav")])

    combined = duplicates.union(tagged)

    assert len(combined) == 3
    assert combined.sorted_ids() == [3, 5, 9]
    assert combined.get(5) == RemovalCandidate(
        record_id=5,
        filename="b.wav",
        modes=frozenset({DetectionMode.DUPLICATE_FILENAME, DetectionMode.TAG}),
    )
    assert combined.count_by_mode() == {
        DetectionMode.DUPLICATE_FILENAME: 2,
        DetectionMode.OVERLAP: 0,
        DetectionMode.TAG: 2,
    }
    # Inputs are left untouched.
    assert len(duplicates) == 2
    assert 9 not in duplicates


def test_empty_removal_set_is_falsy() -> None:
    assert not RemovalSet()
    assert RemovalSet().union(RemovalSet()).sorted_ids() == []


def test_tag_spec_is_case_sensitive_and_deduplicated() -> None:
    tags = TagSpec.from_iterable(["-RVRS_", "", "  -NORM_ ", "-RVRS_"])

    assert tags.tags == ("-RVRS_", "-NORM_")
    assert tags.matches("clip-RVRS_01.wav")
    assert not tags.matches("clip-rvrs_01.wav")
    assert tags.first_match("pad-NORM_-RVRS_.wav") == "-RVRS_"
    assert not tags.matches(None)


def test_ranking_rule_normalizes_direction() -> None:
    rule = RankingRule(column=" duration ", direction="desc")
    assert rule.column == "duration"
    assert rule.direction is Direction.DESC
    assert rule.describe() == "duration DESC"


def test_ranking_rule_rejects_unsafe_column_names() -> None:
    with pytest.raises(ValidationError):
        RankingRule(column="duration; DROP TABLE justinmetadata")


def test_conditional_rule_requires_both_values() -> None:
    with pytest.raises(ValidationError):
        RankingRule(column="pathname", pattern="%LIBRARY%", match_value=0)


def test_grouping_spec_validates_column() -> None:
    assert GroupingSpec(column="show").column == "show"
    with pytest.raises(ValueError):
        GroupingSpec(column="show name")
