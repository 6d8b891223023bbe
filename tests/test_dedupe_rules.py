from __future__ import annotations

from pathlib import Path

import pytest

from constants import DEFAULT_ORDER, DEFAULT_TAGS
from media_dedupe.errors import ConfigurationError
from media_dedupe.models import Direction
from media_dedupe.rules import (
    default_ranking_spec,
    generate_config_files,
    load_ranking_spec,
    load_tag_spec,
    parse_ranking_lines,
    parse_rule,
)


def test_parse_plain_rules() -> None:
    assert parse_rule("duration DESC").direction is Direction.DESC
    assert parse_rule("  BWDate asc ").direction is Direction.ASC
    assert parse_rule("scannedDate").direction is Direction.ASC


def test_parse_conditional_rule_with_parentheses() -> None:
    rule = parse_rule("(CASE WHEN pathname LIKE '%CREATED SFX%' THEN 0 ELSE 1 END) DESC")

    assert rule.is_conditional
    assert rule.column == "pathname"
    assert rule.pattern == "%CREATED SFX%"
    assert rule.match_value == 0
    assert rule.else_value == 1
    assert rule.direction is Direction.DESC


def test_parse_conditional_rule_unescapes_quotes() -> None:
    rule = parse_rule("case when pathname like '%Bob''s FX%' then 'a' else 'b' end")

    assert rule.pattern == "%Bob's FX%"
    assert rule.match_value == "a"
    assert rule.direction is Direction.ASC


def test_comments_and_blank_lines_are_ignored() -> None:
    spec = parse_ranking_lines(["# header", "", "duration DESC", "   ", "## note", "channels DESC"])
    assert [rule.column for rule in spec] == ["duration", "channels"]


def test_invalid_rule_reports_source_and_line() -> None:
    with pytest.raises(ConfigurationError, match=r"order\.txt:3"):
        parse_ranking_lines(["# header", "duration DESC", "duration DOWN"], source="order.txt")


def test_missing_order_file_uses_defaults(tmp_path: Path) -> None:
    spec = load_ranking_spec(tmp_path / "missing.txt")

    assert spec == default_ranking_spec()
    assert [rule.describe() for rule in spec] == list(DEFAULT_ORDER)


def test_tag_file_is_loaded_line_by_line(tmp_path: Path) -> None:
    path = tmp_path / "tags.txt"
    path.write_text("-RVRS_\n\n-Custom_\n", encoding="utf-8")

    assert load_tag_spec(path).tags == ("-RVRS_", "-Custom_")
    assert len(load_tag_spec(tmp_path / "missing.txt")) == 29
    assert load_tag_spec(None).tags == DEFAULT_TAGS


def test_generated_files_round_trip_to_defaults(tmp_path: Path) -> None:
    order_path, tags_path = generate_config_files(tmp_path / "order.txt", tmp_path / "tags.txt")

    assert order_path.read_text(encoding="utf-8").startswith("## ")
    assert load_ranking_spec(order_path) == default_ranking_spec()
    assert load_tag_spec(tags_path).tags == DEFAULT_TAGS
