"""Parsing and generation of the ranking-rule and tag config files.

The ranking file is line oriented. Blank lines and lines starting with ``#``
are ignored; every other line is one rule, highest priority first::

    duration DESC
    CASE WHEN pathname LIKE '%LIBRARY%' THEN 0 ELSE 1 END ASC
    (CASE WHEN pathname LIKE '%Audio Files%' THEN 1 ELSE 0 END) ASC

The tag file holds one filename substring per line.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable

from pydantic import ValidationError

from constants import DEFAULT_ORDER, DEFAULT_ORDER_FILE, DEFAULT_TAGS, DEFAULT_TAGS_FILE

from .errors import ConfigurationError
from .models import RankingRule, RankingSpec, RankValue, TagSpec

logger = logging.getLogger(__name__)

ORDER_FILE_HEADER = (
    "## Column in order of Priority and whether it should be DESCending or ASCending.  "
    "Hashtag will bypass"
)

_VALUE = r"(?:'(?:[^']|'')*'|[-+]?\d+(?:\.\d+)?)"

_CONDITIONAL_RULE = re.compile(
    r"""
    ^\(?\s*
    CASE\s+WHEN\s+(?P<column>\w+)\s+LIKE\s+'(?P<pattern>(?:[^']|'')*)'\s+
    THEN\s+(?P<then>""" + _VALUE + r""")\s+
    ELSE\s+(?P<else>""" + _VALUE + r""")\s+
    END\s*\)?
    (?:\s+(?P<direction>ASC|DESC))?\s*$
    """,
    re.IGNORECASE | re.VERBOSE,
)

_COLUMN_RULE = re.compile(r"^(?P<column>\w+)(?:\s+(?P<direction>ASC|DESC))?\s*$", re.IGNORECASE)


def parse_rule(text: str) -> RankingRule:
    """Parse a single rule expression; raises ``ValueError`` on unrecognised input."""
    line = text.strip().rstrip(",").strip()
    match = _CONDITIONAL_RULE.match(line)
    if match:
        return RankingRule(
            column=match["column"],
            direction=match["direction"] or "ASC",
            pattern=_unquote(match["pattern"]),
            match_value=_parse_value(match["then"]),
            else_value=_parse_value(match["else"]),
        )
    match = _COLUMN_RULE.match(line)
    if match:
        return RankingRule(column=match["column"], direction=match["direction"] or "ASC")
    raise ValueError(f"unrecognised ranking rule {line!r}")


def parse_ranking_lines(lines: Iterable[str], *, source: str = "<rules>") -> RankingSpec:
    rules: list[RankingRule] = []
    for lineno, raw in enumerate(lines, start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        try:
            rules.append(parse_rule(line))
        except (ValueError, ValidationError) as exc:
            raise ConfigurationError(f"{source}:{lineno}: {_first_error(exc)}") from exc
    return RankingSpec.from_rules(rules)


def default_ranking_spec() -> RankingSpec:
    return parse_ranking_lines(DEFAULT_ORDER, source="<default order>")


def load_ranking_spec(path: Path | None) -> RankingSpec:
    """Read the ranking file at ``path``, falling back to the built-in order when absent."""
    lines = _read_lines(path)
    if lines is None:
        logger.info("No ranking file found at %s; using default order", path)
        return default_ranking_spec()
    spec = parse_ranking_lines(lines, source=str(path))
    if not spec.rules:
        logger.warning("Ranking file %s has no rules; ties resolve by record id only", path)
    return spec


def parse_tag_lines(lines: Iterable[str]) -> TagSpec:
    return TagSpec.from_iterable(lines)


def default_tag_spec() -> TagSpec:
    return TagSpec.from_iterable(DEFAULT_TAGS)


def load_tag_spec(path: Path | None) -> TagSpec:
    lines = _read_lines(path)
    if lines is None:
        logger.info("No tag file found at %s; using %d default tags", path, len(DEFAULT_TAGS))
        return default_tag_spec()
    return parse_tag_lines(lines)


def generate_config_files(
    order_path: Path = Path(DEFAULT_ORDER_FILE),
    tags_path: Path = Path(DEFAULT_TAGS_FILE),
) -> tuple[Path, Path]:
    """Write the default ranking and tag files, replacing existing ones."""
    try:
        for path in (order_path, tags_path):
            path.parent.mkdir(parents=True, exist_ok=True)
        order_path.write_text(
            "\n".join([ORDER_FILE_HEADER, *DEFAULT_ORDER]) + "\n",
            encoding="utf-8",
        )
        tags_path.write_text("\n".join(DEFAULT_TAGS) + "\n", encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Unable to write config files: {exc}") from exc
    logger.info("Created %s with default order.", order_path)
    logger.info("Created %s with default tags.", tags_path)
    return order_path, tags_path


def _read_lines(path: Path | None) -> list[str] | None:
    if path is None or not path.is_file():
        return None
    try:
        return path.read_text(encoding="utf-8").splitlines()
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigurationError(f"Unable to read {path}: {exc}") from exc


def _parse_value(token: str) -> RankValue:
    if token.startswith("'"):
        return _unquote(token[1:-1])
    if "." in token:
        return float(token)
    return int(token)


def _unquote(value: str) -> str:
    return value.replace("''", "'")


def _first_error(exc: Exception) -> str:
    if isinstance(exc, ValidationError):
        errors = exc.errors()
        if errors:
            return str(errors[0].get("msg", exc))
    return str(exc)
