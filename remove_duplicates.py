#!/usr/bin/env python3
"""CLI entry point for removing duplicate records from a Soundminer database."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from media_dedupe.core import CleanupConfig, CleanupOrchestrator
from media_dedupe.errors import CleanupError
from media_dedupe.logging_support import configure_logging
from media_dedupe.models import CleanupStats, NullPolicy
from media_dedupe.rules import generate_config_files, load_ranking_spec, load_tag_spec
from media_dedupe.settings import Settings

logger = logging.getLogger("remove_duplicates")

EXAMPLES = """\
examples:
  %(prog)s library.sqlite --prune-tags
  %(prog)s library.sqlite -tvu
  %(prog)s library.sqlite --group-null show
  %(prog)s library.sqlite --compare archive.sqlite -d

configuration:
  The ranking file lists columns in priority order with ASC or DESC; lines
  starting with # are ignored. The tag file lists filename fragments that
  mark a record for removal with --prune-tags. Both fall back to built-in
  defaults when missing; --generate-config-files writes those defaults out.
"""


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="remove_duplicates",
        description="Remove duplicate filename entries from a Soundminer metadata database.",
        epilog=EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("database", nargs="?", type=Path, help="Path to the primary database.")
    parser.add_argument(
        "-c",
        "--compare",
        type=Path,
        metavar="DATABASE",
        help="Remove every record whose filename also exists in this database.",
    )
    grouping = parser.add_mutually_exclusive_group()
    grouping.add_argument("--group", metavar="COLUMN", help="Only treat records as duplicates within the same COLUMN value; records without a value are skipped.")
    grouping.add_argument("--group-null", metavar="COLUMN", help="Like --group, but records without a value are compared with each other.")
    grouping.add_argument("-s", "--group-by-show", dest="group_shorthand", action="store_const", const="show", help="Shorthand for --group show.")
    grouping.add_argument("-l", "--group-by-library", dest="group_shorthand", action="store_const", const="library", help="Shorthand for --group library.")
    parser.add_argument("-n", "--no-filename-check", action="store_true", help="Skip searching for filename duplicates in the primary database.")
    parser.add_argument("-t", "--prune-tags", action="store_true", help="Remove records whose filename contains a configured tag.")
    parser.add_argument("-d", "--create-duplicates-database", action="store_true", help="Write the removed records to a <name>_dupes database.")
    parser.add_argument("-u", "--unsafe", action="store_true", help="Write directly to the target database with no prompt.")
    parser.add_argument("-y", "--no-prompt", "--yes", dest="no_prompt", action="store_true", help="Answer yes to the confirmation prompt.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every removed record.")
    parser.add_argument("-g", "--generate-config-files", action="store_true", help="Write the default ranking and tag files.")
    parser.add_argument("--order-file", type=Path, default=settings.order_file, help="Ranking rule file (default: %(default)s).")
    parser.add_argument("--tags-file", type=Path, default=settings.tags_file, help="Tag file (default: %(default)s).")
    parser.add_argument("--table", default=settings.table, help="Metadata table name (default: %(default)s).")
    parser.add_argument("--batch-size", type=int, default=settings.batch_size, help="Record ids per DELETE statement (default: %(default)s).")
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level (DEBUG, INFO, WARNING, ERROR).")
    return parser


def build_config(args: argparse.Namespace) -> CleanupConfig:
    group_column = args.group or args.group_null or args.group_shorthand
    null_policy = NullPolicy.INCLUDE if args.group_null else NullPolicy.SKIP
    return CleanupConfig(
        source_path=args.database,
        compare_path=args.compare,
        ranking=load_ranking_spec(args.order_file),
        group_column=group_column,
        group_null_policy=null_policy,
        check_filenames=not args.no_filename_check,
        tags=load_tag_spec(args.tags_file) if args.prune_tags else None,
        create_archive=args.create_duplicates_database,
        unsafe=args.unsafe,
        auto_confirm=args.no_prompt,
        batch_size=args.batch_size,
        table=args.table,
    )


def format_summary(stats: CleanupStats) -> str:
    if stats.aborted:
        return f"Cancelled; 0 of {stats.removal_total} selected records removed."
    lines = [
        f"Removed {stats.removed} of {stats.snapshot_rows} records "
        f"(duplicates {stats.duplicate_candidates}, compare {stats.overlap_candidates}, "
        f"tags {stats.tag_candidates}); {stats.remaining_rows} remain "
        f"in {stats.working_path or stats.source_path}. ({stats.elapsed_time:.1f}s)"
    ]
    if stats.archive_path:
        lines.append(f"Removed records saved to {stats.archive_path}.")
    return "\n".join(lines)


def main(argv: Sequence[str] | None = None) -> int:
    try:
        settings = Settings.from_env()
    except CleanupError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    parser = build_parser(settings)
    args = parser.parse_args(argv)
    configure_logging(args.log_level, verbose=args.verbose)

    try:
        if args.generate_config_files:
            generate_config_files(args.order_file, args.tags_file)
            if args.database is None:
                return 0

        if args.database is None:
            parser.print_help()
            return 0

        stats = CleanupOrchestrator(build_config(args)).run()
    except CleanupError as exc:
        logger.error("%s", exc)
        return 1

    logger.debug("Run statistics: %s", stats.as_dict())
    print(format_summary(stats))
    return 0


if __name__ == "__main__":
    sys.exit(main())
