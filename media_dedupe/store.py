from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable, Iterable, Iterator, Sequence
from contextlib import contextmanager
from itertools import islice
from pathlib import Path

from constants import DEFAULT_TABLE
from db_utils import get_sqlite_connection

from .errors import ConfigurationError, StoreQueryError
from .models import GroupingSpec, NullPolicy, RankingSpec, Record, validate_identifier

logger = logging.getLogger(__name__)

FILENAME_COLUMN = "filename"

BatchCallback = Callable[[Sequence[int], int], None]


class RecordStore:
    """Partitioned-ranking reads and batched deletes against one metadata table."""

    def __init__(
        self,
        conn: sqlite3.Connection,
        *,
        table: str = DEFAULT_TABLE,
        label: str | None = None,
    ) -> None:
        try:
            self._table = validate_identifier(table)
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc
        self._conn = conn
        self._conn.row_factory = sqlite3.Row
        self.label = label or self._table
        self._columns: dict[str, str] | None = None

    @classmethod
    def open(
        cls,
        path: str | Path,
        *,
        table: str = DEFAULT_TABLE,
        read_only: bool = False,
        label: str | None = None,
    ) -> RecordStore:
        db_path = Path(path)
        try:
            conn = get_sqlite_connection(db_path, read_only=read_only, exclusive=not read_only)
        except sqlite3.Error as exc:
            raise StoreQueryError(label or db_path.name, "open", str(exc)) from exc
        return cls(conn, table=table, label=label or db_path.name)

    def __enter__(self) -> RecordStore:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        self.close()

    def close(self) -> None:
        self._conn.close()

    @property
    def table(self) -> str:
        return self._table

    # ------------------------------------------------------------------ reads

    def columns(self) -> dict[str, str]:
        """Map lower-cased column names to their declared spelling."""
        if self._columns is None:
            with self._query_errors("schema"):
                rows = self._conn.execute(f'PRAGMA table_info("{self._table}")').fetchall()
            if not rows:
                raise StoreQueryError(self.label, "schema", f"table {self._table!r} not found")
            self._columns = {str(row["name"]).lower(): str(row["name"]) for row in rows}
        return self._columns

    def has_stable_ids(self) -> bool:
        """True when ``rowid`` is aliased by an ``INTEGER PRIMARY KEY`` column.

        Only then does a record id survive ``VACUUM``; SQLite is free to
        renumber the implicit rowid of any other table.
        """
        with self._query_errors("schema"):
            rows = self._conn.execute(f'PRAGMA table_info("{self._table}")').fetchall()
        key_columns = [row for row in rows if row["pk"]]
        return len(key_columns) == 1 and str(key_columns[0]["type"]).strip().upper() == "INTEGER"

    def row_count(self) -> int:
        with self._query_errors("count"):
            row = self._conn.execute(f'SELECT COUNT(*) FROM "{self._table}"').fetchone()
        return int(row[0]) if row else 0

    def fetch_snapshot(self, group_column: str | None = None) -> list[Record]:
        names = [FILENAME_COLUMN] + ([group_column] if group_column else [])
        self._require_columns(names)
        group_select = f', "{group_column}" AS "__group_key"' if group_column else ""
        sql = f"""
            SELECT rowid AS "__record_id", "{FILENAME_COLUMN}" AS "__filename"{group_select}, *
            FROM "{self._table}"
            ORDER BY rowid
        """
        records: list[Record] = []
        with self._query_errors("snapshot"):
            for row in self._conn.execute(sql):
                keys = row.keys()
                attributes = {key: row[key] for key in keys if not key.startswith("__")}
                records.append(
                    Record(
                        record_id=int(row["__record_id"]),
                        filename=row["__filename"],
                        group_key=row["__group_key"] if group_column else None,
                        attributes=attributes,
                    )
                )
        logger.debug("Read %d records from %s", len(records), self.label)
        return records

    def fetch_filenames(self) -> set[str]:
        self._require_columns([FILENAME_COLUMN])
        sql = (
            f'SELECT DISTINCT "{FILENAME_COLUMN}" FROM "{self._table}" '
            f'WHERE "{FILENAME_COLUMN}" IS NOT NULL'
        )
        with self._query_errors("filenames"):
            return {str(row[0]) for row in self._conn.execute(sql)}

    def rank_and_select(
        self,
        spec: RankingSpec,
        grouping: GroupingSpec | None = None,
    ) -> list[tuple[int, str]]:
        """Return ``(record_id, filename)`` for every row not ranked first in its partition.

        Rows are partitioned by filename, plus the grouping column when one
        is given, and ordered by ``spec`` with the lowest ``rowid`` winning
        a full tie.

        Record ids are rowids. They stay valid across ``reclaim_space`` only
        for tables with an ``INTEGER PRIMARY KEY``.
        """
        required = [FILENAME_COLUMN, *spec.columns()]
        if grouping is not None:
            required.append(grouping.column)
        self._require_columns(required)

        order_sql, params = self._order_clause(spec)
        partition = [f'"{FILENAME_COLUMN}"']
        conditions = [f'"{FILENAME_COLUMN}" IS NOT NULL']
        if grouping is not None:
            group_col = f'"{grouping.column}"'
            if grouping.null_policy is NullPolicy.SKIP:
                conditions.append(f"{group_col} IS NOT NULL AND {group_col} != ''")
                partition.append(group_col)
            else:
                partition.append(f"COALESCE({group_col}, '')")

        sql = f"""
            SELECT record_id, filename
            FROM (
                SELECT
                    rowid AS record_id,
                    "{FILENAME_COLUMN}" AS filename,
                    ROW_NUMBER() OVER (
                        PARTITION BY {", ".join(partition)}
                        ORDER BY {order_sql}
                    ) AS row_rank
                FROM "{self._table}"
                WHERE {" AND ".join(conditions)}
            ) AS ranked
            WHERE row_rank > 1
            ORDER BY record_id
        """
        with self._query_errors("rank"):
            return [(int(row["record_id"]), str(row["filename"])) for row in self._conn.execute(sql, params)]

    # ---------------------------------------------------------------- writes

    def delete_batch(
        self,
        ids: Iterable[int],
        batch_size: int,
        *,
        on_batch: BatchCallback | None = None,
    ) -> int:
        """Delete ``ids`` in chunks of ``batch_size`` inside a single transaction."""
        if batch_size <= 0:
            raise ConfigurationError("batch_size must be > 0")
        id_list = sorted({int(record_id) for record_id in ids})
        if not id_list:
            return 0

        deleted = 0
        with self._query_errors("delete"), self._conn:
            for chunk in _chunk(id_list, batch_size):
                placeholders = ",".join("?" for _ in chunk)
                cursor = self._conn.execute(
                    f'DELETE FROM "{self._table}" WHERE rowid IN ({placeholders})',
                    chunk,
                )
                deleted += max(cursor.rowcount, 0)
                if on_batch is not None:
                    on_batch(chunk, deleted)
        logger.debug("Committed deletion of %d rows from %s", deleted, self.label)
        return deleted

    def delete_complement(self, keep_ids: Iterable[int]) -> int:
        """Delete every row whose id is not in ``keep_ids``, in one transaction."""
        keep = sorted({int(record_id) for record_id in keep_ids})
        with self._query_errors("delete complement"), self._conn:
            self._conn.execute("CREATE TEMP TABLE IF NOT EXISTS keep_ids (id INTEGER PRIMARY KEY)")
            self._conn.execute("DELETE FROM temp.keep_ids")
            self._conn.executemany(
                "INSERT INTO temp.keep_ids (id) VALUES (?)",
                ((record_id,) for record_id in keep),
            )
            cursor = self._conn.execute(
                f'DELETE FROM "{self._table}" WHERE rowid NOT IN (SELECT id FROM temp.keep_ids)'
            )
            deleted = max(cursor.rowcount, 0)
            self._conn.execute("DELETE FROM temp.keep_ids")
        return deleted

    def reclaim_space(self) -> bool:
        """Run ``VACUUM`` and return True, or skip it when record ids are not stable."""
        if self._conn.in_transaction:
            raise StoreQueryError(self.label, "reclaim", "cannot vacuum inside an open transaction")
        if not self.has_stable_ids():
            logger.warning(
                "Skipping VACUUM on %s: table %r has no INTEGER PRIMARY KEY, so record ids could be renumbered",
                self.label,
                self._table,
            )
            return False
        with self._query_errors("reclaim"):
            self._conn.execute("VACUUM")
        return True

    # --------------------------------------------------------------- helpers

    def _require_columns(self, names: Iterable[str]) -> None:
        available = self.columns()
        missing = [name for name in dict.fromkeys(names) if name.lower() not in available]
        if missing:
            raise ConfigurationError(
                f"{self.label}: table {self._table!r} has no column(s) {', '.join(missing)}"
            )

    @staticmethod
    def _order_clause(spec: RankingSpec) -> tuple[str, list[object]]:
        terms: list[str] = []
        params: list[object] = []
        for rule in spec:
            column = f'"{rule.column}"'
            if rule.is_conditional:
                terms.append(f"CASE WHEN {column} LIKE ? THEN ? ELSE ? END {rule.direction.value}")
                params.extend([rule.pattern, rule.match_value, rule.else_value])
            else:
                terms.append(f"{column} {rule.direction.value}")
        terms.append("rowid ASC")
        return ", ".join(terms), params

    @contextmanager
    def _query_errors(self, phase: str) -> Iterator[None]:
        try:
            yield
        except sqlite3.Error as exc:
            raise StoreQueryError(self.label, phase, str(exc)) from exc


def _chunk(values: Sequence[int], size: int) -> Iterator[list[int]]:
    it = iter(values)
    while True:
        batch = list(islice(it, size))
        if not batch:
            break
        yield batch
