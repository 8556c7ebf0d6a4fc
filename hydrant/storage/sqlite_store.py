"""SQLite-backed query backend.

Implements the bulk point lookup the relation strategy needs, plus the few
helpers the CLI and tests use to load root records.
"""

from __future__ import annotations

import logging
import re
import sqlite3
from pathlib import Path
from typing import Any, Collection, Iterable, Mapping

from ..core.models import Target
from .schemas import FetchRequest, SelectRequest

logger = logging.getLogger(__name__)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

DEFAULT_CHUNK_SIZE = 500


def _quote(identifier: str) -> str:
    if not _IDENTIFIER_RE.match(identifier):
        raise ValueError(f"Invalid SQL identifier: {identifier!r}")
    return f'"{identifier}"'


class SQLiteStore:
    """SQLite query backend.

    ``fetch_by_ids`` issues ``SELECT ... WHERE pk IN (...)`` in chunks of
    ``chunk_size`` ids so large id sets stay under SQLite's bound-parameter
    limit.
    """

    def __init__(self, path: Path | str, chunk_size: int = DEFAULT_CHUNK_SIZE):
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
        self.path = str(path)
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        self.chunk_size = chunk_size
        self.conn = sqlite3.connect(self.path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self._set_pragmas()

    def _set_pragmas(self) -> None:
        cursor = self.conn.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        if self.path != ":memory:":
            cursor.execute("PRAGMA journal_mode = WAL")
        cursor.execute("PRAGMA synchronous = NORMAL")
        cursor.execute("PRAGMA temp_store = MEMORY")
        self.conn.commit()

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> "SQLiteStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False

    def fetch_by_ids(self, target: Target, ids: Collection[Any]) -> list[dict[str, Any]]:
        request = FetchRequest(target=target, ids=frozenset(ids))
        columns = ", ".join(
            col if col == "*" else _quote(col) for col in target.select_columns()
        )
        table = _quote(target.name)
        pk = _quote(target.primary_key)
        ordered = request.sorted_ids()

        rows: list[dict[str, Any]] = []
        cursor = self.conn.cursor()
        for start in range(0, len(ordered), self.chunk_size):
            chunk = ordered[start : start + self.chunk_size]
            placeholders = ", ".join("?" for _ in chunk)
            cursor.execute(
                f"SELECT {columns} FROM {table} WHERE {pk} IN ({placeholders})",
                chunk,
            )
            rows.extend(dict(row) for row in cursor.fetchall())
        logger.debug(
            "Fetched %d of %d %s row(s)", len(rows), len(ordered), target.name
        )
        return rows

    def select(
        self,
        table: str,
        *,
        where: Mapping[str, Any] | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Read rows of ``table`` matching equality conditions in ``where``."""
        request = SelectRequest(table=table, where=dict(where or {}), limit=limit)
        sql = f"SELECT * FROM {_quote(request.table)}"
        params: list[Any] = []
        if request.where:
            clauses = []
            for column, value in request.where.items():
                if value is None:
                    clauses.append(f"{_quote(column)} IS NULL")
                else:
                    clauses.append(f"{_quote(column)} = ?")
                    params.append(value)
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY rowid"
        if request.limit is not None:
            sql += f" LIMIT {int(request.limit)}"
        cursor = self.conn.cursor()
        cursor.execute(sql, params)
        return [dict(row) for row in cursor.fetchall()]

    def insert_rows(self, table: str, rows: Iterable[Mapping[str, Any]]) -> int:
        """Insert rows (all with the same columns). Returns the row count."""
        rows = list(rows)
        if not rows:
            return 0
        columns = list(rows[0].keys())
        sql = (
            f"INSERT INTO {_quote(table)} ({', '.join(_quote(c) for c in columns)}) "
            f"VALUES ({', '.join('?' for _ in columns)})"
        )
        cursor = self.conn.cursor()
        cursor.executemany(sql, [tuple(row[c] for c in columns) for row in rows])
        self.conn.commit()
        return len(rows)

    def executescript(self, sql: str) -> None:
        self.conn.executescript(sql)
        self.conn.commit()


def open_store(path: Path | str, chunk_size: int | None = None) -> SQLiteStore:
    """Open an SQLite store, using the configured chunk size by default."""
    if chunk_size is None:
        from ..config import get_config

        chunk_size = get_config().storage.fetch_chunk_size
    return SQLiteStore(path, chunk_size=chunk_size)
