"""Dict-backed query backend for tests and interactive use."""

from __future__ import annotations

import threading
from typing import Any, Collection, Iterable, Mapping

from ..core.models import Target
from .schemas import FetchRequest


class InMemoryStore:
    """Tables held as lists of dicts.

    Every fetch is recorded in ``requests`` so callers can check how many
    round trips a hydration made:

        store = InMemoryStore({"users": [{"id": 1, "name": "Cam"}]})
        hydrate(records, "user", backend=store)
        assert len(store.requests) == 1
    """

    def __init__(self, tables: Mapping[str, Iterable[Mapping[str, Any]]] | None = None):
        self.tables: dict[str, list[dict[str, Any]]] = {
            name: [dict(row) for row in rows] for name, rows in (tables or {}).items()
        }
        self.requests: list[FetchRequest] = []
        self._lock = threading.Lock()

    def add_rows(self, table: str, rows: Iterable[Mapping[str, Any]]) -> None:
        with self._lock:
            self.tables.setdefault(table, []).extend(dict(row) for row in rows)

    def fetch_by_ids(self, target: Target, ids: Collection[Any]) -> list[dict[str, Any]]:
        request = FetchRequest(target=target, ids=frozenset(ids))
        with self._lock:
            self.requests.append(request)
            rows = list(self.tables.get(target.name, []))
        out = []
        for row in rows:
            if row.get(target.primary_key) not in request.ids:
                continue
            if target.columns is None:
                out.append(dict(row))
            else:
                out.append({col: row.get(col) for col in target.select_columns()})
        return out

    @property
    def fetch_count(self) -> int:
        return len(self.requests)
