"""Query backend protocol used by the relation strategy."""

from __future__ import annotations

from typing import Any, Collection, Protocol, runtime_checkable

from ..core.models import Target


@runtime_checkable
class QueryBackend(Protocol):
    """Bulk point lookup by primary key.

    ``fetch_by_ids`` is called at most once per relation key per ``hydrate``
    call, with every distinct foreign key value found across the collection.
    Entities that do not exist are simply missing from the result.
    """

    def fetch_by_ids(self, target: Target, ids: Collection[Any]) -> list[dict[str, Any]]: ...
