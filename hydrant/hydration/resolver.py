"""Hydrate a single key across a whole collection of records."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Mapping, Sequence

from .registry import ResolverRegistry
from .strategies import (
    choose_strategy,
    hydrate_with_batch,
    hydrate_with_relation,
    hydrate_with_simple,
)

if TYPE_CHECKING:
    from ..storage.base import QueryBackend

logger = logging.getLogger(__name__)


def has_value(record: Any, key: str) -> bool:
    """Whether ``record`` already carries a usable value under ``key``.

    An explicit ``None`` counts as missing, so it is hydrated again.
    """
    return isinstance(record, Mapping) and record.get(key) is not None


def pending_positions(records: Sequence[Any], key: str) -> list[int]:
    """Positions of the records a strategy should hydrate for ``key``."""
    return [
        i
        for i, record in enumerate(records)
        if isinstance(record, Mapping) and not has_value(record, key)
    ]


def hydrate_key(
    records: Sequence[Any],
    key: str,
    *,
    registry: ResolverRegistry,
    backend: "QueryBackend | None" = None,
) -> list[Any]:
    """Hydrate ``key`` in every record that lacks it, using one strategy.

    ``None`` entries and non-mapping items are passed through at their
    positions, as are records that already have ``key``. At most one bulk
    fetch (relation) or batch call is made, whatever the collection size.

    Args:
        records: Collection to hydrate.
        key: Hydration key.
        registry: Where resolvers are looked up.
        backend: Query backend for the relation strategy. Defaults to the
            process-wide backend, resolved only if the relation strategy is
            chosen.

    Returns:
        A new list of the same length and order.
    """
    out = list(records)
    positions = pending_positions(out, key)
    if not positions:
        return out

    pending = [out[i] for i in positions]
    decision = choose_strategy(registry, pending, key)
    logger.debug(
        "Hydrating %r for %d record(s) via %s (%s)",
        key,
        len(pending),
        decision.strategy,
        decision.reason,
    )

    if decision.strategy == "relation":
        if backend is None:
            from ..storage import get_backend

            backend = get_backend()
        hydrated = hydrate_with_relation(pending, key, decision.resolver, backend)
    elif decision.strategy == "batch":
        hydrated = hydrate_with_batch(pending, key, decision.resolver)
    elif decision.strategy == "simple":
        hydrated = hydrate_with_simple(pending, key, decision.resolver)
    else:
        return out

    for i, record in zip(positions, hydrated):
        out[i] = record
    return out
