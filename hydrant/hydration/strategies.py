"""Hydration strategies and the precedence rule that picks one per key.

Precedence policy (first match wins):
1. relation - a relation is registered and every pending record has a
   ``{key}_id`` or ``{key}-id`` foreign key
2. batch - a batch resolver is registered
3. simple - a simple resolver is registered
4. none - nothing applies; records are left as they are

"Pending" records are the mapping records that do not have a value for the
key yet. Each strategy receives only those and returns them augmented, in
the same order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal, Mapping, Sequence

from ..core.models import Target
from ..errors import ResolverContractError
from .registry import BatchResolver, ResolverRegistry, SimpleResolver

if TYPE_CHECKING:
    from ..storage.base import QueryBackend

logger = logging.getLogger(__name__)

StrategyName = Literal["relation", "batch", "simple", "none"]


@dataclass(frozen=True)
class StrategyDecision:
    """Which strategy hydrates a key, and why.

    ``resolver`` is the ``Target`` or function the strategy runs with, as read
    from the registry when the decision was made.
    """

    strategy: StrategyName
    reason: str
    resolver: Any = None


def foreign_key_fields(key: str) -> tuple[str, str]:
    """The two spellings of the foreign key for ``key``.

        foreign_key_fields("user") -> ("user_id", "user-id")
    """
    return f"{key}_id", f"{key}-id"


def has_foreign_key(record: Mapping[str, Any], key: str) -> bool:
    return any(field in record for field in foreign_key_fields(key))


def foreign_key_value(record: Mapping[str, Any], key: str) -> Any:
    """Value of the foreign key for ``key``; the underscore spelling wins."""
    for field in foreign_key_fields(key):
        if field in record:
            return record[field]
    return None


def choose_strategy(
    registry: ResolverRegistry,
    pending: Sequence[Mapping[str, Any]],
    key: str,
) -> StrategyDecision:
    """Pick the strategy for ``key`` given the records that still need it.

    The registry is read once, so the decision stays usable if resolvers are
    cleared or reset while it is applied.
    """
    target, batch, simple = registry.resolvers_for(key)
    if target is not None:
        missing = sum(1 for record in pending if not has_foreign_key(record, key))
        if not missing:
            return StrategyDecision(
                "relation", "relation registered, foreign keys present", target
            )
        logger.debug(
            "Relation for %r skipped: %d of %d records lack %s",
            key,
            missing,
            len(pending),
            " / ".join(foreign_key_fields(key)),
        )
    if batch is not None:
        return StrategyDecision("batch", "batch resolver registered", batch)
    if simple is not None:
        return StrategyDecision("simple", "simple resolver registered", simple)
    return StrategyDecision("none", "no resolver registered")



# =============================================================================
# Strategy application
# =============================================================================


def hydrate_with_relation(
    pending: Sequence[Mapping[str, Any]],
    key: str,
    target: Target,
    backend: "QueryBackend",
) -> list[dict[str, Any]]:
    """Attach ``target`` entities to every pending record with one bulk fetch.

    Records whose foreign key has no matching entity (or is ``None``) get
    ``None`` under ``key``.
    """
    ids = {
        fk
        for fk in (foreign_key_value(record, key) for record in pending)
        if fk is not None
    }
    by_id: dict[Any, Any] = {}
    if ids:
        logger.debug("Fetching %d %s row(s) for key %r", len(ids), target.name, key)
        for entity in backend.fetch_by_ids(target, ids):
            by_id[entity[target.primary_key]] = entity
    return [
        {**record, key: by_id.get(foreign_key_value(record, key))}
        for record in pending
    ]


def hydrate_with_batch(
    pending: Sequence[Mapping[str, Any]],
    key: str,
    fn: BatchResolver,
) -> list[dict[str, Any]]:
    """Call a batch resolver once and merge its output back by position."""
    results = fn(list(pending))
    if results is None:
        raise ResolverContractError(f"Batch resolver for {key!r} returned None")
    results = list(results)
    if len(results) != len(pending):
        raise ResolverContractError(
            f"Batch resolver for {key!r} returned {len(results)} records "
            f"for {len(pending)} inputs"
        )
    merged = []
    for record, result in zip(pending, results):
        if not isinstance(result, Mapping):
            raise ResolverContractError(
                f"Batch resolver for {key!r} returned a non-mapping item: {result!r}"
            )
        merged.append({**record, **result})
    return merged


def hydrate_with_simple(
    pending: Sequence[Mapping[str, Any]],
    key: str,
    fn: SimpleResolver,
) -> list[dict[str, Any]]:
    """Call a simple resolver for each pending record."""
    return [{**record, key: fn(record)} for record in pending]
