"""Hydrate records, or collections of records, with one or more forms.

                     hydrate <──────────────────┐
                        │                       │
                  hydrate_many                  │
                        │ (for each form)       │
                  _hydrate_form                 │ (recursively, once per
                        │                       │  nested form, over the
              hydrate_key(form.key)             │  flattened inner values)
                        │                       │
                  form.nested? ──► apply_by_key ┘

Every form is validated before anything is fetched. Forms are applied left
to right, so later forms see the results of earlier ones. With
``concurrent=True`` independent top-level forms run on a thread pool against
one snapshot of the collection and are merged back in form order.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Any, Mapping, Sequence

from ..config import get_config
from .forms import HydrationForm, parse_forms
from .registry import ResolverRegistry, get_registry
from .resolver import hydrate_key
from .shape import apply_by_key

if TYPE_CHECKING:
    from ..storage.base import QueryBackend

logger = logging.getLogger(__name__)


class Hydrator:
    """Binds a registry, a query backend and engine options.

    With ``concurrent`` on, top-level forms with distinct head keys run in
    parallel against the same snapshot, so a resolver never sees what another
    top-level form wrote. Only turn it on when those resolvers are independent:
    with a ``z`` resolver that reads ``x``, ``hydrate(r, "x", "z")`` gives a
    different ``z`` concurrently than in order.

    Example:
        hydrator = Hydrator(registry=registry, backend=open_store("app.db"))
        venues = hydrator.hydrate(venues, "category", ["owner", "address"])
    """

    def __init__(
        self,
        registry: ResolverRegistry | None = None,
        backend: "QueryBackend | None" = None,
        concurrent: bool | None = None,
        max_workers: int | None = None,
    ):
        config = get_config()
        self.registry = registry if registry is not None else get_registry()
        self.backend = backend
        self.concurrent = (
            config.engine.concurrent_keys if concurrent is None else concurrent
        )
        self.max_workers = max_workers or config.engine.max_workers

    def hydrate(self, results: Any, *forms: Any) -> Any:
        """Hydrate a single record or a list/tuple of records.

        Returns the same shape as ``results``: a single record in, a single
        record out; a tuple in, a tuple out.

        Raises:
            HydrationSpecError: If any form is invalid (before any fetch).
        """
        parsed = parse_forms(forms)
        if results is None:
            return None
        if isinstance(results, Mapping):
            return self.hydrate_many([results], parsed)[0]
        if not isinstance(results, (list, tuple)):
            raise TypeError(
                f"Expected a record or a list/tuple of records, got {type(results).__name__}"
            )
        if not results:
            return results
        hydrated = self.hydrate_many(list(results), parsed)
        return tuple(hydrated) if isinstance(results, tuple) else hydrated

    def hydrate_many(
        self, records: Sequence[Any], forms: Sequence[HydrationForm]
    ) -> list[Any]:
        """Apply parsed forms to a collection."""
        records = list(records)
        if self.concurrent and _can_run_concurrently(forms):
            return self._hydrate_concurrently(records, forms)
        return self._hydrate_sequential(records, forms)

    def _hydrate_form(self, records: list[Any], form: HydrationForm) -> list[Any]:
        records = hydrate_key(
            records, form.key, registry=self.registry, backend=self.backend
        )
        if not form.nested:
            return records
        return apply_by_key(
            records,
            form.key,
            lambda inner: self._hydrate_sequential(inner, form.nested),
        )

    def _hydrate_sequential(
        self, records: list[Any], forms: Sequence[HydrationForm]
    ) -> list[Any]:
        for form in forms:
            records = self._hydrate_form(records, form)
        return records

    def _hydrate_concurrently(
        self, records: list[Any], forms: Sequence[HydrationForm]
    ) -> list[Any]:
        snapshot = list(records)
        workers = min(self.max_workers, len(forms))
        logger.debug("Hydrating %d forms on %d threads", len(forms), workers)
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [
                pool.submit(self._hydrate_form, snapshot, form) for form in forms
            ]
            outputs = [future.result() for future in futures]

        merged = list(snapshot)
        for output in outputs:
            for i, (before, after) in enumerate(zip(snapshot, output)):
                if after is before or not isinstance(after, Mapping):
                    continue
                # fields a form added or replaced, including extra batch fields
                changed = {
                    k: v
                    for k, v in after.items()
                    if k not in before or before[k] is not v
                }
                if changed:
                    merged[i] = {**merged[i], **changed}
        return merged



def _can_run_concurrently(forms: Sequence[HydrationForm]) -> bool:
    keys = [form.key for form in forms]
    return len(keys) > 1 and len(set(keys)) == len(keys)


def hydrate(
    results: Any,
    *forms: Any,
    registry: ResolverRegistry | None = None,
    backend: "QueryBackend | None" = None,
    concurrent: bool | None = None,
    max_workers: int | None = None,
) -> Any:
    """Hydrate a single record or a collection of records.

    Batched relation hydration: if ``key`` has a registered relation and
    every record carries ``{key}_id`` (or ``{key}-id``), all the related
    entities are fetched with a single ``fetch_by_ids`` call:

        hydrate([{"user_id": 100}, {"user_id": 101}], "user")

    Batch resolvers are called once with every record that needs the key;
    simple resolvers are called once per record. Records that already have a
    value for the key are left alone, and keys nothing can hydrate are
    skipped silently.

    Several keys at once:

        hydrate(record, "a", "b")  -> {..., "a": 1, "b": 2}

    Nested hydration, where keys after the first are hydrated *inside* the
    value of the first:

        hydrate(record, ["a", ["b", "c"], "e"])
          -> {"a": {"b": {"c": 1}, "e": 2}}

    ``concurrent=True`` assumes the top-level forms are independent; see
    ``Hydrator``. An exception from any form propagates (the first one in
    form order) and no partial result is returned.

    Raises:
        HydrationSpecError: If any form is invalid (before any fetch).
    """
    hydrator = Hydrator(
        registry=registry,
        backend=backend,
        concurrent=concurrent,
        max_workers=max_workers,
    )
    return hydrator.hydrate(results, *forms)
