"""Registry of hydration resolvers.

Three kinds of resolver can be registered per hydration key:

- relation: a ``Target`` to bulk fetch entities from, matched through a
  ``{key}_id`` / ``{key}-id`` foreign key on each record
- batch: ``fn(records) -> records`` hydrating a whole collection at once
- simple: ``fn(record) -> value`` hydrating one record at a time

Resolvers are registered explicitly:

    registry.register_relation("user", Target(name="users"))
    registry.register_simple_resolver("full_name", lambda r: f"{r['first']} {r['last']}")

or discovered from modules that tag functions with ``@hydrates`` /
``@batched_hydrates`` and declare ``Target`` objects with ``hydration_keys``:

    @batched_hydrates("fields")
    def with_fields(tables): ...

    registry.discover("myapp.models")

Discovery results are memoized per module; ``reset_caches()`` forgets them so
a reloaded module can be discovered again without stale entries.
"""

from __future__ import annotations

import importlib
import logging
import pkgutil
import threading
from types import ModuleType
from typing import Any, Callable, Literal, Mapping, Sequence

from ..core.models import Target
from ..errors import DuplicateResolverError

logger = logging.getLogger(__name__)

ResolverKind = Literal["relation", "batch", "simple"]

BatchResolver = Callable[[list[Mapping[str, Any]]], Sequence[Mapping[str, Any]]]
SimpleResolver = Callable[[Mapping[str, Any]], Any]

_SIMPLE_ATTR = "__hydrant_hydrates__"
_BATCH_ATTR = "__hydrant_batched_hydrates__"


# =============================================================================
# Discovery decorators
# =============================================================================


def _tagger(attr: str, key_or_fn: Any):
    if callable(key_or_fn):
        setattr(key_or_fn, attr, key_or_fn.__name__)
        return key_or_fn

    def decorate(fn):
        setattr(fn, attr, key_or_fn or fn.__name__)
        return fn

    return decorate


def hydrates(key_or_fn: Any = None):
    """Mark a function as the simple resolver for a key.

    The key defaults to the function name:

        @hydrates
        def dashboard(card): ...

        @hydrates("pk_field")
        def pk_field_id(table): ...
    """
    return _tagger(_SIMPLE_ATTR, key_or_fn)


def batched_hydrates(key_or_fn: Any = None):
    """Mark a function as the batch resolver for a key.

    The function receives every record that still needs the key and must
    return the same number of records, in the same order.
    """
    return _tagger(_BATCH_ATTR, key_or_fn)


# =============================================================================
# Registry
# =============================================================================


class ResolverRegistry:
    """Holds relation, batch and simple resolvers keyed by hydration key.

    Thread-safe: registration, discovery and lookups share one re-entrant
    lock, so a registry can be reloaded while other threads hydrate.
    """

    def __init__(self) -> None:
        self._relations: dict[str, Target] = {}
        self._batch: dict[str, BatchResolver] = {}
        self._simple: dict[str, SimpleResolver] = {}
        self._discovered: set[tuple[ResolverKind, str]] = set()
        self._scanned: set[str] = set()
        self._lock = threading.RLock()

    def _table(self, kind: ResolverKind) -> dict[str, Any]:
        if kind == "relation":
            return self._relations
        if kind == "batch":
            return self._batch
        return self._simple

    def _register(
        self,
        kind: ResolverKind,
        key: str,
        value: Any,
        *,
        replace: bool,
        discovered: bool,
    ) -> None:
        if not isinstance(key, str) or not key:
            raise ValueError(f"Hydration key must be a non-empty string, got {key!r}")
        with self._lock:
            table = self._table(kind)
            existing = table.get(key)
            if existing is not None and existing is not value and existing != value:
                if not replace:
                    raise DuplicateResolverError(kind, key, existing, value)
                logger.debug("Replacing %s resolver for %r", kind, key)
            explicit = existing is not None and (kind, key) not in self._discovered
            table[key] = value
            if not discovered:
                self._discovered.discard((kind, key))
            elif not explicit:
                self._discovered.add((kind, key))

    def register_relation(self, key: str, target: Target, *, replace: bool = False) -> None:
        """Hydrate ``key`` by fetching ``target`` entities via ``{key}_id``."""
        if not isinstance(target, Target):
            raise TypeError(f"Expected a Target for {key!r}, got {target!r}")
        self._register("relation", key, target, replace=replace, discovered=False)

    def register_batch_resolver(
        self, key: str, fn: BatchResolver, *, replace: bool = False
    ) -> None:
        if not callable(fn):
            raise TypeError(f"Batch resolver for {key!r} is not callable: {fn!r}")
        self._register("batch", key, fn, replace=replace, discovered=False)

    def register_simple_resolver(
        self, key: str, fn: SimpleResolver, *, replace: bool = False
    ) -> None:
        if not callable(fn):
            raise TypeError(f"Simple resolver for {key!r} is not callable: {fn!r}")
        self._register("simple", key, fn, replace=replace, discovered=False)

    def relation_for(self, key: str) -> Target | None:
        with self._lock:
            return self._relations.get(key)

    def batch_resolver_for(self, key: str) -> BatchResolver | None:
        with self._lock:
            return self._batch.get(key)

    def simple_resolver_for(self, key: str) -> SimpleResolver | None:
        with self._lock:
            return self._simple.get(key)

    def resolvers_for(
        self, key: str
    ) -> tuple[Target | None, BatchResolver | None, SimpleResolver | None]:
        """Relation, batch and simple resolvers for ``key``, read under one lock."""
        with self._lock:
            return self._relations.get(key), self._batch.get(key), self._simple.get(key)

    def keys(self) -> dict[ResolverKind, list[str]]:
        """Registered keys per resolver kind."""
        with self._lock:
            return {
                "relation": sorted(self._relations),
                "batch": sorted(self._batch),
                "simple": sorted(self._simple),
            }

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._relations or key in self._batch or key in self._simple

    # ── Discovery ──

    def discover(self, *module_names: str) -> list[str]:
        """Import modules (and package submodules) and register tagged resolvers.

        Returns the names of modules scanned by this call. Modules scanned by
        an earlier call are skipped until ``reset_caches()``.

        Raises:
            DuplicateResolverError: If two discovered resolvers of the same
                kind claim one key, or one clashes with an explicit resolver.
        """
        scanned: list[str] = []
        with self._lock:
            for name in module_names:
                for module in _iter_modules(name):
                    if module.__name__ in self._scanned:
                        continue
                    self._scan_module(module)
                    self._scanned.add(module.__name__)
                    scanned.append(module.__name__)
        if scanned:
            logger.debug("Discovered resolvers in %d module(s): %s", len(scanned), scanned)
        return scanned

    def _scan_module(self, module: ModuleType) -> None:
        for attr_name, obj in vars(module).items():
            if attr_name.startswith("__"):
                continue
            if isinstance(obj, Target):
                for key in obj.hydration_keys:
                    self._register("relation", key, obj, replace=False, discovered=True)
                continue
            if not callable(obj) or getattr(obj, "__module__", None) != module.__name__:
                continue
            simple_key = getattr(obj, _SIMPLE_ATTR, None)
            if simple_key:
                self._register("simple", simple_key, obj, replace=False, discovered=True)
            batch_key = getattr(obj, _BATCH_ATTR, None)
            if batch_key:
                self._register("batch", batch_key, obj, replace=False, discovered=True)

    def reset_caches(self) -> None:
        """Forget everything found by ``discover`` so it can run again."""
        with self._lock:
            for kind, key in self._discovered:
                self._table(kind).pop(key, None)
            self._discovered.clear()
            self._scanned.clear()

    def clear(self) -> None:
        """Remove every resolver, explicit or discovered."""
        with self._lock:
            self._relations.clear()
            self._batch.clear()
            self._simple.clear()
            self._discovered.clear()
            self._scanned.clear()


def _iter_modules(name: str):
    module = importlib.import_module(name)
    yield module
    path = getattr(module, "__path__", None)
    if path is None:
        return
    for info in pkgutil.walk_packages(path, prefix=f"{module.__name__}."):
        yield importlib.import_module(info.name)


# =============================================================================
# Process-wide default registry
# =============================================================================


class _DefaultRegistry:
    _instance: ResolverRegistry | None = None
    _lock = threading.Lock()

    @classmethod
    def get(cls) -> ResolverRegistry:
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = ResolverRegistry()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        with cls._lock:
            cls._instance = None


def get_registry() -> ResolverRegistry:
    """Get the process-wide registry used when ``hydrate`` gets none."""
    return _DefaultRegistry.get()


def reset_registry() -> None:
    """Drop the process-wide registry (for testing)."""
    _DefaultRegistry.reset()


def register_relation(key: str, target: Target, *, replace: bool = False) -> None:
    get_registry().register_relation(key, target, replace=replace)


def register_batch_resolver(key: str, fn: BatchResolver, *, replace: bool = False) -> None:
    get_registry().register_batch_resolver(key, fn, replace=replace)


def register_simple_resolver(key: str, fn: SimpleResolver, *, replace: bool = False) -> None:
    get_registry().register_simple_resolver(key, fn, replace=replace)


def reset_registry_caches() -> None:
    """Forget discovered resolvers in the process-wide registry."""
    get_registry().reset_caches()
