"""Query backends for the relation strategy.

Provides:
- QueryBackend: the protocol ``hydrate`` fetches related entities through
- SQLiteStore / open_store(): SQLite backend
- InMemoryStore: dict-backed backend that records every fetch
- get_backend() / set_backend(): process-wide default backend

The default backend is opened lazily at the configured ``storage.db_path``
the first time a relation actually needs fetching.
"""

from __future__ import annotations

import threading

from .base import QueryBackend
from .memory_store import InMemoryStore
from .schemas import FetchRequest, SelectRequest
from .sqlite_store import SQLiteStore, open_store

_backend: QueryBackend | None = None
_backend_lock = threading.Lock()


def get_backend() -> QueryBackend:
    """Get the process-wide query backend, opening the configured DB if needed."""
    global _backend
    if _backend is None:
        with _backend_lock:
            if _backend is None:
                from ..config import get_config

                config = get_config()
                _backend = open_store(
                    config.db_path_resolved,
                    chunk_size=config.storage.fetch_chunk_size,
                )
    return _backend


def set_backend(backend: QueryBackend) -> None:
    """Use ``backend`` for every ``hydrate`` call that does not pass one."""
    global _backend
    with _backend_lock:
        _backend = backend


def reset_backend() -> None:
    """Forget the process-wide backend (closing it when it is an SQLiteStore)."""
    global _backend
    with _backend_lock:
        if isinstance(_backend, SQLiteStore):
            _backend.close()
        _backend = None


__all__ = [
    "QueryBackend",
    "SQLiteStore",
    "open_store",
    "InMemoryStore",
    "FetchRequest",
    "SelectRequest",
    "get_backend",
    "set_backend",
    "reset_backend",
]
