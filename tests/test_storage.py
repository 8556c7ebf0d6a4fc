"""Tests for the SQLite and in-memory query backends."""

import pytest
from pydantic import ValidationError

from hydrant.config import HydrantConfig, StorageConfig, configure
from hydrant.core.models import Target
from hydrant.hydration import ResolverRegistry, hydrate
from hydrant.storage import (
    InMemoryStore,
    QueryBackend,
    SQLiteStore,
    get_backend,
    open_store,
    reset_backend,
    set_backend,
)
from hydrant.storage.schemas import FetchRequest, SelectRequest

SCHEMA = """
CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT, email TEXT);
CREATE TABLE checkins (id INTEGER PRIMARY KEY, user_id INTEGER, note TEXT);
"""


@pytest.fixture
def sqlite_store(tmp_path):
    store = SQLiteStore(tmp_path / "test.db", chunk_size=2)
    store.executescript(SCHEMA)
    store.insert_rows(
        "users",
        [
            {"id": i, "name": f"user-{i}", "email": f"u{i}@example.com"}
            for i in range(1, 6)
        ],
    )
    yield store
    store.close()


class TestSQLiteStore:
    def test_fetch_by_ids(self, sqlite_store):
        rows = sqlite_store.fetch_by_ids(Target(name="users"), {2, 4, 99})
        assert sorted(r["id"] for r in rows) == [2, 4]
        assert rows[0].keys() == {"id", "name", "email"}

    def test_fetch_is_chunked(self, sqlite_store):
        statements = []
        sqlite_store.conn.set_trace_callback(statements.append)

        rows = sqlite_store.fetch_by_ids(Target(name="users"), [1, 2, 3, 4, 5])

        assert len(rows) == 5
        assert len([s for s in statements if s.startswith("SELECT")]) == 3

    def test_fetch_selected_columns_includes_primary_key(self, sqlite_store):
        target = Target(name="users", columns=("name",))
        rows = sqlite_store.fetch_by_ids(target, [1])
        assert rows == [{"id": 1, "name": "user-1"}]

    def test_fetch_requires_ids(self, sqlite_store):
        with pytest.raises(ValidationError):
            sqlite_store.fetch_by_ids(Target(name="users"), [])

    def test_select(self, sqlite_store):
        assert len(sqlite_store.select("users")) == 5
        assert [r["id"] for r in sqlite_store.select("users", limit=2)] == [1, 2]
        assert sqlite_store.select("users", where={"name": "user-3"})[0]["id"] == 3

    def test_select_null_condition(self, sqlite_store):
        sqlite_store.insert_rows("checkins", [{"id": 1, "user_id": None, "note": "x"}])
        assert len(sqlite_store.select("checkins", where={"user_id": None})) == 1

    def test_rejects_bad_identifiers(self, sqlite_store):
        with pytest.raises(ValueError):
            sqlite_store.select("users; DROP TABLE users")

    def test_insert_nothing(self, sqlite_store):
        assert sqlite_store.insert_rows("users", []) == 0

    def test_memory_database(self):
        with SQLiteStore(":memory:") as store:
            store.executescript("CREATE TABLE t (id INTEGER PRIMARY KEY);")
            store.insert_rows("t", [{"id": 1}])
            assert store.fetch_by_ids(Target(name="t"), [1]) == [{"id": 1}]

    def test_invalid_chunk_size(self):
        with pytest.raises(ValueError):
            SQLiteStore(":memory:", chunk_size=0)

    def test_open_store_uses_configured_chunk_size(self):
        configure(HydrantConfig(storage=StorageConfig(fetch_chunk_size=7)))
        with open_store(":memory:") as store:
            assert store.chunk_size == 7

    def test_hydrate_end_to_end(self, sqlite_store):
        sqlite_store.insert_rows(
            "checkins",
            [
                {"id": 1, "user_id": 1, "note": "a"},
                {"id": 2, "user_id": 5, "note": "b"},
                {"id": 3, "user_id": None, "note": "c"},
            ],
        )
        registry = ResolverRegistry()
        registry.register_relation("user", Target(name="users", columns=("name",)))

        checkins = sqlite_store.select("checkins")
        result = hydrate(checkins, "user", registry=registry, backend=sqlite_store)

        assert [r["user"] for r in result] == [
            {"id": 1, "name": "user-1"},
            {"id": 5, "name": "user-5"},
            None,
        ]


class TestInMemoryStore:
    def test_records_requests(self, store):
        rows = store.fetch_by_ids(Target(name="users"), [1, 3])
        assert sorted(r["name"] for r in rows) == ["Cam", "Lucky"]
        assert store.fetch_count == 1
        assert store.requests[0].target.name == "users"

    def test_unknown_table(self, store):
        assert store.fetch_by_ids(Target(name="nothing"), [1]) == []

    def test_selected_columns(self, store):
        rows = store.fetch_by_ids(Target(name="users", columns=("name",)), [2])
        assert rows == [{"id": 2, "name": "Rasta"}]

    def test_returns_copies(self, store):
        rows = store.fetch_by_ids(Target(name="users"), [1])
        rows[0]["name"] = "changed"
        assert store.fetch_by_ids(Target(name="users"), [1])[0]["name"] == "Cam"

    def test_is_a_query_backend(self, store, sqlite_store):
        assert isinstance(store, QueryBackend)
        assert isinstance(sqlite_store, QueryBackend)


class TestSchemas:
    def test_sorted_ids_mixed_types(self):
        request = FetchRequest(target=Target(name="users"), ids=frozenset({3, 1, "a"}))
        assert request.sorted_ids() == [1, 3, "a"]

    def test_select_request_limit(self):
        with pytest.raises(ValidationError):
            SelectRequest(table="users", limit=0)

    def test_target_validation(self):
        with pytest.raises(ValidationError):
            Target(name="users; drop")
        with pytest.raises(ValidationError):
            Target(name="users", columns=())
        with pytest.raises(ValidationError):
            Target(name="users", primary_key="1id")


class TestProcessBackend:
    def test_lazily_opens_configured_database(self, tmp_path):
        db_path = tmp_path / "nested" / "app.db"
        configure(HydrantConfig(storage=StorageConfig(db_path=str(db_path))))

        backend = get_backend()

        assert isinstance(backend, SQLiteStore)
        assert backend.path == str(db_path)
        assert get_backend() is backend
        reset_backend()
        assert get_backend() is not backend

    def test_set_backend(self, store):
        set_backend(store)
        assert get_backend() is store
