"""Tests for strategy precedence and the three hydration strategies."""

import pytest

from hydrant.core.models import Target
from hydrant.errors import ResolverContractError
from hydrant.hydration.strategies import (
    choose_strategy,
    foreign_key_fields,
    foreign_key_value,
    has_foreign_key,
    hydrate_with_batch,
    hydrate_with_relation,
    hydrate_with_simple,
)


def _identity_batch(records):
    return records


class TestForeignKeys:
    def test_fields(self):
        assert foreign_key_fields("user") == ("user_id", "user-id")

    def test_either_spelling(self):
        assert has_foreign_key({"user_id": 1}, "user")
        assert has_foreign_key({"user-id": 1}, "user")
        assert not has_foreign_key({"user": 1}, "user")

    def test_underscore_spelling_wins(self):
        assert foreign_key_value({"user_id": 1, "user-id": 2}, "user") == 1
        assert foreign_key_value({"user-id": 2}, "user") == 2
        assert foreign_key_value({}, "user") is None


class TestChooseStrategy:
    def test_relation_when_all_records_have_foreign_key(self, registry, users):
        registry.register_relation("user", users)
        registry.register_batch_resolver("user", _identity_batch)
        decision = choose_strategy(registry, [{"user_id": 1}, {"user-id": 2}], "user")
        assert decision.strategy == "relation"

    def test_batch_when_a_record_lacks_foreign_key(self, registry, users):
        registry.register_relation("user", users)
        registry.register_batch_resolver("user", _identity_batch)
        decision = choose_strategy(registry, [{"user_id": 1}, {"name": "x"}], "user")
        assert decision.strategy == "batch"

    def test_batch_beats_simple(self, registry):
        registry.register_batch_resolver("x", _identity_batch)
        registry.register_simple_resolver("x", lambda r: 1)
        assert choose_strategy(registry, [{}], "x").strategy == "batch"

    def test_simple(self, registry):
        registry.register_simple_resolver("x", lambda r: 1)
        assert choose_strategy(registry, [{}], "x").strategy == "simple"

    def test_relation_without_foreign_keys_and_no_fallback(self, registry, users):
        registry.register_relation("user", users)
        decision = choose_strategy(registry, [{"name": "x"}], "user")
        assert decision.strategy == "none"
        assert decision.reason

    def test_none(self, registry):
        decision = choose_strategy(registry, [{}], "x")
        assert decision.strategy == "none"
        assert decision.resolver is None

    def test_decision_carries_resolver(self, registry, users):
        registry.register_relation("user", users)
        registry.register_batch_resolver("user", _identity_batch)
        assert choose_strategy(registry, [{"user_id": 1}], "user").resolver is users
        assert choose_strategy(registry, [{}], "user").resolver is _identity_batch


class TestRelationStrategy:
    def test_one_fetch_for_distinct_ids(self, store, users):
        pending = [{"user_id": 1}, {"user_id": 2}, {"user_id": 1}]
        result = hydrate_with_relation(pending, "user", users, store)

        assert [r["user"]["name"] for r in result] == ["Cam", "Rasta", "Cam"]
        assert store.fetch_count == 1
        assert store.requests[0].ids == frozenset({1, 2})

    def test_unmatched_and_null_foreign_keys_get_none(self, store, users):
        pending = [{"user_id": 999}, {"user_id": None}, {"user_id": 3}]
        result = hydrate_with_relation(pending, "user", users, store)

        assert result[0]["user"] is None
        assert result[1]["user"] is None
        assert result[2]["user"]["name"] == "Lucky"
        assert store.requests[0].ids == frozenset({999, 3})

    def test_no_fetch_when_every_foreign_key_is_null(self, store, users):
        result = hydrate_with_relation([{"user_id": None}], "user", users, store)
        assert result == [{"user_id": None, "user": None}]
        assert store.fetch_count == 0

    def test_custom_primary_key(self, store):
        store.add_rows("people", [{"uid": "a", "name": "Ada"}])
        people = Target(name="people", primary_key="uid")
        result = hydrate_with_relation([{"owner_id": "a"}], "owner", people, store)
        assert result[0]["owner"] == {"uid": "a", "name": "Ada"}

    def test_inputs_are_not_mutated(self, store, users):
        pending = [{"user_id": 1}]
        hydrate_with_relation(pending, "user", users, store)
        assert pending == [{"user_id": 1}]


class TestBatchStrategy:
    def test_merges_results_by_position(self):
        def with_is_bird(records):
            return [{"is_bird": r["type"] == "bird"} for r in records]

        pending = [{"type": "bird"}, {"type": "cat"}]
        result = hydrate_with_batch(pending, "is_bird", with_is_bird)
        assert result == [
            {"type": "bird", "is_bird": True},
            {"type": "cat", "is_bird": False},
        ]

    def test_called_once(self):
        calls = []

        def resolver(records):
            calls.append(len(records))
            return records

        hydrate_with_batch([{}, {}, {}], "x", resolver)
        assert calls == [3]

    def test_wrong_length_raises(self):
        with pytest.raises(ResolverContractError):
            hydrate_with_batch([{}, {}], "x", lambda rs: rs[:1])

    def test_none_result_raises(self):
        with pytest.raises(ResolverContractError):
            hydrate_with_batch([{}], "x", lambda rs: None)

    def test_non_mapping_item_raises(self):
        with pytest.raises(ResolverContractError):
            hydrate_with_batch([{}], "x", lambda rs: [1])


class TestSimpleStrategy:
    def test_called_per_record(self):
        result = hydrate_with_simple(
            [{"first": "Cam", "last": "Saul"}, {"first": "Rasta", "last": "Bird"}],
            "full_name",
            lambda r: f"{r['first']} {r['last']}",
        )
        assert [r["full_name"] for r in result] == ["Cam Saul", "Rasta Bird"]
