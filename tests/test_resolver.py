"""Tests for single-key hydration across a collection."""

import logging

from hydrant.hydration.resolver import has_value, hydrate_key, pending_positions
from hydrant.storage import set_backend


def test_has_value():
    assert has_value({"a": 1}, "a")
    assert has_value({"a": False}, "a")
    assert has_value({"a": []}, "a")
    assert not has_value({"a": None}, "a")
    assert not has_value({}, "a")
    assert not has_value(None, "a")


def test_pending_positions_skip_non_mappings():
    records = [{"a": 1}, {}, None, 7, {"a": None}]
    assert pending_positions(records, "a") == [1, 4]


def test_passes_through_none_and_non_mappings(registry):
    registry.register_simple_resolver("x", lambda r: 1)
    records = [None, {"y": 1}, "text", 5]
    assert hydrate_key(records, "x", registry=registry) == [None, {"y": 1, "x": 1}, "text", 5]


def test_records_with_value_are_not_sent_to_resolver(registry):
    seen = []

    def resolver(records):
        seen.extend(records)
        return [{**r, "x": "new"} for r in records]

    registry.register_batch_resolver("x", resolver)
    result = hydrate_key([{"x": "old"}, {"id": 2}], "x", registry=registry)

    assert result == [{"x": "old"}, {"id": 2, "x": "new"}]
    assert seen == [{"id": 2}]


def test_nothing_pending_skips_strategy(registry):
    registry.register_batch_resolver("x", lambda rs: 1 / 0)
    assert hydrate_key([{"x": 1}], "x", registry=registry) == [{"x": 1}]


def test_relation_uses_process_backend(registry, store, users):
    registry.register_relation("user", users)
    set_backend(store)

    result = hydrate_key([{"user_id": 2}], "user", registry=registry)

    assert result[0]["user"]["name"] == "Rasta"
    assert store.fetch_count == 1


def test_unknown_key_is_a_logged_noop(registry, caplog):
    records = [{"a": 1}]
    with caplog.at_level(logging.DEBUG, logger="hydrant.hydration.resolver"):
        result = hydrate_key(records, "mystery", registry=registry)
    assert result == records
    assert "via none" in caplog.text


def test_returns_new_list(registry):
    records = [{"a": 1}]
    result = hydrate_key(records, "mystery", registry=registry)
    assert result is not records
