"""Tests for the JSON key-value store."""
from ppe_trainer.services.storage import KeyValueStore


def test_missing_key_returns_copy_of_default(store):
    value = store.get_json("missing", default=[])
    value.append("mutated")

    assert store.get_json("missing", default=[]) == []


def test_values_survive_a_new_store_instance(store, session_factory):
    store.set_json("training_folders", [{"id": "a"}])

    reopened = KeyValueStore(session_factory)
    assert reopened.get_json("training_folders") == [{"id": "a"}]


def test_corrupt_value_falls_back_and_next_write_heals(store):
    store.write_raw("training_folders", "{not json")

    assert store.get_json("training_folders", default=[]) == []

    store.set_json("training_folders", [{"id": "healed"}])
    assert store.get_json("training_folders", default=[]) == [{"id": "healed"}]


def test_set_many_writes_every_key(store, session_factory):
    store.set_many({"first": 1, "second": {"nested": True}})

    reopened = KeyValueStore(session_factory)
    assert reopened.get_json("first") == 1
    assert reopened.get_json("second") == {"nested": True}


def test_delete_removes_keys(store, session_factory):
    store.set_many({"first": 1, "second": 2})
    store.delete("first", "unknown")

    assert store.get_json("first") is None
    assert store.get_json("second") == 2
    assert KeyValueStore(session_factory).get_json("first") is None


def test_invalidate_rereads_from_database(store, session_factory):
    store.set_json("counter", 1)
    KeyValueStore(session_factory).set_json("counter", 2)

    assert store.get_json("counter") == 1
    store.invalidate()
    assert store.get_json("counter") == 2
