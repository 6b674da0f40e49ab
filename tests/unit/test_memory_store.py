from __future__ import annotations

import pytest

from firmdesk.store.base import StoreError, generate_id
from firmdesk.store.memory import MemoryStore


def test_generate_id_shape():
    a, b = generate_id(), generate_id()
    assert len(a) == 20 and a.isalnum()
    assert a != b


def test_seed_and_read_return_copies():
    store = MemoryStore({"clients": [{"id": "c1", "name": "Acme"}]})
    doc = store.get("clients", "c1")
    doc["name"] = "changed"
    assert store.get("clients", "c1")["name"] == "Acme"
    assert store.get("clients", "missing") is None
    assert store.list("nothing") == []


def test_batch_applies_in_order():
    store = MemoryStore({"clients": [{"id": "c1", "name": "Acme", "pan": "X"}]})
    batch = store.batch()
    batch.set("clients", "c2", {"id": "c2", "name": "Beta"})
    batch.update("clients", "c2", {"name": "Beta Ltd"})
    batch.update("clients", "c1", {"pan": "Y"})
    batch.delete("clients", "c1")
    assert batch.commit() == 4
    assert store.get("clients", "c1") is None
    assert store.get("clients", "c2") == {"id": "c2", "name": "Beta Ltd"}


def test_failed_batch_leaves_store_untouched():
    store = MemoryStore({"clients": [{"id": "c1", "name": "Acme"}]})
    batch = store.batch()
    batch.set("clients", "c2", {"id": "c2", "name": "Beta"})
    batch.update("clients", "ghost", {"name": "x"})
    with pytest.raises(StoreError, match="no document to update"):
        batch.commit()
    assert store.get("clients", "c2") is None
    assert store.commit_count == 0


def test_batch_commits_once():
    store = MemoryStore()
    batch = store.batch().set("firms", "f1", {"id": "f1"})
    batch.commit()
    with pytest.raises(StoreError):
        batch.commit()


def test_query_by_field():
    store = MemoryStore({"engagements": [{"id": "e1", "clientId": "c1"}, {"id": "e2", "clientId": "c2"}]})
    assert [d["id"] for d in store.query("engagements", "clientId", "c1")] == ["e1"]


def test_watch_yields_snapshot_per_commit():
    store = MemoryStore({"clients": [{"id": "c1", "name": "Acme"}]})
    stream = store.watch("clients")
    first = next(stream)
    assert first.version == 0
    assert [d["id"] for d in first.documents] == ["c1"]

    store.batch().set("clients", "c2", {"id": "c2", "name": "Beta"}).commit()
    store.batch().set("firms", "f1", {"id": "f1"}).commit()  # other collection: no snapshot
    store.batch().delete("clients", "c1").commit()

    second = next(stream)
    third = next(stream)
    assert second.version == 1
    assert {d["id"] for d in second.documents} == {"c1", "c2"}
    assert third.version == 2
    assert [d["id"] for d in third.documents] == ["c2"]
    stream.close()
    assert store._subscribers["clients"] == []
