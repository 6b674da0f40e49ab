from __future__ import annotations

from types import MappingProxyType

import pytest

from firmdesk.models.entities import Firm
from firmdesk.store.base import StoreError
from firmdesk.store.memory import MemoryStore
from firmdesk.store.repository import FIRMS, Repository, fold_snapshot


def test_list_converts_documents(store):
    firms = Repository(store, FIRMS, Firm.from_document).list()
    assert {f.id for f in firms} == {"firm-dmv", "firm-nogst"}
    assert next(f for f in firms if f.id == "firm-dmv").has_gst
    assert not next(f for f in firms if f.id == "firm-nogst").has_gst


def test_malformed_document_is_store_error():
    store = MemoryStore()
    store._data["firms"] = {"x": {"name": "no id"}}
    with pytest.raises(StoreError, match="malformed document in firms"):
        Repository(store, FIRMS, Firm.from_document).list()


def test_fold_snapshot_replaces_collection_slice():
    state = MappingProxyType({"firms": (Firm(id="a", name="A"),), "clients": ("c",)})
    new_state = fold_snapshot(state, "firms", (Firm(id="b", name="B"),))
    assert [f.id for f in new_state["firms"]] == ["b"]
    assert new_state["clients"] == ("c",)
    # previous state untouched
    assert [f.id for f in state["firms"]] == ["a"]
    with pytest.raises(TypeError):
        new_state["firms"] = ()  # type: ignore[index]


def test_watch_folds_into_state():
    store = MemoryStore({"firms": [{"id": "a", "name": "A"}]})
    repo = Repository(store, FIRMS, Firm.from_document)
    stream = repo.watch()
    state = fold_snapshot(MappingProxyType({}), FIRMS, next(stream))
    assert [f.name for f in state[FIRMS]] == ["A"]

    store.batch().set(FIRMS, "b", {"id": "b", "name": "B"}).commit()
    state = fold_snapshot(state, FIRMS, next(stream))
    assert sorted(f.name for f in state[FIRMS]) == ["A", "B"]
    stream.close()
