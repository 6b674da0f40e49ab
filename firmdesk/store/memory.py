from __future__ import annotations

import copy
import queue
from collections.abc import Iterable, Iterator
from typing import Any

from .base import DocumentStore, OpKind, Snapshot, StoreError, WriteOp

"""In-process document store.

Used as the "mock mode" backend (no database reachable, or DISABLE_DB_CONNECT=1)
and by the test suite. Commits are applied to a copy of the data and swapped
in only when every operation succeeded.
"""

__all__ = ["MemoryStore"]


class MemoryStore(DocumentStore):
    def __init__(self, initial: dict[str, Iterable[dict[str, Any]]] | None = None) -> None:
        self._data: dict[str, dict[str, dict[str, Any]]] = {}
        self._versions: dict[str, int] = {}
        self._subscribers: dict[str, list[queue.Queue[Snapshot]]] = {}
        self.commit_count = 0
        for collection, docs in (initial or {}).items():
            self.seed(collection, docs)

    def seed(self, collection: str, docs: Iterable[dict[str, Any]]) -> None:
        """Load documents directly, bypassing batches and notifications."""
        bucket = self._data.setdefault(collection, {})
        for doc in docs:
            doc_id = str(doc.get("id") or self.new_id())
            bucket[doc_id] = {**copy.deepcopy(doc), "id": doc_id}

    def list(self, collection: str) -> list[dict[str, Any]]:
        return [copy.deepcopy(d) for d in self._data.get(collection, {}).values()]

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        doc = self._data.get(collection, {}).get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    def commit(self, ops: list[WriteOp]) -> None:
        staged = copy.deepcopy(self._data)
        touched: set[str] = set()
        for op in ops:
            bucket = staged.setdefault(op.collection, {})
            if op.kind is OpKind.SET:
                bucket[op.doc_id] = copy.deepcopy(op.data or {})
            elif op.kind is OpKind.UPDATE:
                if op.doc_id not in bucket:
                    raise StoreError(f"no document to update: {op.collection}/{op.doc_id}")
                bucket[op.doc_id].update(copy.deepcopy(op.data or {}))
            elif op.kind is OpKind.DELETE:
                bucket.pop(op.doc_id, None)
            touched.add(op.collection)
        self._data = staged
        self.commit_count += 1
        for collection in sorted(touched):
            self._versions[collection] = self._versions.get(collection, 0) + 1
            self._publish(collection)

    def _snapshot(self, collection: str) -> Snapshot:
        return Snapshot(
            collection=collection,
            documents=tuple(self.list(collection)),
            version=self._versions.get(collection, 0),
        )

    def _publish(self, collection: str) -> None:
        for q in self._subscribers.get(collection, []):
            q.put(self._snapshot(collection))

    def watch(self, collection: str) -> Iterator[Snapshot]:
        q: queue.Queue[Snapshot] = queue.Queue()
        subscribers = self._subscribers.setdefault(collection, [])
        subscribers.append(q)
        try:
            yield self._snapshot(collection)
            while True:
                yield q.get()
        finally:
            subscribers.remove(q)
