from __future__ import annotations

import secrets
import string
from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

"""Document store abstraction.

The application talks to its document database only through a DocumentStore
instance created by the entry point and handed to each service. Documents are
plain dicts keyed by a generated id that is also stored in the body under
"id".

Writes are grouped into a WriteBatch and committed atomically: either every
operation applies or none does. Operations apply in the order they were
added, so a later write to the same document wins.
"""

__all__ = [
    "DocumentStore",
    "StoreError",
    "WriteBatch",
    "WriteOp",
    "OpKind",
    "Snapshot",
    "generate_id",
]

_ID_ALPHABET = string.ascii_letters + string.digits
ID_LENGTH = 20


def generate_id() -> str:
    """Random 20-character alphanumeric document id."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(ID_LENGTH))


class StoreError(Exception):
    """Raised for any failed read or commit against the store."""


class OpKind(Enum):
    SET = "set"  # create or replace
    UPDATE = "update"  # merge into an existing document
    DELETE = "delete"


@dataclass(frozen=True)
class WriteOp:
    kind: OpKind
    collection: str
    doc_id: str
    data: dict[str, Any] | None = None


@dataclass(frozen=True)
class Snapshot:
    """Full contents of one collection at a point in time."""
    collection: str
    documents: tuple[dict[str, Any], ...]
    version: int = 0


@dataclass
class WriteBatch:
    store: DocumentStore
    ops: list[WriteOp] = field(default_factory=list)
    committed: bool = False

    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> WriteBatch:
        self.ops.append(WriteOp(OpKind.SET, collection, doc_id, dict(data)))
        return self

    def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> WriteBatch:
        self.ops.append(WriteOp(OpKind.UPDATE, collection, doc_id, dict(data)))
        return self

    def delete(self, collection: str, doc_id: str) -> WriteBatch:
        self.ops.append(WriteOp(OpKind.DELETE, collection, doc_id))
        return self

    def __len__(self) -> int:
        return len(self.ops)

    def commit(self) -> int:
        """Apply all operations atomically; returns the number applied."""
        if self.committed:
            raise StoreError("batch already committed")
        self.store.commit(self.ops)
        self.committed = True
        return len(self.ops)


class DocumentStore(ABC):
    """Collection-of-documents store used by every service."""

    def new_id(self) -> str:
        return generate_id()

    def batch(self) -> WriteBatch:
        return WriteBatch(store=self)

    @abstractmethod
    def list(self, collection: str) -> list[dict[str, Any]]:
        """Every document of a collection."""

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        ...

    def query(self, collection: str, field_name: str, value: Any) -> list[dict[str, Any]]:
        """Documents whose `field_name` equals `value`."""
        return [d for d in self.list(collection) if d.get(field_name) == value]

    @abstractmethod
    def commit(self, ops: list[WriteOp]) -> None:
        """Apply `ops` all-or-nothing. Raises StoreError on failure."""

    @abstractmethod
    def watch(self, collection: str) -> Iterator[Snapshot]:
        """Yield the current snapshot, then a new one after every change."""

    def close(self) -> None:  # pragma: no cover - nothing to release by default
        pass

    def __enter__(self) -> DocumentStore:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
