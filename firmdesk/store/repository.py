from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from types import MappingProxyType
from typing import Any, Generic, TypeVar

from .base import DocumentStore, Snapshot, StoreError

"""Typed read access to one collection.

`Repository.watch()` turns the store's snapshot stream into typed snapshots.
Consumers keep their in-memory view in an immutable mapping
collection -> tuple of entities and fold each snapshot in with
`fold_snapshot`, which replaces that collection's slice wholesale.
"""

__all__ = [
    "Repository",
    "fold_snapshot",
    "CLIENTS",
    "EMPLOYEES",
    "FIRMS",
    "DEPARTMENTS",
    "ENGAGEMENTS",
    "ENGAGEMENT_TYPES",
    "RECURRING_ENGAGEMENTS",
    "TASKS",
    "TAX_RATES",
    "INVOICES",
]

CLIENTS = "clients"
EMPLOYEES = "employees"
FIRMS = "firms"
DEPARTMENTS = "departments"
ENGAGEMENTS = "engagements"
ENGAGEMENT_TYPES = "engagementTypes"
RECURRING_ENGAGEMENTS = "recurringEngagements"
TASKS = "tasks"
TAX_RATES = "taxRates"
INVOICES = "invoices"

T = TypeVar("T")

State = Mapping[str, tuple[Any, ...]]


class Repository(Generic[T]):
    def __init__(self, store: DocumentStore, collection: str, factory: Callable[[dict[str, Any]], T]) -> None:
        self.store = store
        self.collection = collection
        self.factory = factory

    def list(self) -> list[T]:
        """All entities of the collection.

        Raises:
            StoreError: when the read fails or a document cannot be converted.
        """
        docs = self.store.list(self.collection)
        try:
            return [self.factory(d) for d in docs]
        except (KeyError, TypeError, ValueError) as e:
            raise StoreError(f"malformed document in {self.collection}: {e}") from e

    def watch(self) -> Iterator[tuple[T, ...]]:
        for snapshot in self.store.watch(self.collection):
            yield self.to_entities(snapshot)

    def to_entities(self, snapshot: Snapshot) -> tuple[T, ...]:
        return tuple(self.factory(d) for d in snapshot.documents)


def fold_snapshot(state: State, collection: str, entities: tuple[Any, ...]) -> State:
    """Return a new state with `collection` replaced by `entities`."""
    new_state = dict(state)
    new_state[collection] = tuple(entities)
    return MappingProxyType(new_state)
