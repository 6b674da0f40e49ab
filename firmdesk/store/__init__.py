"""Document store clients."""

from .base import DocumentStore, Snapshot, StoreError, WriteBatch, WriteOp, generate_id
from .memory import MemoryStore
from .repository import Repository, fold_snapshot

__all__ = [
    "DocumentStore",
    "MemoryStore",
    "Repository",
    "Snapshot",
    "StoreError",
    "WriteBatch",
    "WriteOp",
    "fold_snapshot",
    "generate_id",
]
