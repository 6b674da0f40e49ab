from __future__ import annotations

import select
import time
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from typing import Any

import psycopg2
from psycopg2.extensions import ISOLATION_LEVEL_AUTOCOMMIT
from psycopg2.extras import Json, execute_values

from .base import DocumentStore, OpKind, Snapshot, StoreError, WriteOp

"""PostgreSQL-backed document store.

All collections share one table; each document is a JSONB body keyed by
(collection, id). A WriteBatch commit runs in a single transaction: SET
operations are upserted with psycopg2.extras.execute_values, UPDATE merges
the new keys into the stored body (`data || new`), DELETE removes rows.
Any failure rolls the whole transaction back.

Change notifications use LISTEN/NOTIFY on one channel whose payload is the
collection name; `watch()` re-reads the collection after each notification.
"""

__all__ = [
    "PostgresDocumentStore",
    "BatchMetrics",
    "SCHEMA_SQL",
    "NOTIFY_CHANNEL",
]

NOTIFY_CHANNEL = "firmdesk_documents"

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS documents (
    collection text NOT NULL,
    id text NOT NULL,
    data jsonb NOT NULL,
    updated_at timestamptz NOT NULL DEFAULT now(),
    PRIMARY KEY (collection, id)
)
"""

UPSERT_SQL = (
    "INSERT INTO documents (collection, id, data) VALUES %s "
    "ON CONFLICT (collection, id) DO UPDATE SET data = EXCLUDED.data, updated_at = now()"
)
UPDATE_SQL = (
    "UPDATE documents SET data = data || %s, updated_at = now() "
    "WHERE collection = %s AND id = %s"
)
DELETE_SQL = "DELETE FROM documents WHERE (collection, id) IN (VALUES %s)"


@dataclass(frozen=True)
class BatchMetrics:
    """Timing for one execute_values call."""
    batch_size: int
    elapsed_seconds: float
    start_time: float
    end_time: float


def _group_ops(ops: Sequence[WriteOp]) -> list[tuple[OpKind, list[WriteOp]]]:
    """Split ops into runs of one kind, preserving order.

    A run never touches the same document twice: Postgres rejects an upsert
    that affects one row twice in a single statement.
    """
    groups: list[tuple[OpKind, list[WriteOp]]] = []
    seen: set[tuple[str, str]] = set()
    for op in ops:
        key = (op.collection, op.doc_id)
        if groups and groups[-1][0] is op.kind and key not in seen:
            groups[-1][1].append(op)
        else:
            groups.append((op.kind, [op]))
            seen = set()
        seen.add(key)
    return groups


class PostgresDocumentStore(DocumentStore):
    def __init__(
        self,
        conn: Any,
        *,
        dsn: str | None = None,
        page_size: int = 500,
        metrics_callback: Callable[[BatchMetrics], None] | None = None,
        poll_interval: float = 1.0,
    ) -> None:
        self._conn = conn
        self._dsn = dsn
        self.page_size = page_size
        self.metrics_callback = metrics_callback
        self.poll_interval = poll_interval

    @classmethod
    def connect(cls, dsn: str, **kwargs: Any) -> PostgresDocumentStore:
        try:
            conn = psycopg2.connect(dsn)
        except psycopg2.Error as e:
            raise StoreError(f"connect failed: {e}") from e
        conn.autocommit = False
        return cls(conn, dsn=dsn, **kwargs)

    def ensure_schema(self) -> None:
        self._run(lambda cur: cur.execute(SCHEMA_SQL))

    def _run(self, fn: Callable[[Any], Any]) -> Any:
        """Run `fn(cursor)` in its own transaction."""
        cur = self._conn.cursor()
        try:
            result = fn(cur)
            self._conn.commit()
            return result
        except StoreError:
            self._conn.rollback()
            raise
        except psycopg2.Error as e:
            self._conn.rollback()
            raise StoreError(str(e)) from e
        finally:
            cur.close()

    def list(self, collection: str) -> list[dict[str, Any]]:
        def fetch(cur: Any) -> list[dict[str, Any]]:
            cur.execute("SELECT data FROM documents WHERE collection = %s ORDER BY id", (collection,))
            return [row[0] for row in cur.fetchall()]

        return self._run(fetch)

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        def fetch(cur: Any) -> dict[str, Any] | None:
            cur.execute(
                "SELECT data FROM documents WHERE collection = %s AND id = %s", (collection, doc_id)
            )
            row = cur.fetchone()
            return row[0] if row else None

        return self._run(fetch)

    def query(self, collection: str, field_name: str, value: Any) -> list[dict[str, Any]]:
        def fetch(cur: Any) -> list[dict[str, Any]]:
            cur.execute(
                "SELECT data FROM documents WHERE collection = %s AND data @> %s ORDER BY id",
                (collection, Json({field_name: value})),
            )
            return [row[0] for row in cur.fetchall()]

        return self._run(fetch)

    def _upsert(self, cur: Any, ops: list[WriteOp]) -> None:
        rows = [(op.collection, op.doc_id, Json(op.data or {})) for op in ops]
        start_time = time.time()
        try:
            execute_values(cur, UPSERT_SQL, rows, page_size=self.page_size)
        finally:
            end_time = time.time()
            if self.metrics_callback is not None:
                self.metrics_callback(
                    BatchMetrics(
                        batch_size=len(rows),
                        elapsed_seconds=end_time - start_time,
                        start_time=start_time,
                        end_time=end_time,
                    )
                )

    def commit(self, ops: list[WriteOp]) -> None:
        if not ops:
            return

        def apply(cur: Any) -> None:
            for kind, group in _group_ops(ops):
                if kind is OpKind.SET:
                    self._upsert(cur, group)
                elif kind is OpKind.UPDATE:
                    for op in group:
                        cur.execute(UPDATE_SQL, (Json(op.data or {}), op.collection, op.doc_id))
                        if cur.rowcount != 1:
                            raise StoreError(f"no document to update: {op.collection}/{op.doc_id}")
                else:
                    execute_values(
                        cur, DELETE_SQL, [(op.collection, op.doc_id) for op in group], page_size=self.page_size
                    )
            for collection in sorted({op.collection for op in ops}):
                cur.execute("SELECT pg_notify(%s, %s)", (NOTIFY_CHANNEL, collection))

        self._run(apply)

    def watch(self, collection: str) -> Iterator[Snapshot]:
        if self._dsn is None:
            raise StoreError("watch() needs a store created with a DSN")
        listener = psycopg2.connect(self._dsn)
        listener.set_isolation_level(ISOLATION_LEVEL_AUTOCOMMIT)
        try:
            with listener.cursor() as cur:
                cur.execute(f"LISTEN {NOTIFY_CHANNEL}")
            version = 0
            yield Snapshot(collection, tuple(self.list(collection)), version)
            while True:
                ready, _, _ = select.select([listener], [], [], self.poll_interval)
                if not ready:
                    continue
                listener.poll()
                changed = False
                while listener.notifies:
                    note = listener.notifies.pop(0)
                    changed = changed or note.payload == collection
                if changed:
                    version += 1
                    yield Snapshot(collection, tuple(self.list(collection)), version)
        finally:
            listener.close()

    def close(self) -> None:
        if not self._conn.closed:
            self._conn.close()
