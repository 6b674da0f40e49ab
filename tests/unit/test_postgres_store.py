from __future__ import annotations

import psycopg2
import pytest

from firmdesk.store import postgres as pg
from firmdesk.store.base import OpKind, StoreError, WriteOp
from firmdesk.store.postgres import PostgresDocumentStore, _group_ops


class DummyCursor:
    def __init__(self, conn):
        self.conn = conn
        self.rowcount = 1
        self._rows = []

    def execute(self, sql, params=None):
        self.conn.executed.append((sql, params))
        if self.conn.fail_on and self.conn.fail_on in sql:
            raise psycopg2.OperationalError("boom")
        if sql.startswith("UPDATE"):
            self.rowcount = self.conn.update_rowcount
        self._rows = [(d,) for d in self.conn.rows]

    def fetchall(self):
        return self._rows

    def fetchone(self):
        return self._rows[0] if self._rows else None

    def close(self):
        pass


class DummyConn:
    def __init__(self, rows=None):
        self.rows = rows or []
        self.executed = []
        self.commits = 0
        self.rollbacks = 0
        self.fail_on = None
        self.update_rowcount = 1
        self.closed = False

    def cursor(self):
        return DummyCursor(self)

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1

    def close(self):
        self.closed = True


@pytest.fixture()
def captured(monkeypatch):
    calls = []

    def fake_execute_values(cur, sql, rows, page_size=100):
        calls.append((sql, list(rows), page_size))

    monkeypatch.setattr(pg, "execute_values", fake_execute_values)
    return calls


def test_group_ops_splits_on_kind_and_repeated_document():
    ops = [
        WriteOp(OpKind.SET, "clients", "a", {}),
        WriteOp(OpKind.SET, "clients", "b", {}),
        WriteOp(OpKind.SET, "clients", "a", {}),
        WriteOp(OpKind.UPDATE, "clients", "a", {}),
        WriteOp(OpKind.DELETE, "tasks", "t1"),
    ]
    groups = _group_ops(ops)
    assert [(k, [o.doc_id for o in g]) for k, g in groups] == [
        (OpKind.SET, ["a", "b"]),
        (OpKind.SET, ["a"]),
        (OpKind.UPDATE, ["a"]),
        (OpKind.DELETE, ["t1"]),
    ]


def test_commit_runs_one_transaction(captured):
    conn = DummyConn()
    metrics = []
    store = PostgresDocumentStore(conn, page_size=250, metrics_callback=metrics.append)
    ops = [
        WriteOp(OpKind.SET, "clients", "c1", {"id": "c1", "name": "Acme"}),
        WriteOp(OpKind.UPDATE, "clients", "c0", {"name": "Renamed"}),
        WriteOp(OpKind.DELETE, "engagements", "e1"),
    ]
    store.commit(ops)

    assert conn.commits == 1
    assert conn.rollbacks == 0
    upsert, delete = captured
    assert upsert[0].startswith("INSERT INTO documents")
    assert [(r[0], r[1]) for r in upsert[1]] == [("clients", "c1")]
    assert upsert[2] == 250
    assert delete[1] == [("engagements", "e1")]
    assert any(sql.startswith("UPDATE documents") for sql, _ in conn.executed)
    notified = [p[1] for sql, p in conn.executed if "pg_notify" in sql]
    assert notified == ["clients", "engagements"]
    assert len(metrics) == 1 and metrics[0].batch_size == 1


def test_update_of_missing_document_rolls_back(captured):
    conn = DummyConn()
    conn.update_rowcount = 0
    store = PostgresDocumentStore(conn)
    with pytest.raises(StoreError, match="no document to update"):
        store.commit([WriteOp(OpKind.UPDATE, "clients", "ghost", {"name": "x"})])
    assert conn.rollbacks == 1
    assert conn.commits == 0


def test_driver_error_becomes_store_error():
    conn = DummyConn()
    conn.fail_on = "SELECT data"
    store = PostgresDocumentStore(conn)
    with pytest.raises(StoreError, match="boom"):
        store.list("clients")
    assert conn.rollbacks == 1


def test_reads_return_json_bodies():
    conn = DummyConn(rows=[{"id": "c1", "name": "Acme"}])
    store = PostgresDocumentStore(conn)
    assert store.list("clients") == [{"id": "c1", "name": "Acme"}]
    assert store.get("clients", "c1") == {"id": "c1", "name": "Acme"}
    assert store.query("clients", "name", "Acme") == [{"id": "c1", "name": "Acme"}]


def test_empty_commit_is_noop(captured):
    conn = DummyConn()
    PostgresDocumentStore(conn).commit([])
    assert conn.commits == 0
    assert captured == []


def test_connect_failure(monkeypatch):
    def fail(dsn):
        raise psycopg2.OperationalError("could not connect")

    monkeypatch.setattr(pg.psycopg2, "connect", fail)
    with pytest.raises(StoreError, match="connect failed"):
        PostgresDocumentStore.connect("host=nowhere")


def test_watch_requires_dsn():
    store = PostgresDocumentStore(DummyConn())
    with pytest.raises(StoreError):
        next(store.watch("clients"))


def test_close():
    conn = DummyConn()
    with PostgresDocumentStore(conn):
        pass
    assert conn.closed
