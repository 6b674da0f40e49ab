from __future__ import annotations

import json
from pathlib import Path

import pandas as pd
import pytest

from firmdesk.csvio.reader import ImportInputError
from firmdesk.models.import_row import CommitMode
from firmdesk.services.errors import CommitFailedError, ValidationFailedError
from firmdesk.services.orchestrator import PIPELINES, get_pipeline, run_import, run_validation
from firmdesk.store.base import StoreError
from firmdesk.store.memory import MemoryStore

HEADER = ["Name*", "Mail ID*", "Mobile Number*", "Category*", "Partner*", "Firm Name*", "PAN"]
FIRM = "Davis, Martin & Varghese"


def _upload(csv_writer, temp_workdir: Path) -> Path:
    return csv_writer(
        temp_workdir / "data" / "clients.csv",
        HEADER,
        [
            ["Acme Corp", "info@acme.example", "9000000001", "Corporate", "Dojo Davis", FIRM, "ABCDE1234F"],
            ["Acme Again", "info@acme.example", "9000000002", "Corporate", "Dojo Davis", FIRM, "ABCDE1234F"],
            ["", "x@y.example", "9000000003", "Corporate", "Dojo Davis", FIRM, ""],
            ["Beta", "broken", "9000000004", "Corporate", "Dojo Davis", FIRM, "BBBBB2222B"],
        ],
        footer="# IMPORTANT: delete example rows",
    )


def test_pipelines_cover_every_kind():
    assert set(PIPELINES) == {"clients", "employees", "engagements", "recurring"}
    with pytest.raises(ValueError):
        get_pipeline("invoices")


def test_validation_writes_nothing_but_logs_rows(app_config, store, csv_writer, temp_workdir):
    before = store.list("clients")
    result = run_validation(app_config, store, "clients", _upload(csv_writer, temp_workdir))
    assert result.commit is None
    assert result.validation.creates == 2
    assert result.validation.duplicates == 1
    assert result.validation.ignores == 1
    assert result.validation.columns[0] == "Name"
    assert store.list("clients") == before

    records = [json.loads(line) for line in result.error_log_path.read_text(encoding="utf-8").splitlines()]
    assert [r["row"] for r in records] == [2, 3, 4]
    assert [r["action"] for r in records] == ["DUPLICATE", "IGNORE", "FIX_AND_CREATE"]
    assert all(r["file"] == "clients.csv" and r["kind"] == "clients" for r in records)


def test_import_commits_and_exports(app_config, store, csv_writer, temp_workdir):
    invalid = temp_workdir / "invalid.csv"
    result = run_import(
        app_config,
        store,
        "clients",
        _upload(csv_writer, temp_workdir),
        CommitMode.SKIP_DUPLICATES,
        invalid_rows_path=invalid,
    )
    assert result.commit.created == 2
    assert result.commit.skipped == 1
    assert result.commit.ignored == 1
    assert result.is_partial
    assert result.invalid_rows_path == invalid
    frame = pd.read_csv(invalid, dtype=str, keep_default_na=False)
    assert len(frame) == 3
    names = {c["name"] for c in store.list("clients")}
    assert {"Acme Corp", "Beta"} <= names


def test_clean_import_has_no_error_log(app_config, store, csv_writer, temp_workdir):
    path = csv_writer(
        temp_workdir / "data" / "ok.csv",
        HEADER,
        [["Gamma", "g@gamma.example", "9000000005", "LLP", "Meera Nair", FIRM, "GGGGG7777G"]],
    )
    result = run_import(app_config, store, "clients", path)
    assert result.error_log_path is None
    assert not result.is_partial
    assert list((temp_workdir / "logs").iterdir()) == []


def test_unreadable_file_is_logged_and_raised(app_config, store, temp_workdir):
    with pytest.raises(ImportInputError):
        run_validation(app_config, store, "clients", temp_workdir / "data" / "missing.csv")
    (log,) = (temp_workdir / "logs").glob("errors-*.log")
    record = json.loads(log.read_text(encoding="utf-8").splitlines()[0])
    assert record["row"] == -1
    assert record["action"] == "ImportInputError"


def test_snapshot_failure_is_raised(app_config, csv_writer, temp_workdir):
    class BrokenStore(MemoryStore):
        def list(self, collection):
            raise StoreError("denied")

    with pytest.raises(ValidationFailedError):
        run_validation(app_config, BrokenStore(), "clients", _upload(csv_writer, temp_workdir))


def test_commit_failure_is_raised_with_nothing_written(app_config, store, csv_writer, temp_workdir, monkeypatch):
    def failing_commit(ops):
        raise StoreError("quota")

    monkeypatch.setattr(store, "commit", failing_commit)
    before = store.list("clients")
    with pytest.raises(CommitFailedError):
        run_import(app_config, store, "clients", _upload(csv_writer, temp_workdir))
    assert store.list("clients") == before
    (log,) = (temp_workdir / "logs").glob("errors-*.log")
    assert '"row": -1' in log.read_text(encoding="utf-8")


def test_engagement_import_uses_configured_timezone(app_config, store, csv_writer, temp_workdir):
    path = csv_writer(
        temp_workdir / "data" / "engagements.csv",
        ["Engagement Type*", "Client Name*", "Due Date*", "Allotted User*", "Remarks"],
        [["GST Filing", "Innovate Inc.", "20/07/2025", "Ravi Kumar", ""]],
    )
    result = run_import(app_config, store, "engagements", path)
    assert result.commit.created == 1
    assert result.commit.extra_documents == 3
    (eng,) = store.list("engagements")
    assert eng["dueDate"] == "2025-07-19T18:30:00.000Z"
