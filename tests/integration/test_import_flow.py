from __future__ import annotations

from pathlib import Path

from firmdesk.csvio.layouts import CLIENTS, get_layout
from firmdesk.csvio.templates import template_headers
from firmdesk.models.import_row import CommitMode, RowAction
from firmdesk.services.client_admin import delete_client_cascade
from firmdesk.services.orchestrator import run_import, run_validation

"""End-to-end flow against one in-process store: clients, then the work that
refers to them, then a cascade delete.
"""

FIRM = "Davis, Martin & Varghese"


def _client_rows() -> list[list[str]]:
    layout = get_layout(CLIENTS)
    base = dict.fromkeys(layout.columns, "")
    rows = []
    for values in (
        {"Name": "Acme Corp", "Mail ID": "info@acme.example", "Mobile Number": "9000000001", "PAN": "ABCDE1234F"},
        {"Name": "Acme Corp Pvt", "Mail ID": "ops@acme.example", "Mobile Number": "9000000002", "PAN": "abcde1234f"},
        {"Name": "Beta Traders", "Mail ID": "", "Mobile Number": "", "PAN": ""},
        {"Name": "Innovate Inc.", "Mail ID": "new@innovate.example", "Mobile Number": "9000000100", "PAN": "AAACI1234K"},
        {"Name": "", "Mail ID": "ghost@example.com", "Mobile Number": "9000000003", "PAN": ""},
    ):
        row = {**base, "Category": "Corporate", "Partner": "Dojo Davis", "Firm Name": FIRM, **values}
        rows.append([row[c] for c in layout.columns])
    return rows


def test_client_import_then_work_then_delete(app_config, store, csv_writer, temp_workdir: Path):
    clients_csv = csv_writer(
        temp_workdir / "data" / "clients.csv",
        template_headers(get_layout(CLIENTS)),
        _client_rows(),
        footer="# IMPORTANT: Please delete these example rows before entering your own data and uploading the file.",
    )

    preview = run_validation(app_config, store, "clients", clients_csv)
    assert [r.action for r in preview.validation.rows] == [
        RowAction.CREATE,
        RowAction.DUPLICATE,
        RowAction.FIX_AND_CREATE,
        RowAction.UPDATE,
        RowAction.IGNORE,
    ]

    first = run_import(app_config, store, "clients", clients_csv, CommitMode.OVERWRITE_DUPLICATES)
    assert (first.commit.created, first.commit.updated, first.commit.overwritten) == (2, 1, 1)
    assert first.commit.ignored == 1
    acme = next(c for c in store.list("clients") if c.get("pan") == "ABCDE1234F")
    assert acme["name"] == "Acme Corp Pvt"
    assert store.get("clients", "cl-existing")["mailId"] == "new@innovate.example"

    # re-importing the same file changes no record count
    count = len(store.list("clients"))
    second = run_import(app_config, store, "clients", clients_csv, CommitMode.OVERWRITE_DUPLICATES)
    assert second.commit.created == 0
    assert (second.commit.updated, second.commit.overwritten) == (3, 1)
    assert len(store.list("clients")) == count

    engagements_csv = csv_writer(
        temp_workdir / "data" / "engagements.csv",
        ["Engagement Type*", "Client Name*", "Due Date*", "Allotted User*", "Remarks"],
        [
            ["GST Filing", "Acme Corp Pvt", "31/07/2025", "Ravi Kumar", ""],
            ["Statutory Audit", "Acme Corp Pvt", "30-09-2025", "Meera Nair", "FY25"],
            ["Statutory Audit", "Nobody Ltd", "30-09-2025", "Meera Nair", ""],
        ],
    )
    work = run_import(app_config, store, "engagements", engagements_csv)
    assert work.commit.created == 2
    assert work.commit.ignored == 1
    assert work.commit.extra_documents == 5
    assert work.is_partial

    recurring_csv = csv_writer(
        temp_workdir / "data" / "recurring.csv",
        ["Client Name*", "Engagement Type*", "Fees*", "Assigned To*", "Reported To*", "Due Day*", "Due Month"],
        [["Acme Corp Pvt", "GST Filing", "2500", "Ravi Kumar", "Dojo Davis", "20", ""]],
    )
    assert run_import(app_config, store, "recurring", recurring_csv).commit.created == 1

    removed = delete_client_cascade(store, acme["id"])
    assert removed == 2
    assert store.get("clients", acme["id"]) is None
    assert all(e["clientId"] != acme["id"] for e in store.list("engagements"))
