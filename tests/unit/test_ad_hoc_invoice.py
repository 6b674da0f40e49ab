from __future__ import annotations

import re
from datetime import UTC, datetime

import pytest

from firmdesk.services.ad_hoc_invoice import (
    AdHocInvoiceRequest,
    create_ad_hoc_invoice,
    generate_invoice_number,
    price_invoice,
)
from firmdesk.services.errors import CommitFailedError, InvoiceInputError
from firmdesk.models.entities import Firm, TaxRate
from firmdesk.store.base import StoreError


def _request(**overrides) -> dict:
    data = {
        "client_id": "cl-existing",
        "firm_id": "firm-dmv",
        "engagement_type_id": "type-audit",
        "assigned_to": ["emp-ravi"],
        "reported_to": "emp-dojo",
        "remarks": "Special certification",
        "place_of_supply": "Kerala",
        "line_items": [{"salesItemId": "svc-1", "description": "Certificate", "quantity": 1, "rate": 1000, "taxRateId": "gst18"}],
    }
    data.update(overrides)
    return data


def test_invoice_number_format():
    assert re.fullmatch(r"INV-2025-[A-Z0-9]{5}", generate_invoice_number(2025))


def test_from_mapping_accepts_single_assignee():
    req = AdHocInvoiceRequest.from_mapping(_request(assigned_to="emp-ravi"))
    assert req.assigned_to == ("emp-ravi",)
    assert req.line_items[0].tax_rate_id == "gst18"


def test_from_mapping_rejects_bad_line_items():
    with pytest.raises(InvoiceInputError):
        AdHocInvoiceRequest.from_mapping(_request(line_items=[{"quantity": "two", "rate": 10}]))
    with pytest.raises(InvoiceInputError):
        AdHocInvoiceRequest.from_mapping(_request(line_items=["not a mapping"]))


def test_check_requires_engagement_details():
    req = AdHocInvoiceRequest.from_mapping(_request(remarks=""))
    with pytest.raises(InvoiceInputError, match="Engagement Details"):
        req.check()


def test_check_requires_a_valid_line_item():
    req = AdHocInvoiceRequest.from_mapping(_request(line_items=[{"quantity": 1, "rate": 10}]))
    with pytest.raises(InvoiceInputError, match="at least one valid line item"):
        req.check()
    req = AdHocInvoiceRequest.from_mapping(_request(line_items=[]))
    with pytest.raises(InvoiceInputError):
        req.check()


def test_price_without_firm_is_untaxed():
    req = AdHocInvoiceRequest.from_mapping(_request())
    totals = price_invoice(req, None, [TaxRate(id="gst18", name="GST 18%", rate=18)])
    assert totals.total_tax == 0
    assert totals.total == pytest.approx(1000)


def test_price_interstate_firm():
    req = AdHocInvoiceRequest.from_mapping(_request(place_of_supply="Karnataka"))
    firm = Firm(id="f", name="F", gstn="32AAA", state="Kerala")
    totals = price_invoice(req, firm, [TaxRate(id="gst18", name="GST 18%", rate=18)])
    assert totals.igst == pytest.approx(180)


def test_create_writes_engagement_and_invoice(store):
    now = datetime(2025, 3, 14, 9, 30, tzinfo=UTC)
    created = create_ad_hoc_invoice(store, AdHocInvoiceRequest.from_mapping(_request()), now=now)

    assert created.invoice_number.startswith("INV-2025-")
    engagement = store.get("engagements", created.engagement_id)
    assert engagement["status"] == "Completed"
    assert engagement["fees"] == pytest.approx(1180)
    assert engagement["assignedTo"] == ["emp-ravi"]

    invoice = store.get("invoices", created.invoice_id)
    assert invoice["status"] == "Sent"
    assert invoice["clientName"] == "Innovate Inc."
    assert invoice["engagementId"] == created.engagement_id
    assert invoice["cgst"] == pytest.approx(90)
    assert invoice["sgst"] == pytest.approx(90)
    assert invoice["totalAmount"] == pytest.approx(1180)
    assert invoice["lineItems"][0]["taxAmount"] == pytest.approx(180)
    assert invoice["issueDate"] == "2025-03-14T09:30:00.000Z"
    assert store.commit_count == 1


def test_create_unknown_client(store):
    with pytest.raises(InvoiceInputError, match="client not found"):
        create_ad_hoc_invoice(store, AdHocInvoiceRequest.from_mapping(_request(client_id="nope")))
    assert store.list("invoices") == []


def test_create_rejected_batch(store, monkeypatch):
    def failing_commit(ops):
        raise StoreError("offline")

    monkeypatch.setattr(store, "commit", failing_commit)
    with pytest.raises(CommitFailedError):
        create_ad_hoc_invoice(store, AdHocInvoiceRequest.from_mapping(_request()))
    assert store.list("invoices") == []
    assert store.list("engagements") == []
