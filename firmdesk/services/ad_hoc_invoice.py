from __future__ import annotations

import logging
import secrets
import string
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from ..models.entities import Engagement, Firm, TaxRate
from ..models.invoice import InvoiceLineItem, InvoiceTotals
from ..store.base import DocumentStore, StoreError
from ..store.repository import CLIENTS, ENGAGEMENTS, FIRMS, INVOICES, TAX_RATES, Repository
from .batching import commit_batch
from .errors import InvoiceInputError
from .tax_calculator import calculate_invoice_totals, is_interstate, rate_table

logger = logging.getLogger(__name__)

"""Ad-hoc invoicing: bill work that was never set up as an engagement.

A completed engagement (fees = invoice total) and a Sent invoice pointing at
it are written together in one batch.
"""

__all__ = [
    "AdHocInvoiceRequest",
    "AdHocInvoice",
    "generate_invoice_number",
    "price_invoice",
    "create_ad_hoc_invoice",
]

_NUMBER_ALPHABET = string.ascii_uppercase + string.digits


@dataclass(frozen=True)
class AdHocInvoiceRequest:
    client_id: str
    firm_id: str
    engagement_type_id: str
    assigned_to: tuple[str, ...]
    reported_to: str
    remarks: str
    line_items: tuple[InvoiceLineItem, ...]
    place_of_supply: str = ""
    additional_discount: float = 0.0

    @staticmethod
    def from_mapping(data: Mapping[str, Any]) -> AdHocInvoiceRequest:
        """Build from a YAML/JSON mapping (snake_case keys)."""
        assigned = data.get("assigned_to") or ()
        if isinstance(assigned, str):
            assigned = (assigned,)
        try:
            items = tuple(InvoiceLineItem.from_mapping(li) for li in data.get("line_items") or ())
            additional = float(data.get("additional_discount") or 0)
        except (AttributeError, TypeError, ValueError) as e:
            raise InvoiceInputError(f"invalid invoice line items: {e}") from e
        return AdHocInvoiceRequest(
            client_id=str(data.get("client_id") or ""),
            firm_id=str(data.get("firm_id") or ""),
            engagement_type_id=str(data.get("engagement_type_id") or ""),
            assigned_to=tuple(str(a) for a in assigned),
            reported_to=str(data.get("reported_to") or ""),
            remarks=str(data.get("remarks") or ""),
            line_items=items,
            place_of_supply=str(data.get("place_of_supply") or ""),
            additional_discount=additional,
        )

    def check(self) -> None:
        """Raise InvoiceInputError when required inputs are missing."""
        if not (self.client_id and self.engagement_type_id and self.assigned_to and self.reported_to and self.remarks):
            raise InvoiceInputError("Please fill all required fields in the Engagement Details section.")
        if not self.line_items or any(not li.sales_item_id for li in self.line_items):
            raise InvoiceInputError("Please add at least one valid line item to the invoice.")


@dataclass(frozen=True)
class AdHocInvoice:
    invoice_id: str
    engagement_id: str
    invoice_number: str
    totals: InvoiceTotals


def generate_invoice_number(year: int) -> str:
    suffix = "".join(secrets.choice(_NUMBER_ALPHABET) for _ in range(5))
    return f"INV-{year}-{suffix}"


def price_invoice(
    request: AdHocInvoiceRequest, firm: Firm | None, tax_rates: list[TaxRate]
) -> InvoiceTotals:
    """Totals for `request`; a missing firm counts as not GST registered."""
    return calculate_invoice_totals(
        request.line_items,
        rate_table(tax_rates),
        request.additional_discount,
        firm_has_gst=firm is not None and firm.has_gst,
        interstate=is_interstate(firm.state if firm else "", request.place_of_supply),
    )


def create_ad_hoc_invoice(
    store: DocumentStore, request: AdHocInvoiceRequest, *, now: datetime | None = None
) -> AdHocInvoice:
    """Validate, price and persist an ad-hoc invoice.

    Raises:
        InvoiceInputError: missing inputs or unknown client.
        CommitFailedError: the batch was rejected.
    """
    request.check()
    now = now or datetime.now(UTC)
    stamp = now.isoformat(timespec="milliseconds").replace("+00:00", "Z")

    try:
        client = store.get(CLIENTS, request.client_id)
        firm_doc = store.get(FIRMS, request.firm_id) if request.firm_id else None
        tax_rates = Repository(store, TAX_RATES, TaxRate.from_document).list()
    except StoreError as e:
        raise InvoiceInputError(f"could not load invoice master data: {e}") from e
    if client is None:
        raise InvoiceInputError(f"client not found: {request.client_id}")
    firm = Firm.from_document(firm_doc) if firm_doc else None

    totals = price_invoice(request, firm, tax_rates)

    engagement = Engagement(
        id=store.new_id(),
        client_id=request.client_id,
        type=request.engagement_type_id,
        assigned_to=request.assigned_to,
        reported_to=request.reported_to,
        remarks=request.remarks,
        due_date=stamp,
        status="Completed",
        fees=totals.total,
    )
    invoice_id = store.new_id()
    invoice_number = generate_invoice_number(now.year)
    invoice = {
        "id": invoice_id,
        "invoiceNumber": invoice_number,
        "clientId": request.client_id,
        "clientName": client.get("name") or "Unknown",
        "engagementId": engagement.id,
        "firmId": request.firm_id,
        "placeOfSupply": request.place_of_supply,
        "issueDate": stamp,
        "dueDate": stamp,
        "lineItems": [li.to_document(tax) for li, tax in zip(request.line_items, totals.line_taxes)],
        "subTotal": totals.sub_total,
        "totalDiscount": totals.total_line_discount + totals.additional_discount,
        "taxableAmount": totals.taxable_amount,
        "cgst": totals.cgst,
        "sgst": totals.sgst,
        "igst": totals.igst,
        "totalTax": totals.total_tax,
        "totalAmount": totals.total,
        "status": "Sent",
    }

    batch = store.batch()
    batch.set(ENGAGEMENTS, engagement.id, engagement.to_document())
    batch.set(INVOICES, invoice_id, invoice)
    commit_batch(batch, "ad-hoc invoice")
    logger.info(f"invoice {invoice_number} created total={totals.total:.2f}")
    return AdHocInvoice(
        invoice_id=invoice_id,
        engagement_id=engagement.id,
        invoice_number=invoice_number,
        totals=totals,
    )
