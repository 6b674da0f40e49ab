from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from ..models.entities import TaxRate
from ..models.invoice import InvoiceLineItem, InvoiceTotals

"""GST and discount computation for ad-hoc invoices.

    gross_total     = sum(quantity * rate)
    sub_total       = gross_total - sum(line discount)
    taxable_amount  = sub_total - additional_discount
    total           = taxable_amount + cgst + sgst + igst

The invoice-level additional discount is spread over the lines in proportion
to each line's share of sub_total before the line's tax is taken. Interstate
supplies accumulate IGST; intrastate tax is split evenly into CGST and SGST.

Plain float arithmetic throughout. Nothing is rounded here; callers round
only for display (InvoiceTotals.as_display).
"""

__all__ = [
    "rate_table",
    "is_interstate",
    "calculate_invoice_totals",
]


def rate_table(tax_rates: Iterable[TaxRate]) -> dict[str, float]:
    """tax rate id -> percentage."""
    return {t.id: t.rate for t in tax_rates}


def is_interstate(firm_state: str | None, place_of_supply: str | None) -> bool:
    return (firm_state or "").strip().lower() != (place_of_supply or "").strip().lower()


def calculate_invoice_totals(
    line_items: Sequence[InvoiceLineItem],
    tax_rates: Mapping[str, float],
    additional_discount: float = 0.0,
    *,
    firm_has_gst: bool = True,
    interstate: bool = False,
) -> InvoiceTotals:
    gross_total = 0.0
    total_line_discount = 0.0
    for item in line_items:
        gross_total += item.gross
        total_line_discount += item.discount

    sub_total = gross_total - total_line_discount
    taxable_amount = sub_total - additional_discount

    cgst = sgst = igst = 0.0
    line_taxes = [0.0] * len(line_items)
    if firm_has_gst and taxable_amount > 0:
        for i, item in enumerate(line_items):
            item_taxable = item.item_total
            rate = tax_rates.get(item.tax_rate_id, 0.0)
            if item_taxable <= 0 or rate <= 0:
                continue
            allocated = (item_taxable / sub_total) * additional_discount
            tax = (item_taxable - allocated) * (rate / 100)
            line_taxes[i] = tax
            if interstate:
                igst += tax
            else:
                cgst += tax / 2
                sgst += tax / 2

    return InvoiceTotals(
        gross_total=gross_total,
        total_line_discount=total_line_discount,
        sub_total=sub_total,
        additional_discount=additional_discount,
        taxable_amount=taxable_amount,
        cgst=cgst,
        sgst=sgst,
        igst=igst,
        line_taxes=tuple(line_taxes),
    )
