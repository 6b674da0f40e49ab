from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

__all__ = [
    "InvoiceLineItem",
    "InvoiceTotals",
]


@dataclass(frozen=True)
class InvoiceLineItem:
    """One billed line. Amounts are plain floats; nothing is rounded here."""
    quantity: float
    rate: float
    discount: float = 0.0
    tax_rate_id: str = ""
    sales_item_id: str = ""
    description: str = ""
    sac_code_id: str = ""

    @property
    def gross(self) -> float:
        return self.quantity * self.rate

    @property
    def item_total(self) -> float:
        return self.quantity * self.rate - self.discount

    @staticmethod
    def from_mapping(data: dict[str, Any]) -> InvoiceLineItem:
        return InvoiceLineItem(
            quantity=float(data.get("quantity", 1)),
            rate=float(data.get("rate", 0)),
            discount=float(data.get("discount", 0) or 0),
            tax_rate_id=str(data.get("taxRateId") or data.get("tax_rate_id") or ""),
            sales_item_id=str(data.get("salesItemId") or data.get("sales_item_id") or ""),
            description=str(data.get("description") or ""),
            sac_code_id=str(data.get("sacCodeId") or data.get("sac_code_id") or ""),
        )

    def to_document(self, tax_amount: float) -> dict[str, Any]:
        return {
            "salesItemId": self.sales_item_id,
            "description": self.description,
            "quantity": self.quantity,
            "rate": self.rate,
            "discount": self.discount,
            "taxRateId": self.tax_rate_id,
            "sacCodeId": self.sac_code_id,
            "total": self.item_total,
            "taxAmount": tax_amount,
        }


@dataclass(frozen=True)
class InvoiceTotals:
    gross_total: float
    total_line_discount: float
    sub_total: float
    additional_discount: float
    taxable_amount: float
    cgst: float
    sgst: float
    igst: float
    line_taxes: tuple[float, ...] = field(default_factory=tuple)

    @property
    def total_tax(self) -> float:
        return self.cgst + self.sgst + self.igst

    @property
    def total(self) -> float:
        return self.taxable_amount + self.cgst + self.sgst + self.igst

    def as_display(self) -> dict[str, str]:
        """Two-decimal strings for presentation only."""
        values = {
            "subTotal": self.sub_total,
            "taxableAmount": self.taxable_amount,
            "cgst": self.cgst,
            "sgst": self.sgst,
            "igst": self.igst,
            "totalTax": self.total_tax,
            "total": self.total,
        }
        return {k: f"{v:.2f}" for k, v in values.items()}
