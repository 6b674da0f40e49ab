from __future__ import annotations

import pytest

from firmdesk.models.entities import TaxRate
from firmdesk.models.invoice import InvoiceLineItem
from firmdesk.services.tax_calculator import calculate_invoice_totals, is_interstate, rate_table

RATES = {"gst18": 18.0, "gst5": 5.0, "exempt": 0.0}


def test_single_line_intrastate_splits_cgst_sgst():
    totals = calculate_invoice_totals([InvoiceLineItem(quantity=1, rate=1000, tax_rate_id="gst18")], RATES)
    assert totals.sub_total == pytest.approx(1000)
    assert totals.taxable_amount == pytest.approx(1000)
    assert totals.cgst == pytest.approx(90)
    assert totals.sgst == pytest.approx(90)
    assert totals.igst == 0
    assert totals.total == pytest.approx(1180)
    assert totals.line_taxes == pytest.approx((180,))


def test_single_line_interstate_is_igst():
    totals = calculate_invoice_totals(
        [InvoiceLineItem(quantity=1, rate=1000, tax_rate_id="gst18")], RATES, interstate=True
    )
    assert totals.igst == pytest.approx(180)
    assert totals.cgst == 0 and totals.sgst == 0
    assert totals.total == pytest.approx(1180)


def test_firm_without_gst_charges_no_tax():
    totals = calculate_invoice_totals(
        [InvoiceLineItem(quantity=1, rate=1000, tax_rate_id="gst18")], RATES, firm_has_gst=False
    )
    assert totals.total_tax == 0
    assert totals.total == pytest.approx(1000)


def test_additional_discount_is_allocated_proportionally():
    items = [
        InvoiceLineItem(quantity=2, rate=500, discount=100, tax_rate_id="gst18"),  # 900
        InvoiceLineItem(quantity=1, rate=100, tax_rate_id="gst5"),  # 100
    ]
    totals = calculate_invoice_totals(items, RATES, additional_discount=100)
    assert totals.gross_total == pytest.approx(1100)
    assert totals.total_line_discount == pytest.approx(100)
    assert totals.sub_total == pytest.approx(1000)
    assert totals.taxable_amount == pytest.approx(900)
    # 810 * 18% + 90 * 5%
    assert totals.line_taxes == pytest.approx((145.8, 4.5))
    assert totals.total_tax == pytest.approx(150.3)
    assert totals.total == pytest.approx(1050.3)


def test_unknown_or_zero_rate_adds_no_tax():
    items = [
        InvoiceLineItem(quantity=1, rate=500, tax_rate_id="exempt"),
        InvoiceLineItem(quantity=1, rate=500, tax_rate_id="missing"),
        InvoiceLineItem(quantity=1, rate=500),
    ]
    totals = calculate_invoice_totals(items, RATES)
    assert totals.total_tax == 0
    assert totals.total == pytest.approx(1500)


def test_discount_covering_subtotal_leaves_nothing_to_tax():
    totals = calculate_invoice_totals(
        [InvoiceLineItem(quantity=1, rate=100, tax_rate_id="gst18")], RATES, additional_discount=100
    )
    assert totals.taxable_amount == 0
    assert totals.total_tax == 0
    assert totals.total == 0


@pytest.mark.parametrize("interstate", [False, True])
def test_total_identity(interstate):
    items = [
        InvoiceLineItem(quantity=3, rate=333.33, discount=12.5, tax_rate_id="gst18"),
        InvoiceLineItem(quantity=7, rate=19.99, tax_rate_id="gst5"),
    ]
    t = calculate_invoice_totals(items, RATES, additional_discount=41.7, interstate=interstate)
    assert t.total == pytest.approx(t.taxable_amount + t.cgst + t.sgst + t.igst)
    assert t.cgst == pytest.approx(t.sgst)
    assert sum(t.line_taxes) == pytest.approx(t.total_tax)


def test_empty_invoice():
    totals = calculate_invoice_totals([], RATES)
    assert totals.total == 0
    assert totals.line_taxes == ()


def test_is_interstate_compares_normalized_states():
    assert is_interstate(" kerala", "Kerala ") is False
    assert is_interstate("Kerala", "Karnataka") is True
    assert is_interstate("", "") is False
    assert is_interstate(None, "Kerala") is True


def test_rate_table_and_display():
    table = rate_table([TaxRate(id="gst18", name="GST 18%", rate=18), TaxRate(id="nil", name="Nil", rate=0)])
    assert table == {"gst18": 18, "nil": 0}
    totals = calculate_invoice_totals([InvoiceLineItem(quantity=1, rate=1000, tax_rate_id="gst18")], table)
    shown = totals.as_display()
    assert shown["total"] == "1180.00"
    assert shown["cgst"] == "90.00"
    assert shown["igst"] == "0.00"
