# tests/test_invoice_lifecycle.py
import re
import sqlite3

import pytest

from shop_ledger.database.repositories import InvoicesRepo
from shop_ledger.errors import InconsistentStateError, NotFoundError, ValidationError, WriteFailure
from shop_ledger.modules.invoices import InvoiceService
from shop_ledger.modules.payments.customer_payments.payment_allocator import PaymentAllocator
from shop_ledger.modules.payments.payment_utilities.calculations import derive_status, invoice_total


def _sale(svc, ids, *, items=None, advance=0.0, discount=0.0, created_at=None):
    items = items or [{"product_name": "LED Bulb 12W", "quantity": 1, "unit_price": 100}]
    return svc.create_invoice(
        items=items,
        advance_payment=advance,
        discount_amount=discount,
        customer_id=ids["customer_id"],
        shop_id=ids["shop_id"],
        created_at=created_at,
    )


# -------------------------
# A: pure status derivation
# -------------------------

@pytest.mark.parametrize(
    "total, advance, paid, expected",
    [
        (100, 0, 0, (100.0, "unpaid")),
        (100, 20, 0, (80.0, "partially_paid")),
        (100, 20, 80, (0.0, "paid")),
        (100, 0, 130, (0.0, "paid")),
        (0, 0, 0, (0.0, "paid")),
        (99.99, 33.33, 33.33, (33.33, "partially_paid")),
    ],
)
def test_a0_derive_status_thresholds(total, advance, paid, expected):
    """A0: remaining = max(0, total - advance - paid); status follows remaining."""
    assert derive_status(total, advance, paid) == expected


def test_a1_invoice_total_clamps_discount():
    """A1: discount is clamped to [0, subtotal]."""
    assert invoice_total([60, 60], 20) == (120.0, 20.0, 100.0)
    assert invoice_total([60, 60], 500) == (120.0, 120.0, 0.0)
    assert invoice_total([60, 60], -5) == (120.0, 0.0, 120.0)


# -------------------------
# B: create / read
# -------------------------

def test_b0_create_with_advance_is_partially_paid(conn, ids):
    """B0: advance counts as the first payment at creation."""
    svc = InvoiceService(conn)
    inv_id = _sale(svc, ids, advance=20)

    inv = svc.get_invoice(inv_id)
    assert inv["total_amount"] == pytest.approx(100.0)
    assert inv["advance_payment"] == pytest.approx(20.0)
    assert inv["remaining_amount"] == pytest.approx(80.0)
    assert inv["status"] == "partially_paid"


def test_b1_round_trip_payment_of_80_pays_off(conn, ids):
    """B1: total 100, advance 20, payment 80 -> paid / 0."""
    svc = InvoiceService(conn)
    inv_id = _sale(svc, ids, advance=20)
    PaymentAllocator(conn).record_payment(inv_id, 80, "cash")

    inv = svc.get_invoice(inv_id)
    assert inv["status"] == "paid"
    assert inv["remaining_amount"] == pytest.approx(0.0)


def test_b2_round_trip_payment_of_30_leaves_50(conn, ids):
    """B2: total 100, advance 20, payment 30 -> partially_paid / 50."""
    svc = InvoiceService(conn)
    inv_id = _sale(svc, ids, advance=20)
    PaymentAllocator(conn).record_payment(inv_id, 30, "card")

    inv = svc.get_invoice(inv_id)
    assert inv["status"] == "partially_paid"
    assert inv["remaining_amount"] == pytest.approx(50.0)


def test_b3_discount_is_first_class_and_net(conn, ids):
    """B3: total is Σ line totals minus discount_amount."""
    svc = InvoiceService(conn)
    inv_id = _sale(
        svc, ids,
        items=[
            {"product_name": "Tube Light", "quantity": 2, "unit_price": 45},
            {"product_name": "Holder", "quantity": 3, "unit_price": 10},
        ],
        discount=20,
    )
    inv = svc.get_invoice(inv_id)
    assert inv["discount_amount"] == pytest.approx(20.0)
    assert inv["total_amount"] == pytest.approx(100.0)
    assert inv["status"] == "unpaid"

    items = svc.list_invoice_items(inv_id)
    assert [round(r["total_price"], 2) for r in items] == [90.0, 30.0]


def test_b4_invoice_numbers_are_sequential_per_day(conn, ids):
    """B4: SALE-YYYYMMDD-NNNN, counting up within a day."""
    svc = InvoiceService(conn)
    a = svc.get_invoice(_sale(svc, ids, created_at="2025-03-10 09:00:00"))
    b = svc.get_invoice(_sale(svc, ids, created_at="2025-03-10 17:30:00"))
    c = svc.get_invoice(_sale(svc, ids, created_at="2025-03-11 08:00:00"))

    assert a["invoice_number"] == "SALE-20250310-0001"
    assert b["invoice_number"] == "SALE-20250310-0002"
    assert c["invoice_number"] == "SALE-20250311-0001"
    assert re.fullmatch(r"SALE-\d{8}-\d{4}", a["invoice_number"])
    assert InvoicesRepo(conn).get_by_number("SALE-20250310-0002")["id"] == b["id"]


def test_b5_item_snapshot_fields_are_stored(conn, ids):
    """B5: barcode/wattage/size/color are captured on the line."""
    svc = InvoiceService(conn)
    inv_id = _sale(
        svc, ids,
        items=[{
            "product_name": "Flood Light", "quantity": 1, "unit_price": 250,
            "barcode": "8901234567890", "wattage": 50, "size": "L", "color": "Black",
        }],
    )
    row = svc.list_invoice_items(inv_id)[0]
    assert (row["barcode"], row["wattage"], row["size"], row["color"]) == ("8901234567890", 50, "L", "Black")


@pytest.mark.parametrize(
    "kwargs, message",
    [
        ({"items": []}, "at least one item"),
        ({"items": [{"product_name": "X", "quantity": 0, "unit_price": 5}]}, "Quantity"),
        ({"items": [{"product_name": "X", "quantity": 1, "unit_price": -1}]}, "Unit price"),
        ({"items": [{"product_name": "", "quantity": 1, "unit_price": 5}]}, "product name"),
        ({"items": [{"product_name": "X", "quantity": 1, "unit_price": 5}], "advance_payment": 6}, "exceed"),
        ({"items": [{"product_name": "X", "quantity": 1, "unit_price": 5}], "advance_payment": -1}, "negative"),
        ({"items": [{"product_name": "X", "quantity": 1, "unit_price": 5}], "invoice_type": "quote"}, "Unknown"),
    ],
)
def test_b6_create_rejects_bad_input_without_writing(conn, ids, kwargs, message):
    """B6: validation failures write nothing."""
    svc = InvoiceService(conn)
    with pytest.raises(ValidationError, match=message):
        svc.create_invoice(customer_id=ids["customer_id"], **kwargs)
    assert conn.execute("SELECT COUNT(*) FROM invoices").fetchone()[0] == 0


def test_b7_get_missing_invoice(conn):
    """B7: unknown id -> NotFoundError."""
    with pytest.raises(NotFoundError):
        InvoiceService(conn).get_invoice(999)


# -------------------------
# C: verify / recompute
# -------------------------

def test_c0_verify_passes_on_consistent_invoice(conn, ids):
    """C0: a freshly paid invoice verifies."""
    svc = InvoiceService(conn)
    inv_id = _sale(svc, ids, advance=10)
    PaymentAllocator(conn).record_payment(inv_id, 40, "cash")
    assert svc.verify_invoice(inv_id)["remaining_amount"] == pytest.approx(50.0)


def test_c1_verify_surfaces_drift_and_recompute_repairs(conn, ids):
    """C1: tampered remaining is reported, not auto-corrected; recompute fixes it."""
    svc = InvoiceService(conn)
    inv_id = _sale(svc, ids, advance=20)
    conn.execute("UPDATE invoices SET remaining_amount = 5, status='partially_paid' WHERE id=?", (inv_id,))
    conn.commit()

    with pytest.raises(InconsistentStateError):
        svc.verify_invoice(inv_id)
    # still wrong after verify
    assert svc.get_invoice(inv_id)["remaining_amount"] == pytest.approx(5.0)

    assert svc.recompute_invoice(inv_id) == (80.0, "partially_paid")
    svc.verify_invoice(inv_id)


def test_c2_verify_reports_overpayment(conn, ids):
    """C2: Σ payments beyond the total is an inconsistent state."""
    svc = InvoiceService(conn)
    inv_id = _sale(svc, ids)
    conn.execute(
        "INSERT INTO payments(invoice_id, amount, payment_method, payment_date) VALUES (?, 150, 'cash', '2025-01-01')",
        (inv_id,),
    )
    conn.commit()
    with pytest.raises(InconsistentStateError, match="overpaid"):
        svc.verify_invoice(inv_id)


def test_c3_invoice_number_is_unique(conn, ids):
    """C3: duplicate invoice numbers are refused by the database."""
    svc = InvoiceService(conn)
    items = [{"product_name": "X", "quantity": 1, "unit_price": 5}]
    svc.create_invoice(items=items, invoice_number="SALE-MANUAL-1")
    with pytest.raises(WriteFailure) as ei:
        svc.create_invoice(items=items, invoice_number="SALE-MANUAL-1")
    assert isinstance(ei.value.__cause__, sqlite3.IntegrityError)
