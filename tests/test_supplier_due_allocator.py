# tests/test_supplier_due_allocator.py
import pytest

from shop_ledger.database.repositories import ProductsRepo, SupplierPaymentsRepo
from shop_ledger.errors import NotFoundError, ValidationError
from shop_ledger.modules.invoices import InvoiceService
from shop_ledger.modules.payments.payment_utilities.calculations import FifoAllocation, plan_fifo_settlement
from shop_ledger.modules.payments.vendor_payments.supplier_due_allocator import (
    SupplierDueAllocator,
    record_supplier_payment,
)


@pytest.fixture()
def three_lines(ids, make_product):
    """Products with dues [50, 30, 20], oldest first (inserted out of order)."""
    sid = ids["supplier_id"]
    p3 = make_product(sid, 20, "2025-01-03 09:00:00", name="Switch")
    p1 = make_product(sid, 50, "2025-01-01 09:00:00", name="Panel")
    p2 = make_product(sid, 30, "2025-01-02 09:00:00", name="Wire")
    return [p1, p2, p3]


def _dues(conn, pids):
    repo = ProductsRepo(conn)
    return [round(repo.get(p)["remaining_amount"], 2) for p in pids]


# -------------------------
# S: pure plan
# -------------------------

def test_s0_plan_is_greedy_oldest_first():
    """S0: budget clears oldest lines first, no proportional split."""
    plan = plan_fifo_settlement(70, [(1, 50), (2, 30), (3, 20)])
    assert plan == [FifoAllocation(1, 50, 50), FifoAllocation(2, 30, 20)]
    assert [a.remaining_after for a in plan] == [0.0, 10.0]


def test_s1_plan_stops_inside_first_line():
    """S1: amount smaller than the oldest line only touches that line."""
    assert plan_fifo_settlement(10, [(1, 50), (2, 30)]) == [FifoAllocation(1, 50, 10)]


def test_s2_plan_skips_settled_lines():
    """S2: zero-due lines receive nothing."""
    assert plan_fifo_settlement(5, [(1, 0), (2, 8)]) == [FifoAllocation(2, 8, 5)]


# -------------------------
# T: recorded payments
# -------------------------

def test_t0_payment_of_70_over_50_30_20(conn, ids, three_lines):
    """T0: dues 50, 30, 20 (oldest first) with 70 -> 0, 10, 20."""
    res = SupplierDueAllocator(conn).record_supplier_payment(ids["supplier_id"], 70, "cash")

    # 50 + 20 applied: oldest cleared, second reduced to 10
    assert _dues(conn, three_lines) == [0.0, 10.0, 20.0]
    assert res.applied_total == pytest.approx(70.0)

    rows = SupplierPaymentsRepo(conn).list_for_supplier(ids["supplier_id"])
    assert len(rows) == 1
    assert rows[0]["amount"] == pytest.approx(70.0)


def test_t1_payment_of_70_over_20_30_50_leaves_30(conn, ids, make_product):
    """T1: lines of 20, 30 then 50 (by age) with 70 -> 0, 0, 30."""
    sid = ids["supplier_id"]
    oldest = make_product(sid, 20, "2025-02-01 10:00:00")
    middle = make_product(sid, 30, "2025-02-02 10:00:00")
    newest = make_product(sid, 50, "2025-02-03 10:00:00")

    SupplierDueAllocator(conn).record_supplier_payment(sid, 70, "bank_transfer", reference_number="TRX-9")
    assert _dues(conn, [oldest, middle, newest]) == [0.0, 0.0, 30.0]


def test_t2_overpayment_rejected_before_any_write(conn, ids, three_lines):
    """T2: amount > total outstanding -> rejected, no rows written or changed."""
    with pytest.raises(ValidationError, match="pending"):
        SupplierDueAllocator(conn).record_supplier_payment(ids["supplier_id"], 100.01, "cash")
    assert SupplierPaymentsRepo(conn).count_for_supplier(ids["supplier_id"]) == 0
    assert _dues(conn, three_lines) == [50.0, 30.0, 20.0]


def test_t3_small_payment_reduces_only_oldest(conn, ids, three_lines):
    """T3: amount < oldest due reduces only that line."""
    record_supplier_payment(conn, ids["supplier_id"], 10, "cash")
    assert _dues(conn, three_lines) == [40.0, 30.0, 20.0]


def test_t4_exact_total_clears_everything(conn, ids, three_lines):
    """T4: paying the whole outstanding clears every line."""
    alloc = SupplierDueAllocator(conn)
    alloc.record_supplier_payment(ids["supplier_id"], 100, "cash")
    assert _dues(conn, three_lines) == [0.0, 0.0, 0.0]
    assert alloc.outstanding(ids["supplier_id"]) == 0.0
    with pytest.raises(ValidationError, match="No pending"):
        alloc.record_supplier_payment(ids["supplier_id"], 1, "cash")


def test_t5_other_suppliers_are_untouched(conn, ids, three_lines, make_product):
    """T5: only the paying supplier's lines are settled."""
    other = make_product(ids["other_supplier_id"], 40, "2024-12-01 09:00:00")
    SupplierDueAllocator(conn).record_supplier_payment(ids["supplier_id"], 60, "cash")
    assert _dues(conn, [other]) == [40.0]
    assert _dues(conn, three_lines) == [0.0, 20.0, 20.0]


@pytest.mark.parametrize("amount", [0, -10, 0.004])
def test_t6_non_positive_amount(conn, ids, three_lines, amount):
    """T6: amount must be > 0."""
    with pytest.raises(ValidationError):
        SupplierDueAllocator(conn).record_supplier_payment(ids["supplier_id"], amount, "cash")
    assert conn.execute("SELECT COUNT(*) FROM supplier_payments").fetchone()[0] == 0


def test_t7_unknown_supplier(conn, ids):
    """T7: supplier must exist."""
    with pytest.raises(NotFoundError):
        SupplierDueAllocator(conn).record_supplier_payment(9999, 10, "cash")


def test_t8_preview_matches_recorded_allocation(conn, ids, three_lines):
    """T8: preview() is the same plan record_supplier_payment applies."""
    alloc = SupplierDueAllocator(conn)
    plan = alloc.preview(ids["supplier_id"], 65)
    res = alloc.record_supplier_payment(ids["supplier_id"], 65, "cash")
    assert plan == res.allocations
    assert [a.product_id for a in plan] == three_lines[:2]


# -------------------------
# U: two supplier ledgers
# -------------------------

def test_u0_product_and_invoice_dues_are_separate(conn, ids, three_lines):
    """U0: product-level due and invoice-level due are reported side by side."""
    InvoiceService(conn).create_invoice(
        invoice_type="product_addition",
        items=[{"product_name": "Panel", "quantity": 1, "unit_price": 80}],
        advance_payment=30,
        supplier_id=ids["supplier_id"],
    )
    alloc = SupplierDueAllocator(conn)
    alloc.record_supplier_payment(ids["supplier_id"], 70, "cash")

    led = alloc.ledgers(ids["supplier_id"])
    assert led.product_due == pytest.approx(30.0)
    # supplier payments never touch invoices
    assert led.invoice_due == pytest.approx(50.0)
    assert led.total_due == pytest.approx(80.0)
