# tests/test_events_dashboard.py
import pytest

from shop_ledger.database import transaction
from shop_ledger.database.repositories import PaymentsRepo
from shop_ledger.errors import ValidationError
from shop_ledger.modules.dashboard import DashboardModel
from shop_ledger.modules.invoices import InvoiceService
from shop_ledger.modules.payments.customer_payments.payment_allocator import PaymentAllocator
from shop_ledger.modules.payments.vendor_payments.supplier_due_allocator import SupplierDueAllocator


def _sale(conn, ids, events=None, advance=0.0):
    return InvoiceService(conn, events).create_invoice(
        items=[{"product_name": "Bulb", "quantity": 4, "unit_price": 25}],
        advance_payment=advance,
        customer_id=ids["customer_id"],
        shop_id=ids["shop_id"],
    )


# -------------------------
# E: change notifications
# -------------------------

def test_e0_payment_publishes_written_tables(qtbot, conn, ids, events):
    """E0: one emission per written table, after commit."""
    inv_id = _sale(conn, ids)
    seen = []
    events.table_changed.connect(seen.append)

    with qtbot.waitSignal(events.table_changed, timeout=1000):
        PaymentAllocator(conn, events).record_payment(inv_id, 10, "cash")

    assert seen == ["payments", "invoices"]
    assert not conn.in_transaction


def test_e1_rejected_command_publishes_nothing(qtbot, conn, ids, events):
    """E1: a failed command emits no notification."""
    inv_id = _sale(conn, ids)
    with qtbot.assertNotEmitted(events.table_changed):
        with pytest.raises(ValidationError):
            PaymentAllocator(conn, events).record_payment(inv_id, 1000, "cash")


def test_e2_subscribe_per_table(conn, ids, events, make_product):
    """E2: subscribers are called only for their table."""
    hits = {"products": 0, "payments": 0}
    events.subscribe("products", lambda: hits.__setitem__("products", hits["products"] + 1))
    events.subscribe("payments", lambda: hits.__setitem__("payments", hits["payments"] + 1))

    make_product(ids["supplier_id"], 30, "2025-01-01 10:00:00")
    SupplierDueAllocator(conn, events).record_supplier_payment(ids["supplier_id"], 10, "cash")

    assert hits == {"products": 1, "payments": 0}


def test_e3_unknown_table_is_refused(events):
    """E3: only ledger tables can be subscribed to."""
    with pytest.raises(ValueError):
        events.subscribe("employees", lambda: None)


def test_e4_publish_dedupes(qtbot, events):
    """E4: repeated table names in one publish emit once."""
    seen = []
    events.table_changed.connect(seen.append)
    events.publish("invoices", "invoices", "payments")
    assert seen == ["invoices", "payments"]


# -------------------------
# D: dashboard model
# -------------------------

def test_d0_dashboard_refreshes_on_change(qtbot, conn, ids, events):
    """D0: a payment re-runs the dashboard with the last period."""
    inv_id = _sale(conn, ids, events)
    model = DashboardModel(conn, events)
    model.refresh(period=("monthly", None, None))
    assert model.kpi_income == pytest.approx(0.0)
    assert model.kpi_customer_credit == pytest.approx(100.0)
    count = model.refresh_count

    with qtbot.waitSignal(events.table_changed, timeout=1000):
        PaymentAllocator(conn, events).record_payment(inv_id, 40, "cash")

    assert model.refresh_count > count
    assert model.kpi_income == pytest.approx(40.0)
    assert model.kpi_customer_credit == pytest.approx(60.0)
    assert model.kpi_income_change == "+100.0%"


def test_d1_dashboard_detach_stops_refresh(conn, ids, events):
    """D1: after detach() notifications no longer refresh the model."""
    inv_id = _sale(conn, ids)
    model = DashboardModel(conn, events)
    model.refresh()
    model.detach()
    count = model.refresh_count

    PaymentAllocator(conn, events).record_payment(inv_id, 10, "cash")
    assert model.refresh_count == count


def test_d2_dashboard_without_bus(conn, ids):
    """D2: the model works standalone; on_refreshed is called after each refresh."""
    _sale(conn, ids, advance=25)
    calls = []
    model = DashboardModel(conn, on_refreshed=calls.append)
    model.refresh(period=("daily", None, None), shop_id=ids["shop_id"])
    assert calls == [model]
    assert model.kpi_income == pytest.approx(25.0)
    assert model.date_from < model.date_to


def test_e5_joined_transaction_defers_to_caller(qtbot, conn, ids, events):
    """E5: inside a caller's transaction nothing is published, and the caller's rollback wins."""
    inv_id = _sale(conn, ids)
    with qtbot.assertNotEmitted(events.table_changed):
        with pytest.raises(RuntimeError):
            with transaction(conn):
                PaymentAllocator(conn, events).record_payment(inv_id, 10, "cash")
                raise RuntimeError("caller gives up")

    assert PaymentsRepo(conn).list_by_invoice(inv_id) == []
    assert InvoiceService(conn).verify_invoice(inv_id)["remaining_amount"] == pytest.approx(100.0)
