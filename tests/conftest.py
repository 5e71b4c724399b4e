# shop_ledger/tests/conftest.py
# ---------------------------------------------------------------------
# Ground rules:
# - pytest-qt owns QApplication (use qapp/qtbot fixtures)
# - Every test gets its own SQLite file under tmp_path (schema applied)
# - Seed rows are committed so service commands can BEGIN IMMEDIATE
# - conn.row_factory = sqlite3.Row, PRAGMA foreign_keys=ON
# - Ledger event log goes to a temp dir, Qt runs offscreen
# ---------------------------------------------------------------------

from __future__ import annotations

import os
import re
import sqlite3
import tempfile

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
os.environ.setdefault("SHOP_LEDGER_LOG_DIR", tempfile.mkdtemp(prefix="shop_ledger_logs_"))

import pytest
from PySide6 import QtCore

from shop_ledger.database import get_connection
from shop_ledger.modules.events import LedgerEvents


# ---------- Qt: let pytest-qt own the app ----------
@pytest.fixture(scope="session")
def app(qapp):  # alias to match code that expects an `app` fixture
    return qapp


# ---------- Silence benign Qt warnings ----------
_BENIGN_QT_PATTERNS = [
    r"^QObject::connect: .* already connected",
    r"^QObject::disconnect: Unexpected null parameter",
]

@pytest.fixture(autouse=True, scope="session")
def _silence_benign_qt():
    """Filter common harmless Qt messages during tests."""
    original = QtCore.qInstallMessageHandler(None)
    rx = [re.compile(p) for p in _BENIGN_QT_PATTERNS]

    def handler(msg_type, context, message):
        text = str(message)
        for r in rx:
            if r.search(text):
                return
        QtCore.qInstallMessageHandler(None)
        try:
            QtCore.qDebug(message)
        finally:
            QtCore.qInstallMessageHandler(handler)

    QtCore.qInstallMessageHandler(handler)
    try:
        yield
    finally:
        QtCore.qInstallMessageHandler(original)


# ---------- Per-test database ----------
@pytest.fixture()
def db_path(tmp_path):
    return tmp_path / "ledger.db"


@pytest.fixture()
def conn(db_path):
    """Fresh schema in a temp file; closed after the test."""
    con = get_connection(db_path)
    try:
        yield con
    finally:
        con.close()


@pytest.fixture()
def ids(conn: sqlite3.Connection) -> dict:
    """Shop, supplier and customer rows most tests need."""
    def insert(sql: str, *p) -> int:
        return int(conn.execute(sql, p).lastrowid)

    out = {
        "shop_id": insert("INSERT INTO shops(name) VALUES (?)", "Main Street"),
        "other_shop_id": insert("INSERT INTO shops(name) VALUES (?)", "Harbor Road"),
        "supplier_id": insert("INSERT INTO suppliers(name) VALUES (?)", "Bright Lamps Ltd"),
        "other_supplier_id": insert("INSERT INTO suppliers(name) VALUES (?)", "Cable Co"),
        "customer_id": insert("INSERT INTO customers(name, phone) VALUES (?, ?)", "Amina Yusuf", "0300-1234567"),
    }
    conn.commit()
    return out


@pytest.fixture()
def events(qapp):
    return LedgerEvents()


# ---------- Small helpers ----------
def one(conn: sqlite3.Connection, sql: str, *p):
    r = conn.execute(sql, p).fetchone()
    return None if r is None else r[0]


def add_product(conn, supplier_id, remaining, created_at, *, shop_id=None, name="Panel", quantity=1):
    """Insert a product line with a given supplier due and creation time; committed."""
    pid = conn.execute(
        "INSERT INTO products(name, supplier_id, shop_id, buying_price, selling_price, quantity, "
        "advance_payment, remaining_amount, created_at, updated_at) "
        "VALUES (?, ?, ?, ?, ?, ?, 0, ?, ?, ?)",
        (name, supplier_id, shop_id, remaining, remaining * 1.2, quantity, remaining, created_at, created_at),
    ).lastrowid
    conn.commit()
    return int(pid)


@pytest.fixture()
def make_product(conn):
    def _make(supplier_id, remaining, created_at, **kw):
        return add_product(conn, supplier_id, remaining, created_at, **kw)
    return _make
