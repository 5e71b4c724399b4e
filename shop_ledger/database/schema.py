from pathlib import Path
import logging
import sqlite3
import sys

_log = logging.getLogger(__name__)

SQL = r"""
PRAGMA foreign_keys = ON;

/* ======================== PARTIES & SHOPS ======================== */

CREATE TABLE IF NOT EXISTS shops (
    id         INTEGER PRIMARY KEY AUTOINCREMENT,
    name       TEXT NOT NULL,
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS suppliers (
    id         INTEGER PRIMARY KEY AUTOINCREMENT,
    name       TEXT NOT NULL,
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS customers (
    id         INTEGER PRIMARY KEY AUTOINCREMENT,
    name       TEXT NOT NULL,
    phone      TEXT,
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);

/* ======================== PRODUCTS ======================== */

/* remaining_amount = supplier-side due for this purchase line */
CREATE TABLE IF NOT EXISTS products (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    name             TEXT NOT NULL,
    supplier_id      INTEGER NOT NULL,
    shop_id          INTEGER,
    buying_price     NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(buying_price AS REAL) >= 0),
    selling_price    NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(selling_price AS REAL) >= 0),
    quantity         NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(quantity AS REAL) >= 0),
    advance_payment  NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(advance_payment AS REAL) >= 0),
    remaining_amount NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(remaining_amount AS REAL) >= 0),
    created_at       TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at       TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (supplier_id) REFERENCES suppliers(id),
    FOREIGN KEY (shop_id)     REFERENCES shops(id)
);
CREATE INDEX IF NOT EXISTS idx_products_supplier_created
ON products(supplier_id, created_at, id);

/* ======================== INVOICES ======================== */

CREATE TABLE IF NOT EXISTS invoices (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    invoice_number   TEXT UNIQUE NOT NULL,
    invoice_type     TEXT NOT NULL CHECK (invoice_type IN ('sales','product_addition')),
    total_amount     NUMERIC NOT NULL CHECK (CAST(total_amount AS REAL) >= 0),
    discount_amount  NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(discount_amount AS REAL) >= 0),
    advance_payment  NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(advance_payment AS REAL) >= 0),
    remaining_amount NUMERIC NOT NULL DEFAULT 0,
    status           TEXT NOT NULL CHECK (status IN ('unpaid','partially_paid','paid')),
    customer_id      INTEGER,
    supplier_id      INTEGER,
    shop_id          INTEGER,
    notes            TEXT,
    created_at       TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at       TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (customer_id) REFERENCES customers(id),
    FOREIGN KEY (supplier_id) REFERENCES suppliers(id),
    FOREIGN KEY (shop_id)     REFERENCES shops(id)
);
CREATE INDEX IF NOT EXISTS idx_invoices_type_created ON invoices(invoice_type, created_at);
CREATE INDEX IF NOT EXISTS idx_invoices_customer ON invoices(customer_id);
CREATE INDEX IF NOT EXISTS idx_invoices_supplier ON invoices(supplier_id);

/* product snapshot columns are captured at sale time */
CREATE TABLE IF NOT EXISTS invoice_items (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    invoice_id       INTEGER NOT NULL,
    product_id       INTEGER,
    product_name     TEXT NOT NULL,
    barcode          TEXT,
    wattage          NUMERIC,
    size             TEXT,
    color            TEXT,
    quantity         NUMERIC NOT NULL CHECK (CAST(quantity AS REAL) > 0),
    unit_price       NUMERIC NOT NULL CHECK (CAST(unit_price AS REAL) >= 0),
    total_price      NUMERIC NOT NULL CHECK (CAST(total_price AS REAL) >= 0),
    discount_amount  NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(discount_amount AS REAL) >= 0),
    is_outer_product INTEGER NOT NULL DEFAULT 0 CHECK (is_outer_product IN (0,1)),
    buying_price     NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(buying_price AS REAL) >= 0),
    created_at       TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (invoice_id) REFERENCES invoices(id) ON DELETE RESTRICT,
    FOREIGN KEY (product_id) REFERENCES products(id)
);
CREATE INDEX IF NOT EXISTS idx_invoice_items_invoice ON invoice_items(invoice_id);
CREATE INDEX IF NOT EXISTS idx_invoice_items_outer ON invoice_items(is_outer_product, created_at);

/* ======================== PAYMENTS ======================== */

/* negative amounts are refunds written when a return is applied to the ledger */
CREATE TABLE IF NOT EXISTS payments (
    id             INTEGER PRIMARY KEY AUTOINCREMENT,
    invoice_id     INTEGER NOT NULL,
    amount         NUMERIC NOT NULL CHECK (CAST(amount AS REAL) <> 0),
    payment_method TEXT NOT NULL,
    payment_date   TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    notes          TEXT,
    created_at     TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (invoice_id) REFERENCES invoices(id) ON DELETE RESTRICT
);
CREATE INDEX IF NOT EXISTS idx_payments_invoice ON payments(invoice_id);
CREATE INDEX IF NOT EXISTS idx_payments_date ON payments(payment_date);

CREATE TABLE IF NOT EXISTS supplier_payments (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    supplier_id      INTEGER NOT NULL,
    amount           NUMERIC NOT NULL CHECK (CAST(amount AS REAL) > 0),
    payment_method   TEXT NOT NULL,
    reference_number TEXT,
    notes            TEXT,
    payment_date     TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    created_at       TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (supplier_id) REFERENCES suppliers(id)
);
CREATE INDEX IF NOT EXISTS idx_supplier_payments_supplier ON supplier_payments(supplier_id);

/* payments and supplier payments are append-only */
DROP TRIGGER IF EXISTS trg_payments_no_update;
CREATE TRIGGER trg_payments_no_update
BEFORE UPDATE ON payments
BEGIN
  SELECT RAISE(ABORT, 'payments are append-only');
END;

DROP TRIGGER IF EXISTS trg_payments_no_delete;
CREATE TRIGGER trg_payments_no_delete
BEFORE DELETE ON payments
BEGIN
  SELECT RAISE(ABORT, 'payments are append-only');
END;

DROP TRIGGER IF EXISTS trg_supplier_payments_no_update;
CREATE TRIGGER trg_supplier_payments_no_update
BEFORE UPDATE ON supplier_payments
BEGIN
  SELECT RAISE(ABORT, 'supplier payments are append-only');
END;

DROP TRIGGER IF EXISTS trg_supplier_payments_no_delete;
CREATE TRIGGER trg_supplier_payments_no_delete
BEFORE DELETE ON supplier_payments
BEGIN
  SELECT RAISE(ABORT, 'supplier payments are append-only');
END;

/* ======================== RETURNS ======================== */

CREATE TABLE IF NOT EXISTS product_returns (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    invoice_id    INTEGER NOT NULL,
    customer_id   INTEGER,
    total_amount  NUMERIC NOT NULL CHECK (CAST(total_amount AS REAL) >= 0),
    refund_amount NUMERIC NOT NULL CHECK (CAST(refund_amount AS REAL) >= 0),
    status        TEXT NOT NULL DEFAULT 'pending' CHECK (status IN ('pending','processed','rejected')),
    return_reason TEXT NOT NULL,
    notes         TEXT,
    applied_at    TIMESTAMP,
    created_at    TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at    TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (invoice_id)  REFERENCES invoices(id) ON DELETE RESTRICT,
    FOREIGN KEY (customer_id) REFERENCES customers(id)
);
CREATE INDEX IF NOT EXISTS idx_product_returns_invoice ON product_returns(invoice_id);

CREATE TABLE IF NOT EXISTS return_items (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    return_id       INTEGER NOT NULL,
    invoice_item_id INTEGER NOT NULL,
    product_id      INTEGER,
    quantity        NUMERIC NOT NULL CHECK (CAST(quantity AS REAL) > 0),
    unit_price      NUMERIC NOT NULL CHECK (CAST(unit_price AS REAL) >= 0),
    total_price     NUMERIC NOT NULL CHECK (CAST(total_price AS REAL) >= 0),
    condition       TEXT,
    return_reason   TEXT,
    FOREIGN KEY (return_id)       REFERENCES product_returns(id) ON DELETE CASCADE,
    FOREIGN KEY (invoice_item_id) REFERENCES invoice_items(id),
    FOREIGN KEY (product_id)      REFERENCES products(id)
);
CREATE INDEX IF NOT EXISTS idx_return_items_return ON return_items(return_id);
CREATE INDEX IF NOT EXISTS idx_return_items_invoice_item ON return_items(invoice_item_id);

/* ======================== EXPENSE FEEDS ======================== */

CREATE TABLE IF NOT EXISTS others_costs (
    id       INTEGER PRIMARY KEY AUTOINCREMENT,
    amount   NUMERIC NOT NULL CHECK (CAST(amount AS REAL) >= 0),
    category TEXT,
    date     TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    shop_id  INTEGER,
    FOREIGN KEY (shop_id) REFERENCES shops(id)
);
CREATE INDEX IF NOT EXISTS idx_others_costs_date ON others_costs(date);

CREATE TABLE IF NOT EXISTS salary_payments (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    amount       NUMERIC NOT NULL CHECK (CAST(amount AS REAL) >= 0),
    payment_date TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    shop_id      INTEGER,
    FOREIGN KEY (shop_id) REFERENCES shops(id)
);
CREATE INDEX IF NOT EXISTS idx_salary_payments_date ON salary_payments(payment_date);
"""


def _ensure_column(conn: sqlite3.Connection, table: str, column: str, ddl: str) -> None:
    """
    Safe migration for older DBs that created `table` before `column` existed.
    Adds the column if missing. No-op if already present.
    """
    cur = conn.execute(f"PRAGMA table_info({table});")
    cols = {row[1] for row in cur.fetchall()}  # row[1] = name
    if column not in cols:
        conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {ddl};")


def apply_schema(conn: sqlite3.Connection) -> None:
    """Apply the (idempotent) schema and additive migrations on an open connection."""
    conn.executescript(SQL)
    # discount_amount was once encoded in invoices.notes
    _ensure_column(conn, "invoices", "discount_amount", "NUMERIC NOT NULL DEFAULT 0")
    _ensure_column(conn, "product_returns", "applied_at", "TIMESTAMP")


def init_schema(db_path: Path | str = "ledger.db") -> None:
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(db_path) as conn:
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL;")
        apply_schema(conn)
        conn.commit()
    _log.info("schema applied to %s", db_path)


if __name__ == "__main__":
    from ..config import DB_PATH

    target = sys.argv[1] if len(sys.argv) > 1 else DB_PATH
    init_schema(target)
    print(f"✓ DB applied to {target}")
