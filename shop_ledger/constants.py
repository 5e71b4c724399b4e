# shop_ledger/constants.py
from __future__ import annotations

DATA_DIR = "data"
DB_FILE_NAME = "ledger.db"
LOG_DIR = "logs"
LEDGER_LOG_FILE = "ledger.log"

TABLE_SCHEMA_VERSION = "schema_version"
SCHEMA_VERSION = "1.2.0"

# ---- tables that publish change notifications ----
TABLE_INVOICES = "invoices"
TABLE_INVOICE_ITEMS = "invoice_items"
TABLE_PAYMENTS = "payments"
TABLE_SUPPLIER_PAYMENTS = "supplier_payments"
TABLE_PRODUCTS = "products"
TABLE_PRODUCT_RETURNS = "product_returns"
TABLE_RETURN_ITEMS = "return_items"
TABLE_OTHERS_COSTS = "others_costs"
TABLE_SALARY_PAYMENTS = "salary_payments"

LEDGER_TABLES: tuple[str, ...] = (
    TABLE_INVOICES,
    TABLE_INVOICE_ITEMS,
    TABLE_PAYMENTS,
    TABLE_SUPPLIER_PAYMENTS,
    TABLE_PRODUCTS,
    TABLE_PRODUCT_RETURNS,
    TABLE_RETURN_ITEMS,
    TABLE_OTHERS_COSTS,
    TABLE_SALARY_PAYMENTS,
)

# ---- invoices ----
INVOICE_TYPE_SALES = "sales"
INVOICE_TYPE_PRODUCT_ADDITION = "product_addition"
INVOICE_TYPES: tuple[str, ...] = (INVOICE_TYPE_SALES, INVOICE_TYPE_PRODUCT_ADDITION)

INVOICE_NUMBER_PREFIX = {
    INVOICE_TYPE_SALES: "SALE",
    INVOICE_TYPE_PRODUCT_ADDITION: "PUR",
}

# ---- payments ----
PAYMENT_METHODS: tuple[str, ...] = ("cash", "card", "bank_transfer", "mobile_banking", "cheque", "other")
REFUND_METHOD = "refund"

# ---- returns ----
RETURN_REASONS: tuple[str, ...] = (
    "Defective Product",
    "Wrong Item Received",
    "Size/Fit Issue",
    "Changed Mind",
    "Damaged in Transit",
    "Quality Issue",
    "Other",
)

PRODUCT_CONDITIONS: tuple[str, ...] = (
    "New/Unused",
    "Like New",
    "Used",
    "Damaged",
    "Defective",
)

# tolerance used for money comparisons (mirrors SQL-side checks)
MONEY_EPS = 1e-9
