# database/repositories/__init__.py
"""
Repository layer public API.

Usage:
    from shop_ledger.database.repositories import (
        # Invoices
        InvoicesRepo, InvoiceHeader, InvoiceItem, InvoicesDomainError,
        # Payments
        PaymentsRepo, SupplierPaymentsRepo,
        # Products
        ProductsRepo, Product, ProductsDomainError,
        # Returns
        ReturnsRepo, ReturnHeader, ReturnLine, ReturnsDomainError,
        # Customers
        CustomersRepo, CustomerBalance,
        # Reporting
        ReportingRepo,
    )
"""

# ---------------- Customers ----------------
from .customers_repo import CustomersRepo, CustomerBalance

# ---------------- Invoices -----------------
from .invoices_repo import (
    InvoicesRepo,
    InvoiceHeader,
    InvoiceItem,
    DomainError as InvoicesDomainError,
)

# ---------------- Payments -----------------
from .payments_repo import PaymentsRepo
from .supplier_payments_repo import SupplierPaymentsRepo

# ---------------- Products -----------------
from .products_repo import ProductsRepo, Product, DomainError as ProductsDomainError

# ---------------- Returns ------------------
from .returns_repo import (
    ReturnsRepo,
    ReturnHeader,
    ReturnLine,
    DomainError as ReturnsDomainError,
)

# ---------------- Reporting ----------------
from .reporting_repo import ReportingRepo

__all__ = [
    # customers_repo
    "CustomersRepo",
    "CustomerBalance",
    # invoices_repo
    "InvoicesRepo",
    "InvoiceHeader",
    "InvoiceItem",
    "InvoicesDomainError",
    # payments
    "PaymentsRepo",
    "SupplierPaymentsRepo",
    # products_repo
    "ProductsRepo",
    "Product",
    "ProductsDomainError",
    # returns_repo
    "ReturnsRepo",
    "ReturnHeader",
    "ReturnLine",
    "ReturnsDomainError",
    # reporting_repo
    "ReportingRepo",
]
