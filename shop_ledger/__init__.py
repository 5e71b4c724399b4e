# shop_ledger/__init__.py
"""
Ledger engine for a retail inventory/invoicing business.

Entry points:
    from shop_ledger.database import get_connection
    from shop_ledger.modules.invoices import InvoiceService
    from shop_ledger.modules.payments.customer_payments.payment_allocator import PaymentAllocator
    from shop_ledger.modules.payments.vendor_payments.supplier_due_allocator import SupplierDueAllocator
    from shop_ledger.modules.returns import ReturnProcessor
    from shop_ledger.modules.reporting.financial_aggregator import FinancialAggregator
"""

__version__ = "1.2.0"
