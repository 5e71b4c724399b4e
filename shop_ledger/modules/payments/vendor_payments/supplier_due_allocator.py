# shop_ledger/modules/payments/vendor_payments/supplier_due_allocator.py
"""
Supplier payment recording with oldest-first settlement.

- One supplier_payments row records the full amount against the supplier,
  not against any invoice.
- The amount is then settled across the supplier's product lines that still
  carry a due, oldest created first; each line takes min(budget, due).
- Requests above the supplier's total outstanding are rejected before any
  write.

Suppliers carry two separate ledgers that are never forced to agree:
product-level due (Σ products.remaining_amount, what this allocator settles)
and invoice-level due (Σ remaining_amount of unpaid product_addition invoices).
"""
from __future__ import annotations

from dataclasses import dataclass
import sqlite3
from typing import List, Optional

from ....constants import MONEY_EPS, PAYMENT_METHODS, TABLE_PRODUCTS, TABLE_SUPPLIER_PAYMENTS
from ....database.repositories import ProductsRepo, ReportingRepo, SupplierPaymentsRepo
from ....errors import NotFoundError, ValidationError
from ....utils.helpers import now_str, round_money
from ....utils.validators import is_strictly_positive_number
from ...base_module import BaseService
from ...events import LedgerEvents
from ..payment_utilities.calculations import FifoAllocation, plan_fifo_settlement


@dataclass(frozen=True)
class SupplierLedgers:
    supplier_id: int
    product_due: float
    invoice_due: float

    @property
    def total_due(self) -> float:
        return round_money(self.product_due + self.invoice_due)


@dataclass(frozen=True)
class SupplierPaymentResult:
    payment_id: int
    allocations: List[FifoAllocation]

    @property
    def applied_total(self) -> float:
        return round_money(sum(a.applied for a in self.allocations))


class SupplierDueAllocator(BaseService):

    def outstanding(self, supplier_id: int) -> float:
        """Total product-level due for a supplier."""
        return round_money(ProductsRepo(self.conn).outstanding_for_supplier(supplier_id))

    def ledgers(self, supplier_id: int) -> SupplierLedgers:
        rep = ReportingRepo(self.conn)
        return SupplierLedgers(
            supplier_id=supplier_id,
            product_due=round_money(rep.product_due(supplier_id=supplier_id)),
            invoice_due=round_money(rep.supplier_invoice_due(supplier_id)),
        )

    def preview(self, supplier_id: int, amount: float) -> List[FifoAllocation]:
        """Settlement plan for `amount` without writing anything."""
        rows = ProductsRepo(self.conn).list_open_for_supplier(supplier_id)
        return plan_fifo_settlement(amount, [(r["id"], r["remaining_amount"]) for r in rows])

    def record_supplier_payment(
        self,
        supplier_id: int,
        amount: float,
        method: str,
        reference_number: Optional[str] = None,
        notes: Optional[str] = None,
        payment_date: Optional[str] = None,
    ) -> SupplierPaymentResult:
        # stored at cent precision; sub-cent amounts round to 0
        if not is_strictly_positive_number(amount) or round_money(amount) <= 0:
            raise ValidationError("Payment amount must be greater than 0.")
        amount = round_money(amount)
        if method not in PAYMENT_METHODS:
            raise ValidationError(f"Unknown payment method: {method}")

        with self._command(
            "supplier_payment",
            tables=(TABLE_SUPPLIER_PAYMENTS, TABLE_PRODUCTS),
            extra={"supplier_id": supplier_id, "amount": amount, "method": method},
        ) as result:
            sp = SupplierPaymentsRepo(self.conn)
            products = ProductsRepo(self.conn)
            if not sp.supplier_exists(supplier_id):
                raise NotFoundError(f"Supplier not found: {supplier_id}")

            open_rows = products.list_open_for_supplier(supplier_id)
            pending = round_money(sum(float(r["remaining_amount"]) for r in open_rows))
            if pending <= MONEY_EPS:
                raise ValidationError("No pending amount for this supplier.")
            if amount > pending + MONEY_EPS:
                raise ValidationError(
                    f"Payment amount cannot exceed the pending amount ({pending:.2f})."
                )

            stamp = payment_date or now_str()
            payment_id = sp.insert(
                supplier_id=supplier_id,
                amount=amount,
                payment_method=method,
                reference_number=reference_number,
                notes=notes,
                payment_date=stamp,
            )
            plan = plan_fifo_settlement(amount, [(r["id"], r["remaining_amount"]) for r in open_rows])
            for a in plan:
                products.set_remaining(
                    a.product_id,
                    remaining_amount=a.remaining_after,
                    expected_remaining=a.remaining_before,
                    updated_at=stamp,
                )
            result.update(payment_id=payment_id, lines=len(plan))
        return SupplierPaymentResult(payment_id=payment_id, allocations=plan)


def record_supplier_payment(
    conn: sqlite3.Connection,
    supplier_id: int,
    amount: float,
    method: str,
    reference_number: Optional[str] = None,
    notes: Optional[str] = None,
    *,
    events: Optional[LedgerEvents] = None,
) -> SupplierPaymentResult:
    return SupplierDueAllocator(conn, events).record_supplier_payment(
        supplier_id, amount, method, reference_number=reference_number, notes=notes
    )
