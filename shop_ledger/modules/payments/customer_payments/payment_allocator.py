# shop_ledger/modules/payments/customer_payments/payment_allocator.py
"""
Customer-side payment recording.

One call records exactly one payment against exactly one invoice. Inside a
single write transaction the invoice is re-read, the amount is checked
against the current remaining balance, the payment row is inserted and
remaining/status are recomputed from the authoritative payment sum. The
invoice update is a compare-and-swap on the remaining_amount read at the
start of the transaction.
"""
from __future__ import annotations

import sqlite3
from typing import Optional

from ....constants import MONEY_EPS, PAYMENT_METHODS, TABLE_INVOICES, TABLE_PAYMENTS
from ....database.repositories import InvoicesRepo, PaymentsRepo
from ....errors import NotFoundError, ValidationError
from ....utils.helpers import now_str, round_money
from ....utils.validators import is_strictly_positive_number
from ...base_module import BaseService
from ...events import LedgerEvents
from ..payment_utilities.calculations import derive_status


class PaymentAllocator(BaseService):

    def record_payment(
        self,
        invoice_id: int,
        amount: float,
        method: str,
        notes: Optional[str] = None,
        payment_date: Optional[str] = None,
    ) -> int:
        """
        Insert one payment and update the invoice's remaining/status.
        Returns the new payment id.
        """
        # stored at cent precision; sub-cent amounts round to 0
        if not is_strictly_positive_number(amount) or round_money(amount) <= 0:
            raise ValidationError("Payment amount must be greater than 0.")
        amount = round_money(amount)
        if method not in PAYMENT_METHODS:
            raise ValidationError(f"Unknown payment method: {method}")

        with self._command(
            "payment",
            tables=(TABLE_PAYMENTS, TABLE_INVOICES),
            extra={"invoice_id": invoice_id, "amount": amount, "method": method},
        ) as result:
            invoices = InvoicesRepo(self.conn)
            payments = PaymentsRepo(self.conn)

            inv = invoices.get(invoice_id)
            if inv is None:
                raise NotFoundError(f"Invoice not found: {invoice_id}")
            current_remaining = float(inv["remaining_amount"])
            if amount > current_remaining + MONEY_EPS:
                raise ValidationError(
                    f"Payment amount exceeds balance (remaining {current_remaining:.2f})."
                )

            stamp = payment_date or now_str()
            payment_id = payments.insert(
                invoice_id=invoice_id,
                amount=amount,
                payment_method=method,
                payment_date=stamp,
                notes=notes,
            )
            paid = payments.sum_for_invoice(invoice_id)
            remaining, status = derive_status(inv["total_amount"], inv["advance_payment"], paid)
            invoices.update_balance(
                invoice_id,
                remaining_amount=remaining,
                status=status,
                expected_remaining=current_remaining,
                updated_at=now_str(),
            )
            result.update(payment_id=payment_id, remaining=remaining, status=status)
        return payment_id


def record_payment(
    conn: sqlite3.Connection,
    invoice_id: int,
    amount: float,
    method: str,
    notes: Optional[str] = None,
    payment_date: Optional[str] = None,
    *,
    events: Optional[LedgerEvents] = None,
) -> int:
    return PaymentAllocator(conn, events).record_payment(
        invoice_id, amount, method, notes=notes, payment_date=payment_date
    )
