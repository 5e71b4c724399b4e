"""
modules/returns/processor.py

Sales returns.

Submitting a return only records it (status 'pending'): the invoice and
product rows are untouched. Its financial effect is applied separately by
`apply_return_to_ledger`, which shrinks the invoice total, writes a refund
row for anything collected beyond the new total, restocks products and
marks the return processed.
"""
from __future__ import annotations

from dataclasses import dataclass
import sqlite3
from typing import Iterable, List, Optional, Sequence, Tuple

from ...constants import (
    INVOICE_TYPE_SALES,
    MONEY_EPS,
    PRODUCT_CONDITIONS,
    REFUND_METHOD,
    RETURN_REASONS,
    TABLE_INVOICES,
    TABLE_PAYMENTS,
    TABLE_PRODUCTS,
    TABLE_PRODUCT_RETURNS,
    TABLE_RETURN_ITEMS,
)
from ...database.repositories import (
    InvoicesRepo,
    PaymentsRepo,
    ProductsRepo,
    ReturnHeader,
    ReturnLine,
    ReturnsRepo,
)
from ...errors import NotFoundError, ValidationError
from ...utils.helpers import now_str, round_money
from ...utils.validators import non_empty
from ..base_module import BaseService
from ..payments.payment_utilities.calculations import derive_status, line_total, refund_due_after_return
from ..payments.payment_utilities.status import (
    RETURN_PENDING,
    RETURN_PROCESSED,
    ensure_return_transition,
)

# (invoice_item_id, quantity, condition)
ReturnSelection = Tuple[int, float, Optional[str]]


@dataclass(frozen=True)
class AppliedReturn:
    return_id: int
    invoice_id: int
    new_total: float
    remaining_amount: float
    status: str
    cash_refund: float
    refund_payment_id: Optional[int]


class ReturnProcessor(BaseService):

    # ---------------------------------------------------------------- submit

    def submit_return(
        self,
        invoice_id: int,
        items: Sequence[ReturnSelection],
        reason: str,
        notes: Optional[str] = None,
    ) -> int:
        """
        Record a pending return for selected invoice items.
        total_amount = Σ quantity * unit_price; refund_amount = total_amount.
        Returns the new return id.
        """
        selections = list(items or [])
        if not selections:
            raise ValidationError("Select at least one item to return.")
        if not non_empty(reason):
            raise ValidationError("Choose a return reason.")
        if reason not in RETURN_REASONS:
            raise ValidationError(f"Unknown return reason: {reason}")
        for _, _, condition in selections:
            if condition is not None and condition not in PRODUCT_CONDITIONS:
                raise ValidationError(f"Unknown product condition: {condition}")

        with self._command(
            "return",
            tables=(TABLE_PRODUCT_RETURNS, TABLE_RETURN_ITEMS),
            extra={"invoice_id": invoice_id, "reason": reason},
        ) as result:
            invoices = InvoicesRepo(self.conn)
            returns = ReturnsRepo(self.conn)

            inv = invoices.get(invoice_id)
            if inv is None:
                raise NotFoundError(f"Invoice not found: {invoice_id}")
            if inv["invoice_type"] != INVOICE_TYPE_SALES:
                raise ValidationError("Only sales invoices can be returned.")

            lines = list(self._build_lines(invoice_id, selections, reason, invoices, returns))
            total = round_money(sum(ln.total_price for ln in lines))
            header = ReturnHeader(
                invoice_id=invoice_id,
                customer_id=inv["customer_id"],
                total_amount=total,
                refund_amount=total,
                return_reason=reason,
                status=RETURN_PENDING,
                notes=notes,
                created_at=now_str(),
            )
            return_id = returns.insert_return(header, lines)
            result.update(return_id=return_id, total=total, items=len(lines))
        return return_id

    def _build_lines(
        self,
        invoice_id: int,
        selections: Iterable[ReturnSelection],
        reason: str,
        invoices: InvoicesRepo,
        returns: ReturnsRepo,
    ) -> Iterable[ReturnLine]:
        seen = set()
        for item_id, quantity, condition in selections:
            if item_id in seen:
                raise ValidationError("Each invoice item can be selected once per return.")
            seen.add(item_id)

            item = invoices.get_item(item_id)
            if item is None or item["invoice_id"] != invoice_id:
                raise NotFoundError(f"Invoice item {item_id} is not on invoice {invoice_id}")
            qty = float(quantity or 0)
            if qty <= 0:
                raise ValidationError(f"Return quantity must be greater than 0 ({item['product_name']}).")
            available = float(item["quantity"]) - returns.returned_quantity(item_id)
            if qty > available + MONEY_EPS:
                raise ValidationError(
                    f"Cannot return {qty:g} of {item['product_name']}; only {available:g} left to return."
                )
            yield ReturnLine(
                invoice_item_id=item_id,
                product_id=item["product_id"],
                quantity=qty,
                unit_price=float(item["unit_price"]),
                total_price=line_total(qty, item["unit_price"]),
                condition=condition,
                return_reason=reason,
            )

    # ---------------------------------------------------------------- status

    def get_return(self, return_id: int) -> sqlite3.Row:
        row = ReturnsRepo(self.conn).get(return_id)
        if row is None:
            raise NotFoundError(f"Return not found: {return_id}")
        return row

    def list_return_items(self, return_id: int) -> List[sqlite3.Row]:
        self.get_return(return_id)
        return ReturnsRepo(self.conn).list_items(return_id)

    def update_return_status(self, return_id: int, status: str) -> str:
        """pending -> processed | rejected; nothing else."""
        with self._command(
            "return_status",
            tables=(TABLE_PRODUCT_RETURNS,),
            extra={"return_id": return_id, "status": status},
        ):
            returns = ReturnsRepo(self.conn)
            row = returns.get(return_id)
            if row is None:
                raise NotFoundError(f"Return not found: {return_id}")
            try:
                target = ensure_return_transition(row["status"], status)
            except ValueError as e:
                raise ValidationError(str(e)) from e
            returns.update_status(return_id, target, expected_status=row["status"], updated_at=now_str())
        return target

    # ---------------------------------------------------------------- ledger

    def apply_return_to_ledger(self, return_id: int, restock: bool = True) -> AppliedReturn:
        """
        Reconcile a pending return with the invoice:

        - invoice total shrinks by the returned value
        - anything collected beyond the new total is refunded as a negative
          payment (method 'refund'), capped at the return's refund_amount
        - remaining/status are recomputed from the payment sum
        - products of returned lines are restocked (when `restock`)
        - the return becomes 'processed' with applied_at set
        """
        tables = [TABLE_INVOICES, TABLE_PAYMENTS, TABLE_PRODUCT_RETURNS]
        if restock:
            tables.append(TABLE_PRODUCTS)

        with self._command("return_apply", tables=tables, extra={"return_id": return_id}) as result:
            returns = ReturnsRepo(self.conn)
            invoices = InvoicesRepo(self.conn)
            payments = PaymentsRepo(self.conn)

            ret = returns.get(return_id)
            if ret is None:
                raise NotFoundError(f"Return not found: {return_id}")
            if ret["applied_at"] is not None:
                raise ValidationError(f"Return {return_id} has already been applied.")
            if ret["status"] != RETURN_PENDING:
                raise ValidationError(f"Only pending returns can be applied (status: {ret['status']}).")

            inv = invoices.get(ret["invoice_id"])
            if inv is None:
                raise NotFoundError(f"Invoice not found: {ret['invoice_id']}")

            paid = payments.sum_for_invoice(inv["id"])
            new_total, cash_refund = refund_due_after_return(
                total_amount=inv["total_amount"],
                advance_payment=inv["advance_payment"],
                payments_sum=paid,
                returned_value=ret["total_amount"],
                refund_amount=ret["refund_amount"],
            )
            stamp = now_str()
            refund_id = None
            if cash_refund > MONEY_EPS:
                refund_id = payments.insert(
                    invoice_id=inv["id"],
                    amount=-cash_refund,
                    payment_method=REFUND_METHOD,
                    payment_date=stamp,
                    notes=f"Refund for return #{return_id}",
                )
                paid = payments.sum_for_invoice(inv["id"])

            remaining, status = derive_status(new_total, inv["advance_payment"], paid)
            invoices.update_balance(
                inv["id"],
                remaining_amount=remaining,
                status=status,
                expected_remaining=float(inv["remaining_amount"]),
                total_amount=new_total,
                updated_at=stamp,
            )

            if restock:
                products = ProductsRepo(self.conn)
                for ln in returns.list_items(return_id):
                    if ln["product_id"] is not None:
                        products.restock(ln["product_id"], float(ln["quantity"]), updated_at=stamp)

            returns.update_status(
                return_id,
                ensure_return_transition(ret["status"], RETURN_PROCESSED),
                expected_status=ret["status"],
                applied_at=stamp,
                updated_at=stamp,
            )
            result.update(
                invoice_id=inv["id"], new_total=new_total, cash_refund=cash_refund,
                remaining=remaining, status=status,
            )

        return AppliedReturn(
            return_id=return_id,
            invoice_id=inv["id"],
            new_total=new_total,
            remaining_amount=remaining,
            status=status,
            cash_refund=cash_refund,
            refund_payment_id=refund_id,
        )
