"""
modules/invoices/service.py

Invoice lifecycle: creation with derived remaining/status, verification of
stored derived values against authoritative rows, and explicit repair.

Public API
----------
- InvoiceService(conn, events=None)
    .create_invoice(...)            -> int
    .verify_invoice(invoice_id)     -> sqlite3.Row
    .recompute_invoice(invoice_id)  -> tuple[float, str]
    .get_invoice(invoice_id)        -> sqlite3.Row
    .list_invoice_items(invoice_id) -> list[sqlite3.Row]
"""
from __future__ import annotations

from dataclasses import replace
import sqlite3
from typing import Any, Mapping, Optional, Sequence, Union

from ...constants import (
    INVOICE_NUMBER_PREFIX,
    INVOICE_TYPES,
    INVOICE_TYPE_SALES,
    MONEY_EPS,
    TABLE_INVOICES,
    TABLE_INVOICE_ITEMS,
)
from ...database.repositories import InvoiceHeader, InvoiceItem, InvoicesRepo, PaymentsRepo
from ...errors import InconsistentStateError, NotFoundError, ValidationError
from ...utils.helpers import now_str, round_money
from ...utils.validators import non_empty
from ..base_module import BaseService
from ..payments.payment_utilities.calculations import derive_status, invoice_total, line_total

ItemLike = Union[InvoiceItem, Mapping[str, Any]]

# stored money is compared at cent precision
_CENT = 0.005


def _coerce_item(raw: ItemLike) -> InvoiceItem:
    if isinstance(raw, InvoiceItem):
        return raw
    return InvoiceItem(
        product_name=str(raw.get("product_name") or ""),
        quantity=float(raw.get("quantity") or 0),
        unit_price=float(raw.get("unit_price") or 0),
        product_id=raw.get("product_id"),
        barcode=raw.get("barcode"),
        wattage=raw.get("wattage"),
        size=raw.get("size"),
        color=raw.get("color"),
        discount_amount=float(raw.get("discount_amount") or 0),
        is_outer_product=bool(raw.get("is_outer_product", False)),
        buying_price=float(raw.get("buying_price") or 0),
    )


class InvoiceService(BaseService):

    # ---------------------------------------------------------------- create

    def create_invoice(
        self,
        *,
        items: Sequence[ItemLike],
        invoice_type: str = INVOICE_TYPE_SALES,
        advance_payment: float = 0.0,
        discount_amount: float = 0.0,
        customer_id: Optional[int] = None,
        supplier_id: Optional[int] = None,
        shop_id: Optional[int] = None,
        notes: Optional[str] = None,
        invoice_number: Optional[str] = None,
        created_at: Optional[str] = None,
    ) -> int:
        """
        Create an invoice and its items in one transaction.

        total = Σ(quantity * unit_price) - discount_amount, with the discount
        clamped to [0, subtotal]. The advance counts as the first payment.
        Returns the new invoice id.
        """
        if invoice_type not in INVOICE_TYPES:
            raise ValidationError(f"Unknown invoice type: {invoice_type}")
        lines = [_coerce_item(r) for r in (items or [])]
        if not lines:
            raise ValidationError("Select at least one item.")
        for ln in lines:
            if not non_empty(ln.product_name):
                raise ValidationError("Every item needs a product name.")
            if not ln.quantity > 0:
                raise ValidationError(f"Quantity must be greater than 0 ({ln.product_name}).")
            if ln.unit_price < 0:
                raise ValidationError(f"Unit price cannot be negative ({ln.product_name}).")
            if ln.discount_amount < 0 or ln.buying_price < 0:
                raise ValidationError(f"Item amounts cannot be negative ({ln.product_name}).")

        priced = [replace(ln, total_price=line_total(ln.quantity, ln.unit_price)) for ln in lines]
        subtotal, discount, total = invoice_total((ln.total_price for ln in priced), discount_amount)

        advance = round_money(float(advance_payment or 0.0))
        if advance < 0:
            raise ValidationError("Advance payment cannot be negative.")
        if advance > total + MONEY_EPS:
            raise ValidationError("Advance payment cannot exceed the invoice total.")

        remaining, status = derive_status(total, advance, 0.0)
        stamp = created_at or now_str()

        with self._command(
            "invoice",
            tables=(TABLE_INVOICES, TABLE_INVOICE_ITEMS),
            extra={"invoice_type": invoice_type, "total": total, "advance": advance},
        ) as result:
            repo = InvoicesRepo(self.conn)
            number = invoice_number or repo.next_invoice_number(
                INVOICE_NUMBER_PREFIX[invoice_type], stamp[:10]
            )
            header = InvoiceHeader(
                invoice_number=number,
                invoice_type=invoice_type,
                total_amount=total,
                discount_amount=discount,
                advance_payment=advance,
                remaining_amount=remaining,
                status=status,
                customer_id=customer_id,
                supplier_id=supplier_id,
                shop_id=shop_id,
                notes=notes,
                created_at=stamp,
            )
            invoice_id = repo.insert_header(header)
            repo.insert_items(invoice_id, priced, created_at=stamp)
            result.update(invoice_id=invoice_id, invoice_number=number, subtotal=subtotal, status=status)
        return invoice_id

    # ---------------------------------------------------------------- read

    def get_invoice(self, invoice_id: int) -> sqlite3.Row:
        row = InvoicesRepo(self.conn).get(invoice_id)
        if row is None:
            raise NotFoundError(f"Invoice not found: {invoice_id}")
        return row

    def list_invoice_items(self, invoice_id: int) -> list[sqlite3.Row]:
        self.get_invoice(invoice_id)
        return InvoicesRepo(self.conn).list_items(invoice_id)

    def list_invoices(self, **filters) -> list[sqlite3.Row]:
        return InvoicesRepo(self.conn).list_invoices(**filters)

    # ---------------------------------------------------------------- integrity

    def verify_invoice(self, invoice_id: int) -> sqlite3.Row:
        """
        Recompute remaining/status from stored rows and compare with what is
        stored. Raises InconsistentStateError on any mismatch; never repairs.
        """
        row = self.get_invoice(invoice_id)
        paid = PaymentsRepo(self.conn).sum_for_invoice(invoice_id)
        total = float(row["total_amount"])
        advance = float(row["advance_payment"])

        raw = total - advance - paid
        if raw < -_CENT:
            raise InconsistentStateError(
                f"Invoice {row['invoice_number']} is overpaid by {round_money(-raw):.2f}"
            )
        remaining, status = derive_status(total, advance, paid)
        stored_remaining = float(row["remaining_amount"])
        if abs(stored_remaining - remaining) > _CENT or row["status"] != status:
            raise InconsistentStateError(
                f"Invoice {row['invoice_number']}: stored {stored_remaining:.2f}/{row['status']}, "
                f"expected {remaining:.2f}/{status}"
            )
        return row

    def recompute_invoice(self, invoice_id: int) -> tuple[float, str]:
        """
        Repair command: rewrite remaining_amount/status from the payment sum.
        """
        with self._command("invoice_recompute", tables=(TABLE_INVOICES,), extra={"invoice_id": invoice_id}) as result:
            repo = InvoicesRepo(self.conn)
            row = repo.get(invoice_id)
            if row is None:
                raise NotFoundError(f"Invoice not found: {invoice_id}")
            paid = PaymentsRepo(self.conn).sum_for_invoice(invoice_id)
            remaining, status = derive_status(row["total_amount"], row["advance_payment"], paid)
            repo.update_balance(
                invoice_id,
                remaining_amount=remaining,
                status=status,
                expected_remaining=float(row["remaining_amount"]),
                updated_at=now_str(),
            )
            result.update(previous=float(row["remaining_amount"]), remaining=remaining, status=status)
        return remaining, status
