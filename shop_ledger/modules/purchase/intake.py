# shop_ledger/modules/purchase/intake.py
"""
Product purchase intake.

Records a batch of products bought from one supplier as one
'product_addition' invoice plus one product row per line, in a single
transaction. Each product carries its own supplier-side due
(buying_price * quantity - line advance); the invoice advance is the sum
of the line advances.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Sequence, Union

from ...constants import (
    INVOICE_NUMBER_PREFIX,
    INVOICE_TYPE_PRODUCT_ADDITION,
    MONEY_EPS,
    TABLE_INVOICES,
    TABLE_INVOICE_ITEMS,
    TABLE_PRODUCTS,
)
from ...database.repositories import InvoiceHeader, InvoiceItem, InvoicesRepo, Product, ProductsRepo
from ...errors import NotFoundError, ValidationError
from ...utils.helpers import now_str, round_money
from ...utils.validators import non_empty
from ..base_module import BaseService
from ..payments.payment_utilities.calculations import (
    clamp_non_negative,
    derive_status,
    invoice_total,
    line_total,
)


@dataclass
class PurchaseLine:
    name: str
    quantity: float
    buying_price: float
    selling_price: float = 0.0
    advance_payment: float = 0.0
    barcode: Optional[str] = None
    wattage: Optional[float] = None
    size: Optional[str] = None
    color: Optional[str] = None


@dataclass(frozen=True)
class PurchaseResult:
    invoice_id: int
    invoice_number: str
    product_ids: List[int]
    total_amount: float
    advance_payment: float
    remaining_amount: float
    status: str


def _coerce_line(raw: Union[PurchaseLine, Mapping[str, Any]]) -> PurchaseLine:
    if isinstance(raw, PurchaseLine):
        return raw
    return PurchaseLine(
        name=str(raw.get("name") or ""),
        quantity=float(raw.get("quantity") or 0),
        buying_price=float(raw.get("buying_price") or 0),
        selling_price=float(raw.get("selling_price") or 0),
        advance_payment=float(raw.get("advance_payment") or 0),
        barcode=raw.get("barcode"),
        wattage=raw.get("wattage"),
        size=raw.get("size"),
        color=raw.get("color"),
    )


class PurchaseIntake(BaseService):

    def record_product_purchase(
        self,
        supplier_id: int,
        shop_id: Optional[int],
        lines: Sequence[Union[PurchaseLine, Mapping[str, Any]]],
        discount_amount: float = 0.0,
        notes: Optional[str] = None,
    ) -> PurchaseResult:
        items = [_coerce_line(r) for r in (lines or [])]
        if not items:
            raise ValidationError("Add at least one product.")
        for ln in items:
            if not non_empty(ln.name):
                raise ValidationError("Product name is required.")
            if not ln.quantity > 0:
                raise ValidationError(f"Quantity must be greater than 0 ({ln.name}).")
            if ln.buying_price < 0 or ln.selling_price < 0:
                raise ValidationError(f"Prices cannot be negative ({ln.name}).")
            if ln.advance_payment < 0:
                raise ValidationError(f"Advance payment cannot be negative ({ln.name}).")
            if ln.advance_payment > line_total(ln.quantity, ln.buying_price) + MONEY_EPS:
                raise ValidationError(f"Advance payment exceeds the line cost ({ln.name}).")

        costs = [line_total(ln.quantity, ln.buying_price) for ln in items]
        _, discount, total = invoice_total(costs, discount_amount)
        advance = round_money(sum(ln.advance_payment for ln in items))
        if advance > total + MONEY_EPS:
            raise ValidationError("Advance payments exceed the invoice total after discount.")
        remaining, status = derive_status(total, advance, 0.0)
        stamp = now_str()

        with self._command(
            "purchase",
            tables=(TABLE_PRODUCTS, TABLE_INVOICES, TABLE_INVOICE_ITEMS),
            extra={"supplier_id": supplier_id, "total": total, "lines": len(items)},
        ) as result:
            row = self.conn.execute("SELECT 1 FROM suppliers WHERE id = ?", (supplier_id,)).fetchone()
            if row is None:
                raise NotFoundError(f"Supplier not found: {supplier_id}")

            products = ProductsRepo(self.conn)
            invoices = InvoicesRepo(self.conn)

            product_ids: List[int] = []
            invoice_items: List[InvoiceItem] = []
            for ln, cost in zip(items, costs):
                pid = products.create(
                    Product(
                        name=ln.name.strip(),
                        supplier_id=supplier_id,
                        shop_id=shop_id,
                        buying_price=ln.buying_price,
                        selling_price=ln.selling_price,
                        quantity=ln.quantity,
                        advance_payment=round_money(ln.advance_payment),
                        remaining_amount=round_money(clamp_non_negative(cost - ln.advance_payment)),
                        created_at=stamp,
                    )
                )
                product_ids.append(pid)
                invoice_items.append(
                    InvoiceItem(
                        product_name=ln.name.strip(),
                        quantity=ln.quantity,
                        unit_price=ln.buying_price,
                        total_price=cost,
                        product_id=pid,
                        barcode=ln.barcode,
                        wattage=ln.wattage,
                        size=ln.size,
                        color=ln.color,
                        buying_price=ln.buying_price,
                    )
                )

            number = invoices.next_invoice_number(
                INVOICE_NUMBER_PREFIX[INVOICE_TYPE_PRODUCT_ADDITION], stamp[:10]
            )
            invoice_id = invoices.insert_header(
                InvoiceHeader(
                    invoice_number=number,
                    invoice_type=INVOICE_TYPE_PRODUCT_ADDITION,
                    total_amount=total,
                    discount_amount=discount,
                    advance_payment=advance,
                    remaining_amount=remaining,
                    status=status,
                    supplier_id=supplier_id,
                    shop_id=shop_id,
                    notes=notes,
                    created_at=stamp,
                )
            )
            invoices.insert_items(invoice_id, invoice_items, created_at=stamp)
            result.update(invoice_id=invoice_id, invoice_number=number, products=product_ids)

        return PurchaseResult(
            invoice_id=invoice_id,
            invoice_number=number,
            product_ids=product_ids,
            total_amount=total,
            advance_payment=advance,
            remaining_amount=remaining,
            status=status,
        )
