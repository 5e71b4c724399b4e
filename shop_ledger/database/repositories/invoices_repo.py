from __future__ import annotations
from dataclasses import dataclass, field
import sqlite3
from typing import Iterable, Optional


# Domain-level error the services map to NotFoundError / InconsistentStateError
class DomainError(Exception):
    pass


@dataclass
class InvoiceHeader:
    invoice_number: str
    invoice_type: str
    total_amount: float
    advance_payment: float
    remaining_amount: float
    status: str
    discount_amount: float = 0.0
    customer_id: int | None = None
    supplier_id: int | None = None
    shop_id: int | None = None
    notes: str | None = None
    created_at: str | None = None


@dataclass
class InvoiceItem:
    product_name: str
    quantity: float
    unit_price: float
    total_price: float = 0.0
    product_id: int | None = None
    barcode: str | None = None
    wattage: float | None = None
    size: str | None = None
    color: str | None = None
    discount_amount: float = 0.0
    is_outer_product: bool = False
    buying_price: float = 0.0
    invoice_id: int | None = None
    item_id: int | None = field(default=None, compare=False)


_INVOICE_COLUMNS = """
    i.id, i.invoice_number, i.invoice_type,
    CAST(i.total_amount AS REAL)     AS total_amount,
    CAST(i.discount_amount AS REAL)  AS discount_amount,
    CAST(i.advance_payment AS REAL)  AS advance_payment,
    CAST(i.remaining_amount AS REAL) AS remaining_amount,
    i.status, i.customer_id, i.supplier_id, i.shop_id, i.notes,
    i.created_at, i.updated_at
"""


class InvoicesRepo:
    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    # ---------- Query ----------
    def get(self, invoice_id: int) -> sqlite3.Row | None:
        return self.conn.execute(
            f"SELECT {_INVOICE_COLUMNS} FROM invoices i WHERE i.id=?",
            (invoice_id,),
        ).fetchone()

    def get_by_number(self, invoice_number: str) -> sqlite3.Row | None:
        return self.conn.execute(
            f"SELECT {_INVOICE_COLUMNS} FROM invoices i WHERE i.invoice_number=?",
            (invoice_number,),
        ).fetchone()

    def list_invoices(
        self,
        *,
        invoice_type: Optional[str] = None,
        customer_id: Optional[int] = None,
        supplier_id: Optional[int] = None,
        status: Optional[str] = None,
    ) -> list[sqlite3.Row]:
        where, params = [], []
        if invoice_type:
            where.append("i.invoice_type = ?")
            params.append(invoice_type)
        if customer_id is not None:
            where.append("i.customer_id = ?")
            params.append(customer_id)
        if supplier_id is not None:
            where.append("i.supplier_id = ?")
            params.append(supplier_id)
        if status:
            where.append("i.status = ?")
            params.append(status)
        sql = f"SELECT {_INVOICE_COLUMNS} FROM invoices i"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY i.created_at DESC, i.id DESC"
        return self.conn.execute(sql, params).fetchall()

    def list_items(self, invoice_id: int) -> list[sqlite3.Row]:
        sql = """
        SELECT ii.id, ii.invoice_id, ii.product_id, ii.product_name,
               ii.barcode, ii.wattage, ii.size, ii.color,
               CAST(ii.quantity AS REAL)        AS quantity,
               CAST(ii.unit_price AS REAL)      AS unit_price,
               CAST(ii.total_price AS REAL)     AS total_price,
               CAST(ii.discount_amount AS REAL) AS discount_amount,
               ii.is_outer_product,
               CAST(ii.buying_price AS REAL)    AS buying_price,
               ii.created_at
        FROM invoice_items ii
        WHERE ii.invoice_id = ?
        ORDER BY ii.id
        """
        return self.conn.execute(sql, (invoice_id,)).fetchall()

    def get_item(self, item_id: int) -> sqlite3.Row | None:
        return self.conn.execute(
            """
            SELECT ii.id, ii.invoice_id, ii.product_id, ii.product_name,
                   CAST(ii.quantity AS REAL)   AS quantity,
                   CAST(ii.unit_price AS REAL) AS unit_price
            FROM invoice_items ii WHERE ii.id = ?
            """,
            (item_id,),
        ).fetchone()

    def next_invoice_number(self, prefix: str, date_str: str) -> str:
        """
        Next number for a prefix and day, e.g. SALE-20250131-0007.
        """
        stem = f"{prefix}-{date_str.replace('-', '')}-"
        row = self.conn.execute(
            "SELECT MAX(invoice_number) AS m FROM invoices WHERE invoice_number LIKE ?",
            (stem + "%",),
        ).fetchone()
        last = 0
        if row and row["m"]:
            try:
                last = int(str(row["m"]).split("-")[-1])
            except ValueError:
                last = 0
        return f"{stem}{last + 1:04d}"

    # ---------- Inserts ----------
    def insert_header(self, h: InvoiceHeader) -> int:
        cur = self.conn.execute(
            """
            INSERT INTO invoices(
                invoice_number, invoice_type, total_amount, discount_amount,
                advance_payment, remaining_amount, status,
                customer_id, supplier_id, shop_id, notes, created_at, updated_at
            ) VALUES (?,?,?,?,?,?,?,?,?,?,?,
                      COALESCE(?, CURRENT_TIMESTAMP), COALESCE(?, CURRENT_TIMESTAMP))
            """,
            (
                h.invoice_number, h.invoice_type, h.total_amount, h.discount_amount,
                h.advance_payment, h.remaining_amount, h.status,
                h.customer_id, h.supplier_id, h.shop_id, h.notes, h.created_at, h.created_at,
            ),
        )
        return int(cur.lastrowid)

    def insert_items(self, invoice_id: int, items: Iterable[InvoiceItem], created_at: str | None = None) -> list[int]:
        ids: list[int] = []
        for it in items:
            cur = self.conn.execute(
                """
                INSERT INTO invoice_items(
                    invoice_id, product_id, product_name, barcode, wattage, size, color,
                    quantity, unit_price, total_price, discount_amount,
                    is_outer_product, buying_price, created_at
                ) VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?, COALESCE(?, CURRENT_TIMESTAMP))
                """,
                (
                    invoice_id, it.product_id, it.product_name, it.barcode, it.wattage, it.size, it.color,
                    it.quantity, it.unit_price, it.total_price, it.discount_amount,
                    1 if it.is_outer_product else 0, it.buying_price, created_at,
                ),
            )
            ids.append(int(cur.lastrowid))
        return ids

    # ---------- Balance updates ----------
    def update_balance(
        self,
        invoice_id: int,
        *,
        remaining_amount: float,
        status: str,
        expected_remaining: float,
        total_amount: float | None = None,
        updated_at: str | None = None,
    ) -> None:
        """
        Conditional update of remaining_amount/status (and optionally total_amount).

        Only succeeds if the stored remaining_amount still equals the value the
        caller read; otherwise another writer got there first.
        """
        cur = self.conn.execute(
            """
            UPDATE invoices
               SET remaining_amount = :remaining,
                   status           = :status,
                   total_amount     = COALESCE(:total, total_amount),
                   updated_at       = COALESCE(:updated_at, CURRENT_TIMESTAMP)
             WHERE id = :id
               AND ABS(CAST(remaining_amount AS REAL) - :expected) < 1e-6
            """,
            {
                "remaining": remaining_amount,
                "status": status,
                "total": total_amount,
                "updated_at": updated_at,
                "id": invoice_id,
                "expected": expected_remaining,
            },
        )
        if cur.rowcount == 0:
            if self.get(invoice_id) is None:
                raise DomainError(f"Invoice not found: {invoice_id}")
            raise DomainError(f"Invoice {invoice_id} balance changed concurrently")
