from __future__ import annotations
from dataclasses import dataclass
import sqlite3
from typing import Iterable, Optional


class DomainError(Exception):
    pass


@dataclass
class ReturnHeader:
    invoice_id: int
    total_amount: float
    refund_amount: float
    return_reason: str
    customer_id: int | None = None
    status: str = "pending"
    notes: str | None = None
    created_at: str | None = None


@dataclass
class ReturnLine:
    invoice_item_id: int
    quantity: float
    unit_price: float
    total_price: float
    product_id: int | None = None
    condition: str | None = None
    return_reason: str | None = None


class ReturnsRepo:
    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    # ---------- Inserts ----------
    def insert_return(self, h: ReturnHeader, lines: Iterable[ReturnLine]) -> int:
        cur = self.conn.execute(
            """
            INSERT INTO product_returns(
                invoice_id, customer_id, total_amount, refund_amount, status,
                return_reason, notes, created_at, updated_at
            ) VALUES (?,?,?,?,?,?,?, COALESCE(?, CURRENT_TIMESTAMP), COALESCE(?, CURRENT_TIMESTAMP))
            """,
            (
                h.invoice_id, h.customer_id, h.total_amount, h.refund_amount, h.status,
                h.return_reason, h.notes, h.created_at, h.created_at,
            ),
        )
        return_id = int(cur.lastrowid)
        self.conn.executemany(
            """
            INSERT INTO return_items(
                return_id, invoice_item_id, product_id, quantity, unit_price,
                total_price, condition, return_reason
            ) VALUES (?,?,?,?,?,?,?,?)
            """,
            [
                (
                    return_id, ln.invoice_item_id, ln.product_id, ln.quantity, ln.unit_price,
                    ln.total_price, ln.condition, ln.return_reason,
                )
                for ln in lines
            ],
        )
        return return_id

    # ---------- Queries ----------
    def get(self, return_id: int) -> sqlite3.Row | None:
        return self.conn.execute(
            """
            SELECT id, invoice_id, customer_id,
                   CAST(total_amount AS REAL)  AS total_amount,
                   CAST(refund_amount AS REAL) AS refund_amount,
                   status, return_reason, notes, applied_at, created_at, updated_at
              FROM product_returns WHERE id = ?
            """,
            (return_id,),
        ).fetchone()

    def list_items(self, return_id: int) -> list[sqlite3.Row]:
        return self.conn.execute(
            """
            SELECT id, return_id, invoice_item_id, product_id,
                   CAST(quantity AS REAL)    AS quantity,
                   CAST(unit_price AS REAL)  AS unit_price,
                   CAST(total_price AS REAL) AS total_price,
                   condition, return_reason
              FROM return_items WHERE return_id = ?
             ORDER BY id
            """,
            (return_id,),
        ).fetchall()

    def list_for_invoice(self, invoice_id: int) -> list[sqlite3.Row]:
        return self.conn.execute(
            "SELECT id, status, CAST(total_amount AS REAL) AS total_amount, applied_at, created_at "
            "FROM product_returns WHERE invoice_id = ? ORDER BY id",
            (invoice_id,),
        ).fetchall()

    def returned_quantity(self, invoice_item_id: int) -> float:
        """Quantity already returned for an invoice item (rejected returns excluded)."""
        row = self.conn.execute(
            """
            SELECT COALESCE(SUM(CAST(ri.quantity AS REAL)), 0.0) AS q
              FROM return_items ri
              JOIN product_returns pr ON pr.id = ri.return_id
             WHERE ri.invoice_item_id = ? AND pr.status <> 'rejected'
            """,
            (invoice_item_id,),
        ).fetchone()
        return float(row["q"] or 0.0)

    # ---------- Updates ----------
    def update_status(
        self,
        return_id: int,
        status: str,
        *,
        expected_status: str,
        applied_at: Optional[str] = None,
        updated_at: Optional[str] = None,
    ) -> None:
        cur = self.conn.execute(
            """
            UPDATE product_returns
               SET status = ?,
                   applied_at = COALESCE(?, applied_at),
                   updated_at = COALESCE(?, CURRENT_TIMESTAMP)
             WHERE id = ? AND status = ?
            """,
            (status, applied_at, updated_at, return_id, expected_status),
        )
        if cur.rowcount == 0:
            raise DomainError(f"Return {return_id} status changed concurrently")
