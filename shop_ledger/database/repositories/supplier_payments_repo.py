from __future__ import annotations

import sqlite3
from typing import Optional


class SupplierPaymentsRepo:
    """
    Repository for rows in `supplier_payments`.

    A supplier payment belongs to the supplier, not to any invoice; how it is
    settled against product lines is decided by the allocator.
    """

    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    def insert(
        self,
        *,
        supplier_id: int,
        amount: float,
        payment_method: str,
        reference_number: Optional[str] = None,
        notes: Optional[str] = None,
        payment_date: Optional[str] = None,
    ) -> int:
        cur = self.conn.execute(
            """
            INSERT INTO supplier_payments (
                supplier_id, amount, payment_method, reference_number, notes, payment_date
            ) VALUES (?, ?, ?, ?, ?, COALESCE(?, CURRENT_TIMESTAMP));
            """,
            (supplier_id, amount, payment_method, reference_number, notes, payment_date),
        )
        return int(cur.lastrowid)

    def list_for_supplier(self, supplier_id: int) -> list[sqlite3.Row]:
        return self.conn.execute(
            """
            SELECT id, supplier_id, CAST(amount AS REAL) AS amount, payment_method,
                   reference_number, notes, payment_date, created_at
              FROM supplier_payments
             WHERE supplier_id = ?
             ORDER BY payment_date DESC, id DESC;
            """,
            (supplier_id,),
        ).fetchall()

    def count_for_supplier(self, supplier_id: int) -> int:
        row = self.conn.execute(
            "SELECT COUNT(*) AS c FROM supplier_payments WHERE supplier_id = ?;",
            (supplier_id,),
        ).fetchone()
        return int(row["c"])

    def supplier_exists(self, supplier_id: int) -> bool:
        row = self.conn.execute("SELECT 1 FROM suppliers WHERE id = ?;", (supplier_id,)).fetchone()
        return row is not None
