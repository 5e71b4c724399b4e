from __future__ import annotations

import sqlite3
from typing import Optional


class PaymentsRepo:
    """
    Repository for customer-facing payments (rows in `payments`).

    Rows are append-only (DB triggers reject UPDATE/DELETE). Positive rows
    are receipts; negative rows are refunds written when a return is applied.
    """

    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    def insert(
        self,
        *,
        invoice_id: int,
        amount: float,
        payment_method: str,
        payment_date: Optional[str] = None,  # defaults to CURRENT_TIMESTAMP in DB
        notes: Optional[str] = None,
    ) -> int:
        cur = self.conn.execute(
            """
            INSERT INTO payments (invoice_id, amount, payment_method, payment_date, notes)
            VALUES (?, ?, ?, COALESCE(?, CURRENT_TIMESTAMP), ?);
            """,
            (invoice_id, amount, payment_method, payment_date, notes),
        )
        return int(cur.lastrowid)

    def sum_for_invoice(self, invoice_id: int) -> float:
        row = self.conn.execute(
            "SELECT COALESCE(SUM(CAST(amount AS REAL)), 0.0) AS s FROM payments WHERE invoice_id = ?;",
            (invoice_id,),
        ).fetchone()
        return float(row["s"] or 0.0)

    def list_by_invoice(self, invoice_id: int) -> list[sqlite3.Row]:
        """
        Return all payments for a given invoice (chronological).
        """
        return self.conn.execute(
            """
            SELECT id, invoice_id, CAST(amount AS REAL) AS amount, payment_method,
                   payment_date, notes, created_at
              FROM payments
             WHERE invoice_id = ?
             ORDER BY payment_date ASC, id ASC;
            """,
            (invoice_id,),
        ).fetchall()

    def list_by_customer(self, customer_id: int) -> list[sqlite3.Row]:
        """
        Return all payments for all sales invoices belonging to a customer.
        """
        return self.conn.execute(
            """
            SELECT p.id, p.invoice_id, CAST(p.amount AS REAL) AS amount, p.payment_method,
                   p.payment_date, p.notes, p.created_at
              FROM payments p
              JOIN invoices i ON i.id = p.invoice_id
             WHERE i.customer_id = ?
             ORDER BY p.payment_date DESC, p.id DESC;
            """,
            (customer_id,),
        ).fetchall()

    def get(self, payment_id: int) -> Optional[sqlite3.Row]:
        return self.conn.execute(
            "SELECT * FROM payments WHERE id = ?;",
            (payment_id,),
        ).fetchone()
