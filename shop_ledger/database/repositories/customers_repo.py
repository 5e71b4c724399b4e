from __future__ import annotations
from dataclasses import dataclass
import sqlite3


@dataclass
class CustomerBalance:
    customer_id: int
    total_paid: float
    total_due: float

    @property
    def balance(self) -> float:
        """total_paid - total_due; a negative balance is store credit."""
        return round(self.total_paid - self.total_due, 2)


class CustomersRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    def balance(self, customer_id: int) -> CustomerBalance:
        """
        total_paid = Σ(advance_payment + Σ payments) over the customer's sales invoices
        total_due  = Σ remaining_amount over the same invoices
        """
        row = self.conn.execute(
            """
            SELECT
              COALESCE(SUM(CAST(i.advance_payment AS REAL) + COALESCE(p.paid, 0.0)), 0.0) AS total_paid,
              COALESCE(SUM(CAST(i.remaining_amount AS REAL)), 0.0)                      AS total_due
            FROM invoices i
            LEFT JOIN (
              SELECT invoice_id, SUM(CAST(amount AS REAL)) AS paid
              FROM payments
              GROUP BY invoice_id
            ) p ON p.invoice_id = i.id
            WHERE i.invoice_type = 'sales' AND i.customer_id = ?
            """,
            (customer_id,),
        ).fetchone()
        return CustomerBalance(
            customer_id=customer_id,
            total_paid=float(row["total_paid"] or 0.0),
            total_due=float(row["total_due"] or 0.0),
        )
