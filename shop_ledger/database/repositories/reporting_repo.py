# shop_ledger/database/repositories/reporting_repo.py
from __future__ import annotations

import sqlite3
from typing import Any, Optional, Tuple


def _to_float(x: Optional[Any]) -> float:
    try:
        return float(x or 0.0)
    except (TypeError, ValueError):
        return 0.0


def _shop_clause(alias: str, shop_id: Optional[int]) -> Tuple[str, tuple]:
    if shop_id is None:
        return "", ()
    return f" AND {alias}.shop_id = ?", (shop_id,)


class ReportingRepo:
    """
    Read-only query layer for the financial aggregator.

    Windows are half-open: start <= col < end, compared as ISO 8601 text
    ('YYYY-MM-DD' or 'YYYY-MM-DD HH:MM:SS'). Callers resolve the period;
    no SQLite clock functions are used in filters.

    Shop filter: when `shop_id` is given, rows with another or a NULL shop_id
    are excluded.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    def _scalar(self, sql: str, params: tuple) -> float:
        row = self.conn.execute(sql, params).fetchone()
        return _to_float(row[0] if row is not None else 0.0)

    # ----------------------------- Collected amounts -----------------------------

    def collected_on_invoices(
        self,
        invoice_type: str,
        start: str,
        end: str,
        shop_id: Optional[int] = None,
        *,
        exclude_outer: bool = False,
    ) -> float:
        """
        Σ (advance_payment + payments dated in window) over invoices of a type
        created in the window. With exclude_outer, invoices carrying any
        outer-product line are skipped.
        """
        shop_sql, shop_params = _shop_clause("i", shop_id)
        outer_sql = ""
        if exclude_outer:
            outer_sql = """
              AND NOT EXISTS (
                SELECT 1 FROM invoice_items ii
                WHERE ii.invoice_id = i.id AND ii.is_outer_product = 1
              )
            """
        sql = f"""
            SELECT COALESCE(SUM(
                     CAST(i.advance_payment AS REAL)
                     + COALESCE((
                         SELECT SUM(CAST(p.amount AS REAL))
                         FROM payments p
                         WHERE p.invoice_id = i.id
                           AND p.payment_date >= ? AND p.payment_date < ?
                       ), 0.0)
                   ), 0.0) AS v
            FROM invoices i
            WHERE i.invoice_type = ?
              AND i.created_at >= ? AND i.created_at < ?
              {outer_sql}
              {shop_sql}
        """
        return self._scalar(sql, (start, end, invoice_type, start, end) + shop_params)

    def advance_total(
        self,
        invoice_type: str,
        start: Optional[str] = None,
        end: Optional[str] = None,
        shop_id: Optional[int] = None,
    ) -> float:
        """Σ advance_payment over invoices of a type; all-time when no window is given."""
        where = ["i.invoice_type = ?"]
        params: list = [invoice_type]
        if start is not None and end is not None:
            where.append("i.created_at >= ? AND i.created_at < ?")
            params += [start, end]
        shop_sql, shop_params = _shop_clause("i", shop_id)
        sql = (
            "SELECT COALESCE(SUM(CAST(i.advance_payment AS REAL)), 0.0) "
            f"FROM invoices i WHERE {' AND '.join(where)}{shop_sql}"
        )
        return self._scalar(sql, tuple(params) + shop_params)

    # ----------------------------- Expense feeds -----------------------------

    def other_costs_total(self, start: str, end: str, shop_id: Optional[int] = None) -> float:
        shop_sql, shop_params = _shop_clause("c", shop_id)
        sql = f"""
            SELECT COALESCE(SUM(CAST(c.amount AS REAL)), 0.0)
            FROM others_costs c
            WHERE c.date >= ? AND c.date < ?{shop_sql}
        """
        return self._scalar(sql, (start, end) + shop_params)

    def salaries_total(self, start: str, end: str, shop_id: Optional[int] = None) -> float:
        shop_sql, shop_params = _shop_clause("s", shop_id)
        sql = f"""
            SELECT COALESCE(SUM(CAST(s.amount AS REAL)), 0.0)
            FROM salary_payments s
            WHERE s.payment_date >= ? AND s.payment_date < ?{shop_sql}
        """
        return self._scalar(sql, (start, end) + shop_params)

    # ----------------------------- Point-in-time dues -----------------------------

    def open_invoice_due(self, invoice_type: str, shop_id: Optional[int] = None) -> float:
        """Σ remaining_amount over invoices of a type that are not paid."""
        shop_sql, shop_params = _shop_clause("i", shop_id)
        sql = f"""
            SELECT COALESCE(SUM(CAST(i.remaining_amount AS REAL)), 0.0)
            FROM invoices i
            WHERE i.invoice_type = ? AND i.status <> 'paid'{shop_sql}
        """
        return self._scalar(sql, (invoice_type,) + shop_params)

    def product_due(self, shop_id: Optional[int] = None, supplier_id: Optional[int] = None) -> float:
        """Σ products.remaining_amount (product-level supplier ledger)."""
        shop_sql, shop_params = _shop_clause("pr", shop_id)
        params: tuple = shop_params
        sup_sql = ""
        if supplier_id is not None:
            sup_sql = " AND pr.supplier_id = ?"
            params = params + (supplier_id,)
        sql = f"""
            SELECT COALESCE(SUM(CAST(pr.remaining_amount AS REAL)), 0.0)
            FROM products pr
            WHERE 1=1{shop_sql}{sup_sql}
        """
        return self._scalar(sql, params)

    def supplier_invoice_due(self, supplier_id: int) -> float:
        """Σ remaining_amount over a supplier's unpaid product_addition invoices."""
        sql = """
            SELECT COALESCE(SUM(CAST(i.remaining_amount AS REAL)), 0.0)
            FROM invoices i
            WHERE i.invoice_type = 'product_addition'
              AND i.status <> 'paid'
              AND i.supplier_id = ?
        """
        return self._scalar(sql, (supplier_id,))

    # ----------------------------- Outer products -----------------------------

    def outer_product_totals(
        self, start: str, end: str, shop_id: Optional[int] = None
    ) -> Tuple[float, float]:
        """
        Returns (income, expense) over outer-product lines created in the window:
          income  = Σ (total_price - discount_amount)
          expense = Σ (buying_price * quantity)
        """
        shop_sql, shop_params = _shop_clause("i", shop_id)
        sql = f"""
            SELECT
              COALESCE(SUM(CAST(ii.total_price AS REAL) - CAST(ii.discount_amount AS REAL)), 0.0) AS income,
              COALESCE(SUM(CAST(ii.buying_price AS REAL) * CAST(ii.quantity AS REAL)), 0.0)       AS expense
            FROM invoice_items ii
            JOIN invoices i ON i.id = ii.invoice_id
            WHERE ii.is_outer_product = 1
              AND ii.created_at >= ? AND ii.created_at < ?{shop_sql}
        """
        row = self.conn.execute(sql, (start, end) + shop_params).fetchone()
        return _to_float(row["income"]), _to_float(row["expense"])
