# shop_ledger/database/repositories/products_repo.py
from dataclasses import dataclass
from typing import List, Optional
import sqlite3


class DomainError(Exception):
    """Domain-level error the services surface as a ledger error."""
    pass


@dataclass
class Product:
    name: str
    supplier_id: int
    buying_price: float
    selling_price: float
    quantity: float
    advance_payment: float = 0.0
    remaining_amount: float = 0.0
    shop_id: int | None = None
    created_at: str | None = None
    product_id: int | None = None


_PRODUCT_COLUMNS = (
    "id, name, supplier_id, shop_id, "
    "CAST(buying_price AS REAL) AS buying_price, "
    "CAST(selling_price AS REAL) AS selling_price, "
    "CAST(quantity AS REAL) AS quantity, "
    "CAST(advance_payment AS REAL) AS advance_payment, "
    "CAST(remaining_amount AS REAL) AS remaining_amount, "
    "created_at, updated_at"
)


class ProductsRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        # Use Row for named access
        self.conn.row_factory = sqlite3.Row

    # ---------------------------- Products ----------------------------

    def get(self, product_id: int) -> sqlite3.Row | None:
        return self.conn.execute(
            f"SELECT {_PRODUCT_COLUMNS} FROM products WHERE id=?",
            (product_id,),
        ).fetchone()

    def create(self, p: Product) -> int:
        cur = self.conn.execute(
            """
            INSERT INTO products(
                name, supplier_id, shop_id, buying_price, selling_price, quantity,
                advance_payment, remaining_amount, created_at, updated_at
            ) VALUES (?,?,?,?,?,?,?,?,
                      COALESCE(?, CURRENT_TIMESTAMP), COALESCE(?, CURRENT_TIMESTAMP))
            """,
            (
                p.name, p.supplier_id, p.shop_id, p.buying_price, p.selling_price, p.quantity,
                p.advance_payment, p.remaining_amount, p.created_at, p.created_at,
            ),
        )
        return int(cur.lastrowid)

    # ---------------------------- Supplier due ----------------------------

    def outstanding_for_supplier(self, supplier_id: int) -> float:
        row = self.conn.execute(
            """
            SELECT COALESCE(SUM(CAST(remaining_amount AS REAL)), 0.0) AS v
              FROM products
             WHERE supplier_id = ? AND CAST(remaining_amount AS REAL) > 0
            """,
            (supplier_id,),
        ).fetchone()
        return float(row["v"] or 0.0)

    def list_open_for_supplier(self, supplier_id: int) -> List[sqlite3.Row]:
        """
        Products of a supplier that still carry a due, oldest-created first.
        Ties on created_at fall back to insertion order (id).
        """
        return self.conn.execute(
            """
            SELECT id, CAST(remaining_amount AS REAL) AS remaining_amount, created_at
              FROM products
             WHERE supplier_id = ? AND CAST(remaining_amount AS REAL) > 0
             ORDER BY created_at ASC, id ASC
            """,
            (supplier_id,),
        ).fetchall()

    def set_remaining(
        self,
        product_id: int,
        *,
        remaining_amount: float,
        expected_remaining: float,
        updated_at: Optional[str] = None,
    ) -> None:
        """
        Compare-and-swap on remaining_amount. Raises DomainError when the row
        no longer holds `expected_remaining`.
        """
        cur = self.conn.execute(
            """
            UPDATE products
               SET remaining_amount = ?,
                   updated_at = COALESCE(?, CURRENT_TIMESTAMP)
             WHERE id = ?
               AND ABS(CAST(remaining_amount AS REAL) - ?) < 1e-6
            """,
            (remaining_amount, updated_at, product_id, expected_remaining),
        )
        if cur.rowcount == 0:
            raise DomainError(f"Product {product_id} due changed concurrently")

    # ---------------------------- Stock ----------------------------

    def restock(self, product_id: int, quantity: float, updated_at: Optional[str] = None) -> None:
        cur = self.conn.execute(
            """
            UPDATE products
               SET quantity = CAST(quantity AS REAL) + ?,
                   updated_at = COALESCE(?, CURRENT_TIMESTAMP)
             WHERE id = ?
            """,
            (quantity, updated_at, product_id),
        )
        if cur.rowcount == 0:
            raise DomainError(f"Product not found: {product_id}")
