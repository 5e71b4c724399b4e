"""
Legacy discount support.

Older invoices carried their discount only as free text in `notes`
("Discount: 12.50"), with `total_amount` already net of it. The
`discount_amount` column replaces that; `backfill_legacy_discounts` copies
the parsed value over once, on request.
"""
from __future__ import annotations

import re
import sqlite3
from typing import Optional

from ...database import transaction
from ...utils.helpers import round_money
from ...utils.loggers import get_logger

_log = get_logger(__name__)

_DISCOUNT_RE = re.compile(r"Discount: ([\d.]+)")


def parse_legacy_discount(notes: Optional[str]) -> float:
    """
    Amount from the first "Discount: <number>" in notes.
    Absent, unparsable, zero or negative all read as 0.0.
    """
    if not notes:
        return 0.0
    m = _DISCOUNT_RE.search(notes)
    if not m:
        return 0.0
    try:
        value = float(m.group(1))
    except ValueError:
        return 0.0
    return round_money(value) if value > 0 else 0.0


def backfill_legacy_discounts(conn: sqlite3.Connection) -> int:
    """
    Set invoices.discount_amount from notes where it is still 0.
    total_amount is left as is (it was stored net). Returns rows updated.
    """
    conn.row_factory = sqlite3.Row
    updated = 0
    with transaction(conn):
        rows = conn.execute(
            "SELECT id, notes FROM invoices "
            "WHERE CAST(discount_amount AS REAL) = 0 AND notes LIKE '%Discount:%'"
        ).fetchall()
        for r in rows:
            d = parse_legacy_discount(r["notes"])
            if d <= 0:
                continue
            conn.execute("UPDATE invoices SET discount_amount = ? WHERE id = ?", (d, r["id"]))
            updated += 1
    _log.info("backfilled discount_amount on %d invoice(s)", updated)
    return updated
