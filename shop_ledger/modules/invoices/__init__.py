from .discounts import backfill_legacy_discounts, parse_legacy_discount
from .service import InvoiceService

__all__ = ["InvoiceService", "backfill_legacy_discounts", "parse_legacy_discount"]
