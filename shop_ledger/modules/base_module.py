# shop_ledger/modules/base_module.py
from __future__ import annotations

from contextlib import contextmanager
import logging
import sqlite3
from typing import Dict, Iterable, Iterator, Optional

from ..database import transaction
from ..database.repositories import (
    InvoicesDomainError,
    ProductsDomainError,
    ReturnsDomainError,
)
from ..errors import InconsistentStateError, LedgerError, WriteFailure
from ..utils.loggers import get_ledger_logger, get_logger, log_event
from .events import LedgerEvents

_REPO_ERRORS = (
    InvoicesDomainError,
    ProductsDomainError,
    ReturnsDomainError,
)


class BaseService:
    """
    Shared plumbing for ledger commands: one connection, an optional event
    bus, and `_command()` which wraps a block in a write transaction, maps
    failures onto the ledger error taxonomy, logs the outcome and publishes
    the written tables after commit.
    """

    def __init__(self, conn: sqlite3.Connection, events: Optional[LedgerEvents] = None) -> None:
        conn.row_factory = sqlite3.Row
        self.conn = conn
        self.events = events
        self._log = get_logger(f"shop_ledger.{type(self).__name__}")
        self._events_log = get_ledger_logger()

    @contextmanager
    def _command(
        self,
        op: str,
        *,
        tables: Iterable[str] = (),
        extra: Optional[Dict[str, object]] = None,
    ) -> Iterator[Dict[str, object]]:
        """
        Yields a dict the block can fill with result fields for the commit log.
        """
        result: Dict[str, object] = dict(extra or {})
        # joined an open transaction: the caller commits, so no commit log or publish here
        joined = self.conn.in_transaction
        try:
            with transaction(self.conn):
                try:
                    yield result
                except _REPO_ERRORS as e:
                    raise InconsistentStateError(str(e)) from e
        except LedgerError as e:
            log_event(self._events_log, op, "rejected", str(e), result, level=logging.WARNING)
            raise
        except sqlite3.Error as e:
            log_event(self._events_log, op, "failed", str(e), result, level=logging.ERROR)
            raise WriteFailure(f"Could not save {op}: {e}", original=e) from e

        if joined:
            self._log.debug("%s joined an open transaction; commit left to the caller", op)
            return
        log_event(self._events_log, op, "commit", f"{op} saved", result)
        if self.events is not None:
            self.events.publish(*tables)
