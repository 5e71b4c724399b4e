"""
modules/events.py

Change-notification bus for ledger tables.

Services publish the names of the tables they wrote after their transaction
commits; readers (dashboard model, tables) subscribe and re-run their full
fetch. The signal carries only the table name, so consumers always re-query.
"""
from __future__ import annotations

from typing import Callable, Dict, List, Optional

from PySide6.QtCore import QObject, Signal

from ..constants import LEDGER_TABLES


class LedgerEvents(QObject):
    """
    Emits `table_changed(table_name)` once per written table.

    Usage:
        events = LedgerEvents()
        events.subscribe("payments", model.refresh)
        events.table_changed.connect(lambda t: ...)   # all tables
    """

    table_changed = Signal(str)

    def __init__(self, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._subscribers: Dict[str, List[Callable[[], None]]] = {}
        self.table_changed.connect(self._dispatch)

    def subscribe(self, table: str, callback: Callable[[], None]) -> None:
        if table not in LEDGER_TABLES:
            raise ValueError(f"Unknown ledger table: {table}")
        self._subscribers.setdefault(table, []).append(callback)

    def subscribe_all(self, callback: Callable[[], None], tables=LEDGER_TABLES) -> None:
        for t in tables:
            self.subscribe(t, callback)

    def unsubscribe(self, table: str, callback: Callable[[], None]) -> None:
        cbs = self._subscribers.get(table, [])
        if callback in cbs:
            cbs.remove(callback)

    def publish(self, *tables: str) -> None:
        # one emission per distinct table, in the order given
        seen = set()
        for t in tables:
            if t in seen:
                continue
            seen.add(t)
            self.table_changed.emit(t)

    def _dispatch(self, table: str) -> None:
        for cb in list(self._subscribers.get(table, [])):
            cb()
