# shop_ledger/modules/dashboard/model.py
from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from typing import Callable, Optional, Tuple

from ...constants import LEDGER_TABLES
from ...utils.loggers import get_logger
from ..events import LedgerEvents
from ..reporting.financial_aggregator import FinancialAggregator, FinancialSummary
from ..reporting.periods import PERIOD_MONTHLY

_log = get_logger(__name__)

PeriodSpec = Tuple[str, Optional[str], Optional[str]]


# --------------------------- Dashboard Model ---------------------------

@dataclass
class DashboardModel:
    """
    Runs the financial aggregator and exposes KPI attributes for a view.
    When given a LedgerEvents bus, any ledger table change re-runs
    refresh() with the last period and shop filter.

    Usage:
        model = DashboardModel(conn, events)
        model.refresh(period=("monthly", None, None))
        print(model.kpi_income, model.kpi_income_change, ...)
    """

    conn: sqlite3.Connection
    events: Optional[LedgerEvents] = None
    on_refreshed: Optional[Callable[["DashboardModel"], None]] = None
    aggregator: FinancialAggregator = field(init=False)

    # last requested filters
    period: PeriodSpec = field(init=False, default=(PERIOD_MONTHLY, None, None))
    shop_id: Optional[int] = field(init=False, default=None)

    # current resolved range (set after refresh)
    date_from: str = field(init=False, default="")
    date_to: str = field(init=False, default="")

    # ---- KPI numbers (for current period) ----
    kpi_income: float = 0.0
    kpi_expenses: float = 0.0
    kpi_net_profit: float = 0.0
    kpi_income_change: str = "0.0%"
    kpi_expense_change: str = "0.0%"
    kpi_profit_change: str = "0.0%"
    kpi_outer_income: float = 0.0
    kpi_outer_expense: float = 0.0
    kpi_outer_profit: float = 0.0
    kpi_combined_profit: float = 0.0
    kpi_customer_credit: float = 0.0
    kpi_supplier_due: float = 0.0

    summary: Optional[FinancialSummary] = field(init=False, default=None)
    refresh_count: int = field(init=False, default=0)

    def __post_init__(self) -> None:
        self.conn.row_factory = sqlite3.Row
        self.aggregator = FinancialAggregator(self.conn)
        if self.events is not None:
            self.events.subscribe_all(self._on_table_changed, LEDGER_TABLES)

    # --------------------------- Public API ---------------------------

    def refresh(
        self,
        period: Optional[PeriodSpec] = None,
        *,
        shop_id: Optional[int] = None,
    ) -> None:
        """
        Fetch everything needed for the dashboard.

        Args:
          period: (key, custom_from, custom_to)
                  key in {"daily","monthly","yearly","custom"}
          shop_id: restrict to one shop
        """
        if period is not None:
            self.period = period
            self.shop_id = shop_id
        key, df_custom, dt_custom = self.period

        s = self._safe(
            self.aggregator.summarize, None, key, df_custom, dt_custom, shop_id=self.shop_id
        )
        if s is None:
            return
        self.summary = s
        self.date_from, self.date_to = s.period.start, s.period.end

        self.kpi_income = s.current.income
        self.kpi_expenses = s.current.expenses
        self.kpi_net_profit = s.current.net_profit
        self.kpi_income_change = _signed(s.income_change)
        self.kpi_expense_change = _signed(s.expense_change)
        self.kpi_profit_change = _signed(s.profit_change)

        self.kpi_outer_income = s.outer.income
        self.kpi_outer_expense = s.outer.expense
        self.kpi_outer_profit = s.outer.profit
        self.kpi_combined_profit = s.combined_profit

        self.kpi_customer_credit = s.outstanding_customer_credit
        self.kpi_supplier_due = s.supplier_credit_due

        self.refresh_count += 1
        if self.on_refreshed is not None:
            self.on_refreshed(self)

    def detach(self) -> None:
        if self.events is None:
            return
        for t in LEDGER_TABLES:
            self.events.unsubscribe(t, self._on_table_changed)

    # --------------------------- Internals ---------------------------

    def _on_table_changed(self) -> None:
        self.refresh()

    def _safe(self, fn, default, *args, **kwargs):
        """Call fn, returning `default` if the database read fails."""
        try:
            return fn(*args, **kwargs)
        except sqlite3.Error as e:
            _log.warning("dashboard refresh failed: %s", e)
            return default


def _signed(change) -> str:
    sign = "+" if change.direction == "increase" else "-"
    return f"{sign}{change.label}"
