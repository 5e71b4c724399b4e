# shop_ledger/modules/reporting/financial_aggregator.py
"""
Financial aggregator.

Pure read/reduce over stored rows for a window [start, end) and an optional
shop filter. Nothing here writes; running it twice over unchanged data
gives identical numbers.

Streams
-------
- Regular: income from sales invoices without outer-product lines, expenses
  from other costs, salaries and product purchases.
- Outer products: income/expense/profit from flagged invoice lines, kept
  separate and only combined in the summary.
"""
from __future__ import annotations

from dataclasses import dataclass
import sqlite3
from typing import Optional

from ...constants import INVOICE_TYPE_PRODUCT_ADDITION, INVOICE_TYPE_SALES
from ...database.repositories import CustomerBalance, CustomersRepo, ReportingRepo
from ...utils.helpers import round_money
from ..payments.payment_utilities.calculations import Change, calculate_change
from .periods import PERIOD_MONTHLY, DateLike, Period, resolve_period


@dataclass(frozen=True)
class WindowTotals:
    income: float
    expenses: float

    @property
    def net_profit(self) -> float:
        return round_money(self.income - self.expenses)


@dataclass(frozen=True)
class OuterProductStats:
    income: float
    expense: float

    @property
    def profit(self) -> float:
        return round_money(self.income - self.expense)


@dataclass(frozen=True)
class AdvanceTotals:
    received_in_window: float   # sales advances
    paid_in_window: float       # product purchase advances
    received_all_time: float
    paid_all_time: float


@dataclass(frozen=True)
class FinancialSummary:
    period: Period
    shop_id: Optional[int]

    current: WindowTotals
    previous: WindowTotals
    income_change: Change
    expense_change: Change
    profit_change: Change

    outer: OuterProductStats
    advances: AdvanceTotals

    outstanding_customer_credit: float
    supplier_invoice_due: float
    supplier_product_due: float

    @property
    def supplier_credit_due(self) -> float:
        return round_money(self.supplier_invoice_due + self.supplier_product_due)

    @property
    def combined_income(self) -> float:
        return round_money(self.current.income + self.outer.income)

    @property
    def combined_expenses(self) -> float:
        return round_money(self.current.expenses + self.outer.expense)

    @property
    def combined_profit(self) -> float:
        return round_money(self.combined_income - self.combined_expenses)


class FinancialAggregator:
    """
    Usage:
        agg = FinancialAggregator(conn)
        s = agg.summarize("monthly")
        s.current.income, s.income_change.label, s.outer.profit, ...
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        conn.row_factory = sqlite3.Row
        self.conn = conn
        self.repo = ReportingRepo(conn)

    # --------------------------- Windows ---------------------------

    def window_totals(self, start: str, end: str, shop_id: Optional[int] = None) -> WindowTotals:
        income = self.repo.collected_on_invoices(
            INVOICE_TYPE_SALES, start, end, shop_id, exclude_outer=True
        )
        purchases = self.repo.collected_on_invoices(INVOICE_TYPE_PRODUCT_ADDITION, start, end, shop_id)
        costs = self.repo.other_costs_total(start, end, shop_id)
        salaries = self.repo.salaries_total(start, end, shop_id)
        return WindowTotals(
            income=round_money(income),
            expenses=round_money(costs + salaries + purchases),
        )

    def outer_product_stats(self, start: str, end: str, shop_id: Optional[int] = None) -> OuterProductStats:
        income, expense = self.repo.outer_product_totals(start, end, shop_id)
        return OuterProductStats(income=round_money(income), expense=round_money(expense))

    def advance_totals(self, start: str, end: str, shop_id: Optional[int] = None) -> AdvanceTotals:
        r = self.repo
        return AdvanceTotals(
            received_in_window=round_money(r.advance_total(INVOICE_TYPE_SALES, start, end, shop_id)),
            paid_in_window=round_money(r.advance_total(INVOICE_TYPE_PRODUCT_ADDITION, start, end, shop_id)),
            received_all_time=round_money(r.advance_total(INVOICE_TYPE_SALES, shop_id=shop_id)),
            paid_all_time=round_money(r.advance_total(INVOICE_TYPE_PRODUCT_ADDITION, shop_id=shop_id)),
        )

    # --------------------------- Summary ---------------------------

    def summarize(
        self,
        period_key: str = PERIOD_MONTHLY,
        start: Optional[DateLike] = None,
        end: Optional[DateLike] = None,
        *,
        shop_id: Optional[int] = None,
        today: Optional[DateLike] = None,
    ) -> FinancialSummary:
        period = resolve_period(period_key, start, end, today=today)
        return self.summarize_period(period, shop_id=shop_id)

    def summarize_period(self, period: Period, *, shop_id: Optional[int] = None) -> FinancialSummary:
        current = self.window_totals(period.start, period.end, shop_id)
        previous = self.window_totals(period.previous_start, period.previous_end, shop_id)

        return FinancialSummary(
            period=period,
            shop_id=shop_id,
            current=current,
            previous=previous,
            income_change=calculate_change(current.income, previous.income),
            expense_change=calculate_change(current.expenses, previous.expenses),
            profit_change=calculate_change(current.net_profit, previous.net_profit),
            outer=self.outer_product_stats(period.start, period.end, shop_id),
            advances=self.advance_totals(period.start, period.end, shop_id),
            # point-in-time balances, not window-bound
            outstanding_customer_credit=round_money(self.repo.open_invoice_due(INVOICE_TYPE_SALES, shop_id)),
            supplier_invoice_due=round_money(
                self.repo.open_invoice_due(INVOICE_TYPE_PRODUCT_ADDITION, shop_id)
            ),
            supplier_product_due=round_money(self.repo.product_due(shop_id)),
        )

    # --------------------------- Customers ---------------------------

    def customer_balance(self, customer_id: int) -> CustomerBalance:
        return CustomersRepo(self.conn).balance(customer_id)
