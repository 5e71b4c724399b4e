"""
payment_utilities/calculations.py

Pure helpers for invoice balances, settlement plans and period comparisons.
Used by the payment/supplier allocators, the return processor and the
financial aggregator, so every screen derives the same numbers.

Do not import repos or open DB connections here.
Only compute numbers; formatting belongs to callers.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from ....constants import MONEY_EPS
from ....utils.helpers import round_money
from .status import STATUS_PAID, STATUS_PARTIALLY_PAID, STATUS_UNPAID

__all__ = [
    "clamp_non_negative",
    "derive_status",
    "remaining_due",
    "FifoAllocation",
    "plan_fifo_settlement",
    "line_total",
    "invoice_total",
    "clamp_discount",
    "refund_due_after_return",
    "Change",
    "calculate_change",
]


# -----------------------------
# Core utilities
# -----------------------------

def clamp_non_negative(x: float) -> float:
    """Return x if x > 0, else 0.0. Receivable/payable never goes below zero."""
    return x if x > 0.0 else 0.0


# -----------------------------
# Invoice lifecycle
# -----------------------------

def remaining_due(total_amount: float, advance_payment: float, payments_sum: float) -> float:
    """
    remaining = total_amount - advance_payment - payments_sum, clamped at >= 0
    and rounded to currency precision.
    """
    raw = float(total_amount) - float(advance_payment) - float(payments_sum)
    return round_money(clamp_non_negative(raw))


def derive_status(
    total_amount: float,
    advance_payment: float,
    payments_sum: float,
) -> Tuple[float, str]:
    """
    Returns (remaining_amount, status).

    Status rules:
      - 'paid'           if remaining == 0
      - 'partially_paid' if 0 < remaining < total_amount
      - 'unpaid'         otherwise (nothing collected yet)

    The advance payment counts as an implicit first payment.
    """
    remaining = remaining_due(total_amount, advance_payment, payments_sum)
    if remaining <= MONEY_EPS:
        return 0.0, STATUS_PAID
    if remaining < float(total_amount) - MONEY_EPS:
        return remaining, STATUS_PARTIALLY_PAID
    return remaining, STATUS_UNPAID


# -----------------------------
# Invoice totals
# -----------------------------

def line_total(quantity: float, unit_price: float) -> float:
    return round_money(float(quantity) * float(unit_price))


def clamp_discount(discount_amount: float, subtotal: float) -> float:
    """Discount is clamped to [0, subtotal]; negative or missing means none."""
    d = clamp_non_negative(float(discount_amount or 0.0))
    return round_money(min(d, clamp_non_negative(float(subtotal))))


def invoice_total(line_totals: Iterable[float], discount_amount: float = 0.0) -> Tuple[float, float, float]:
    """
    Returns (subtotal, applied_discount, total) for a set of line totals.
    total = subtotal - discount, with the discount clamped to the subtotal.
    """
    subtotal = round_money(sum(float(x) for x in line_totals))
    discount = clamp_discount(discount_amount, subtotal)
    return subtotal, discount, round_money(subtotal - discount)


# -----------------------------
# Supplier settlement (oldest first)
# -----------------------------

@dataclass(frozen=True)
class FifoAllocation:
    product_id: int
    remaining_before: float
    applied: float

    @property
    def remaining_after(self) -> float:
        return round_money(self.remaining_before - self.applied)


def plan_fifo_settlement(amount: float, lines: Sequence[Tuple[int, float]]) -> List[FifoAllocation]:
    """
    Greedy oldest-first settlement of `amount` across (product_id, remaining) lines.

    `lines` must already be ordered oldest first. Each line receives
    min(budget, remaining); iteration stops once the budget is spent.
    Lines with nothing applied are not returned.
    """
    budget = round_money(clamp_non_negative(float(amount)))
    plan: List[FifoAllocation] = []
    for product_id, remaining in lines:
        if budget <= MONEY_EPS:
            break
        remaining = round_money(float(remaining))
        if remaining <= MONEY_EPS:
            continue
        applied = round_money(min(budget, remaining))
        plan.append(FifoAllocation(product_id=int(product_id), remaining_before=remaining, applied=applied))
        budget = round_money(budget - applied)
    return plan


# -----------------------------
# Returns
# -----------------------------

def refund_due_after_return(
    *,
    total_amount: float,
    advance_payment: float,
    payments_sum: float,
    returned_value: float,
    refund_amount: float,
) -> Tuple[float, float]:
    """
    Returns (new_total_amount, cash_refund).

    The invoice total shrinks by the returned value; whatever was already
    collected beyond the new total is paid back, capped at refund_amount.
    """
    new_total = round_money(clamp_non_negative(float(total_amount) - float(returned_value)))
    collected = float(advance_payment) + float(payments_sum)
    over_collected = clamp_non_negative(collected - new_total)
    cash_refund = round_money(min(over_collected, clamp_non_negative(float(refund_amount))))
    return new_total, cash_refund


# -----------------------------
# Period-over-period change
# -----------------------------

@dataclass(frozen=True)
class Change:
    value: float       # absolute percentage, one decimal
    direction: str     # 'increase' | 'decrease'

    @property
    def label(self) -> str:
        return f"{self.value:.1f}%"


def calculate_change(current: float, previous: float) -> Change:
    """
    (current - previous) / |previous| * 100.

    When previous == 0: current > 0 -> 100% increase, current < 0 -> 100% decrease,
    current == 0 -> 0%.
    """
    current = float(current)
    previous = float(previous)
    if abs(previous) <= MONEY_EPS:
        if current > MONEY_EPS:
            return Change(100.0, "increase")
        if current < -MONEY_EPS:
            return Change(100.0, "decrease")
        return Change(0.0, "increase")
    pct = (current - previous) / abs(previous) * 100.0
    return Change(round(abs(pct), 1), "increase" if pct >= 0 else "decrease")
