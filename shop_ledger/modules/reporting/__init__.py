"""
Reporting package exports.
"""

from .financial_aggregator import (
    AdvanceTotals,
    FinancialAggregator,
    FinancialSummary,
    OuterProductStats,
    WindowTotals,
)
from .periods import Period, resolve_period

__all__ = [
    "AdvanceTotals",
    "FinancialAggregator",
    "FinancialSummary",
    "OuterProductStats",
    "WindowTotals",
    "Period",
    "resolve_period",
]
