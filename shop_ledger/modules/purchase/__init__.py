"""
Purchase package exports.
"""

from .intake import PurchaseIntake, PurchaseLine, PurchaseResult

__all__ = [
    "PurchaseIntake",
    "PurchaseLine",
    "PurchaseResult",
]
