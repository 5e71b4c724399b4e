# utils/helpers.py
from datetime import datetime
from typing import Union

NumberLike = Union[float, int, str]


def now_str() -> str:
    """Return the current local timestamp as 'YYYY-MM-DD HH:MM:SS'."""
    return datetime.now().isoformat(sep=" ", timespec="seconds")


def round_money(v: NumberLike, places: int = 2) -> float:
    """Round to currency precision; the value written to storage."""
    return round(float(v), places)
