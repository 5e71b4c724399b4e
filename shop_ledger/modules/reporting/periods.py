# shop_ledger/modules/reporting/periods.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional, Union

DateLike = Union[date, str]

PERIOD_DAILY = "daily"
PERIOD_MONTHLY = "monthly"
PERIOD_YEARLY = "yearly"
PERIOD_CUSTOM = "custom"
PERIOD_KEYS = (PERIOD_DAILY, PERIOD_MONTHLY, PERIOD_YEARLY, PERIOD_CUSTOM)


@dataclass(frozen=True)
class Period:
    """Half-open windows [start, end) as ISO dates, plus the window before it."""
    key: str
    start: str
    end: str
    previous_start: str
    previous_end: str


def _as_date(d: DateLike) -> date:
    if isinstance(d, date):
        return d
    return date.fromisoformat(str(d)[:10])


def _add_months(d: date, months: int) -> date:
    idx = d.year * 12 + (d.month - 1) + months
    return date(idx // 12, idx % 12 + 1, 1)


def resolve_period(
    key: str = PERIOD_MONTHLY,
    start: Optional[DateLike] = None,
    end: Optional[DateLike] = None,
    *,
    today: Optional[DateLike] = None,
) -> Period:
    """
    Resolve a period key to concrete windows.

    daily/monthly/yearly cover the calendar day/month/year containing `today`
    and compare with the one before. custom takes inclusive dates
    `start`..`end` and compares with the equally long span just before it.
    """
    k = (key or PERIOD_MONTHLY).lower()
    ref = _as_date(today) if today is not None else date.today()

    if k == PERIOD_DAILY:
        cur_s = ref
        cur_e = ref + timedelta(days=1)
        prev_s = ref - timedelta(days=1)
        prev_e = ref
    elif k == PERIOD_YEARLY:
        cur_s = date(ref.year, 1, 1)
        cur_e = date(ref.year + 1, 1, 1)
        prev_s = date(ref.year - 1, 1, 1)
        prev_e = cur_s
    elif k == PERIOD_CUSTOM:
        if start is None or end is None:
            raise ValueError("custom period needs both start and end dates")
        cur_s = _as_date(start)
        cur_e = _as_date(end) + timedelta(days=1)
        if cur_e <= cur_s:
            raise ValueError("custom period end must not be before its start")
        span = cur_e - cur_s
        prev_s = cur_s - span
        prev_e = cur_s
    elif k == PERIOD_MONTHLY:
        cur_s = date(ref.year, ref.month, 1)
        cur_e = _add_months(cur_s, 1)
        prev_s = _add_months(cur_s, -1)
        prev_e = cur_s
    else:
        raise ValueError(f"Unknown period: {key}")

    return Period(
        key=k,
        start=cur_s.isoformat(),
        end=cur_e.isoformat(),
        previous_start=prev_s.isoformat(),
        previous_end=prev_e.isoformat(),
    )
