from __future__ import annotations
from typing import Optional

# ---------- Invoice payment status ----------
STATUS_UNPAID = "unpaid"
STATUS_PARTIALLY_PAID = "partially_paid"
STATUS_PAID = "paid"

# ---------- Return status ----------
RETURN_PENDING = "pending"
RETURN_PROCESSED = "processed"
RETURN_REJECTED = "rejected"

RETURN_STATES: tuple[str, ...] = (RETURN_PENDING, RETURN_PROCESSED, RETURN_REJECTED)

# processed/rejected are terminal
RETURN_TRANSITIONS: dict[str, frozenset[str]] = {
    RETURN_PENDING: frozenset({RETURN_PROCESSED, RETURN_REJECTED}),
    RETURN_PROCESSED: frozenset(),
    RETURN_REJECTED: frozenset(),
}


def normalize(state: Optional[str]) -> Optional[str]:
    """Lowercase & strip; return None if empty. Does NOT invent synonyms."""
    if state is None:
        return None
    s = str(state).strip().lower()
    return s or None


def ensure_return_transition(current: str, target: str) -> str:
    """Validate a return status change; returns the normalized target."""
    cur = normalize(current)
    tgt = normalize(target)
    if tgt not in RETURN_STATES:
        raise ValueError("return status must be one of: pending, processed, rejected")
    if tgt not in RETURN_TRANSITIONS.get(cur or "", frozenset()):
        raise ValueError(f"Cannot change return status from {cur!r} to {tgt!r}")
    return tgt  # type: ignore[return-value]
