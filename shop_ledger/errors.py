from __future__ import annotations


# ----------------------------
# Ledger errors (friendly)
# ----------------------------
class LedgerError(Exception):
    """Base class for ledger command errors. The message is user-facing."""


class ValidationError(LedgerError):
    """Non-positive amount, amount exceeds balance, missing selection, reason not chosen."""


class NotFoundError(LedgerError):
    """Invoice, supplier or return target does not exist."""


class InconsistentStateError(LedgerError):
    """Stored derived values disagree with the authoritative rows, or a concurrent write won."""


class WriteFailure(LedgerError):
    """Underlying persistence call failed; wraps the original SQLite error."""
    def __init__(self, message: str, *, original: BaseException | None = None):
        super().__init__(message)
        self.original = original


__all__ = [
    "LedgerError",
    "ValidationError",
    "NotFoundError",
    "InconsistentStateError",
    "WriteFailure",
]
