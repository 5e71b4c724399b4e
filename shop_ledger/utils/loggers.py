"""
utils/loggers.py

Console logger for library code, plus an append-only JSON-lines event log
for ledger commands (payments, supplier payments, returns, invoices).

Public API
----------
- get_logger(name) -> logging.Logger
- get_ledger_logger(file_path=None, level=INFO) -> logging.Logger
- log_event(logger, op, phase, message, extra=None, level=INFO)
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

from ..config import LOG_PATH
from ..constants import LEDGER_LOG_FILE

__all__ = ["get_logger", "get_ledger_logger", "log_event"]

_LEDGER_LOGGER_NAME = "shop_ledger.events"


def get_logger(name="shop_ledger"):
    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.setLevel(logging.INFO)
        ch = logging.StreamHandler()
        ch.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
        logger.addHandler(ch)
    return logger


def get_ledger_logger(file_path: Optional[str] = None, level: int = logging.INFO) -> logging.Logger:
    """
    Return the ledger event logger, writing JSON-lines to logs/ledger.log by default.
    Reuses the same logger (no duplicate handlers) across calls.
    """
    logger = logging.getLogger(_LEDGER_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    if logger.handlers:
        return logger

    log_file = Path(file_path) if file_path else LOG_PATH / LEDGER_LOG_FILE
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(log_file), mode="a", encoding="utf-8", delay=True)
    except OSError:
        # read-only location: stderr only
        sh = logging.StreamHandler()
        sh.setLevel(level)
        sh.setFormatter(_JsonLineFormatter())
        logger.addHandler(sh)
        return logger

    fh.setLevel(level)
    fh.setFormatter(_JsonLineFormatter())
    logger.addHandler(fh)

    # Mirror WARNING+ to stderr
    sh = logging.StreamHandler()
    sh.setLevel(logging.WARNING)
    sh.setFormatter(_JsonLineFormatter())
    logger.addHandler(sh)

    return logger


class _JsonLineFormatter(logging.Formatter):
    """
    Minimal JSON-lines formatter:
      {"ts":"2025-09-16T12:00:01.123Z","level":"INFO","name":"shop_ledger.events","msg":"...","extra":{...}}
    """
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload = {
            "ts": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level": record.levelname,
            "name": record.name,
            "msg": record.getMessage(),
        }
        if hasattr(record, "extra_payload") and isinstance(record.extra_payload, dict):
            payload["extra"] = record.extra_payload
        return json.dumps(payload, ensure_ascii=False, default=str)


def log_event(
    logger: logging.Logger,
    op: str,
    phase: str,
    message: str,
    extra: Dict[str, object] | None = None,
    level: int = logging.INFO,
) -> None:
    """
    Log a structured ledger event.

    Args:
        logger: Obtained from get_ledger_logger().
        op: Command name, e.g. "payment", "supplier_payment", "return", "invoice".
        phase: "validate", "commit", "rejected" or "failed".
        message: Human-readable short message.
        extra: Optional key/values (ids, amounts, resulting status).
        level: Logging level (default INFO).
    """
    extra_payload = {"op": op, "phase": phase}
    if extra:
        for k, v in extra.items():
            if k not in extra_payload:
                extra_payload[k] = v
    logger.log(level, message, extra={"extra_payload": extra_payload})
