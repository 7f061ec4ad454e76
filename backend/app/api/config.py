from __future__ import annotations

import logging
import os

logger = logging.getLogger(__name__)

DEFAULT_FETCH_WORKERS = 5


def ledger_fetch_workers() -> int:
    raw = os.getenv("LEDGER_FETCH_WORKERS")
    if not raw:
        return DEFAULT_FETCH_WORKERS
    try:
        return max(1, int(raw))
    except ValueError:
        logger.warning("Ignoring non-integer LEDGER_FETCH_WORKERS=%r", raw)
        return DEFAULT_FETCH_WORKERS


def owner_fallback_enabled() -> bool:
    return os.getenv("LEDGER_OWNER_FALLBACK", "1") != "0"


def strict_integrity_enabled() -> bool:
    return os.getenv("LEDGER_STRICT_INTEGRITY") == "1"
