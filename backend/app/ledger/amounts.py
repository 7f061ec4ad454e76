from __future__ import annotations

import math
from typing import Any, Tuple


def coerce_amount(value: Any) -> Tuple[float, bool]:
    """
    Lenient amount parsing for legacy records.

    Returns (amount, ok). Missing values are a clean 0.0; malformed or non-finite
    values also become 0.0 but report ok=False so callers can surface them.
    """
    if value is None:
        return 0.0, True
    if isinstance(value, bool):
        return 0.0, False
    if isinstance(value, (int, float)):
        amount = float(value)
        return (amount, True) if math.isfinite(amount) else (0.0, False)
    if isinstance(value, str):
        cleaned = value.strip().replace(",", "")
        if not cleaned:
            return 0.0, True
        try:
            amount = float(cleaned)
        except ValueError:
            return 0.0, False
        return (amount, True) if math.isfinite(amount) else (0.0, False)
    return 0.0, False
