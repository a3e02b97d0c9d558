from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation


def round_half_up(value: float, digits: int = 0) -> float:
    """Round ties away from zero on the decimal text of ``value``.

    Matches the browser dashboards (``Math.round`` / ``toFixed``) instead of
    Python's banker's rounding, so 2.5 -> 3 and 0.25 -> 0.3. Non-finite input gives 0.
    """
    try:
        value = float(value)
        if not math.isfinite(value):
            return 0.0
        quant = Decimal(1).scaleb(-digits)
        return float(Decimal(repr(value)).quantize(quant, rounding=ROUND_HALF_UP))
    except (InvalidOperation, ValueError, TypeError, OverflowError):
        return 0.0


def round_int(value: float) -> int:
    return int(round_half_up(value, 0))
