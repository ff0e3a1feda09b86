"""Money / rounding helpers.

Centralized so the converter, spreadsheet totals and rate display use identical
rounding semantics (half-up on the decimal representation).
"""

from __future__ import annotations
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable


def round2(value: float) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def round4(value: float) -> float:
    return float(
        Decimal(str(value)).quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP)
    )


def sum_amounts(values: Iterable[float]) -> float:
    """Exact decimal sum of already-rounded amounts (no float drift)."""
    return float(sum((Decimal(str(v)) for v in values), Decimal("0")))
