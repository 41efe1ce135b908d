"""
Decimal Utilities
loan_verification/scoring/utils.py

Precision-safe decimal math for scoring calculations.
"""

import math
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, Optional

ZERO = Decimal("0")
CENT = Decimal("0.01")


def to_decimal(value, places: int = 2) -> Decimal:
    """Convert a number to Decimal with explicit precision. Non-finite input becomes 0."""
    if isinstance(value, bool):
        return ZERO.quantize(Decimal(10) ** -places)
    if isinstance(value, float) and not math.isfinite(value):
        return ZERO.quantize(Decimal(10) ** -places)
    try:
        d = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        d = ZERO
    if not d.is_finite():
        d = ZERO
    return d.quantize(Decimal(10) ** -places, rounding=ROUND_HALF_UP)


def clamp(
    value: Decimal,
    min_val: Decimal = Decimal("0"),
    max_val: Decimal = Decimal("100"),
) -> Decimal:
    """Clamp value to range [min_val, max_val]."""
    return max(min_val, min(max_val, value))


def sum_decimals(values: Iterable[Decimal]) -> Decimal:
    return sum(values, ZERO)


def round_half_up(value: Decimal) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


# Indian-English amount units as written in reports and drafts
AMOUNT_UNIT_PATTERN = r"lakhs?|lacs?|crores?|cr|k"
AMOUNT_UNITS = {
    "lakh": Decimal("100000"), "lakhs": Decimal("100000"),
    "lac": Decimal("100000"), "lacs": Decimal("100000"),
    "crore": Decimal("10000000"), "crores": Decimal("10000000"), "cr": Decimal("10000000"),
    "k": Decimal("1000"),
}


def scale_amount(value: Decimal, unit: Optional[str]) -> Decimal:
    """Apply a unit suffix: (Decimal("1.5"), "lakh") -> 150000."""
    return value * AMOUNT_UNITS.get((unit or "").lower(), Decimal("1"))
