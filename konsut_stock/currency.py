"""Ksh/USD price synchronization."""
from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from .errors import ValidationError

_CENTS = Decimal("0.01")


def round2(value: float) -> float:
    """Round to 2 decimals, half away from zero, on the decimal representation."""

    try:
        quantized = Decimal(str(value)).quantize(_CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise ValidationError(f"Cannot round {value!r}") from exc
    return float(quantized)


def validate_rate(rate: Any) -> float:
    if isinstance(rate, bool):
        raise ValidationError("Currency rate must be a number")
    try:
        parsed = float(rate)
    except (TypeError, ValueError) as exc:
        raise ValidationError("Currency rate must be a number") from exc
    if not math.isfinite(parsed) or parsed <= 0:
        raise ValidationError("Currency rate must be greater than zero")
    return parsed


def from_primary(value: float, rate: float) -> float:
    """Convert a Ksh amount to USD."""

    return round2(value / validate_rate(rate))


def from_secondary(value: float, rate: float) -> float:
    """Convert a USD amount to Ksh."""

    return round2(value * validate_rate(rate))


__all__ = ["round2", "validate_rate", "from_primary", "from_secondary"]
