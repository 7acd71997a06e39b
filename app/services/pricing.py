"""Price calculation for court and equipment bookings.

Prices are linear in duration (rates are stored per hour) and rounded
half-up to whole currency units – the F CFA has no subdivision.  An
optional tiered discount rewards long bookings.
"""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal

from app.models import PriceQuote

# (minimum minutes, discount) – longest tier first
DISCOUNT_TIERS: tuple[tuple[int, Decimal], ...] = (
    (180, Decimal("0.10")),
    (120, Decimal("0.05")),
)

DEFAULT_CURRENCY = "XOF"


def _require_non_negative(name: str, value: float) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise ValueError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(value) or value < 0:
        raise ValueError(f"{name} must be a finite non-negative number, got {value!r}")


def discount_rate(duration_minutes: int) -> Decimal:
    for threshold, rate in DISCOUNT_TIERS:
        if duration_minutes >= threshold:
            return rate
    return Decimal("0")


def _breakdown(
    hourly_rate: float,
    duration_minutes: int,
    apply_discount: bool,
) -> tuple[Decimal, Decimal, int]:
    _require_non_negative("hourly_rate", hourly_rate)
    _require_non_negative("duration_minutes", duration_minutes)

    base = Decimal(str(hourly_rate)) * Decimal(str(duration_minutes)) / Decimal(60)
    rate = discount_rate(duration_minutes) if apply_discount else Decimal("0")
    total = (base * (1 - rate)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return base, rate, int(total)


def price(hourly_rate: float, duration_minutes: int, apply_discount: bool = False) -> int:
    """Total price of a booking, in whole currency units."""
    return _breakdown(hourly_rate, duration_minutes, apply_discount)[2]


def quote(
    hourly_rate: float,
    duration_minutes: int,
    apply_discount: bool = False,
    currency: str = DEFAULT_CURRENCY,
) -> PriceQuote:
    base, rate, total = _breakdown(hourly_rate, duration_minutes, apply_discount)
    return PriceQuote(
        hourly_rate=hourly_rate,
        duration_minutes=duration_minutes,
        base_price=float(base),
        discount_rate=float(rate),
        total_price=total,
        currency=currency,
        formatted=format_fcfa(total),
    )


def format_duration(duration_minutes: int) -> str:
    """90 -> "1h30", 120 -> "2h", 30 -> "30min"."""
    hours, minutes = divmod(duration_minutes, 60)
    if hours == 0:
        return f"{minutes}min"
    if minutes == 0:
        return f"{hours}h"
    return f"{hours}h{minutes:02d}"


def format_fcfa(amount: int) -> str:
    """12000 -> "12\\u202f000 F CFA", grouped with U+202F NARROW NO-BREAK SPACE."""
    return f"{amount:,}".replace(",", "\u202f") + " F CFA"
