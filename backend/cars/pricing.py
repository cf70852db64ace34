from __future__ import annotations

import math
from datetime import date, datetime, time
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

CENT = Decimal("0.01")
SECONDS_PER_DAY = 24 * 60 * 60


def parse_time_of_day(value: str | time | None, *, default: str) -> time:
    """Accept `HH:MM` / `HH:MM:SS` strings (or time objects) for pickup and return."""
    if isinstance(value, time):
        return value
    raw = (value or default).strip()
    try:
        return time.fromisoformat(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid time of day: {raw!r}") from exc


def combine(day: date, at: time) -> datetime:
    return datetime.combine(day, at)


def rental_days(
    start_date: date,
    end_date: date,
    pickup_time: Optional[time] = None,
    return_time: Optional[time] = None,
) -> int:
    """
    Number of billable days between pickup and return.

    With both times given the partial last day is rounded up; otherwise whole
    calendar days are counted. A same-day rental bills one day.
    """
    if pickup_time is not None and return_time is not None:
        delta = combine(end_date, return_time) - combine(start_date, pickup_time)
        days = math.ceil(delta.total_seconds() / SECONDS_PER_DAY)
    else:
        days = (end_date - start_date).days
    return max(days, 1)


def quantize(amount: Decimal) -> Decimal:
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def to_minor_units(amount: Decimal | float | int | str) -> int:
    """Convert a currency amount to integer cents, rounding half up."""
    cents = (Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(cents)


def car_rental_subtotal(price_per_day: Decimal, days: int) -> Decimal:
    return quantize(Decimal(price_per_day) * days)


def extra_line_price(price: Decimal, *, per_day: bool, days: int) -> Decimal:
    unit = Decimal(price) * days if per_day else Decimal(price)
    return quantize(unit)


def discount_amount(subtotal: Decimal, percentage: Decimal | int | None) -> Decimal:
    if not percentage:
        return Decimal("0.00")
    return quantize(Decimal(subtotal) * Decimal(percentage) / 100)


def grand_total(
    *,
    total_price: Decimal,
    extras: Iterable[Decimal] = (),
    delivery_fees: Iterable[Decimal] = (),
    discount: Decimal = Decimal("0"),
) -> Decimal:
    amount = Decimal(total_price) + sum(extras, Decimal("0")) + sum(delivery_fees, Decimal("0"))
    amount -= Decimal(discount)
    return quantize(max(amount, Decimal("0")))
