from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from django.conf import settings
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from bookings.models import Booking, BookingExtra
from cars import pricing
from cars.models import Car, Extra, Location
from promotions.models import DiscountCode
from promotions.services.discounts import check_discount_code

logger = logging.getLogger(__name__)

CREATABLE_STATUSES = (Booking.DRAFT, Booking.PENDING, Booking.CONFIRMED)


class BookingConflict(Exception):
    """The car is already held for (part of) the requested range."""

    def __init__(self, message: str, *, reason: str = "overlap"):
        super().__init__(message)
        self.reason = reason


@dataclass(frozen=True)
class ExtraRequest:
    extra: Extra
    quantity: int = 1


def draft_expiry(now=None):
    now = now or timezone.now()
    return now + timedelta(minutes=settings.DRAFT_BOOKING_TTL_MINUTES)


def create_booking_atomic(
    *,
    car: Car,
    user,
    start_date: date,
    end_date: date,
    pickup_time=None,
    return_time=None,
    status: str = Booking.PENDING,
    total_price: Optional[Decimal] = None,
    extras: Sequence[ExtraRequest] = (),
    pickup_location: Optional[Location] = None,
    return_location: Optional[Location] = None,
    discount_code: Optional[DiscountCode] = None,
) -> Booking:
    """
    Re-check conflicts and insert the booking in one transaction.

    The car row is locked with SELECT ... FOR UPDATE first, so two requests
    for the same car run their check + insert one after the other; the
    second one sees the first one's row and fails with BookingConflict.
    Raises ValueError for invalid input.
    """
    if status not in CREATABLE_STATUSES:
        raise ValueError(f"Bookings cannot be created with status '{status}'")

    pickup = pricing.parse_time_of_day(pickup_time, default=settings.DEFAULT_PICKUP_TIME)
    dropoff = pricing.parse_time_of_day(return_time, default=settings.DEFAULT_RETURN_TIME)
    request_start = pricing.combine(start_date, pickup)
    request_end = pricing.combine(end_date, dropoff)
    if request_end <= request_start:
        raise ValueError("Return must be after pickup")

    now = timezone.now()
    with transaction.atomic():
        locked_car = Car.objects.select_for_update().get(pk=car.pk)
        if not locked_car.available:
            raise BookingConflict("Car is not available for booking", reason="unavailable")

        conflicts = (
            Booking.objects.for_car(locked_car.pk)
            .blocking(now)
            .overlapping(request_start.date(), request_end.date())
        )
        conflict_ids = list(conflicts.values_list("id", flat=True))
        if conflict_ids:
            logger.info(
                "Rejected booking for car %s %s..%s: overlaps %s",
                locked_car.pk,
                start_date,
                end_date,
                conflict_ids,
            )
            raise BookingConflict("Car is not available for the selected dates")

        days = pricing.rental_days(start_date, end_date, pickup, dropoff)
        subtotal = pricing.car_rental_subtotal(locked_car.price_per_day, days)
        base_price = pricing.quantize(total_price) if total_price is not None else subtotal

        discount = Decimal("0.00")
        if discount_code is not None:
            discount_code = _claim_discount_code(discount_code, now=now)
            discount = pricing.discount_amount(base_price, discount_code.discount_percentage)

        extra_lines = list(_price_extras(extras, days))
        pickup_fee = pickup_location.delivery_fee if pickup_location else Decimal("0")
        return_fee = return_location.delivery_fee if return_location else Decimal("0")

        booking = Booking.objects.create(
            car=locked_car,
            user=user,
            start_date=start_date,
            end_date=end_date,
            pickup_time=pickup,
            return_time=dropoff,
            pickup_location=pickup_location.value if pickup_location else "",
            return_location=return_location.value if return_location else "",
            status=status,
            total_price=base_price,
            car_rental_subtotal=subtotal,
            pickup_delivery_fee=pickup_fee,
            return_delivery_fee=return_fee,
            discount_code=discount_code,
            discount_amount=discount,
            grand_total=pricing.grand_total(
                total_price=base_price,
                extras=[line.total_price for line in extra_lines],
                delivery_fees=[pickup_fee, return_fee],
                discount=discount,
            ),
            expires_at=draft_expiry(now) if status == Booking.DRAFT else None,
            customer_email=getattr(user, "email", "") or "",
            customer_name=getattr(user, "full_name", "") or "",
            created_at=now,
        )
        for line in extra_lines:
            line.booking = booking
        BookingExtra.objects.bulk_create(extra_lines)

    logger.info(
        "Created %s booking %s for car %s %s..%s",
        booking.status,
        booking.pk,
        booking.car_id,
        booking.start_date,
        booking.end_date,
    )
    return booking


def _price_extras(extras: Iterable[ExtraRequest], days: int):
    for item in extras:
        unit_price = pricing.extra_line_price(item.extra.price, per_day=item.extra.per_day, days=days)
        yield BookingExtra(
            extra=item.extra,
            quantity=item.quantity,
            unit_price=unit_price,
            total_price=pricing.quantize(unit_price * item.quantity),
        )


def _claim_discount_code(discount_code: DiscountCode, *, now) -> DiscountCode:
    locked = DiscountCode.objects.select_for_update().get(pk=discount_code.pk)
    check = check_discount_code(locked, now=now)
    if not check.valid:
        raise ValueError(check.message)
    DiscountCode.objects.filter(pk=locked.pk).update(current_uses=F("current_uses") + 1)
    return locked
