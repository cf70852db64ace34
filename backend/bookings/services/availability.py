from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date

from django.utils import timezone

from bookings.models import Booking
from cars.models import Car

logger = logging.getLogger(__name__)

AVAILABLE_MESSAGE = "Car is available for the selected dates"
BOOKED_MESSAGE = "Car is already booked for the selected dates"
DISABLED_MESSAGE = "This car is currently unavailable for booking"


@dataclass(frozen=True)
class AvailabilityResult:
    available: bool
    message: str
    reason: str | None = None


def check_car_availability(*, car_id: int, start_date: date, end_date: date) -> AvailabilityResult:
    """
    Advisory availability check for a car over whole days.

    Never the final gate: `create_booking_atomic` repeats the conflict check
    under a lock before anything is written. Raises ValueError for bad input.
    """
    if start_date >= end_date:
        raise ValueError("start_date must be before end_date")

    car = Car.objects.only("id", "available").filter(pk=car_id).first()
    if car is None:
        raise ValueError("Car not found")

    if not car.available:
        return AvailabilityResult(available=False, message=DISABLED_MESSAGE, reason="car disabled")

    # completed rentals still count here; only cancelled rows and lapsed drafts are ignored
    conflicting = (
        Booking.objects.for_car(car.id)
        .exclude(status=Booking.CANCELLED)
        .exclude(status=Booking.DRAFT, expires_at__isnull=False, expires_at__lt=timezone.now())
        .overlapping(start_date, end_date)
    )
    if conflicting.exists():
        logger.info("Car %s unavailable for %s..%s", car.id, start_date, end_date)
        return AvailabilityResult(available=False, message=BOOKED_MESSAGE, reason="overlap")
    return AvailabilityResult(available=True, message=AVAILABLE_MESSAGE)
