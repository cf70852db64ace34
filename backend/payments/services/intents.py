from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

from django.conf import settings
from django.db import DatabaseError

from bookings.models import Booking
from cars.pricing import quantize, to_minor_units
from payments.services import gateway

logger = logging.getLogger(__name__)

# intents in these states can still be confirmed by the client
REUSABLE_INTENT_STATUSES = {
    "requires_payment_method",
    "requires_confirmation",
    "requires_action",
    "processing",
}


class BookingStateError(Exception):
    """The booking cannot be paid for in its current state."""


@dataclass
class PaymentIntentResult:
    payment_intent_id: str
    client_secret: str
    amount: int
    currency: str
    status: str
    message: Optional[str] = None

    def as_response(self) -> Dict[str, Any]:
        payload = {
            "success": True,
            "payment_intent_id": self.payment_intent_id,
            "client_secret": self.client_secret,
            "amount": self.amount,
            "currency": self.currency,
            "status": self.status,
        }
        if self.message:
            payload["message"] = self.message
        return payload


def payable_amount(booking: Booking) -> Decimal:
    """
    Amount to charge for a booking, in major currency units.

    Bookings priced by the atomic creator carry `car_rental_subtotal`, and
    their `grand_total` already includes extras, fees and discount, so it is
    charged as stored. For older rows `grand_total` wins only when it differs
    from the base rental price; otherwise the extras are added onto
    `total_price`.
    """
    if booking.car_rental_subtotal is not None and booking.grand_total is not None:
        return quantize(booking.grand_total)
    total_price = Decimal(booking.total_price)
    if booking.grand_total is not None and Decimal(booking.grand_total) != total_price:
        return quantize(booking.grand_total)
    extras_total = sum(
        (Decimal(line.total_price) for line in booking.booking_extras.all()),
        Decimal("0"),
    )
    return quantize(total_price + extras_total)


def idempotency_key_for(booking: Booking, amount_cents: int, replaces: str = "") -> str:
    """
    Same booking state, same key: concurrent retries collapse into one intent.

    The superseded intent id is part of the key so a replacement for a
    canceled intent is not deduplicated back onto it.
    """
    return f"rentals:booking:{booking.pk}:payment_intent:{amount_cents}:{replaces or 'initial'}"


def _result_from_intent(intent, *, message: str | None = None) -> PaymentIntentResult:
    return PaymentIntentResult(
        payment_intent_id=intent.id,
        client_secret=getattr(intent, "client_secret", "") or "",
        amount=getattr(intent, "amount", 0) or 0,
        currency=getattr(intent, "currency", "") or settings.STRIPE_CURRENCY,
        status=getattr(intent, "status", ""),
        message=message,
    )


def _ensure_customer(booking: Booking, *, email: str, name: str) -> str:
    if booking.stripe_customer_id:
        return booking.stripe_customer_id

    customer = gateway.find_or_create_customer(
        email=email,
        name=name,
        metadata={"booking_id": str(booking.pk), "user_id": str(booking.user_id)},
    )
    Booking.objects.filter(pk=booking.pk).update(
        stripe_customer_id=customer.id,
        customer_email=email,
        customer_name=name,
    )
    booking.stripe_customer_id = customer.id
    booking.customer_email = email
    booking.customer_name = name
    return customer.id


def create_or_reuse_payment_intent(
    booking: Booking,
    *,
    currency: str | None = None,
    customer_email: str | None = None,
    customer_name: str | None = None,
    metadata: Dict[str, Any] | None = None,
) -> PaymentIntentResult:
    """
    Return a payment intent the client can confirm for `booking`.

    Ownership must already be verified by the caller. An intent stored on the
    booking is reused while it is still payable; a succeeded one short-circuits
    without touching the booking.
    """
    if booking.status in Booking.CLOSED_STATUSES:
        raise BookingStateError(f"Cannot take payment for a {booking.status} booking")
    if booking.is_expired_draft:
        raise BookingStateError("This reservation has expired; please book again")

    email = (customer_email or booking.customer_email or booking.user.email or "").strip().lower()
    name = (customer_name or booking.customer_name or booking.user.full_name or "").strip()
    if not email:
        raise ValueError("A customer email is required to take payment")

    customer_id = _ensure_customer(booking, email=email, name=name)

    replaces = ""
    if booking.stripe_payment_intent_id:
        existing = gateway.retrieve_payment_intent(booking.stripe_payment_intent_id)
        if existing.status == "succeeded":
            return _result_from_intent(existing, message="Payment already completed for this booking")
        if existing.status in REUSABLE_INTENT_STATUSES:
            logger.info("Reusing payment intent %s for booking %s", existing.id, booking.pk)
            return _result_from_intent(existing)
        replaces = existing.id

    amount_cents = to_minor_units(payable_amount(booking))
    if amount_cents <= 0:
        raise BookingStateError("Booking total must be greater than zero")

    currency = (currency or settings.STRIPE_CURRENCY).lower()
    intent_metadata = dict(metadata or {})
    intent_metadata.update(
        {
            "booking_id": str(booking.pk),
            "user_id": str(booking.user_id),
            "car_id": str(booking.car_id),
            "customer_email": email,
            "customer_name": name,
            "start_date": booking.start_date.isoformat(),
            "end_date": booking.end_date.isoformat(),
        }
    )
    intent = gateway.create_payment_intent(
        amount_cents=amount_cents,
        currency=currency,
        idempotency_key=idempotency_key_for(booking, amount_cents, replaces),
        metadata=intent_metadata,
        customer_id=customer_id,
        receipt_email=email,
    )

    try:
        Booking.objects.filter(pk=booking.pk).update(
            stripe_payment_intent_id=intent.id,
            stripe_payment_status=Booking.PAYMENT_PENDING,
        )
    except DatabaseError:
        logger.exception(
            "Could not store payment intent %s on booking %s; cancelling it", intent.id, booking.pk
        )
        try:
            gateway.cancel_payment_intent(intent.id)
        except gateway.PaymentGatewayError:
            logger.exception("Orphaned payment intent %s could not be cancelled", intent.id)
        raise

    booking.stripe_payment_intent_id = intent.id
    booking.stripe_payment_status = Booking.PAYMENT_PENDING
    logger.info(
        "Created payment intent %s for booking %s (%s %s)",
        intent.id,
        booking.pk,
        amount_cents,
        currency,
    )
    return _result_from_intent(intent)
