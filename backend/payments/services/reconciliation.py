"""
Fold Stripe payment state into booking rows.

Two feeds race here: Stripe's webhooks (push) and the client polling
`check_payment_status` (pull). Every write is a narrow UPDATE filtered on the
booking id and its stored intent id, so both feeds can run any number of
times in any order and converge on the same row.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from smtplib import SMTPException
from typing import Any, Callable, Dict, Optional, Tuple

from django.db import transaction

from bookings.models import Booking
from bookings.services.emails import send_booking_confirmation_email, send_booking_notification_email
from cars.models import Car
from payments.services import gateway

logger = logging.getLogger(__name__)

OPEN_STATUSES = (Booking.DRAFT, Booking.PENDING)


class WebhookEventKind(str, Enum):
    PAYMENT_SUCCEEDED = "payment_intent.succeeded"
    PAYMENT_FAILED = "payment_intent.payment_failed"
    PAYMENT_CANCELED = "payment_intent.canceled"
    CHARGE_REFUNDED = "charge.refunded"
    UNHANDLED = "unhandled"

    @classmethod
    def from_event_type(cls, event_type: str | None) -> "WebhookEventKind":
        try:
            kind = cls(event_type)
        except ValueError:
            return cls.UNHANDLED
        return kind


@dataclass
class PaymentStatusResult:
    booking_id: int
    payment_intent_status: str
    updated: bool
    update_data: Dict[str, Any] = field(default_factory=dict)

    def as_response(self) -> Dict[str, Any]:
        return {
            "success": True,
            "booking_id": self.booking_id,
            "payment_intent_status": self.payment_intent_status,
            "updated": self.updated,
            "update_data": self.update_data,
        }


def _value(obj: Any, key: str, default: Any = None) -> Any:
    """Read a field from a Stripe object or a decoded webhook dict."""
    if isinstance(obj, dict):
        return obj.get(key, default)
    return getattr(obj, key, default)


def _object_id(value: Any) -> str:
    if not value:
        return ""
    if isinstance(value, str):
        return value
    return _value(value, "id", "") or ""


def _confirmed_fields(intent: Any) -> Dict[str, Any]:
    return {
        "status": Booking.CONFIRMED,
        "stripe_payment_status": Booking.PAYMENT_SUCCEEDED,
        "stripe_payment_method_id": _object_id(_value(intent, "payment_method")),
        "expires_at": None,
    }


def booking_update_for_intent(intent: Any) -> Dict[str, Any]:
    """Translate a gateway intent status into the booking fields it implies."""
    intent_status = _value(intent, "status", "")
    if intent_status == "succeeded":
        return _confirmed_fields(intent)
    if intent_status == "processing":
        return {"stripe_payment_status": Booking.PAYMENT_PROCESSING}
    if intent_status == "canceled":
        return {"status": Booking.CANCELLED, "stripe_payment_status": Booking.PAYMENT_CANCELED}
    if intent_status in ("requires_payment_method", "requires_confirmation", "requires_action"):
        return {"stripe_payment_status": Booking.PAYMENT_PENDING}
    return {"stripe_payment_status": intent_status}


def apply_booking_update(booking_id: int, intent_id: str, update: Dict[str, Any]) -> int:
    """
    Write `update` onto the booking that owns `intent_id`; returns rows touched.

    Status changes only move open (draft/pending) bookings, so a cancelled or
    completed booking is never resurrected. The confirmation e-mail goes out
    only for the write that actually moves a booking into `confirmed`.
    """
    queryset = Booking.objects.filter(pk=booking_id, stripe_payment_intent_id=intent_id)
    new_status = update.get("status")

    if new_status == Booking.CONFIRMED:
        rows, confirmed = _confirm_open_booking(queryset, update)
        if confirmed:
            logger.info("Booking %s confirmed by payment %s", booking_id, intent_id)
            _notify_confirmed(booking_id)
            return rows
        if rows:
            return rows
        mirror = {key: value for key, value in update.items() if key != "status"}
        rows = queryset.filter(status=Booking.CONFIRMED).update(**mirror)
        if not rows and queryset.exists():
            logger.warning(
                "Payment %s succeeded but booking %s is closed; refund may be required",
                intent_id,
                booking_id,
            )
        return rows

    if new_status == Booking.CANCELLED:
        return queryset.filter(status__in=OPEN_STATUSES).update(**update)

    return queryset.update(**update)


def _confirm_open_booking(queryset, update: Dict[str, Any]) -> Tuple[int, bool]:
    """
    Move an open booking to `confirmed` under the same car lock the atomic
    creator takes. An expired draft whose dates were rebooked meanwhile only
    records the payment and stays a draft.
    """
    with transaction.atomic():
        booking = (
            queryset.filter(status__in=OPEN_STATUSES)
            .only("id", "car_id", "start_date", "end_date", "status", "expires_at")
            .first()
        )
        if booking is None:
            return 0, False

        Car.objects.select_for_update().get(pk=booking.car_id)
        if booking.is_expired_draft:
            taken = (
                Booking.objects.for_car(booking.car_id)
                .blocking()
                .overlapping(booking.start_date, booking.end_date)
                .exclude(pk=booking.pk)
                .exists()
            )
            if taken:
                logger.warning(
                    "Payment for expired draft %s succeeded but its dates were rebooked; refund may be required",
                    booking.pk,
                )
                mirror = {key: value for key, value in update.items() if key not in ("status", "expires_at")}
                return queryset.filter(pk=booking.pk).update(**mirror), False

        rows = queryset.filter(pk=booking.pk, status__in=OPEN_STATUSES).update(**update)
    return rows, bool(rows)


def _notify_confirmed(booking_id: int) -> None:
    booking = Booking.objects.select_related("car", "user").get(pk=booking_id)
    try:
        send_booking_confirmation_email(booking=booking)
    except (SMTPException, OSError):
        logger.exception("Booking %s confirmed but the confirmation email failed", booking_id)
    try:
        send_booking_notification_email(booking=booking)
    except (SMTPException, OSError):
        logger.exception("Booking %s confirmed but the office notification failed", booking_id)


def check_payment_status(booking: Booking) -> PaymentStatusResult:
    """Pull the intent's current state from Stripe and mirror it onto the booking."""
    if not booking.stripe_payment_intent_id:
        raise ValueError("No payment intent ID found for this booking")

    intent = gateway.retrieve_payment_intent(booking.stripe_payment_intent_id)
    intent_status = _value(intent, "status", "")
    logger.info("Payment intent %s is %s for booking %s", intent.id, intent_status, booking.pk)

    update = booking_update_for_intent(intent)
    rows = apply_booking_update(booking.pk, booking.stripe_payment_intent_id, update)
    return PaymentStatusResult(
        booking_id=booking.pk,
        payment_intent_status=intent_status,
        updated=bool(rows),
        update_data=update,
    )


def _booking_id_from_metadata(intent: Dict[str, Any]) -> Optional[int]:
    metadata = _value(intent, "metadata") or {}
    raw = _value(metadata, "booking_id")
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def _on_payment_succeeded(intent: Dict[str, Any]) -> None:
    booking_id = _booking_id_from_metadata(intent)
    if booking_id is None:
        logger.warning("payment_intent.succeeded %s carries no booking_id", _value(intent, "id"))
        return
    apply_booking_update(booking_id, _value(intent, "id"), _confirmed_fields(intent))


def _on_payment_failed(intent: Dict[str, Any]) -> None:
    booking_id = _booking_id_from_metadata(intent)
    if booking_id is None:
        return
    # booking status stays put so the customer can retry with another card
    apply_booking_update(
        booking_id,
        _value(intent, "id"),
        {"stripe_payment_status": Booking.PAYMENT_FAILED},
    )
    logger.info("Payment %s failed for booking %s", _value(intent, "id"), booking_id)


def _on_payment_canceled(intent: Dict[str, Any]) -> None:
    booking_id = _booking_id_from_metadata(intent)
    if booking_id is None:
        return
    apply_booking_update(
        booking_id,
        _value(intent, "id"),
        {"status": Booking.CANCELLED, "stripe_payment_status": Booking.PAYMENT_CANCELED},
    )


def _on_charge_refunded(charge: Dict[str, Any]) -> None:
    intent_id = _object_id(_value(charge, "payment_intent"))
    if not intent_id:
        return
    rows = (
        Booking.objects.filter(stripe_payment_intent_id=intent_id)
        .exclude(status=Booking.CANCELLED)
        .update(status=Booking.CANCELLED, expires_at=None)
    )
    if rows:
        logger.info("Booking for payment %s cancelled after refund", intent_id)


_HANDLERS: Dict[WebhookEventKind, Callable[[Dict[str, Any]], None]] = {
    WebhookEventKind.PAYMENT_SUCCEEDED: _on_payment_succeeded,
    WebhookEventKind.PAYMENT_FAILED: _on_payment_failed,
    WebhookEventKind.PAYMENT_CANCELED: _on_payment_canceled,
    WebhookEventKind.CHARGE_REFUNDED: _on_charge_refunded,
}


def handle_webhook_event(event: Dict[str, Any]) -> WebhookEventKind:
    """Dispatch a verified Stripe event; unknown types are acknowledged and ignored."""
    event_type = event.get("type")
    kind = WebhookEventKind.from_event_type(event_type)
    handler = _HANDLERS.get(kind)
    if handler is None:
        logger.info("Ignoring Stripe event %s", event_type)
        return kind

    data_object = (event.get("data") or {}).get("object") or {}
    logger.info("Handling Stripe event %s (%s)", event_type, event.get("id"))
    handler(data_object)
    return kind
