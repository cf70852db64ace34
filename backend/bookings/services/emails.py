from __future__ import annotations

from django.conf import settings
from django.core.mail import send_mail

from bookings.models import Booking
from cars.models import Location


def send_booking_confirmation_email(*, booking: Booking):
    recipient = booking.customer_email or getattr(booking.user, "email", "")
    if not recipient:
        return 0

    amount = booking.grand_total if booking.grand_total is not None else booking.total_price
    body_lines = [
        f"Hi {booking.customer_name or recipient},",
        "",
        f"Your reservation of the {booking.car} is confirmed.",
        f"Pickup: {booking.start_date:%B %d, %Y} at {booking.pickup_time:%H:%M}",
        f"Return: {booking.end_date:%B %d, %Y} at {booking.return_time:%H:%M}",
        f"Total paid: ${amount:.2f}",
        "",
        f"View your booking: {settings.FRONTEND_URL.rstrip('/')}/bookings/{booking.pk}",
        "",
        "If you have any questions, simply reply to this email.",
    ]
    return send_mail(
        f"Booking #{booking.pk} confirmed",
        "\n".join(body_lines),
        settings.DEFAULT_FROM_EMAIL,
        [recipient],
        fail_silently=False,
    )


def _location_label(value: str) -> str:
    if not value:
        return "Location to be confirmed"
    location = Location.objects.filter(value=value).first()
    return location.label if location else value


def send_booking_notification_email(*, booking: Booking):
    """Tell the rental office about a newly confirmed booking."""
    recipient = getattr(settings, "BOOKING_NOTIFICATION_EMAIL", "")
    if not recipient or booking.status != Booking.CONFIRMED:
        return 0

    customer = booking.customer_name or getattr(booking.user, "full_name", "") or booking.customer_email
    pickup_label = _location_label(booking.pickup_location)
    return_label = _location_label(booking.return_location) if booking.return_location else pickup_label
    extras = [
        f"{line.extra.name} (x{line.quantity})"
        for line in booking.booking_extras.select_related("extra")
    ]
    amount = booking.grand_total if booking.grand_total is not None else booking.total_price
    body_lines = [
        f"Booking #{booking.pk}",
        f"Vehicle: {booking.car.make} {booking.car.model} {booking.car.year}",
        "",
        f"Customer: {customer}",
        f"Email: {booking.customer_email or getattr(booking.user, 'email', '')}",
        f"Phone: {getattr(booking.user, 'phone', '') or 'Not provided'}",
        "",
        f"Pickup: {booking.start_date:%B %d, %Y} at {booking.pickup_time:%H:%M}, {pickup_label}",
        f"Return: {booking.end_date:%B %d, %Y} at {booking.return_time:%H:%M}, {return_label}",
        f"Extras: {', '.join(extras) if extras else 'No extras'}",
        f"Total: ${amount:.2f}",
    ]
    return send_mail(
        f"New booking - {customer}",
        "\n".join(body_lines),
        settings.DEFAULT_FROM_EMAIL,
        [recipient],
        fail_silently=False,
    )
