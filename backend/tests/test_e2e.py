import hashlib
import hmac
import json
from decimal import Decimal

import pytest
from django.core import mail
from django.utils import timezone
from rest_framework.test import APIClient

from bookings.models import Booking
from cars.models import Car, Extra, Location


def _signed_headers(payload: str, secret: str) -> dict:
    timestamp = int(timezone.now().timestamp())
    digest = hmac.new(
        secret.encode("utf-8"), f"{timestamp}.{payload}".encode("utf-8"), hashlib.sha256
    ).hexdigest()
    return {"HTTP_STRIPE_SIGNATURE": f"t={timestamp},v1={digest}"}


def _register(client, email):
    response = client.post(
        "/api/auth/register/",
        {"email": email, "password": "pass12345", "first_name": "Test", "last_name": "Driver"},
        format="json",
    )
    assert response.status_code == 201
    return response.data


@pytest.mark.django_db
def test_end_to_end_booking_and_payment_flow(settings):
    settings.STRIPE_WEBHOOK_SECRET = "whsec_e2e"
    car = Car.objects.create(make="Honda", model="CR-V", year=2024, price_per_day=Decimal("72.00"))
    gps = Extra.objects.create(name="GPS navigator", price=Decimal("5.00"), per_day=True)
    Location.objects.create(value="airport", label="Airport", delivery_fee=Decimal("25.00"))

    client = APIClient()
    registration = _register(client, "renter@example.com")
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {registration['access']}")
    user_id = registration["user"]["id"]

    # Browse and check the dates
    catalog = client.get("/api/cars/", {"start_date": "2025-08-10", "end_date": "2025-08-13"})
    assert [item["id"] for item in catalog.data] == [car.id]
    availability = client.get(
        "/api/bookings/check-availability/",
        {"car_id": car.id, "start_date": "2025-08-10", "end_date": "2025-08-13"},
    )
    assert availability.data["available"] is True

    # Hold the car while checking out
    created = client.post(
        "/api/bookings/create-atomic/",
        {
            "car_id": car.id,
            "user_id": user_id,
            "start_date": "2025-08-10",
            "end_date": "2025-08-13",
            "pickup_time": "09:00",
            "return_time": "09:00",
            "status": "draft",
            "extras": [{"extra_id": gps.id, "quantity": 1}],
            "pickup_location": "airport",
        },
        format="json",
    )
    assert created.status_code == 200
    booking_id = created.data["booking"]["id"]
    assert created.data["booking"]["grand_total"] == "256.00"
    assert created.data["booking"]["expires_at"] is not None

    # Another renter cannot grab the same dates
    rival = APIClient()
    rival_registration = _register(rival, "rival@example.com")
    rival.credentials(HTTP_AUTHORIZATION=f"Bearer {rival_registration['access']}")
    conflict = rival.post(
        "/api/bookings/create-atomic/",
        {
            "car_id": car.id,
            "user_id": rival_registration["user"]["id"],
            "start_date": "2025-08-12",
            "end_date": "2025-08-15",
        },
        format="json",
    )
    assert conflict.status_code == 409
    assert conflict.data["reason"] == "overlap"

    # Pay
    intent = client.post(
        "/api/payments/create-payment-intent/", {"booking_id": booking_id}, format="json"
    )
    assert intent.status_code == 200
    assert intent.data["amount"] == 25600
    retry = client.post(
        "/api/payments/create-payment-intent/", {"booking_id": booking_id}, format="json"
    )
    assert retry.data["payment_intent_id"] == intent.data["payment_intent_id"]

    event = {
        "id": "evt_e2e",
        "type": "payment_intent.succeeded",
        "data": {
            "object": {
                "id": intent.data["payment_intent_id"],
                "object": "payment_intent",
                "status": "succeeded",
                "payment_method": "pm_card_visa",
                "metadata": {"booking_id": str(booking_id)},
            }
        },
    }
    payload = json.dumps(event)
    webhook = APIClient().post(
        "/api/webhooks/stripe/",
        data=payload,
        content_type="application/json",
        **_signed_headers(payload, "whsec_e2e"),
    )
    assert webhook.status_code == 200

    booking = Booking.objects.get(pk=booking_id)
    assert booking.status == Booking.CONFIRMED
    assert booking.expires_at is None
    confirmations = [message for message in mail.outbox if message.to == ["renter@example.com"]]
    assert [message.subject for message in confirmations] == [f"Booking #{booking_id} confirmed"]
    [office] = [message for message in mail.outbox if message.to == [settings.BOOKING_NOTIFICATION_EMAIL]]
    assert office.subject.startswith("New booking - ")
    assert "Airport" in office.body
    assert "GPS navigator (x1)" in office.body

    mine = client.get("/api/bookings/")
    assert [item["status"] for item in mine.data] == [Booking.CONFIRMED]
