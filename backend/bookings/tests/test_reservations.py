import threading
from datetime import date, time, timedelta
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.core import mail
from django.db import connection
from django.utils import timezone
from rest_framework.test import APIClient

from bookings.models import Booking, BookingExtra
from bookings.services.reservations import (
    BookingConflict,
    ExtraRequest,
    create_booking_atomic,
)
from cars.models import Car, Extra, Location
from promotions.models import DiscountCode

User = get_user_model()


@pytest.fixture
def client():
    return APIClient()


@pytest.fixture
def customer(db):
    return User.objects.create_user(
        username="driver@example.com",
        email="driver@example.com",
        password="examplepass",
        first_name="Dana",
        last_name="Driver",
    )


@pytest.fixture
def other_customer(db):
    return User.objects.create_user(
        username="other@example.com",
        email="other@example.com",
        password="examplepass",
    )


@pytest.fixture
def car(db):
    return Car.objects.create(make="Toyota", model="Corolla", year=2023, price_per_day=Decimal("45.00"))


@pytest.fixture
def child_seat(db):
    return Extra.objects.create(name="Child seat", price=Decimal("8.00"), per_day=True)


@pytest.fixture
def airport(db):
    return Location.objects.create(value="airport", label="Airport", delivery_fee=Decimal("25.00"))


@pytest.fixture
def welcome_code(db):
    today = timezone.localdate()
    return DiscountCode.objects.create(
        code="WELCOME10",
        discount_percentage=Decimal("10"),
        valid_from=today - timedelta(days=1),
        valid_to=today + timedelta(days=30),
        max_uses=5,
    )


def test_create_prices_the_rental_from_the_daily_rate(car, customer):
    booking = create_booking_atomic(
        car=car,
        user=customer,
        start_date=date(2025, 6, 1),
        end_date=date(2025, 6, 5),
    )

    assert booking.status == Booking.PENDING
    assert booking.total_price == Decimal("180.00")
    assert booking.car_rental_subtotal == Decimal("180.00")
    assert booking.grand_total == Decimal("180.00")
    assert booking.pickup_time == time(10)
    assert booking.return_time == time(10)
    assert booking.expires_at is None
    assert booking.customer_email == "driver@example.com"
    assert booking.customer_name == "Dana Driver"


def test_overlapping_request_is_rejected(car, customer, other_customer):
    create_booking_atomic(car=car, user=customer, start_date=date(2025, 6, 1), end_date=date(2025, 6, 5))

    with pytest.raises(BookingConflict) as excinfo:
        create_booking_atomic(
            car=car,
            user=other_customer,
            start_date=date(2025, 6, 4),
            end_date=date(2025, 6, 8),
        )

    assert excinfo.value.reason == "overlap"
    assert Booking.objects.filter(car=car).count() == 1


def test_back_to_back_rentals_on_separate_days_are_allowed(car, customer, other_customer):
    create_booking_atomic(car=car, user=customer, start_date=date(2025, 6, 1), end_date=date(2025, 6, 5))

    booking = create_booking_atomic(
        car=car,
        user=other_customer,
        start_date=date(2025, 6, 6),
        end_date=date(2025, 6, 8),
    )

    assert booking.pk is not None


def test_draft_holds_the_car_for_thirty_minutes(car, customer, other_customer):
    before = timezone.now()
    draft = create_booking_atomic(
        car=car,
        user=customer,
        start_date=date(2025, 6, 1),
        end_date=date(2025, 6, 5),
        status=Booking.DRAFT,
    )

    assert before + timedelta(minutes=30) <= draft.expires_at <= timezone.now() + timedelta(minutes=30)
    with pytest.raises(BookingConflict):
        create_booking_atomic(
            car=car,
            user=other_customer,
            start_date=date(2025, 6, 2),
            end_date=date(2025, 6, 3),
        )


def test_expired_draft_no_longer_blocks(car, customer, other_customer):
    draft = create_booking_atomic(
        car=car,
        user=customer,
        start_date=date(2025, 6, 1),
        end_date=date(2025, 6, 5),
        status=Booking.DRAFT,
    )
    Booking.objects.filter(pk=draft.pk).update(expires_at=timezone.now() - timedelta(minutes=1))

    booking = create_booking_atomic(
        car=car,
        user=other_customer,
        start_date=date(2025, 6, 2),
        end_date=date(2025, 6, 3),
    )

    assert booking.status == Booking.PENDING
    draft.refresh_from_db()
    assert draft.status == Booking.DRAFT


def test_disabled_car_cannot_be_booked(car, customer):
    car.available = False
    car.save(update_fields=["available"])

    with pytest.raises(BookingConflict) as excinfo:
        create_booking_atomic(car=car, user=customer, start_date=date(2025, 6, 1), end_date=date(2025, 6, 5))

    assert excinfo.value.reason == "unavailable"


def test_extras_fees_and_discount_flow_into_grand_total(car, customer, child_seat, airport, welcome_code):
    booking = create_booking_atomic(
        car=car,
        user=customer,
        start_date=date(2025, 6, 1),
        end_date=date(2025, 6, 5),
        extras=[ExtraRequest(extra=child_seat, quantity=1)],
        pickup_location=airport,
        discount_code=welcome_code,
    )

    line = BookingExtra.objects.get(booking=booking)
    assert line.unit_price == Decimal("32.00")
    assert booking.pickup_location == "airport"
    assert booking.pickup_delivery_fee == Decimal("25.00")
    assert booking.discount_amount == Decimal("18.00")
    assert booking.grand_total == Decimal("219.00")
    welcome_code.refresh_from_db()
    assert welcome_code.current_uses == 1


def test_return_before_pickup_is_rejected(car, customer):
    with pytest.raises(ValueError):
        create_booking_atomic(
            car=car,
            user=customer,
            start_date=date(2025, 6, 1),
            end_date=date(2025, 6, 1),
            pickup_time="14:00",
            return_time="10:00",
        )


def test_api_creates_booking_for_the_caller(client, car, customer, child_seat, airport, welcome_code):
    client.force_authenticate(user=customer)

    response = client.post(
        "/api/bookings/create-atomic/",
        {
            "car_id": car.id,
            "user_id": customer.id,
            "start_date": "2025-06-01",
            "end_date": "2025-06-05",
            "extras": [{"extra_id": child_seat.id, "quantity": 1}],
            "pickup_location": "airport",
            "discount_code": "welcome10",
        },
        format="json",
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["booking"]["grand_total"] == "219.00"
    assert body["booking"]["discount_code"] == "WELCOME10"
    assert body["booking"]["booking_extras"][0]["name"] == "Child seat"


def test_api_returns_409_on_overlap(client, car, customer, other_customer):
    create_booking_atomic(car=car, user=customer, start_date=date(2025, 6, 1), end_date=date(2025, 6, 5))
    client.force_authenticate(user=other_customer)

    response = client.post(
        "/api/bookings/create-atomic/",
        {
            "car_id": car.id,
            "user_id": other_customer.id,
            "start_date": "2025-06-04",
            "end_date": "2025-06-08",
        },
        format="json",
    )

    assert response.status_code == 409
    body = response.json()
    assert body["success"] is False
    assert body["reason"] == "overlap"
    assert Booking.objects.count() == 1


def test_api_forbids_booking_for_someone_else(client, car, customer, other_customer):
    client.force_authenticate(user=customer)

    response = client.post(
        "/api/bookings/create-atomic/",
        {
            "car_id": car.id,
            "user_id": other_customer.id,
            "start_date": "2025-06-01",
            "end_date": "2025-06-05",
        },
        format="json",
    )

    assert response.status_code == 403
    assert not Booking.objects.exists()


def test_api_rejects_exhausted_discount_code(client, car, customer, welcome_code):
    DiscountCode.objects.filter(pk=welcome_code.pk).update(current_uses=5)
    client.force_authenticate(user=customer)

    response = client.post(
        "/api/bookings/create-atomic/",
        {
            "car_id": car.id,
            "user_id": customer.id,
            "start_date": "2025-06-01",
            "end_date": "2025-06-05",
            "discount_code": "WELCOME10",
        },
        format="json",
    )

    assert response.status_code == 400
    assert "usage limit" in response.json()["error"]


def test_api_rejects_closed_statuses(client, car, customer):
    client.force_authenticate(user=customer)

    response = client.post(
        "/api/bookings/create-atomic/",
        {
            "car_id": car.id,
            "user_id": customer.id,
            "start_date": "2025-06-01",
            "end_date": "2025-06-05",
            "status": Booking.CANCELLED,
        },
        format="json",
    )

    assert response.status_code == 400
    assert "status" in response.json()["errors"]


def test_api_requires_authentication(client, car, customer):
    response = client.post(
        "/api/bookings/create-atomic/",
        {"car_id": car.id, "user_id": customer.id, "start_date": "2025-06-01", "end_date": "2025-06-05"},
        format="json",
    )

    assert response.status_code == 401


def test_api_confirmed_booking_notifies_customer_and_office(client, car, customer, child_seat, airport):
    client.force_authenticate(user=customer)

    response = client.post(
        "/api/bookings/create-atomic/",
        {
            "car_id": car.id,
            "user_id": customer.id,
            "start_date": "2025-06-01",
            "end_date": "2025-06-05",
            "status": Booking.CONFIRMED,
            "extras": [{"extra_id": child_seat.id, "quantity": 1}],
            "pickup_location": "airport",
        },
        format="json",
    )

    assert response.status_code == 200
    assert [message.to for message in mail.outbox] == [["driver@example.com"], ["office@example.com"]]
    office = mail.outbox[1]
    assert office.subject == "New booking - Dana Driver"
    assert "Vehicle: Toyota Corolla 2023" in office.body
    assert "Return: June 05, 2025 at 10:00, Airport" in office.body
    assert "Extras: Child seat (x1)" in office.body


def test_api_pending_booking_sends_no_mail(client, car, customer):
    client.force_authenticate(user=customer)

    response = client.post(
        "/api/bookings/create-atomic/",
        {"car_id": car.id, "user_id": customer.id, "start_date": "2025-06-01", "end_date": "2025-06-05"},
        format="json",
    )

    assert response.status_code == 200
    assert mail.outbox == []


def test_creator_locks_the_car_row_before_checking(monkeypatch, car, customer):
    locked = []
    original = Car.objects.select_for_update

    def recording_select_for_update(*args, **kwargs):
        locked.append(True)
        return original(*args, **kwargs)

    monkeypatch.setattr(Car.objects, "select_for_update", recording_select_for_update)

    create_booking_atomic(car=car, user=customer, start_date=date(2025, 6, 1), end_date=date(2025, 6, 5))

    assert locked == [True]


@pytest.mark.skipif(connection.vendor != "postgresql", reason="row locks need PostgreSQL")
def test_concurrent_creators_for_one_car_cannot_both_book(transactional_db):
    car = Car.objects.create(make="Mazda", model="3", year=2024, price_per_day=Decimal("50.00"))
    drivers = [
        User.objects.create_user(username=f"racer{n}@example.com", email=f"racer{n}@example.com", password="x")
        for n in range(2)
    ]
    barrier = threading.Barrier(len(drivers))
    outcomes = []

    def book(user):
        try:
            barrier.wait()
            create_booking_atomic(car=car, user=user, start_date=date(2025, 7, 1), end_date=date(2025, 7, 4))
            outcomes.append("booked")
        except BookingConflict:
            outcomes.append("conflict")
        finally:
            connection.close()

    threads = [threading.Thread(target=book, args=(user,)) for user in drivers]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(outcomes) == ["booked", "conflict"]
    assert Booking.objects.filter(car=car).count() == 1
