from datetime import date, time
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from bookings.models import Booking
from cars.models import Car

User = get_user_model()


@pytest.fixture
def client():
    return APIClient()


@pytest.fixture
def driver(db):
    return User.objects.create_user(
        username="driver@example.com",
        email="driver@example.com",
        password="examplepass",
        first_name="Dana",
        last_name="Driver",
    )


def _login(client, email, password):
    return client.post("/api/auth/login/", {"email": email, "password": password}, format="json")


def test_signup_with_driver_details_is_ready_to_book(db, client):
    response = client.post(
        "/api/auth/register/",
        {
            "email": "Renter@Example.com",
            "password": "password123",
            "first_name": "Ada",
            "last_name": "Lovelace",
            "phone": "555-0142",
            "license_number": "d12 345 678",
        },
        format="json",
    )

    assert response.status_code == 201
    body = response.json()
    assert body["access"] and body["refresh"]
    assert body["user"]["email"] == "renter@example.com"
    assert body["user"]["license_number"] == "D12345678"
    assert body["user"]["driver_details_complete"] is True
    assert body["user"]["active_bookings"] == 0
    customer = User.objects.get(email="renter@example.com")
    assert customer.username == "renter@example.com"
    assert customer.display_name == "Ada Lovelace"


def test_signup_without_licence_still_needs_driver_details(db, client):
    response = client.post(
        "/api/auth/register/",
        {"email": "walkin@example.com", "password": "password123"},
        format="json",
    )

    assert response.status_code == 201
    assert response.json()["user"]["driver_details_complete"] is False
    assert response.json()["user"]["display_name"] == "walkin@example.com"


def test_signup_email_is_unique_regardless_of_case(client, driver):
    response = client.post(
        "/api/auth/register/",
        {"email": "DRIVER@example.com", "password": "password123"},
        format="json",
    )

    assert response.status_code == 400
    assert "email" in response.json()


def test_signup_runs_configured_password_validators(settings, db, client):
    settings.AUTH_PASSWORD_VALIDATORS = [
        {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
    ]

    response = client.post(
        "/api/auth/register/",
        {"email": "digits@example.com", "password": "12345678"},
        format="json",
    )

    assert response.status_code == 400
    assert "password" in response.json()
    assert not User.objects.filter(email="digits@example.com").exists()


def test_login_by_email_returns_tokens_and_account(client, driver):
    response = _login(client, "Driver@Example.com", "examplepass")

    assert response.status_code == 200
    data = response.json()
    assert set(data) == {"access", "refresh", "user"}
    assert data["user"]["full_name"] == "Dana Driver"

    refreshed = client.post("/api/auth/refresh/", {"refresh": data["refresh"]}, format="json")
    assert refreshed.status_code == 200
    assert "access" in refreshed.json()


def test_login_with_wrong_password_is_unauthorized(client, driver):
    response = _login(client, "driver@example.com", "not-the-password")

    assert response.status_code == 401


def test_me_requires_authentication(db, client):
    assert client.get("/api/auth/me/").status_code == 401


def test_me_counts_only_bookings_that_hold_a_car(client, driver):
    car = Car.objects.create(make="Toyota", model="Corolla", year=2023, price_per_day=Decimal("45.00"))
    for status, start in [
        (Booking.PENDING, date(2025, 6, 1)),
        (Booking.CONFIRMED, date(2025, 7, 1)),
        (Booking.CANCELLED, date(2025, 8, 1)),
    ]:
        Booking.objects.create(
            car=car,
            user=driver,
            start_date=start,
            end_date=start.replace(day=3),
            pickup_time=time(10),
            return_time=time(10),
            total_price=Decimal("90.00"),
            status=status,
        )
    access = _login(client, "driver@example.com", "examplepass").json()["access"]
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {access}")

    response = client.get("/api/auth/me/")

    assert response.status_code == 200
    assert response.json()["active_bookings"] == 2


def test_me_patch_stores_driver_details_but_not_staff_flag(client, driver):
    client.force_authenticate(user=driver)

    response = client.patch(
        "/api/auth/me/",
        {"phone": "555-0199", "license_number": " x9 87 ", "address": "1 Main St", "is_staff": True},
        format="json",
    )

    assert response.status_code == 200
    data = response.json()
    assert data["license_number"] == "X987"
    assert data["driver_details_complete"] is True
    assert data["is_staff"] is False
    driver.refresh_from_db()
    assert driver.is_staff is False
    assert driver.address == "1 Main St"


def test_me_patch_email_change_moves_the_login(client, driver):
    client.force_authenticate(user=driver)

    response = client.patch("/api/auth/me/", {"email": "Dana@Example.com"}, format="json")

    assert response.status_code == 200
    driver.refresh_from_db()
    assert driver.email == "dana@example.com"
    assert driver.username == "dana@example.com"
    client.force_authenticate(user=None)
    assert _login(client, "dana@example.com", "examplepass").status_code == 200


def test_me_patch_rejects_an_email_owned_by_another_account(client, driver):
    User.objects.create_user(username="taken@example.com", email="taken@example.com", password="password123")
    client.force_authenticate(user=driver)

    response = client.patch("/api/auth/me/", {"email": "TAKEN@example.com"}, format="json")

    assert response.status_code == 400
    assert "email" in response.json()


@pytest.mark.parametrize(
    "payload, field",
    [
        ({"current_password": "wrongpass", "new_password": "newsecurepass"}, "current_password"),
        ({"current_password": "examplepass", "new_password": "examplepass"}, "new_password"),
    ],
)
def test_change_password_rejections(client, driver, payload, field):
    client.force_authenticate(user=driver)

    response = client.post("/api/auth/change-password/", payload, format="json")

    assert response.status_code == 400
    assert field in response.json()


def test_change_password_then_sign_in_with_it(client, driver):
    client.force_authenticate(user=driver)

    response = client.post(
        "/api/auth/change-password/",
        {"current_password": "examplepass", "new_password": "newsecurepass"},
        format="json",
    )

    assert response.status_code == 204
    client.force_authenticate(user=None)
    assert _login(client, "driver@example.com", "examplepass").status_code == 401
    assert _login(client, "driver@example.com", "newsecurepass").status_code == 200
