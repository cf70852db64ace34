from datetime import timedelta
from decimal import Decimal

import pytest
from django.db import IntegrityError, transaction
from django.utils import timezone
from rest_framework.test import APIClient

from promotions.models import Campaign, DiscountCode
from promotions.services.discounts import check_discount_code, validate_discount_code


@pytest.fixture
def client():
    return APIClient()


@pytest.fixture
def today():
    return timezone.localdate()


@pytest.fixture
def code(db, today):
    return DiscountCode.objects.create(
        code="SUMMER15",
        discount_percentage=Decimal("15"),
        valid_from=today - timedelta(days=3),
        valid_to=today + timedelta(days=3),
        max_uses=10,
        current_uses=2,
    )


def test_lookup_is_case_insensitive(code):
    check = validate_discount_code("  summer15 ")

    assert check.valid is True
    assert check.discount_code == code
    assert check.message == "Discount code applied successfully"


def test_unknown_code_is_invalid(db):
    check = validate_discount_code("NOPE")

    assert check.valid is False
    assert check.message == "Invalid discount code"


def test_blank_code_raises(db):
    with pytest.raises(ValueError):
        validate_discount_code("   ")


def test_inactive_code_is_rejected(code):
    code.active = False

    assert check_discount_code(code).message == "This discount code is no longer active"


def test_validity_window_includes_both_end_days(code, today):
    code.valid_from = today
    code.valid_to = today
    assert check_discount_code(code).valid is True

    code.valid_from = today + timedelta(days=1)
    code.valid_to = today + timedelta(days=5)
    assert check_discount_code(code).message == "This discount code is not yet valid"

    code.valid_from = today - timedelta(days=5)
    code.valid_to = today - timedelta(days=1)
    assert check_discount_code(code).message == "This discount code has expired"


def test_usage_cap_is_enforced(code):
    code.current_uses = code.max_uses

    assert check_discount_code(code).message == "This discount code has reached its usage limit"


def test_codes_are_unique_ignoring_case(code, today):
    with pytest.raises(IntegrityError), transaction.atomic():
        DiscountCode.objects.create(
            code="summer15",
            discount_percentage=Decimal("5"),
            valid_from=today,
            valid_to=today,
        )


def test_validate_endpoint(client, code):
    response = client.get("/api/discount-codes/validate/", {"code": "summer15"})

    assert response.status_code == 200
    body = response.json()
    assert body["valid"] is True
    assert body["data"] == {"id": code.id, "code": "SUMMER15", "discount_percentage": "15.00"}


def test_validate_endpoint_requires_a_code(client, db):
    response = client.get("/api/discount-codes/validate/")

    assert response.status_code == 400
    assert response.json() == {"valid": False, "message": "Discount code is required"}


def test_validate_endpoint_reports_invalid_codes_without_data(client, code):
    code.active = False
    code.save(update_fields=["active"])

    response = client.get("/api/discount-codes/validate/", {"code": "SUMMER15"})

    assert response.status_code == 200
    assert response.json() == {"valid": False, "message": "This discount code is no longer active"}


def test_campaign_list_shows_running_campaigns(client, db, today):
    Campaign.objects.create(name="Spring", valid_from=today - timedelta(days=10), valid_to=today + timedelta(days=1))
    Campaign.objects.create(name="Winter", valid_from=today - timedelta(days=90), valid_to=today - timedelta(days=30))
    Campaign.objects.create(
        name="Paused", valid_from=today, valid_to=today + timedelta(days=10), active=False
    )

    response = client.get("/api/campaigns/")

    assert response.status_code == 200
    assert [item["name"] for item in response.json()] == ["Spring"]
