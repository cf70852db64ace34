from __future__ import annotations

from dataclasses import dataclass

from django.utils import timezone

from promotions.models import DiscountCode


@dataclass(frozen=True)
class DiscountCheck:
    valid: bool
    message: str
    discount_code: DiscountCode | None = None


def check_discount_code(discount_code: DiscountCode, *, now=None) -> DiscountCheck:
    """Apply the active / date window / usage cap rules to a stored code."""
    # valid_from and valid_to both cover their full day
    today = timezone.localdate(now or timezone.now())

    if not discount_code.active:
        return DiscountCheck(False, "This discount code is no longer active")
    if today < discount_code.valid_from:
        return DiscountCheck(False, "This discount code is not yet valid")
    if today > discount_code.valid_to:
        return DiscountCheck(False, "This discount code has expired")
    if discount_code.max_uses and discount_code.current_uses >= discount_code.max_uses:
        return DiscountCheck(False, "This discount code has reached its usage limit")
    return DiscountCheck(True, "Discount code applied successfully", discount_code)


def validate_discount_code(code: str, *, now=None) -> DiscountCheck:
    code = (code or "").strip()
    if not code:
        raise ValueError("Discount code is required")
    discount_code = DiscountCode.objects.filter(code__iexact=code).first()
    if discount_code is None:
        return DiscountCheck(False, "Invalid discount code")
    return check_discount_code(discount_code, now=now)
