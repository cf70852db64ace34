"""Thin wrapper over the Stripe SDK used by the payment services."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import stripe
from django.conf import settings

logger = logging.getLogger(__name__)


class PaymentGatewayError(Exception):
    """Stripe rejected a call or could not be reached."""


class GatewayConfigurationError(PaymentGatewayError):
    """Stripe keys are missing from the environment."""


class WebhookSignatureError(Exception):
    """Webhook payload is unsigned or its signature does not verify."""


@dataclass
class PaymentIntentStub:
    """
    Stand-in for stripe.PaymentIntent when running in stub mode.

    Local development does not hit Stripe; identifiers are derived from the
    idempotency key so repeated creation for one booking yields the same id.
    """

    id: str
    client_secret: str
    amount: int
    currency: str
    status: str = "requires_payment_method"
    payment_method: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class CustomerStub:
    id: str
    email: str


def _get_stripe_api_key() -> Optional[str]:
    key = getattr(settings, "STRIPE_SECRET_KEY", "")
    return key or None


def should_use_stub() -> bool:
    if getattr(settings, "STRIPE_USE_STUB", False):
        return True
    return _get_stripe_api_key() is None


def configure_stripe():
    api_key = _get_stripe_api_key()
    if not api_key:
        raise GatewayConfigurationError("Stripe secret key is not configured.")
    stripe.api_key = api_key


def _digest(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:24]


def find_or_create_customer(*, email: str, name: str = "", metadata: Dict[str, Any] | None = None):
    """Reuse the first Stripe customer registered under `email`, else create one."""
    if should_use_stub():
        return CustomerStub(id=f"cus_test_{_digest(email.lower())}", email=email)

    configure_stripe()
    try:
        existing = stripe.Customer.list(email=email, limit=1)
        matches = list(getattr(existing, "data", None) or [])
        if matches:
            return matches[0]
        return stripe.Customer.create(email=email, name=name or None, metadata=metadata or {})
    except stripe.StripeError as exc:
        logger.exception("Stripe customer lookup failed for %s", email)
        raise PaymentGatewayError(str(exc)) from exc


def create_payment_intent(
    *,
    amount_cents: int,
    currency: str,
    idempotency_key: str,
    metadata: Dict[str, Any],
    customer_id: str | None = None,
    receipt_email: str | None = None,
):
    if should_use_stub():
        token = _digest(idempotency_key)
        return PaymentIntentStub(
            id=f"pi_test_{token}",
            client_secret=f"pi_test_{token}_secret_stub",
            amount=amount_cents,
            currency=currency,
            metadata=dict(metadata),
        )

    configure_stripe()
    try:
        return stripe.PaymentIntent.create(
            amount=amount_cents,
            currency=currency,
            customer=customer_id or None,
            receipt_email=receipt_email or None,
            automatic_payment_methods={"enabled": True},
            metadata=metadata,
            idempotency_key=idempotency_key,
        )
    except stripe.StripeError as exc:
        logger.exception("Stripe payment intent creation failed (%s)", idempotency_key)
        raise PaymentGatewayError(str(exc)) from exc


def retrieve_payment_intent(intent_id: str):
    if should_use_stub():
        return PaymentIntentStub(
            id=intent_id,
            client_secret=f"{intent_id}_secret_stub",
            amount=0,
            currency=settings.STRIPE_CURRENCY,
        )

    configure_stripe()
    try:
        return stripe.PaymentIntent.retrieve(intent_id)
    except stripe.StripeError as exc:
        logger.exception("Stripe payment intent retrieval failed for %s", intent_id)
        raise PaymentGatewayError(str(exc)) from exc


def cancel_payment_intent(intent_id: str):
    if should_use_stub():
        return None

    configure_stripe()
    try:
        return stripe.PaymentIntent.cancel(intent_id)
    except stripe.StripeError as exc:
        logger.exception("Stripe payment intent cancellation failed for %s", intent_id)
        raise PaymentGatewayError(str(exc)) from exc


def parse_webhook_event(payload: bytes, sig_header: str | None) -> Dict[str, Any]:
    """
    Verify the Stripe-Signature header against the raw body and build the event.

    `stripe.Webhook.construct_event` checks the signature before it decodes
    anything; the event is handed on as a plain dict.
    """
    secret = getattr(settings, "STRIPE_WEBHOOK_SECRET", "")
    if not secret:
        raise GatewayConfigurationError("Stripe webhook secret is not configured.")
    if not sig_header:
        raise WebhookSignatureError("No Stripe signature found")

    body = payload.decode("utf-8") if isinstance(payload, bytes) else payload
    try:
        event = stripe.Webhook.construct_event(body, sig_header, secret)
    except stripe.SignatureVerificationError as exc:
        raise WebhookSignatureError("Invalid signature") from exc
    except ValueError as exc:
        raise WebhookSignatureError("Invalid payload") from exc
    return event.to_dict()
