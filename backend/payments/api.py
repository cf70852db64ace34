import logging

from django.db import DatabaseError
from rest_framework import permissions, serializers, status
from rest_framework.response import Response
from rest_framework.views import APIView

from bookings.models import Booking
from bookings.serializers import first_error_message
from payments.services import gateway
from payments.services.intents import BookingStateError, create_or_reuse_payment_intent
from payments.services.reconciliation import check_payment_status, handle_webhook_event

logger = logging.getLogger(__name__)


class PaymentIntentRequestSerializer(serializers.Serializer):
    booking_id = serializers.IntegerField()
    currency = serializers.CharField(required=False, allow_blank=True, max_length=3)
    customer_email = serializers.EmailField(required=False, allow_blank=True)
    customer_name = serializers.CharField(required=False, allow_blank=True, max_length=255)
    customerEmail = serializers.EmailField(required=False, allow_blank=True)
    customerName = serializers.CharField(required=False, allow_blank=True, max_length=255)
    metadata = serializers.DictField(child=serializers.CharField(), required=False)


class PaymentStatusRequestSerializer(serializers.Serializer):
    booking_id = serializers.IntegerField()


def _request_error(errors) -> str:
    if "booking_id" in errors:
        return "Booking ID is required"
    return first_error_message(errors)


def _load_owned_booking(request, booking_id):
    """Return (booking, error_response); staff may act on any booking."""
    try:
        booking = Booking.objects.select_related("user", "car").get(pk=booking_id)
    except Booking.DoesNotExist:
        return None, Response(
            {"success": False, "error": "Booking not found"},
            status=status.HTTP_404_NOT_FOUND,
        )
    if not request.user.is_staff and booking.user_id != request.user.pk:
        return None, Response(
            {"success": False, "error": "You do not have access to this booking."},
            status=status.HTTP_403_FORBIDDEN,
        )
    return booking, None


class CreatePaymentIntentView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, *args, **kwargs):
        serializer = PaymentIntentRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {"success": False, "error": _request_error(serializer.errors)},
                status=status.HTTP_400_BAD_REQUEST,
            )
        data = serializer.validated_data
        booking, error = _load_owned_booking(request, data["booking_id"])
        if error is not None:
            return error

        try:
            result = create_or_reuse_payment_intent(
                booking,
                currency=data.get("currency") or None,
                customer_email=data.get("customer_email") or data.get("customerEmail") or None,
                customer_name=data.get("customer_name") or data.get("customerName") or None,
                metadata=data.get("metadata"),
            )
        except (BookingStateError, ValueError) as exc:
            return Response({"success": False, "error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        except gateway.PaymentGatewayError as exc:
            return Response(
                {"success": False, "error": f"Payment provider error: {exc}"},
                status=status.HTTP_400_BAD_REQUEST,
            )
        return Response(result.as_response())


class CheckPaymentStatusView(APIView):
    """Client-side poll that pulls the intent state from Stripe after checkout."""

    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, *args, **kwargs):
        serializer = PaymentStatusRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {"success": False, "error": _request_error(serializer.errors)},
                status=status.HTTP_400_BAD_REQUEST,
            )
        booking, error = _load_owned_booking(request, serializer.validated_data["booking_id"])
        if error is not None:
            return error

        try:
            result = check_payment_status(booking)
        except ValueError as exc:
            return Response({"success": False, "error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        except gateway.PaymentGatewayError as exc:
            return Response(
                {"success": False, "error": f"Payment provider error: {exc}"},
                status=status.HTTP_400_BAD_REQUEST,
            )
        return Response(result.as_response())


class StripeWebhookView(APIView):
    """Receive Stripe payment events."""

    permission_classes: list = []
    authentication_classes: list = []

    def post(self, request, *args, **kwargs):
        payload = request.body
        sig_header = request.META.get("HTTP_STRIPE_SIGNATURE")

        try:
            event = gateway.parse_webhook_event(payload, sig_header)
        except gateway.GatewayConfigurationError as exc:
            logger.error("Stripe webhook rejected: %s", exc)
            return Response(
                {"error": "Webhook not configured"},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )
        except gateway.WebhookSignatureError as exc:
            logger.warning("Stripe webhook rejected: %s", exc)
            return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        try:
            handle_webhook_event(event)
        except DatabaseError:
            # non-2xx makes Stripe redeliver; every handler is safe to replay
            logger.exception("Stripe webhook %s failed", event.get("id"))
            return Response(
                {"error": "Webhook processing failed"},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )
        return Response({"received": True})
