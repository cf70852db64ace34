import logging
from smtplib import SMTPException

from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from bookings.models import Booking
from bookings.serializers import (
    AvailabilityQuerySerializer,
    BookingCreateSerializer,
    BookingSerializer,
    first_error_message,
)
from bookings.services.availability import check_car_availability
from bookings.services.emails import send_booking_confirmation_email, send_booking_notification_email
from bookings.services.reservations import BookingConflict, ExtraRequest, create_booking_atomic

logger = logging.getLogger(__name__)


class CheckCarAvailabilityView(APIView):
    """Advisory whole-day availability lookup for the booking form."""

    permission_classes = [permissions.AllowAny]

    def get(self, request, *args, **kwargs):
        query = AvailabilityQuerySerializer(data=request.query_params)
        if not query.is_valid():
            return Response(
                {"available": False, "error": first_error_message(query.errors)},
                status=status.HTTP_400_BAD_REQUEST,
            )
        try:
            result = check_car_availability(**query.validated_data)
        except ValueError as exc:
            return Response(
                {"available": False, "error": str(exc)},
                status=status.HTTP_400_BAD_REQUEST,
            )
        return Response({"available": result.available, "message": result.message})


def _send_confirmed_booking_emails(booking):
    for send in (send_booking_confirmation_email, send_booking_notification_email):
        try:
            send(booking=booking)
        except (SMTPException, OSError):
            logger.exception("Booking %s created as confirmed but %s failed", booking.pk, send.__name__)


class CreateBookingAtomicView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, *args, **kwargs):
        serializer = BookingCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {"success": False, "error": first_error_message(serializer.errors), "errors": serializer.errors},
                status=status.HTTP_400_BAD_REQUEST,
            )
        data = serializer.validated_data
        if not request.user.is_staff and data["user"].pk != request.user.pk:
            return Response(
                {"success": False, "error": "You can only create bookings for your own account."},
                status=status.HTTP_403_FORBIDDEN,
            )

        try:
            booking = create_booking_atomic(
                car=data["car"],
                user=data["user"],
                start_date=data["start_date"],
                end_date=data["end_date"],
                pickup_time=data.get("pickup_time") or None,
                return_time=data.get("return_time") or None,
                status=data["status"],
                total_price=data.get("total_price"),
                extras=[ExtraRequest(extra=item["extra"], quantity=item["quantity"]) for item in data.get("extras", [])],
                pickup_location=data.get("pickup_location"),
                return_location=data.get("return_location"),
                discount_code=data.get("discount_code"),
            )
        except BookingConflict as exc:
            return Response(
                {"success": False, "error": str(exc), "reason": exc.reason},
                status=status.HTTP_409_CONFLICT,
            )
        except ValueError as exc:
            return Response({"success": False, "error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        if booking.status == Booking.CONFIRMED:
            _send_confirmed_booking_emails(booking)
        return Response({"success": True, "booking": BookingSerializer(booking).data})


class BookingViewSet(viewsets.ReadOnlyModelViewSet):
    """Customers see their own bookings; staff see every booking."""

    serializer_class = BookingSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ["status", "car"]
    ordering_fields = ["start_date", "created_at"]

    def get_queryset(self):
        queryset = Booking.objects.select_related("car", "discount_code").prefetch_related(
            "booking_extras__extra"
        )
        if self.request.user.is_staff:
            return queryset
        return queryset.filter(user=self.request.user)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        booking = self.get_object()
        cancellable = Booking.BLOCKING_STATUSES if request.user.is_staff else (Booking.DRAFT, Booking.PENDING)
        updated = (
            Booking.objects.filter(pk=booking.pk, status__in=cancellable)
            .update(status=Booking.CANCELLED, expires_at=None)
        )
        if not updated:
            return Response(
                {"detail": f"A {booking.status} booking cannot be cancelled."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        logger.info("Booking %s cancelled by user %s", booking.pk, request.user.pk)
        booking.refresh_from_db()
        return Response(BookingSerializer(booking).data)
