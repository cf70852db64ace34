from rest_framework import permissions, serializers, viewsets

from bookings.models import Booking
from .models import Car, Extra, Location
from .serializers import CarSerializer, ExtraSerializer, LocationSerializer


class IsStaffOrReadOnly(permissions.BasePermission):
    """Anyone may browse the catalog; only back-office staff may change it."""

    def has_permission(self, request, view):
        if request.method in permissions.SAFE_METHODS:
            return True
        return bool(request.user and request.user.is_staff)


class CarViewSet(viewsets.ModelViewSet):
    serializer_class = CarSerializer
    permission_classes = [IsStaffOrReadOnly]
    filterset_fields = ["category", "transmission", "seats", "available"]
    search_fields = ["make", "model", "category"]
    ordering_fields = ["price_per_day", "year", "seats"]

    def get_queryset(self):
        queryset = Car.objects.all().order_by("price_per_day", "id")
        if not (self.request.user and self.request.user.is_staff):
            queryset = queryset.filter(available=True)

        start_date = self.request.query_params.get("start_date")
        end_date = self.request.query_params.get("end_date")
        if start_date and end_date:
            field = serializers.DateField()
            try:
                start = field.to_internal_value(start_date)
                end = field.to_internal_value(end_date)
            except serializers.ValidationError:
                raise serializers.ValidationError(
                    {"detail": "start_date and end_date must be YYYY-MM-DD."}
                )
            booked_car_ids = (
                Booking.objects.blocking()
                .overlapping(start, end)
                .values_list("car_id", flat=True)
            )
            queryset = queryset.exclude(id__in=booked_car_ids)
        return queryset


class ExtraViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = ExtraSerializer
    permission_classes = [permissions.AllowAny]
    pagination_class = None

    def get_queryset(self):
        return Extra.objects.filter(active=True).order_by("name")


class LocationViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = LocationSerializer
    permission_classes = [permissions.AllowAny]
    pagination_class = None

    def get_queryset(self):
        return Location.objects.filter(active=True).order_by("label")
