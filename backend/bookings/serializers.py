from django.contrib.auth import get_user_model
from rest_framework import serializers

from bookings.models import Booking, BookingExtra
from bookings.services.reservations import CREATABLE_STATUSES
from cars.models import Car, Extra, Location
from promotions.services.discounts import validate_discount_code

User = get_user_model()


class AvailabilityQuerySerializer(serializers.Serializer):
    car_id = serializers.IntegerField()
    start_date = serializers.DateField()
    end_date = serializers.DateField()


class ExtraRequestSerializer(serializers.Serializer):
    extra_id = serializers.PrimaryKeyRelatedField(
        queryset=Extra.objects.filter(active=True),
        source="extra",
    )
    quantity = serializers.IntegerField(min_value=1, required=False, default=1)


class BookingCreateSerializer(serializers.Serializer):
    car_id = serializers.PrimaryKeyRelatedField(queryset=Car.objects.all(), source="car")
    user_id = serializers.PrimaryKeyRelatedField(queryset=User.objects.all(), source="user")
    start_date = serializers.DateField()
    end_date = serializers.DateField()
    pickup_time = serializers.CharField(required=False, allow_blank=True)
    return_time = serializers.CharField(required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=CREATABLE_STATUSES, required=False, default=Booking.PENDING)
    total_price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, required=False)
    extras = ExtraRequestSerializer(many=True, required=False)
    pickup_location = serializers.SlugRelatedField(
        slug_field="value",
        queryset=Location.objects.filter(active=True),
        required=False,
        allow_null=True,
    )
    return_location = serializers.SlugRelatedField(
        slug_field="value",
        queryset=Location.objects.filter(active=True),
        required=False,
        allow_null=True,
    )
    discount_code = serializers.CharField(required=False, allow_blank=True)

    def validate_discount_code(self, value):
        if not value:
            return None
        check = validate_discount_code(value)
        if not check.valid:
            raise serializers.ValidationError(check.message)
        return check.discount_code

    def validate_extras(self, value):
        extra_ids = [item["extra"].id for item in value]
        if len(set(extra_ids)) != len(extra_ids):
            raise serializers.ValidationError("Each extra may only be listed once.")
        return value

    def validate(self, attrs):
        if attrs["end_date"] < attrs["start_date"]:
            raise serializers.ValidationError({"end_date": "End date must not be before the start date."})
        return attrs


class BookingExtraSerializer(serializers.ModelSerializer):
    extra_id = serializers.IntegerField(source="extra.id", read_only=True)
    name = serializers.CharField(source="extra.name", read_only=True)

    class Meta:
        model = BookingExtra
        fields = ["extra_id", "name", "quantity", "unit_price", "total_price"]


class BookingSerializer(serializers.ModelSerializer):
    car_name = serializers.CharField(source="car.__str__", read_only=True)
    user_id = serializers.IntegerField(read_only=True)
    car_id = serializers.IntegerField(read_only=True)
    discount_code = serializers.CharField(source="discount_code.code", read_only=True, default=None)
    booking_extras = BookingExtraSerializer(many=True, read_only=True)

    class Meta:
        model = Booking
        fields = [
            "id",
            "car_id",
            "car_name",
            "user_id",
            "start_date",
            "end_date",
            "pickup_time",
            "return_time",
            "pickup_location",
            "return_location",
            "status",
            "total_price",
            "car_rental_subtotal",
            "pickup_delivery_fee",
            "return_delivery_fee",
            "discount_code",
            "discount_amount",
            "grand_total",
            "booking_extras",
            "expires_at",
            "stripe_payment_intent_id",
            "stripe_payment_status",
            "customer_email",
            "customer_name",
            "created_at",
        ]
        read_only_fields = fields


def first_error_message(errors) -> str:
    """Flatten DRF's nested error structure into one human-readable line."""
    if isinstance(errors, dict):
        for field, value in errors.items():
            message = first_error_message(value)
            if field in ("non_field_errors", "detail"):
                return message
            return f"{field}: {message}"
    if isinstance(errors, list) and errors:
        return first_error_message(errors[0])
    return str(errors)
