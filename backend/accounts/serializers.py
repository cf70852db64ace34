from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from bookings.models import Booking

User = get_user_model()

DRIVER_FIELDS = ["phone", "address", "license_number"]


def normalize_license_number(value: str) -> str:
    """Licences are compared as typed on the card: no spaces, upper case."""
    return "".join((value or "").split()).upper()


def _email_taken(email: str, *, exclude_pk=None) -> bool:
    accounts = User.objects.filter(email__iexact=email)
    if exclude_pk is not None:
        accounts = accounts.exclude(pk=exclude_pk)
    return accounts.exists()


class CustomerSerializer(serializers.ModelSerializer):
    """Account as the booking flow sees it: contact, driver details, open bookings."""

    full_name = serializers.CharField(read_only=True)
    driver_details_complete = serializers.SerializerMethodField()
    active_bookings = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "first_name",
            "last_name",
            "full_name",
            "display_name",
            *DRIVER_FIELDS,
            "driver_details_complete",
            "active_bookings",
            "is_staff",
        ]
        read_only_fields = ["id", "is_staff"]

    def get_driver_details_complete(self, obj) -> bool:
        return bool(obj.full_name and obj.phone and obj.license_number)

    def get_active_bookings(self, obj) -> int:
        return Booking.objects.filter(user=obj).blocking().count()


class SignupSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, min_length=8)

    class Meta:
        model = User
        fields = ["email", "password", "first_name", "last_name", "display_name", *DRIVER_FIELDS]

    def validate_email(self, value: str) -> str:
        email = value.lower()
        if _email_taken(email):
            raise serializers.ValidationError("An account with this email already exists.")
        return email

    def validate_license_number(self, value: str) -> str:
        return normalize_license_number(value)

    def validate(self, attrs):
        candidate = User(email=attrs["email"], first_name=attrs.get("first_name", ""))
        try:
            validate_password(attrs["password"], user=candidate)
        except DjangoValidationError as exc:
            raise serializers.ValidationError({"password": list(exc.messages)}) from exc
        return attrs

    def create(self, validated_data):
        email = validated_data.pop("email")
        customer = User.objects.create_user(
            username=email,
            email=email,
            password=validated_data.pop("password"),
            **validated_data,
        )
        if not customer.display_name:
            customer.display_name = customer.full_name or email
            customer.save(update_fields=["display_name"])
        return customer


class EmailTokenObtainPairSerializer(TokenObtainPairSerializer):
    """Sign in with email and password; the account travels with the tokens."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields[self.username_field].required = False
        self.fields["email"] = serializers.EmailField(required=False)

    def validate(self, attrs):
        email = attrs.pop("email", None)
        if email and not attrs.get(self.username_field):
            attrs[self.username_field] = email.lower()
        if not attrs.get(self.username_field):
            raise serializers.ValidationError({"email": "This field is required."})
        tokens = super().validate(attrs)
        tokens["user"] = CustomerSerializer(self.user).data
        return tokens


class DriverProfileSerializer(serializers.ModelSerializer):
    """PATCH target for /me: names, contact and driver details."""

    class Meta:
        model = User
        fields = ["email", "first_name", "last_name", "display_name", *DRIVER_FIELDS]

    def validate_email(self, value: str) -> str:
        email = value.lower()
        if _email_taken(email, exclude_pk=self.instance.pk):
            raise serializers.ValidationError("An account with this email already exists.")
        return email

    def validate_license_number(self, value: str) -> str:
        return normalize_license_number(value)

    def update(self, instance, validated_data):
        if "email" in validated_data:
            # logins look the account up by username
            validated_data["username"] = validated_data["email"]
        customer = super().update(instance, validated_data)
        if not customer.display_name:
            customer.display_name = customer.full_name or customer.email
            customer.save(update_fields=["display_name"])
        return customer


class PasswordChangeSerializer(serializers.Serializer):
    current_password = serializers.CharField(write_only=True)
    new_password = serializers.CharField(write_only=True, min_length=8)

    def validate_current_password(self, value):
        if not self.context["request"].user.check_password(value):
            raise serializers.ValidationError("Current password is incorrect.")
        return value

    def validate_new_password(self, value):
        validate_password(value, user=self.context["request"].user)
        return value

    def validate(self, attrs):
        if attrs["current_password"] == attrs["new_password"]:
            raise serializers.ValidationError(
                {"new_password": "Choose a password you have not used on this account."}
            )
        return attrs

    def save(self, **kwargs):
        customer = self.context["request"].user
        customer.set_password(self.validated_data["new_password"])
        customer.save(update_fields=["password"])
        return customer
