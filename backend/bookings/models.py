from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone


class BookingQuerySet(models.QuerySet):
    def blocking(self, now=None):
        """
        Bookings that occupy their car: confirmed, pending and drafts that have
        not expired yet. Expired drafts stay in the table but no longer count.
        """
        now = now or timezone.now()
        return self.filter(status__in=Booking.BLOCKING_STATUSES).exclude(
            status=Booking.DRAFT,
            expires_at__isnull=False,
            expires_at__lt=now,
        )

    def overlapping(self, start_date, end_date):
        """Rows whose inclusive [start_date, end_date] range meets the given one."""
        return self.filter(start_date__lte=end_date, end_date__gte=start_date)

    def for_car(self, car_id):
        return self.filter(car_id=car_id)


class Booking(models.Model):
    """A reservation of one car for a date range; rows are never deleted."""

    DRAFT = "draft"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    STATUSES = [
        (DRAFT, "Draft"),
        (PENDING, "Pending"),
        (CONFIRMED, "Confirmed"),
        (CANCELLED, "Cancelled"),
        (COMPLETED, "Completed"),
    ]
    BLOCKING_STATUSES = (CONFIRMED, PENDING, DRAFT)
    CLOSED_STATUSES = (CANCELLED, COMPLETED)

    PAYMENT_PENDING = "pending"
    PAYMENT_PROCESSING = "processing"
    PAYMENT_SUCCEEDED = "succeeded"
    PAYMENT_FAILED = "failed"
    PAYMENT_CANCELED = "canceled"
    PAYMENT_STATUSES = [
        (PAYMENT_PENDING, "Pending"),
        (PAYMENT_PROCESSING, "Processing"),
        (PAYMENT_SUCCEEDED, "Succeeded"),
        (PAYMENT_FAILED, "Failed"),
        (PAYMENT_CANCELED, "Canceled"),
    ]

    car = models.ForeignKey("cars.Car", on_delete=models.PROTECT, related_name="bookings")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    start_date = models.DateField()
    end_date = models.DateField()
    pickup_time = models.TimeField()
    return_time = models.TimeField()
    pickup_location = models.CharField(max_length=80, blank=True)
    return_location = models.CharField(max_length=80, blank=True)
    status = models.CharField(max_length=12, choices=STATUSES, default=PENDING)

    total_price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    car_rental_subtotal = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    pickup_delivery_fee = models.DecimalField(max_digits=8, decimal_places=2, default=0)
    return_delivery_fee = models.DecimalField(max_digits=8, decimal_places=2, default=0)
    discount_code = models.ForeignKey(
        "promotions.DiscountCode",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="bookings",
    )
    discount_amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    grand_total = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)

    expires_at = models.DateTimeField(null=True, blank=True)

    stripe_payment_intent_id = models.CharField(max_length=255, blank=True, db_index=True)
    stripe_customer_id = models.CharField(max_length=255, blank=True)
    stripe_payment_status = models.CharField(max_length=20, blank=True)
    stripe_payment_method_id = models.CharField(max_length=255, blank=True)
    customer_email = models.EmailField(blank=True)
    customer_name = models.CharField(max_length=200, blank=True)

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    objects = BookingQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["car", "start_date", "end_date"], name="booking_car_dates_idx"),
            models.Index(fields=["status", "expires_at"], name="booking_status_expiry_idx"),
        ]

    def __str__(self):
        return f"Booking #{self.pk} {self.car} {self.start_date}..{self.end_date} ({self.status})"

    @property
    def is_expired_draft(self) -> bool:
        return (
            self.status == self.DRAFT
            and self.expires_at is not None
            and self.expires_at < timezone.now()
        )


class BookingExtra(models.Model):
    """Priced line item for an optional extra attached to a booking."""

    booking = models.ForeignKey("Booking", on_delete=models.CASCADE, related_name="booking_extras")
    extra = models.ForeignKey("cars.Extra", on_delete=models.PROTECT, related_name="booking_extras")
    quantity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    unit_price = models.DecimalField(max_digits=8, decimal_places=2)
    total_price = models.DecimalField(max_digits=10, decimal_places=2)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ("booking", "extra")

    def __str__(self):
        return f"{self.extra} × {self.quantity}"
