import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("cars", "0001_initial"),
        ("promotions", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Booking",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("start_date", models.DateField()),
                ("end_date", models.DateField()),
                ("pickup_time", models.TimeField()),
                ("return_time", models.TimeField()),
                ("pickup_location", models.CharField(blank=True, max_length=80)),
                ("return_location", models.CharField(blank=True, max_length=80)),
                ("status", models.CharField(choices=[("draft", "Draft"), ("pending", "Pending"), ("confirmed", "Confirmed"), ("cancelled", "Cancelled"), ("completed", "Completed")], default="pending", max_length=12)),
                ("total_price", models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(0)])),
                ("car_rental_subtotal", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("pickup_delivery_fee", models.DecimalField(decimal_places=2, default=0, max_digits=8)),
                ("return_delivery_fee", models.DecimalField(decimal_places=2, default=0, max_digits=8)),
                ("discount_amount", models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ("grand_total", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("expires_at", models.DateTimeField(blank=True, null=True)),
                ("stripe_payment_intent_id", models.CharField(blank=True, db_index=True, max_length=255)),
                ("stripe_customer_id", models.CharField(blank=True, max_length=255)),
                ("stripe_payment_status", models.CharField(blank=True, max_length=20)),
                ("stripe_payment_method_id", models.CharField(blank=True, max_length=255)),
                ("customer_email", models.EmailField(blank=True, max_length=254)),
                ("customer_name", models.CharField(blank=True, max_length=200)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("car", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="bookings", to="cars.car")),
                ("discount_code", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="bookings", to="promotions.discountcode")),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="bookings", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["car", "start_date", "end_date"], name="booking_car_dates_idx"),
                    models.Index(fields=["status", "expires_at"], name="booking_status_expiry_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="BookingExtra",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("quantity", models.PositiveIntegerField(default=1, validators=[django.core.validators.MinValueValidator(1)])),
                ("unit_price", models.DecimalField(decimal_places=2, max_digits=8)),
                ("total_price", models.DecimalField(decimal_places=2, max_digits=10)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("booking", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="booking_extras", to="bookings.booking")),
                ("extra", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="booking_extras", to="cars.extra")),
            ],
            options={
                "unique_together": {("booking", "extra")},
            },
        ),
    ]
