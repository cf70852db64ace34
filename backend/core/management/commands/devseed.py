from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.utils import timezone

from accounts.models import User
from bookings.models import Booking
from bookings.services.reservations import BookingConflict, create_booking_atomic
from cars.models import Car, Extra, Location
from promotions.models import Campaign, DiscountCode


SEED_PASSWORD = "Rentals123!"
SUPERUSER_EMAIL = "admin@nynrentals.test"
SUPERUSER_PASSWORD = "AdminRentals123!"

CARS = [
    {
        "make": "Toyota",
        "model": "Corolla",
        "year": 2023,
        "category": "economy",
        "price_per_day": Decimal("45.00"),
        "seats": 5,
        "doors": 4,
        "fuel_type": "gasoline",
        "features": ["Bluetooth", "Backup camera", "Apple CarPlay"],
    },
    {
        "make": "Honda",
        "model": "CR-V",
        "year": 2024,
        "category": "suv",
        "price_per_day": Decimal("72.00"),
        "seats": 5,
        "doors": 4,
        "fuel_type": "hybrid",
        "features": ["AWD", "Heated seats", "Android Auto"],
    },
    {
        "make": "Ford",
        "model": "Transit",
        "year": 2022,
        "category": "van",
        "price_per_day": Decimal("110.00"),
        "seats": 12,
        "doors": 4,
        "transmission": Car.AUTOMATIC,
        "fuel_type": "diesel",
        "features": ["Roof rack", "Rear AC"],
    },
    {
        "make": "Mazda",
        "model": "MX-5",
        "year": 2021,
        "category": "convertible",
        "price_per_day": Decimal("89.00"),
        "seats": 2,
        "doors": 2,
        "transmission": Car.MANUAL,
        "fuel_type": "gasoline",
        "available": False,
        "features": ["Soft top"],
    },
]

EXTRAS = [
    {"name": "Child seat", "price": Decimal("8.00"), "per_day": True},
    {"name": "GPS navigator", "price": Decimal("5.00"), "per_day": True},
    {"name": "Full tank on return", "price": Decimal("60.00"), "per_day": False},
]

LOCATIONS = [
    {"value": "office", "label": "Downtown office", "delivery_fee": Decimal("0")},
    {"value": "airport", "label": "Airport terminal", "delivery_fee": Decimal("25.00")},
    {"value": "hotel", "label": "Hotel delivery", "delivery_fee": Decimal("15.00")},
]


class Command(BaseCommand):
    help = "Populate the local development database with sample data."

    def handle(self, *args, **options):
        if not settings.DEBUG:
            raise CommandError("Refusing to seed data while DEBUG is False.")

        today = timezone.localdate()
        with transaction.atomic():
            self.stdout.write(self.style.MIGRATE_HEADING("Creating catalog"))
            cars = [self._ensure_car(**values) for values in CARS]
            for values in EXTRAS:
                Extra.objects.update_or_create(name=values["name"], defaults=values)
            for values in LOCATIONS:
                Location.objects.update_or_create(value=values["value"], defaults=values)

            self.stdout.write(self.style.MIGRATE_HEADING("Creating promotions"))
            DiscountCode.objects.update_or_create(
                code="WELCOME10",
                defaults={
                    "discount_percentage": Decimal("10"),
                    "valid_from": today - timedelta(days=30),
                    "valid_to": today + timedelta(days=365),
                    "max_uses": 500,
                    "active": True,
                },
            )
            DiscountCode.objects.update_or_create(
                code="EXPIRED5",
                defaults={
                    "discount_percentage": Decimal("5"),
                    "valid_from": today - timedelta(days=90),
                    "valid_to": today - timedelta(days=60),
                    "active": True,
                },
            )
            Campaign.objects.update_or_create(
                name="Summer road trips",
                defaults={
                    "description": "Book a week, drive the coast.",
                    "discount_percentage": Decimal("15"),
                    "valid_from": today,
                    "valid_to": today + timedelta(days=90),
                },
            )

            self.stdout.write(self.style.MIGRATE_HEADING("Creating users"))
            self._ensure_superuser()
            customer = self._ensure_user(
                email="customer@nynrentals.test",
                first_name="Casey",
                last_name="Customer",
            )

            self.stdout.write(self.style.MIGRATE_HEADING("Creating bookings"))
            if not Booking.objects.filter(user=customer).exists():
                try:
                    create_booking_atomic(
                        car=cars[0],
                        user=customer,
                        start_date=today + timedelta(days=7),
                        end_date=today + timedelta(days=10),
                        status=Booking.PENDING,
                    )
                except BookingConflict as exc:
                    self.stdout.write(self.style.WARNING(f"Skipped sample booking: {exc}"))

        self.stdout.write(self.style.SUCCESS("Development data ready."))
        self.stdout.write(f"Customer login: customer@nynrentals.test / {SEED_PASSWORD}")
        self.stdout.write(f"Admin login: {SUPERUSER_EMAIL} / {SUPERUSER_PASSWORD}")

    def _ensure_car(self, *, make: str, model: str, year: int, **fields) -> Car:
        car, created = Car.objects.update_or_create(
            make=make,
            model=model,
            year=year,
            defaults=fields,
        )
        if created:
            self.stdout.write(self.style.NOTICE(f"Added {car}"))
        return car

    def _ensure_user(self, *, email: str, first_name: str, last_name: str) -> User:
        user, created = User.objects.get_or_create(
            email=email,
            defaults={
                "username": email,
                "first_name": first_name,
                "last_name": last_name,
                "display_name": f"{first_name} {last_name}",
            },
        )
        if created or not user.has_usable_password():
            user.set_password(SEED_PASSWORD)
            user.save(update_fields=["password"])
        return user

    def _ensure_superuser(self) -> User:
        user, created = User.objects.get_or_create(
            email=SUPERUSER_EMAIL,
            defaults={
                "username": SUPERUSER_EMAIL,
                "first_name": "Admin",
                "last_name": "User",
                "display_name": "Admin User",
                "is_staff": True,
                "is_superuser": True,
            },
        )
        flag_updates = {}
        if not user.is_staff:
            flag_updates["is_staff"] = True
        if not user.is_superuser:
            flag_updates["is_superuser"] = True
        if flag_updates:
            for attr, value in flag_updates.items():
                setattr(user, attr, value)
            user.save(update_fields=list(flag_updates.keys()))
        if created or not user.has_usable_password():
            user.set_password(SUPERUSER_PASSWORD)
            user.save(update_fields=["password"])
        return user
