from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Customer or back-office account; staff users manage the fleet and bookings."""

    display_name = models.CharField(max_length=120, blank=True)
    phone = models.CharField(max_length=30, blank=True)
    address = models.CharField(max_length=255, blank=True)
    license_number = models.CharField(max_length=60, blank=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
