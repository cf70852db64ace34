from django.core.validators import MinValueValidator
from django.db import models


class Car(models.Model):
    """A rentable vehicle; `available` is the admin-controlled on/off switch."""

    AUTOMATIC = "automatic"
    MANUAL = "manual"
    TRANSMISSIONS = [
        (AUTOMATIC, "Automatic"),
        (MANUAL, "Manual"),
    ]

    make = models.CharField(max_length=80)
    model = models.CharField(max_length=80)
    year = models.PositiveIntegerField()
    trim = models.CharField(max_length=80, blank=True)
    category = models.CharField(max_length=40, blank=True)
    price_per_day = models.DecimalField(
        max_digits=8, decimal_places=2, validators=[MinValueValidator(0)]
    )
    available = models.BooleanField(default=True)
    seats = models.PositiveIntegerField(default=5)
    doors = models.PositiveIntegerField(null=True, blank=True)
    transmission = models.CharField(max_length=20, choices=TRANSMISSIONS, default=AUTOMATIC)
    fuel_type = models.CharField(max_length=30, blank=True)
    mileage_type = models.CharField(max_length=30, blank=True)
    color = models.CharField(max_length=40, blank=True)
    plate = models.CharField(max_length=20, blank=True)
    description = models.TextField(blank=True)
    features = models.JSONField(default=list, blank=True)
    image = models.ImageField(upload_to="cars/", blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["make", "model", "-year"]

    def __str__(self):
        return f"{self.year} {self.make} {self.model}"

    @property
    def feature_list(self) -> list[str]:
        if isinstance(self.features, list):
            return [item for item in self.features if isinstance(item, str)]
        return []


class Extra(models.Model):
    """Optional add-on service (child seat, insurance, GPS...) offered at checkout."""

    name = models.CharField(max_length=120)
    description = models.TextField(blank=True)
    price = models.DecimalField(max_digits=8, decimal_places=2, validators=[MinValueValidator(0)])
    per_day = models.BooleanField(default=False)
    active = models.BooleanField(default=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class Location(models.Model):
    """Pickup/return location; non-zero fee means delivery to that spot."""

    value = models.SlugField(max_length=80, unique=True)
    label = models.CharField(max_length=160)
    delivery_fee = models.DecimalField(
        max_digits=8, decimal_places=2, default=0, validators=[MinValueValidator(0)]
    )
    active = models.BooleanField(default=True)

    class Meta:
        ordering = ["label"]

    def __str__(self):
        return self.label
