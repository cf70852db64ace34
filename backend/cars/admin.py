from django.contrib import admin

from .models import Car, Extra, Location


@admin.register(Car)
class CarAdmin(admin.ModelAdmin):
    list_display = ("__str__", "category", "price_per_day", "available", "plate")
    list_filter = ("available", "category", "transmission")
    list_editable = ("available",)
    search_fields = ("make", "model", "plate")


@admin.register(Extra)
class ExtraAdmin(admin.ModelAdmin):
    list_display = ("name", "price", "per_day", "active")
    list_filter = ("active", "per_day")


@admin.register(Location)
class LocationAdmin(admin.ModelAdmin):
    list_display = ("label", "value", "delivery_fee", "active")
    prepopulated_fields = {"value": ("label",)}
