from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import User


@admin.register(User)
class CustomerAdmin(UserAdmin):
    list_display = ("email", "first_name", "last_name", "phone", "is_staff", "date_joined")
    search_fields = ("email", "first_name", "last_name", "phone", "license_number")
    ordering = ("-date_joined",)
    fieldsets = UserAdmin.fieldsets + (
        ("Customer details", {"fields": ("display_name", "phone", "address", "license_number")}),
    )
