from django.contrib import admin

from .models import Booking, BookingExtra


class BookingExtraInline(admin.TabularInline):
    model = BookingExtra
    extra = 0
    readonly_fields = ("unit_price", "total_price")


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "car",
        "customer_email",
        "start_date",
        "end_date",
        "status",
        "stripe_payment_status",
        "grand_total",
        "created_at",
    )
    list_filter = ("status", "stripe_payment_status", "start_date")
    search_fields = ("customer_email", "customer_name", "car__make", "car__model", "stripe_payment_intent_id")
    date_hierarchy = "start_date"
    readonly_fields = (
        "stripe_payment_intent_id",
        "stripe_customer_id",
        "stripe_payment_status",
        "stripe_payment_method_id",
        "expires_at",
        "created_at",
        "updated_at",
    )
    inlines = [BookingExtraInline]
