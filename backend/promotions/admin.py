from django.contrib import admin

from .models import Campaign, DiscountCode


@admin.register(DiscountCode)
class DiscountCodeAdmin(admin.ModelAdmin):
    list_display = ("code", "discount_percentage", "valid_from", "valid_to", "current_uses", "max_uses", "active")
    list_filter = ("active",)
    search_fields = ("code",)
    readonly_fields = ("current_uses",)


@admin.register(Campaign)
class CampaignAdmin(admin.ModelAdmin):
    list_display = ("name", "discount_percentage", "valid_from", "valid_to", "active")
    list_filter = ("active",)
    search_fields = ("name",)
