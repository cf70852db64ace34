from rest_framework import serializers

from .models import Campaign, DiscountCode


class DiscountCodeSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = DiscountCode
        fields = ["id", "code", "discount_percentage"]


class CampaignSerializer(serializers.ModelSerializer):
    class Meta:
        model = Campaign
        fields = [
            "id",
            "name",
            "description",
            "discount_percentage",
            "valid_from",
            "valid_to",
            "featured_image_url",
        ]
