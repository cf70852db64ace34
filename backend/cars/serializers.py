from rest_framework import serializers

from .models import Car, Extra, Location


class CarSerializer(serializers.ModelSerializer):
    display_name = serializers.CharField(source="__str__", read_only=True)
    image_url = serializers.SerializerMethodField()

    class Meta:
        model = Car
        fields = [
            "id",
            "display_name",
            "make",
            "model",
            "year",
            "trim",
            "category",
            "price_per_day",
            "available",
            "seats",
            "doors",
            "transmission",
            "fuel_type",
            "mileage_type",
            "color",
            "plate",
            "description",
            "features",
            "image",
            "image_url",
            "created_at",
        ]
        read_only_fields = ["id", "created_at"]
        extra_kwargs = {"image": {"write_only": True, "required": False}}

    def validate_features(self, value):
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise serializers.ValidationError("Features must be a list of strings.")
        return value

    def get_image_url(self, obj: Car) -> str | None:
        if not obj.image:
            return None
        request = self.context.get("request")
        url = obj.image.url
        if request is not None:
            return request.build_absolute_uri(url)
        return url


class ExtraSerializer(serializers.ModelSerializer):
    class Meta:
        model = Extra
        fields = ["id", "name", "description", "price", "per_day", "active"]


class LocationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Location
        fields = ["id", "value", "label", "delivery_fee"]
