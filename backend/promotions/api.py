from django.utils import timezone
from rest_framework import generics, permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import Campaign
from .serializers import CampaignSerializer, DiscountCodeSummarySerializer
from .services.discounts import validate_discount_code


class ValidateDiscountCodeView(APIView):
    permission_classes = [permissions.AllowAny]

    def get(self, request, *args, **kwargs):
        try:
            check = validate_discount_code(request.query_params.get("code", ""))
        except ValueError as exc:
            return Response({"valid": False, "message": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        payload = {"valid": check.valid, "message": check.message}
        if check.valid:
            payload["data"] = DiscountCodeSummarySerializer(check.discount_code).data
        return Response(payload)


class ActiveCampaignListView(generics.ListAPIView):
    """Campaigns that are switched on and running today."""

    serializer_class = CampaignSerializer
    permission_classes = [permissions.AllowAny]
    pagination_class = None

    def get_queryset(self):
        today = timezone.localdate()
        return Campaign.objects.filter(
            active=True,
            valid_from__lte=today,
            valid_to__gte=today,
        ).order_by("valid_to", "name")
