from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenObtainPairView

from .serializers import (
    CustomerSerializer,
    DriverProfileSerializer,
    EmailTokenObtainPairSerializer,
    PasswordChangeSerializer,
    SignupSerializer,
)


class RegisterView(APIView):
    """Open a customer account and sign it in straight away."""

    permission_classes = [AllowAny]

    def post(self, request, *args, **kwargs):
        serializer = SignupSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        customer = serializer.save()
        refresh = RefreshToken.for_user(customer)
        return Response(
            {
                "user": CustomerSerializer(customer).data,
                "access": str(refresh.access_token),
                "refresh": str(refresh),
            },
            status=status.HTTP_201_CREATED,
        )


class LoginView(TokenObtainPairView):
    serializer_class = EmailTokenObtainPairSerializer


class MeView(APIView):
    """The signed-in customer's account and driver details."""

    def get(self, request, *args, **kwargs):
        return Response(CustomerSerializer(request.user).data)

    def patch(self, request, *args, **kwargs):
        serializer = DriverProfileSerializer(instance=request.user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        return Response(CustomerSerializer(serializer.save()).data)


class ChangePasswordView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, *args, **kwargs):
        serializer = PasswordChangeSerializer(data=request.data, context={"request": request})
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(status=status.HTTP_204_NO_CONTENT)
