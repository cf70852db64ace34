from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import include, path
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView

from accounts.api import ChangePasswordView, LoginView, MeView, RegisterView
from bookings.api import BookingViewSet, CheckCarAvailabilityView, CreateBookingAtomicView
from cars.api import CarViewSet, ExtraViewSet, LocationViewSet
from payments.api import CheckPaymentStatusView, CreatePaymentIntentView, StripeWebhookView
from promotions.api import ActiveCampaignListView, ValidateDiscountCodeView

router = DefaultRouter()
router.register(r"cars", CarViewSet, basename="car")
router.register(r"extras", ExtraViewSet, basename="extra")
router.register(r"locations", LocationViewSet, basename="location")
router.register(r"bookings", BookingViewSet, basename="booking")

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/auth/register/", RegisterView.as_view(), name="auth-register"),
    path("api/auth/login/", LoginView.as_view(), name="auth-login"),
    path("api/auth/refresh/", TokenRefreshView.as_view(), name="auth-refresh"),
    path(
        "api/auth/change-password/",
        ChangePasswordView.as_view(),
        name="auth-change-password",
    ),
    path("api/auth/me/", MeView.as_view(), name="auth-me"),
    path(
        "api/bookings/check-availability/",
        CheckCarAvailabilityView.as_view(),
        name="booking-check-availability",
    ),
    path(
        "api/bookings/create-atomic/",
        CreateBookingAtomicView.as_view(),
        name="booking-create-atomic",
    ),
    path(
        "api/payments/create-payment-intent/",
        CreatePaymentIntentView.as_view(),
        name="payment-create-intent",
    ),
    path(
        "api/payments/check-payment-status/",
        CheckPaymentStatusView.as_view(),
        name="payment-check-status",
    ),
    path(
        "api/discount-codes/validate/",
        ValidateDiscountCodeView.as_view(),
        name="discount-code-validate",
    ),
    path("api/campaigns/", ActiveCampaignListView.as_view(), name="campaign-list"),
    path("api/", include(router.urls)),
    path("api/webhooks/stripe/", StripeWebhookView.as_view(), name="stripe-webhook"),
]

if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
