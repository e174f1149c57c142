from django.urls import path

from .views import (
    AdminUserSubscriptionSyncView,
    AdminUserSubscriptionView,
    CheckoutSyncView,
    CheckoutView,
    CustomerPortalView,
    LatestSubscriptionView,
    MySubscriptionView,
    PaymentSettingsView,
    ReactivateSubscriptionView,
    StripeProductsView,
    StripeWebhookView,
    SubscriptionSyncView,
)

app_name = "billing"

urlpatterns = [
    path("webhooks/stripe/", StripeWebhookView.as_view(), name="stripe-webhook"),
    path("checkout/", CheckoutView.as_view(), name="checkout"),
    path("checkout/sync/", CheckoutSyncView.as_view(), name="checkout-sync"),
    path("subscription/", MySubscriptionView.as_view(), name="subscription"),
    path("subscription/latest/", LatestSubscriptionView.as_view(), name="subscription-latest"),
    path("subscription/sync/", SubscriptionSyncView.as_view(), name="subscription-sync"),
    path("subscription/reactivate/", ReactivateSubscriptionView.as_view(), name="subscription-reactivate"),
    path("portal/", CustomerPortalView.as_view(), name="customer-portal"),
    path("settings/", PaymentSettingsView.as_view(), name="payment-settings"),
    path("products/", StripeProductsView.as_view(), name="stripe-products"),
    path(
        "admin/users/<int:user_id>/subscription/",
        AdminUserSubscriptionView.as_view(),
        name="admin-user-subscription",
    ),
    path(
        "admin/users/<int:user_id>/subscription/sync/",
        AdminUserSubscriptionSyncView.as_view(),
        name="admin-user-subscription-sync",
    ),
]
