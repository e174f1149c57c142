"""
Billing Views (core.billing)
============================

REST API endpoints of the billing engine.

Endpoints
---------

1. StripeWebhookView
   - URL: /api/billing/webhooks/stripe/
   - Method: POST
   - Auth: None (Stripe-Signature header)
   - Purpose:
       Verifies and dispatches Stripe events. Answers 400 for bad signatures
       or bodies, 500 when processing failed (Stripe redelivers), 200 otherwise.

2. CheckoutView / CheckoutSyncView
   - URL: /api/billing/checkout/, /api/billing/checkout/sync/
   - Method: POST
   - Body: {"price_id": "..."} (optional) / {"session_id": "cs_..."}
   - Purpose:
       Start a subscription checkout; sync it when the user returns.

3. MySubscriptionView / LatestSubscriptionView
   - URL: /api/billing/subscription/, /api/billing/subscription/latest/
   - Method: GET
   - Purpose:
       {"subscription": ...}: the entitling row (or null) / the newest row of any status.

4. SubscriptionSyncView / ReactivateSubscriptionView / CustomerPortalView
   - URL: /api/billing/subscription/sync/, .../reactivate/, /api/billing/portal/
   - Method: POST

5. PaymentSettingsView
   - URL: /api/billing/settings/
   - Methods: GET (public), PUT (staff)

6. StripeProductsView
   - URL: /api/billing/products/
   - Method: GET (staff)

7. AdminUserSubscriptionView / AdminUserSubscriptionSyncView
   - URL: /api/billing/admin/users/<id>/subscription/[sync/]
   - Methods: GET / POST (staff)

Errors
------
Every ``BillingError`` is rendered as ``exc.to_dict()`` with ``exc.status_code``.

Author: DSP Development Team
Version: 1.0.0
"""

import logging

from django.contrib.auth import get_user_model
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .exceptions import BillingError, MalformedEvent, SignatureInvalid
from .gateway import StripeGateway
from .permissions import IsStaff, IsStaffOrReadOnly
from .serializers import (
    CheckoutRequestSerializer,
    CheckoutSyncSerializer,
    PaymentSettingsSerializer,
    SubscriptionSerializer,
    SubscriptionSyncSerializer,
)
from .services.checkout import CheckoutInitiator
from .services.dispatcher import WebhookDispatcher
from .services.entitlements import EntitlementQuery
from .services.payment_settings import (
    get_payment_settings,
    public_pricing,
    replace_payment_settings,
)
from .services.sync import SubscriptionSyncService

logger = logging.getLogger(__name__)
User = get_user_model()


class BillingAPIView(APIView):
    """Renders ``BillingError`` as a JSON error body."""

    permission_classes = [IsAuthenticated]

    def handle_exception(self, exc):
        if isinstance(exc, BillingError):
            return Response(exc.to_dict(), status=exc.status_code)
        return super().handle_exception(exc)


def _subscription_body(subscription):
    return {"subscription": SubscriptionSerializer(subscription).data if subscription else None}


class StripeWebhookView(APIView):
    authentication_classes = []
    permission_classes = [AllowAny]

    def post(self, request):
        # Signature covers the exact bytes; request.data must not be touched first.
        raw_body = request.body
        signature_header = request.META.get("HTTP_STRIPE_SIGNATURE")

        try:
            ack = WebhookDispatcher().handle(raw_body, signature_header)
        except (SignatureInvalid, MalformedEvent) as exc:
            return Response(exc.to_dict(), status=status.HTTP_400_BAD_REQUEST)
        except Exception:
            logger.exception("Stripe webhook processing failed")
            return Response(
                {"received": False, "message": "Webhook processing failed"},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        return Response({"received": True, "type": ack.event_type, "handled": ack.handled})


class CheckoutView(BillingAPIView):
    def post(self, request):
        serializer = CheckoutRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            url = CheckoutInitiator().create(
                request.user, serializer.validated_data.get("price_id") or None
            )
        except PermissionError as exc:
            return Response({"message": str(exc)}, status=status.HTTP_403_FORBIDDEN)
        return Response({"url": url})


class CheckoutSyncView(BillingAPIView):
    def post(self, request):
        serializer = CheckoutSyncSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = SubscriptionSyncService().sync_checkout_session(
            request.user, serializer.validated_data["session_id"]
        )
        return Response(result)


class MySubscriptionView(BillingAPIView):
    def get(self, request):
        subscription = EntitlementQuery().get_my_subscription(request.user)
        return Response(_subscription_body(subscription))


class LatestSubscriptionView(BillingAPIView):
    def get(self, request):
        subscription = EntitlementQuery().latest_subscription(request.user)
        return Response(_subscription_body(subscription))


class SubscriptionSyncView(BillingAPIView):
    def post(self, request):
        serializer = SubscriptionSyncSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        subscription = SubscriptionSyncService().sync_subscription(
            request.user, serializer.validated_data["subscription_id"]
        )
        return Response(SubscriptionSerializer(subscription).data)


class ReactivateSubscriptionView(BillingAPIView):
    def post(self, request):
        subscription = SubscriptionSyncService().reactivate(request.user)
        return Response(SubscriptionSerializer(subscription).data)


class CustomerPortalView(BillingAPIView):
    def post(self, request):
        return Response({"url": SubscriptionSyncService().portal_url(request.user)})


class PaymentSettingsView(BillingAPIView):
    permission_classes = [IsStaffOrReadOnly]

    def get(self, request):
        return Response({"settings": public_pricing(get_payment_settings())})

    def put(self, request):
        serializer = PaymentSettingsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment_settings = replace_payment_settings(**serializer.validated_data)
        return Response({"settings": public_pricing(payment_settings)})


class StripeProductsView(BillingAPIView):
    permission_classes = [IsStaff]

    def get(self, request):
        products = StripeGateway().list_products()
        resp = Response({"products": products})
        resp["Cache-Control"] = "no-store"
        return resp


class AdminUserSubscriptionView(BillingAPIView):
    permission_classes = [IsStaff]

    def get(self, request, user_id):
        user = get_object_or_404(User, pk=user_id)
        return Response(_subscription_body(EntitlementQuery().latest_subscription(user)))


class AdminUserSubscriptionSyncView(BillingAPIView):
    permission_classes = [IsStaff]

    def post(self, request, user_id):
        user = get_object_or_404(User, pk=user_id)
        return Response(SubscriptionSyncService().admin_sync_user(user))
