"""
Checkout Initiator

Opens a Stripe-hosted subscription checkout for the requesting user and
records it as a pending ``CheckoutSession``.

Typical Flow:
    1. Frontend calls POST /api/billing/checkout/ (optionally with price_id).
    2. We resolve the price from PaymentSettings and call Stripe.
    3. The local user id travels as checkout metadata.
    4. A pending CheckoutSession row is stored and the hosted URL returned.

If Stripe fails nothing is stored and the error reaches the caller.
"""

import logging
from typing import Optional

from django.conf import settings

from ..exceptions import InvalidPrice, PaymentSettingsMissing
from ..gateway import StripeGateway
from ..models import CheckoutSession, PaymentSettings

logger = logging.getLogger(__name__)

CHECKOUT_SESSION_PLACEHOLDER = "{CHECKOUT_SESSION_ID}"


def redirect_base_url() -> str:
    return getattr(settings, "BILLING_REDIRECT_BASE_URL", settings.FRONTEND_URL).rstrip("/")


def success_url() -> str:
    return f"{redirect_base_url()}/payments?success=true&session_id={CHECKOUT_SESSION_PLACEHOLDER}"


def cancel_url() -> str:
    return f"{redirect_base_url()}/payments?canceled=true"


class CheckoutInitiator:
    def __init__(self, gateway: Optional[StripeGateway] = None):
        self.gateway = gateway or StripeGateway()

    def _resolve_price(self, price_id: Optional[str]) -> str:
        payment_settings = PaymentSettings.current()
        if payment_settings is None:
            raise PaymentSettingsMissing("No subscription product has been configured yet")
        if not price_id:
            return payment_settings.monthly_price_id
        if price_id not in payment_settings.offered_price_ids:
            raise InvalidPrice(
                f"Price {price_id} is not offered",
                details={"price_id": price_id},
            )
        return price_id

    def create(self, user, price_id: Optional[str] = None) -> str:
        """
        Start a checkout for ``user`` and return the Stripe redirect URL.

        Raises:
            PermissionError: anonymous user
            PaymentSettingsMissing / InvalidPrice: nothing sellable for this request
            ExternalAPIFailure: Stripe call failed (no row is stored)
        """
        if user is None or not user.is_authenticated:
            raise PermissionError("Checkout requires an authenticated user")

        resolved_price = self._resolve_price(price_id)
        redirect = self.gateway.create_checkout_session(
            price_id=resolved_price,
            success_url=success_url(),
            cancel_url=cancel_url(),
            metadata={"user_id": str(user.pk)},
            customer_email=getattr(user, "email", None) or None,
        )

        CheckoutSession.objects.create(
            session_id=redirect.session_id,
            user=user,
            status=CheckoutSession.Status.PENDING,
        )
        logger.info(
            "Checkout session %s created for user %s (price=%s)",
            redirect.session_id,
            user.pk,
            resolved_price,
        )
        return redirect.url
