"""
Stripe Gateway
==============

All outbound Stripe calls of the billing engine go through this module:

- Checkout API: create a subscription-mode checkout session
- Subscriptions API: retrieve a subscription, toggle cancel-at-period-end
- Checkout sessions: retrieve one (for the return-URL sync)
- Billing portal: open a customer portal session
- Catalog: list active products and their prices (admin settings screen)

Calls are synchronous round trips with the SDK's default HTTP client and
timeouts. Any ``stripe.StripeError`` is converted to ``ExternalAPIFailure``;
no call is retried here.

Author: DSP Development Team
Version: 1.0.0
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional

import stripe
from django.conf import settings

from .events import SubscriptionSnapshot, field, object_id
from .exceptions import BillingConfigurationError, ExternalAPIFailure

logger = logging.getLogger(__name__)


def configure_stripe(require_key: bool = True) -> None:
    """
    Apply the secret key (and optional API version) from settings to the SDK.

    Raises:
        BillingConfigurationError: ``require_key`` is set and no key is configured
    """
    api_key = getattr(settings, "STRIPE_SECRET_KEY", "")
    if not api_key and require_key:
        raise BillingConfigurationError("STRIPE_SECRET_KEY is not configured")
    stripe.api_key = api_key or None
    api_version = getattr(settings, "STRIPE_API_VERSION", "")
    if api_version:
        stripe.api_version = api_version


@contextmanager
def _stripe_call(action: str, **context: Any) -> Iterator[None]:
    configure_stripe()
    try:
        yield
    except stripe.StripeError as exc:
        logger.error("Stripe %s failed (%s): %s", action, context, exc)
        raise ExternalAPIFailure(
            f"Failed to {action}: {getattr(exc, 'user_message', None) or exc}",
            details=context,
        ) from exc


@dataclass(frozen=True)
class CheckoutRedirect:
    session_id: str
    url: str


@dataclass(frozen=True)
class CheckoutSessionState:
    session_id: str
    status: Optional[str]
    customer_id: Optional[str]
    subscription_id: Optional[str]
    metadata: Dict[str, Any]


class StripeGateway:
    """Thin wrapper around the module-level ``stripe`` SDK resources."""

    def create_checkout_session(
        self,
        *,
        price_id: str,
        success_url: str,
        cancel_url: str,
        metadata: Dict[str, str],
        customer_email: Optional[str] = None,
    ) -> CheckoutRedirect:
        params: Dict[str, Any] = {
            "mode": "subscription",
            "line_items": [{"price": price_id, "quantity": 1}],
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata,
            "subscription_data": {"metadata": metadata},
        }
        if customer_email:
            params["customer_email"] = customer_email

        with _stripe_call("create checkout session", price_id=price_id):
            session = stripe.checkout.Session.create(**params)

        session_id = field(session, "id")
        url = field(session, "url")
        if not session_id or not url:
            raise ExternalAPIFailure(
                "Failed to create checkout session URL",
                details={"price_id": price_id},
            )
        return CheckoutRedirect(session_id=session_id, url=url)

    def retrieve_checkout_session(self, session_id: str) -> CheckoutSessionState:
        with _stripe_call("retrieve checkout session", session_id=session_id):
            session = stripe.checkout.Session.retrieve(session_id)

        return CheckoutSessionState(
            session_id=field(session, "id", session_id),
            status=field(session, "status"),
            customer_id=object_id(field(session, "customer")),
            subscription_id=object_id(field(session, "subscription")),
            metadata=dict(field(session, "metadata", {})),
        )

    def retrieve_subscription(self, subscription_id: str) -> SubscriptionSnapshot:
        with _stripe_call("retrieve subscription", subscription_id=subscription_id):
            subscription = stripe.Subscription.retrieve(subscription_id)
        return SubscriptionSnapshot.from_stripe(subscription)

    def set_cancel_at_period_end(self, subscription_id: str, value: bool) -> SubscriptionSnapshot:
        with _stripe_call("update subscription", subscription_id=subscription_id):
            subscription = stripe.Subscription.modify(
                subscription_id, cancel_at_period_end=value
            )
        return SubscriptionSnapshot.from_stripe(subscription)

    def create_portal_session(self, customer_id: str, return_url: str) -> str:
        with _stripe_call("create customer portal session", customer_id=customer_id):
            portal = stripe.billing_portal.Session.create(
                customer=customer_id, return_url=return_url
            )

        url = field(portal, "url")
        if not url:
            raise ExternalAPIFailure(
                "Customer portal session has no URL",
                details={"customer_id": customer_id},
            )
        return url

    def list_products(self) -> List[Dict[str, Any]]:
        """
        Return active products with their active prices, shaped for the admin UI.
        """
        with _stripe_call("list products"):
            products = list(stripe.Product.list(active=True, limit=100).auto_paging_iter())
            prices = list(stripe.Price.list(active=True, limit=100).auto_paging_iter())

        prices_by_product: Dict[str, List[Dict[str, Any]]] = {}
        for price in prices:
            recurring = field(price, "recurring")
            prices_by_product.setdefault(object_id(field(price, "product")), []).append(
                {
                    "id": field(price, "id"),
                    "unit_amount": field(price, "unit_amount", 0),
                    "currency": field(price, "currency", ""),
                    "active": bool(field(price, "active", False)),
                    "type": field(price, "type", ""),
                    "recurring": (
                        {
                            "interval": field(recurring, "interval"),
                            "interval_count": field(recurring, "interval_count", 1),
                        }
                        if recurring
                        else None
                    ),
                }
            )

        return [
            {
                "id": field(product, "id"),
                "name": field(product, "name", ""),
                "description": field(product, "description"),
                "prices": prices_by_product.get(field(product, "id"), []),
            }
            for product in products
        ]
