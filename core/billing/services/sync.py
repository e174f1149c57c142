"""
Synchronous reconciliation paths.

Everything the webhook channel does can also be triggered on demand:
- the checkout return page syncs the session the user just finished
- users and staff can re-fetch a subscription from Stripe
- users can undo a pending cancellation or open the customer portal
- cron jobs expire lapsed rows and re-sync every stored subscription

All writes go through ``SubscriptionStore`` / ``CheckoutCompletionHandler``,
so these paths share the webhook's last-write-wins policy.

Author: DSP Development Team
Version: 1.0.0
"""

import logging
from typing import Any, Dict, Optional

from django.utils import timezone

from ..exceptions import (
    BillingError,
    NoBillingCustomer,
    SubscriptionNotFound,
    SubscriptionNotReactivatable,
)
from ..gateway import StripeGateway
from ..models import CheckoutSession, Subscription
from .checkout import redirect_base_url
from .entitlements import EntitlementQuery
from .handlers import CheckoutCompletionHandler
from .subscriptions import SubscriptionStore, now_ms

logger = logging.getLogger(__name__)


class SubscriptionSyncService:
    def __init__(
        self,
        gateway: Optional[StripeGateway] = None,
        store: Optional[SubscriptionStore] = None,
        completion_handler: Optional[CheckoutCompletionHandler] = None,
        entitlements: Optional[EntitlementQuery] = None,
    ):
        self.gateway = gateway or StripeGateway()
        self.store = store or SubscriptionStore()
        self.completion_handler = completion_handler or CheckoutCompletionHandler(
            gateway=self.gateway, store=self.store
        )
        self.entitlements = entitlements or EntitlementQuery()

    def sync_checkout_session(self, user, session_id: str) -> Dict[str, Any]:
        """
        Sync a checkout session the user returned from.

        Returns ``{"success": True}`` once the session is complete at Stripe,
        ``{"success": False}`` while it is still open.

        Raises:
            SubscriptionNotFound: the session does not exist or belongs to someone else
            ExternalAPIFailure: Stripe could not be reached
        """
        if not CheckoutSession.objects.filter(session_id=session_id, user=user).exists():
            raise SubscriptionNotFound(
                "Checkout session not found", details={"session_id": session_id}
            )

        state = self.gateway.retrieve_checkout_session(session_id)
        if state.status != CheckoutSession.Status.COMPLETE:
            logger.info("Checkout session %s not complete yet (%s)", session_id, state.status)
            return {"success": False}

        self.completion_handler.complete(session_id, state.customer_id, state.subscription_id)
        return {"success": True}

    def sync_subscription(self, user, subscription_id: str) -> Subscription:
        """Re-fetch one of the caller's own subscriptions."""
        existing = Subscription.objects.filter(
            subscription_id=subscription_id, user=user
        ).first()
        if existing is None:
            raise SubscriptionNotFound(
                "Subscription not found", details={"subscription_id": subscription_id}
            )
        return self._refresh(existing)

    def admin_sync_user(self, user) -> Dict[str, Any]:
        latest = self.entitlements.latest_subscription(user)
        if latest is None:
            return {"success": False, "message": "User has no subscription"}
        stored = self._refresh(latest)
        return {
            "success": True,
            "message": f"Subscription {stored.subscription_id} synced ({stored.status})",
        }

    def sync_all(self) -> Dict[str, int]:
        """Re-fetch every stored subscription. Per-row failures are logged and counted."""
        counts = {"synced": 0, "skipped": 0, "failed": 0}
        for subscription in Subscription.objects.select_related("user").order_by("id").iterator():
            try:
                stored = self.store.upsert(
                    self.gateway.retrieve_subscription(subscription.subscription_id),
                    subscription.user,
                )
            except BillingError as exc:
                logger.error(
                    "Sync of subscription %s failed: %s", subscription.subscription_id, exc
                )
                counts["failed"] += 1
                continue
            counts["synced" if stored is not None else "skipped"] += 1

        logger.info("Subscription sync finished: %s", counts)
        return counts

    def reactivate(self, user) -> Subscription:
        """
        Clear ``cancel_at_period_end`` on the caller's current subscription.

        Raises:
            SubscriptionNotFound: no active or trialing subscription
            SubscriptionNotReactivatable: the subscription is not scheduled to cancel
        """
        current = self.entitlements.get_my_subscription(user)
        if current is None:
            raise SubscriptionNotFound("No active subscription")
        if not current.cancel_at_period_end:
            raise SubscriptionNotReactivatable(
                "Subscription is not scheduled for cancellation",
                details={"subscription_id": current.subscription_id},
            )

        snapshot = self.gateway.set_cancel_at_period_end(current.subscription_id, False)
        stored = self.store.upsert(snapshot, user)
        logger.info("Subscription %s reactivated by user %s", current.subscription_id, user.pk)
        return stored or current

    def portal_url(self, user) -> str:
        latest = self.entitlements.latest_subscription(user)
        if latest is None or not latest.customer_id:
            raise NoBillingCustomer("No billing customer for this account")
        return self.gateway.create_portal_session(
            latest.customer_id, f"{redirect_base_url()}/payments"
        )

    def _refresh(self, subscription: Subscription) -> Subscription:
        snapshot = self.gateway.retrieve_subscription(subscription.subscription_id)
        return self.store.upsert(snapshot, subscription.user) or subscription


def expire_ended_subscriptions(now: Optional[int] = None) -> int:
    """
    Cancel entitled rows whose period already ended.

    Covers subscriptions whose final ``customer.subscription.deleted`` never
    arrived. Returns the number of rows updated.
    """
    cutoff = now if now is not None else now_ms()
    expired = Subscription.objects.filter(
        status__in=Subscription.ENTITLED_STATUSES,
        current_period_end__lt=cutoff,
    )
    for subscription_id in expired.values_list("subscription_id", flat=True):
        logger.info("Expiring subscription %s", subscription_id)
    count = expired.update(
        status=Subscription.Status.CANCELED,
        updated_at=timezone.now(),
    )
    logger.info("Expired %d subscription(s)", count)
    return count
