"""
Webhook event handlers.

Both handlers are safe to run several times for the same logical event:
checkout completion only ever moves a session to ``complete`` and the
subscription writes go through the idempotent ``SubscriptionStore``.

Drops (logged, no exception):
- completion for a checkout session we never created
- lifecycle events for a customer no checkout session maps to a user

Author: DSP Development Team
Version: 1.0.0
"""

import logging
from dataclasses import replace
from typing import Optional

from django.db import transaction
from django.utils import timezone

from ..events import SubscriptionSnapshot
from ..exceptions import ExternalAPIFailure, UnresolvedCustomer
from ..gateway import StripeGateway
from ..models import CheckoutSession, Subscription
from .customers import CustomerResolver
from .subscriptions import SubscriptionStore, now_ms

logger = logging.getLogger(__name__)


class CheckoutCompletionHandler:
    def __init__(
        self,
        gateway: Optional[StripeGateway] = None,
        store: Optional[SubscriptionStore] = None,
    ):
        self.gateway = gateway or StripeGateway()
        self.store = store or SubscriptionStore()

    def complete(
        self,
        session_id: str,
        customer_id: Optional[str],
        subscription_id: Optional[str],
    ) -> Optional[Subscription]:
        """
        Finalize ``session_id`` and eagerly store its subscription.

        The eager fetch closes a resolution race: ``customer.subscription.created``
        can arrive before this completion recorded the customer id, in which
        case the lifecycle handler drops it. Storing the subscription here
        gives at least one consistent write either way.

        Returns:
            The stored subscription, or None when there was nothing to store
            or the enrichment failed
        """
        with transaction.atomic():
            session = (
                CheckoutSession.objects.select_for_update()
                .filter(session_id=session_id)
                .first()
            )
            if session is None:
                logger.warning(
                    "checkout.session.completed for unknown session %s; ignoring",
                    session_id,
                )
                return None

            already_complete = session.status == CheckoutSession.Status.COMPLETE
            if not already_complete:
                session.status = CheckoutSession.Status.COMPLETE
                session.customer_id = customer_id
                session.subscription_id = subscription_id
                session.completed_at = timezone.now()
                session.save(
                    update_fields=["status", "customer_id", "subscription_id", "completed_at"]
                )

        if already_complete:
            # Redelivery: the session row stays as first completed, enrichment still runs.
            logger.info("Checkout session %s already complete", session_id)
        else:
            logger.info(
                "Checkout session %s complete (user=%s, customer=%s, subscription=%s)",
                session_id,
                session.user_id,
                customer_id,
                subscription_id,
            )

        if not subscription_id:
            return None

        try:
            snapshot = self.gateway.retrieve_subscription(subscription_id)
        except ExternalAPIFailure:
            # Session stays complete; the next lifecycle event fills the row in.
            logger.exception(
                "Could not fetch subscription %s after checkout %s",
                subscription_id,
                session_id,
            )
            return None

        return self.store.upsert(snapshot, session.user)


class SubscriptionLifecycleHandler:
    def __init__(
        self,
        resolver: Optional[CustomerResolver] = None,
        store: Optional[SubscriptionStore] = None,
    ):
        self.resolver = resolver or CustomerResolver()
        self.store = store or SubscriptionStore()

    def _resolve(self, snapshot: SubscriptionSnapshot):
        try:
            return self.resolver.require_user(snapshot.customer_id)
        except UnresolvedCustomer:
            # Permanent drop: no retry queue. A later event or a manual sync recovers it.
            logger.error(
                "No checkout session found for customer %s; dropping subscription %s (status=%s)",
                snapshot.customer_id,
                snapshot.subscription_id,
                snapshot.status,
            )
            return None

    def upsert(self, snapshot: SubscriptionSnapshot) -> Optional[Subscription]:
        user = self._resolve(snapshot)
        if user is None:
            return None
        return self.store.upsert(snapshot, user)

    def cancel(self, snapshot: SubscriptionSnapshot) -> Optional[Subscription]:
        user = self._resolve(snapshot)
        if user is None:
            return None
        canceled = replace(
            snapshot,
            cancel_at_period_end=False,
            canceled_at=snapshot.canceled_at if snapshot.canceled_at is not None else now_ms(),
        )
        return self.store.upsert(canceled, user, status=Subscription.Status.CANCELED)
