"""
Subscription Store

Idempotent insert-or-update of ``Subscription`` rows keyed by the Stripe
subscription id.

Write policy:
- Last write wins. The incoming snapshot overwrites status, period bounds
  and cancellation fields without comparing event recency, so a stale
  redelivery can regress a row until the next event arrives.
- The upsert is read-then-write, not compare-and-swap. Two concurrent
  deliveries for the same subscription can interleave; whichever commits
  last is what stays. A concurrent double insert hits the unique constraint
  and the losing delivery fails (Stripe redelivers it, and the retry takes
  the update path).
- ``user`` and ``customer_id`` are set on insert only.

Author: DSP Development Team
Version: 1.0.0
"""

import logging
import time
from typing import Optional

from django.db import transaction

from ..events import SubscriptionSnapshot
from ..models import Subscription

logger = logging.getLogger(__name__)

# Stripe statuses without a local counterpart
STATUS_ALIASES = {
    "incomplete_expired": Subscription.Status.CANCELED,
    "paused": Subscription.Status.UNPAID,
}


def now_ms() -> int:
    return int(time.time() * 1000)


def normalize_status(status: Optional[str]) -> Optional[str]:
    """Map a Stripe subscription status onto ``Subscription.Status``; None if unknown."""
    if status in Subscription.Status.values:
        return status
    return STATUS_ALIASES.get(status)


class SubscriptionStore:
    """Insert-or-update writer for ``Subscription`` rows."""

    def upsert(
        self,
        snapshot: SubscriptionSnapshot,
        user,
        *,
        status: Optional[str] = None,
    ) -> Optional[Subscription]:
        """
        Write ``snapshot`` for ``user``.

        Args:
            snapshot: provider state, already in local units
            user: owner, used only when the row is created
            status: overrides ``snapshot.status`` (cancellation path)

        Returns:
            The stored row, or None when the provider status is not modelled locally
        """
        local_status = normalize_status(status or snapshot.status)
        if local_status is None:
            logger.warning(
                "Skipping subscription %s: unsupported status %r",
                snapshot.subscription_id,
                snapshot.status,
            )
            return None

        with transaction.atomic():
            existing = Subscription.objects.filter(
                subscription_id=snapshot.subscription_id
            ).first()

            if existing is not None:
                existing.status = local_status
                if snapshot.current_period_start is not None:
                    existing.current_period_start = snapshot.current_period_start
                if snapshot.current_period_end is not None:
                    existing.current_period_end = snapshot.current_period_end
                existing.cancel_at_period_end = snapshot.cancel_at_period_end
                existing.canceled_at = snapshot.canceled_at
                existing.save(
                    update_fields=[
                        "status",
                        "current_period_start",
                        "current_period_end",
                        "cancel_at_period_end",
                        "canceled_at",
                        "updated_at",
                    ]
                )
                logger.info(
                    "Updated subscription %s (user=%s, status=%s)",
                    existing.subscription_id,
                    existing.user_id,
                    local_status,
                )
                return existing

            fallback = now_ms()
            created = Subscription.objects.create(
                subscription_id=snapshot.subscription_id,
                user=user,
                customer_id=snapshot.customer_id,
                status=local_status,
                current_period_start=(
                    snapshot.current_period_start
                    if snapshot.current_period_start is not None
                    else fallback
                ),
                current_period_end=(
                    snapshot.current_period_end
                    if snapshot.current_period_end is not None
                    else fallback
                ),
                cancel_at_period_end=snapshot.cancel_at_period_end,
                canceled_at=snapshot.canceled_at,
            )
            logger.info(
                "Created subscription %s (user=%s, status=%s)",
                created.subscription_id,
                created.user_id,
                local_status,
            )
            return created
