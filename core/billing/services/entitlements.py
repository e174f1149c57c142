"""
Read-side entitlement queries.

A user may own several subscription rows (resubscribing creates a new Stripe
subscription). The "current" one is derived at read time: the most recently
created row whose status grants access. Ties on ``created_at`` go to the
higher primary key.
"""

from typing import Optional

from ..models import Subscription


class EntitlementQuery:
    ordering = ("-created_at", "-id")

    def get_my_subscription(self, user) -> Optional[Subscription]:
        """The entitling subscription of ``user``, or None when unauthenticated or unpaid."""
        if user is None or not user.is_authenticated:
            return None
        return (
            Subscription.objects.filter(user=user, status__in=Subscription.ENTITLED_STATUSES)
            .order_by(*self.ordering)
            .first()
        )

    def latest_subscription(self, user) -> Optional[Subscription]:
        """Most recent row regardless of status (billing screens, admin sync)."""
        if user is None:
            return None
        return Subscription.objects.filter(user=user).order_by(*self.ordering).first()

    def has_access(self, user) -> bool:
        return self.get_my_subscription(user) is not None
