import logging
from typing import Optional

from django.contrib.auth import get_user_model

from ..exceptions import UnresolvedCustomer
from ..models import CheckoutSession

logger = logging.getLogger(__name__)
User = get_user_model()


class CustomerResolver:
    """
    Maps a Stripe customer id back to a local user.

    The only mapping we have is the checkout session that first introduced
    the customer; it gets its ``customer_id`` when the completion event is
    processed. Until then the customer is unresolvable.
    """

    def by_customer_id(self, customer_id: Optional[str]) -> Optional[User]:
        if not customer_id:
            return None
        session = (
            CheckoutSession.objects.select_related("user")
            .filter(customer_id=customer_id)
            .order_by("created_at", "id")
            .first()
        )
        return session.user if session else None

    def require_user(self, customer_id: Optional[str]) -> User:
        user = self.by_customer_id(customer_id)
        if user is None:
            raise UnresolvedCustomer(customer_id or "")
        return user
