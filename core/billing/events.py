"""
Typed Stripe webhook events.

Stripe tags events with an open string (``event["type"]``). We parse the few
types the engine reacts to into dataclasses and map every other type to
``UnhandledEvent``, so the dispatcher works on a closed set plus a default arm.

Payload normalization happens here:
- ``customer`` / ``subscription`` may be ids or expanded objects
- provider timestamps are seconds; we carry epoch milliseconds
- period bounds fall back to the first subscription item (newer API versions
  moved ``current_period_*`` there)
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from .exceptions import MalformedEvent

CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"
SUBSCRIPTION_CREATED = "customer.subscription.created"
SUBSCRIPTION_UPDATED = "customer.subscription.updated"
SUBSCRIPTION_DELETED = "customer.subscription.deleted"


def field(obj: Any, key: str, default: Any = None) -> Any:
    """Read ``key`` from a dict or StripeObject, ``default`` when missing or None."""
    if obj is None:
        return default
    try:
        value = obj[key]
    except (KeyError, TypeError, IndexError):
        return default
    return default if value is None else value


def object_id(value: Any) -> Optional[str]:
    """Return the id of an expandable field (plain id string or expanded object)."""
    if value is None:
        return None
    if isinstance(value, str):
        return value or None
    return field(value, "id")


def seconds_to_ms(value: Any) -> Optional[int]:
    if value is None:
        return None
    return int(value) * 1000


@dataclass(frozen=True)
class SubscriptionSnapshot:
    """Provider state of one subscription, already converted to local units."""

    subscription_id: str
    customer_id: str
    status: str
    current_period_start: Optional[int]
    current_period_end: Optional[int]
    cancel_at_period_end: bool
    canceled_at: Optional[int] = None

    @classmethod
    def from_stripe(cls, obj: Any) -> "SubscriptionSnapshot":
        subscription_id = field(obj, "id")
        customer_id = object_id(field(obj, "customer"))
        if not subscription_id or not customer_id:
            raise MalformedEvent(
                "Subscription object is missing id or customer",
                details={"subscription_id": subscription_id},
            )

        first_item = field(field(field(obj, "items"), "data", []), 0)
        period_start = field(obj, "current_period_start", field(first_item, "current_period_start"))
        period_end = field(obj, "current_period_end", field(first_item, "current_period_end"))
        return cls(
            subscription_id=subscription_id,
            customer_id=customer_id,
            status=field(obj, "status", ""),
            current_period_start=seconds_to_ms(period_start),
            current_period_end=seconds_to_ms(period_end),
            cancel_at_period_end=bool(field(obj, "cancel_at_period_end", False)),
            canceled_at=seconds_to_ms(field(obj, "canceled_at")),
        )


@dataclass(frozen=True)
class CheckoutSessionCompleted:
    event_id: str
    session_id: str
    customer_id: Optional[str]
    subscription_id: Optional[str]
    type: str = CHECKOUT_SESSION_COMPLETED


@dataclass(frozen=True)
class SubscriptionChanged:
    """``customer.subscription.created`` or ``customer.subscription.updated``."""

    event_id: str
    subscription: SubscriptionSnapshot
    type: str = SUBSCRIPTION_UPDATED


@dataclass(frozen=True)
class SubscriptionDeleted:
    event_id: str
    subscription: SubscriptionSnapshot
    type: str = SUBSCRIPTION_DELETED


@dataclass(frozen=True)
class UnhandledEvent:
    event_id: str
    type: str


WebhookEvent = Union[CheckoutSessionCompleted, SubscriptionChanged, SubscriptionDeleted, UnhandledEvent]


def parse_event(payload: Dict[str, Any]) -> WebhookEvent:
    """
    Turn a verified Stripe event payload into a ``WebhookEvent``.

    Raises:
        MalformedEvent: the payload has no type or no ``data.object``
    """
    event_type = field(payload, "type")
    event_id = field(payload, "id", "")
    if not event_type:
        raise MalformedEvent("Event has no type", details={"event_id": event_id})

    if event_type not in (
        CHECKOUT_SESSION_COMPLETED,
        SUBSCRIPTION_CREATED,
        SUBSCRIPTION_UPDATED,
        SUBSCRIPTION_DELETED,
    ):
        return UnhandledEvent(event_id=event_id, type=event_type)

    obj = field(field(payload, "data"), "object")
    if not isinstance(obj, dict):
        raise MalformedEvent(
            "Event has no data.object",
            details={"event_id": event_id, "type": event_type},
        )

    if event_type == CHECKOUT_SESSION_COMPLETED:
        session_id = field(obj, "id")
        if not session_id:
            raise MalformedEvent("Checkout session has no id", details={"event_id": event_id})
        return CheckoutSessionCompleted(
            event_id=event_id,
            session_id=session_id,
            customer_id=object_id(field(obj, "customer")),
            subscription_id=object_id(field(obj, "subscription")),
        )

    snapshot = SubscriptionSnapshot.from_stripe(obj)
    if event_type == SUBSCRIPTION_DELETED:
        return SubscriptionDeleted(event_id=event_id, subscription=snapshot)
    return SubscriptionChanged(event_id=event_id, subscription=snapshot, type=event_type)
