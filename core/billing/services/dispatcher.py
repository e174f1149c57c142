"""
Webhook Dispatcher

Entry point of the asynchronous channel: verify, parse, route.

Acknowledgement contract:
- bad signature / malformed body: raise (the view answers 400)
- handled or deliberately ignored event: return a ``WebhookAck`` (200)
- any other failure: propagate (the view answers 500 and Stripe redelivers)

Events are not de-duplicated by id; every handler is idempotent instead.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ..events import (
    CheckoutSessionCompleted,
    SubscriptionChanged,
    SubscriptionDeleted,
    WebhookEvent,
    parse_event,
)
from ..signature import SignatureVerifier
from .handlers import CheckoutCompletionHandler, SubscriptionLifecycleHandler

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WebhookAck:
    received: bool
    event_type: str
    handled: bool


class WebhookDispatcher:
    def __init__(
        self,
        verifier: Optional[SignatureVerifier] = None,
        completion_handler: Optional[CheckoutCompletionHandler] = None,
        lifecycle_handler: Optional[SubscriptionLifecycleHandler] = None,
    ):
        self.verifier = verifier or SignatureVerifier()
        self.completion_handler = completion_handler or CheckoutCompletionHandler()
        self.lifecycle_handler = lifecycle_handler or SubscriptionLifecycleHandler()

    def handle(self, raw_body: bytes, signature_header: Optional[str]) -> WebhookAck:
        payload = self.verifier.verify(raw_body, signature_header)
        event = parse_event(payload)
        logger.info("Received Stripe event %s (%s)", event.event_id, event.type)
        return WebhookAck(received=True, event_type=event.type, handled=self.route(event))

    def route(self, event: WebhookEvent) -> bool:
        """Run the handler for ``event``; False when the type is ignored."""
        if isinstance(event, CheckoutSessionCompleted):
            self.completion_handler.complete(
                event.session_id, event.customer_id, event.subscription_id
            )
            return True
        if isinstance(event, SubscriptionChanged):
            self.lifecycle_handler.upsert(event.subscription)
            return True
        if isinstance(event, SubscriptionDeleted):
            self.lifecycle_handler.cancel(event.subscription)
            return True

        logger.info("Ignoring Stripe event %s of type %s", event.event_id, event.type)
        return False
