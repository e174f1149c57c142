"""
Stripe webhook signature verification.

Stripe signs ``"{timestamp}.{raw body}"`` with HMAC-SHA256 and sends the
result in the ``Stripe-Signature`` header. Verification therefore has to run
on the exact bytes received; the body is only parsed after it passed.
"""

import json
import logging
from typing import Any, Dict, Optional

import stripe
from django.conf import settings

from .exceptions import BillingConfigurationError, SignatureInvalid

logger = logging.getLogger(__name__)


class SignatureVerifier:
    """Validates a webhook delivery against the endpoint's signing secret."""

    def __init__(self, secret: Optional[str] = None, tolerance: Optional[int] = None):
        self.secret = secret
        self.tolerance = tolerance

    def _get_secret(self) -> str:
        secret = self.secret or getattr(settings, "STRIPE_WEBHOOK_SECRET", "")
        if not secret:
            raise BillingConfigurationError("STRIPE_WEBHOOK_SECRET is not configured")
        return secret

    def _get_tolerance(self) -> int:
        if self.tolerance is not None:
            return self.tolerance
        return getattr(settings, "STRIPE_WEBHOOK_TOLERANCE", stripe.Webhook.DEFAULT_TOLERANCE)

    def verify(self, raw_body: bytes, signature_header: Optional[str]) -> Dict[str, Any]:
        """
        Verify ``raw_body`` against ``signature_header`` and return the decoded event.

        Raises:
            SignatureInvalid: missing/malformed header, mismatch, stale timestamp,
                or a body that is not UTF-8 JSON
        """
        if not signature_header:
            raise SignatureInvalid("Missing Stripe-Signature header")

        try:
            payload = raw_body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise SignatureInvalid("Webhook body is not valid UTF-8") from exc

        try:
            stripe.WebhookSignature.verify_header(
                payload, signature_header, self._get_secret(), self._get_tolerance()
            )
        except stripe.SignatureVerificationError as exc:
            logger.warning("Webhook signature verification failed: %s", exc)
            raise SignatureInvalid("Webhook signature verification failed") from exc

        try:
            event = json.loads(payload)
        except ValueError as exc:
            raise SignatureInvalid("Webhook body is not valid JSON") from exc

        if not isinstance(event, dict):
            raise SignatureInvalid("Webhook body is not a JSON object")
        return event
