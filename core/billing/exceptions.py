"""
Billing Exceptions

Exception hierarchy for the billing engine. Every exception carries an HTTP
status code and a machine-readable error code so the API views can turn it
into a response with ``to_dict()``.

Only the synchronous paths (checkout, sync, portal, settings) surface these
to a user. On the webhook path the dispatcher logs and drops the recoverable
cases (unresolved customer, unknown event types) and lets everything else
propagate so Stripe redelivers.

Author: DSP Development Team
Version: 1.0.0
"""

from typing import Any, Dict, Optional


class BillingError(Exception):
    """
    Base exception class for all billing errors.

    Attributes:
        message (str): Human-readable error message
        status_code (int): HTTP status code used by the API views
        error_code (str): Stable identifier for the frontend
        details (Dict[str, Any]): Additional error context
    """

    status_code: int = 400
    error_code: str = "BILLING_ERROR"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if error_code is not None:
            self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for serialization.

        Returns:
            Dictionary representation of the exception
        """
        return {
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }


class SignatureInvalid(BillingError):
    """
    The Stripe-Signature header does not match the raw body, is malformed,
    or its timestamp is outside the tolerance window. Fatal for the request:
    nothing is processed.
    """

    status_code = 400
    error_code = "SIGNATURE_INVALID"


class MalformedEvent(BillingError):
    """A correctly signed body that is not a usable Stripe event."""

    status_code = 400
    error_code = "MALFORMED_EVENT"


class UnresolvedCustomer(BillingError):
    """
    No checkout session maps the Stripe customer to a local user.

    Raised by ``CustomerResolver.require_user`` only; the lifecycle handler
    logs and drops instead of raising.
    """

    status_code = 404
    error_code = "UNRESOLVED_CUSTOMER"

    def __init__(self, customer_id: str) -> None:
        super().__init__(
            f"No checkout session found for customer {customer_id}",
            details={"customer_id": customer_id},
        )
        self.customer_id = customer_id


class ExternalAPIFailure(BillingError):
    """A Stripe call failed or returned an incomplete object."""

    status_code = 502
    error_code = "EXTERNAL_API_FAILURE"


class BillingConfigurationError(BillingError):
    """Stripe keys or secrets are missing from the settings."""

    status_code = 500
    error_code = "BILLING_NOT_CONFIGURED"


class PaymentSettingsMissing(BillingError):
    """No product/price has been selected by an administrator yet."""

    status_code = 409
    error_code = "PAYMENT_SETTINGS_MISSING"


class InvalidPrice(BillingError):
    """The requested price is not one of the configured prices."""

    status_code = 400
    error_code = "INVALID_PRICE"


class SubscriptionNotFound(BillingError):
    status_code = 404
    error_code = "SUBSCRIPTION_NOT_FOUND"


class NoBillingCustomer(BillingError):
    status_code = 404
    error_code = "NO_BILLING_CUSTOMER"


class SubscriptionNotReactivatable(BillingError):
    status_code = 409
    error_code = "SUBSCRIPTION_NOT_REACTIVATABLE"
