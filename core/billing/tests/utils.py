"""
Shared helpers for the billing tests: Stripe-shaped payloads and real
Stripe-Signature headers.
"""

import hashlib
import hmac
import json
import time

from core.billing.models import PaymentSettings, Subscription

WEBHOOK_SECRET = "whsec_test_secret"


def sign_payload(payload: str, secret: str = WEBHOOK_SECRET, timestamp=None) -> str:
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.{payload}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def subscription_object(
    subscription_id="sub_1",
    customer="cus_1",
    status="active",
    current_period_start=1000,
    current_period_end=2000,
    cancel_at_period_end=False,
    **extra,
):
    obj = {
        "id": subscription_id,
        "object": "subscription",
        "customer": customer,
        "status": status,
        "current_period_start": current_period_start,
        "current_period_end": current_period_end,
        "cancel_at_period_end": cancel_at_period_end,
        "canceled_at": None,
    }
    obj.update(extra)
    return obj


def event(event_type, obj, event_id="evt_1"):
    return {
        "id": event_id,
        "object": "event",
        "type": event_type,
        "data": {"object": obj},
    }


def signed_event(event_type, obj, event_id="evt_1"):
    """Return ``(body, header)`` for a webhook delivery."""
    body = json.dumps(event(event_type, obj, event_id))
    return body, sign_payload(body)


def create_subscription(user, subscription_id="sub_1", status="active", **fields):
    values = {
        "customer_id": "cus_1",
        "current_period_start": 1_000_000,
        "current_period_end": 2_000_000,
    }
    values.update(fields)
    return Subscription.objects.create(
        user=user, subscription_id=subscription_id, status=status, **values
    )


def create_payment_settings(**fields):
    values = {
        "product_id": "prod_1",
        "product_name": "Course Platform Pro",
        "monthly_price_id": "price_month",
        "monthly_price_amount": 1999,
        "monthly_price_currency": "usd",
        "yearly_price_id": "price_year",
        "yearly_price_amount": 19900,
        "yearly_price_currency": "usd",
    }
    values.update(fields)
    return PaymentSettings.objects.create(**values)
