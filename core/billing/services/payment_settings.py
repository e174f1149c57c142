import logging
from typing import Any, Dict, Optional

from django.db import transaction

from ..models import PaymentSettings

logger = logging.getLogger(__name__)


def get_payment_settings() -> Optional[PaymentSettings]:
    return PaymentSettings.current()


@transaction.atomic
def replace_payment_settings(**data: Any) -> PaymentSettings:
    """
    Replace the offered product and prices.

    Delete-all then insert inside one transaction, so readers never observe
    an empty table.
    """
    deleted, _ = PaymentSettings.objects.all().delete()
    payment_settings = PaymentSettings.objects.create(**data)
    logger.info(
        "Payment settings replaced (product=%s, monthly=%s, yearly=%s, removed=%d)",
        payment_settings.product_id,
        payment_settings.monthly_price_id,
        payment_settings.yearly_price_id,
        deleted,
    )
    return payment_settings


def format_price(amount: Optional[int], currency: Optional[str]) -> Optional[str]:
    """``1999, "usd"`` -> ``"19.99 USD"``."""
    if amount is None or not currency:
        return None
    return f"{amount / 100:.2f} {currency.upper()}"


def public_pricing(payment_settings: Optional[PaymentSettings]) -> Optional[Dict[str, Any]]:
    """Shape the configured prices for the public pricing page."""
    if payment_settings is None:
        return None

    def price(price_id, amount, currency, interval):
        if not price_id:
            return None
        return {
            "price_id": price_id,
            "amount": amount,
            "currency": (currency or "").upper(),
            "interval": interval,
            "interval_label": PaymentSettings.INTERVAL_LABELS.get(interval, interval.title()),
            "price_display": format_price(amount, currency),
        }

    return {
        "product_id": payment_settings.product_id,
        "product_name": payment_settings.product_name,
        "monthly": price(
            payment_settings.monthly_price_id,
            payment_settings.monthly_price_amount,
            payment_settings.monthly_price_currency,
            "month",
        ),
        "yearly": price(
            payment_settings.yearly_price_id,
            payment_settings.yearly_price_amount,
            payment_settings.yearly_price_currency,
            "year",
        ),
    }
