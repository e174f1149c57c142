"""
Billing Models

This module defines the locally mirrored billing state for the course
platform. Stripe remains the source of truth; these rows are what the rest
of the application reads to decide whether a user has paid access.

Models:
- CheckoutSession: one row per checkout started from this backend
- Subscription: one row per Stripe subscription (append-mostly history)
- PaymentSettings: the admin-selected product and prices

Period bounds and cancellation timestamps are stored as epoch milliseconds,
the unit the frontend consumes. There is no "current subscription" column on
the user: the current one is derived at read time (see services.entitlements).

Author: DSP Development Team
Version: 1.0.0
"""

from typing import Optional

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _


class CheckoutSession(models.Model):
    """
    A Stripe-hosted checkout started by one of our users.

    Created once as ``pending`` by the checkout initiator and completed at
    most once by the completion handler. Never deleted: the row is also the
    only link between a Stripe customer id and a local user.
    """

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        COMPLETE = "complete", _("Complete")
        EXPIRED = "expired", _("Expired")

    session_id = models.CharField(
        max_length=255,
        unique=True,
        verbose_name=_("Stripe session id"),
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="checkout_sessions",
        verbose_name=_("User"),
    )
    status = models.CharField(
        max_length=16,
        choices=Status.choices,
        default=Status.PENDING,
    )
    customer_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        db_index=True,
        verbose_name=_("Stripe customer id"),
    )
    subscription_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        verbose_name=_("Stripe subscription id"),
    )
    created_at = models.DateTimeField(auto_now_add=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        verbose_name = _("Checkout Session")
        verbose_name_plural = _("Checkout Sessions")
        db_table = "billing_checkout_session"
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.session_id} ({self.status})"


class Subscription(models.Model):
    """
    Local mirror of a Stripe subscription.

    Keyed by ``subscription_id`` for idempotent upserts. A user can own
    several rows over time (resubscriptions); rows are overwritten by
    webhook/sync writes but never deleted.
    """

    class Status(models.TextChoices):
        INCOMPLETE = "incomplete", _("Incomplete")
        TRIALING = "trialing", _("Trialing")
        ACTIVE = "active", _("Active")
        PAST_DUE = "past_due", _("Past due")
        UNPAID = "unpaid", _("Unpaid")
        CANCELED = "canceled", _("Canceled")

    ENTITLED_STATUSES = (Status.ACTIVE, Status.TRIALING)

    subscription_id = models.CharField(
        max_length=255,
        unique=True,
        verbose_name=_("Stripe subscription id"),
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="subscriptions",
        verbose_name=_("User"),
    )
    customer_id = models.CharField(
        max_length=255,
        verbose_name=_("Stripe customer id"),
    )
    status = models.CharField(
        max_length=16,
        choices=Status.choices,
    )
    current_period_start = models.BigIntegerField(
        help_text=_("Start of the current billing period (epoch ms)"),
    )
    current_period_end = models.BigIntegerField(
        help_text=_("End of the current billing period (epoch ms)"),
    )
    cancel_at_period_end = models.BooleanField(default=False)
    canceled_at = models.BigIntegerField(
        null=True,
        blank=True,
        help_text=_("Cancellation time (epoch ms)"),
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Subscription")
        verbose_name_plural = _("Subscriptions")
        db_table = "billing_subscription"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "status"], name="billing_sub_user_status_idx"),
            models.Index(fields=["status"], name="billing_sub_status_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.subscription_id} ({self.status})"

    @property
    def is_entitled(self) -> bool:
        return self.status in self.ENTITLED_STATUSES


class PaymentSettings(models.Model):
    """
    The product and prices offered at checkout.

    Exactly one row is expected. It is replaced as a whole (delete-all, then
    insert) by ``services.payment_settings.replace_payment_settings``.
    """

    INTERVAL_LABELS = {
        "month": "Monthly",
        "year": "Yearly",
        "week": "Weekly",
        "day": "Daily",
    }

    product_id = models.CharField(max_length=255)
    product_name = models.CharField(max_length=255)
    monthly_price_id = models.CharField(max_length=255)
    monthly_price_amount = models.PositiveIntegerField(
        help_text=_("Amount in the smallest currency unit (cents)"),
    )
    monthly_price_currency = models.CharField(max_length=8)
    yearly_price_id = models.CharField(max_length=255, null=True, blank=True)
    yearly_price_amount = models.PositiveIntegerField(null=True, blank=True)
    yearly_price_currency = models.CharField(max_length=8, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Payment Settings")
        verbose_name_plural = _("Payment Settings")
        db_table = "billing_payment_settings"

    def __str__(self) -> str:
        return f"{self.product_name} ({self.monthly_price_id})"

    @classmethod
    def current(cls) -> Optional["PaymentSettings"]:
        return cls.objects.order_by("-created_at", "-id").first()

    @property
    def offered_price_ids(self) -> list[str]:
        return [p for p in (self.monthly_price_id, self.yearly_price_id) if p]
