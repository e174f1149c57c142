"""
Billing Admin

Django admin configuration for the locally mirrored billing state.
Operators use it for manual reconciliation (e.g. after a dropped
subscription event).

Admin classes:
- CheckoutSessionAdmin: checkout sessions and the customer-to-user link
- SubscriptionAdmin: stored subscriptions, with a "sync from Stripe" action
- PaymentSettingsAdmin: offered product and prices

Author: DSP Development Team
Version: 1.0.0
"""

from django.contrib import admin, messages

from .exceptions import BillingError
from .models import CheckoutSession, PaymentSettings, Subscription
from .services.sync import SubscriptionSyncService


@admin.register(CheckoutSession)
class CheckoutSessionAdmin(admin.ModelAdmin):
    list_display = ["session_id", "user", "status", "customer_id", "created_at", "completed_at"]
    list_filter = ["status", "created_at"]
    search_fields = ["session_id", "customer_id", "subscription_id", "user__email", "user__username"]
    readonly_fields = ["created_at", "completed_at"]
    raw_id_fields = ["user"]


@admin.register(Subscription)
class SubscriptionAdmin(admin.ModelAdmin):
    list_display = [
        "subscription_id",
        "user",
        "status",
        "cancel_at_period_end",
        "current_period_end",
        "updated_at",
    ]
    list_filter = ["status", "cancel_at_period_end", "created_at"]
    search_fields = ["subscription_id", "customer_id", "user__email", "user__username"]
    readonly_fields = ["created_at", "updated_at"]
    raw_id_fields = ["user"]
    actions = ["sync_from_stripe"]

    fieldsets = (
        ("Stripe", {"fields": ("subscription_id", "customer_id", "user", "status")}),
        (
            "Billing period (epoch ms)",
            {"fields": ("current_period_start", "current_period_end")},
        ),
        ("Cancellation", {"fields": ("cancel_at_period_end", "canceled_at")}),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
                "classes": ("collapse",),
            },
        ),
    )

    @admin.action(description="Sync selected subscriptions from Stripe")
    def sync_from_stripe(self, request, queryset):
        service = SubscriptionSyncService()
        synced = 0
        for subscription in queryset:
            try:
                service.sync_subscription(subscription.user, subscription.subscription_id)
            except BillingError as exc:
                self.message_user(
                    request,
                    f"{subscription.subscription_id}: {exc.message}",
                    level=messages.ERROR,
                )
                continue
            synced += 1
        self.message_user(request, f"{synced} subscription(s) synced", level=messages.SUCCESS)


@admin.register(PaymentSettings)
class PaymentSettingsAdmin(admin.ModelAdmin):
    list_display = ["product_name", "monthly_price_id", "yearly_price_id", "created_at"]
    readonly_fields = ["created_at"]
