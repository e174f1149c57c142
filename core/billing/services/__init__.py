"""
Billing services.

Leaves first:
- customers      → CustomerResolver (Stripe customer id → local user)
- subscriptions  → SubscriptionStore (idempotent upsert keyed by subscription id)
- checkout       → CheckoutInitiator
- handlers       → CheckoutCompletionHandler, SubscriptionLifecycleHandler
- dispatcher     → WebhookDispatcher (verify, parse, route)
- entitlements   → EntitlementQuery (read path for the rest of the platform)
- payment_settings, sync → admin settings and provider re-sync
"""
