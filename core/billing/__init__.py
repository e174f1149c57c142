"""
Billing Package - Course Platform
=================================

This package keeps the local subscription/entitlement state in sync with
Stripe. It is the only owner of ``CheckoutSession`` and ``Subscription``
rows; every other part of the platform reads entitlement through
``core.billing.services.entitlements``.

Two independent channels feed it:

- Checkout initiation (synchronous): the user asks for a checkout, we call
  Stripe, persist a pending ``CheckoutSession`` and hand back the hosted URL.
- Webhooks (asynchronous, at-least-once, unordered): Stripe pushes
  ``checkout.session.completed`` and ``customer.subscription.*`` events that
  are verified, parsed and routed to the completion and lifecycle handlers.

Reconciliation policy
---------------------
- Upserts are keyed by the Stripe subscription id and are safe to repeat.
- Last write wins: events are applied in arrival order, without comparing
  event timestamps. A stale redelivery can regress a row until Stripe sends
  the next event.
- Events for customers we cannot map to a user are logged and dropped.
  There is no retry queue; operators reconcile through the admin or the
  ``sync_subscriptions`` command.

Structure
---------
- apps.py         → App configuration (`BillingConfig`)
- models.py       → CheckoutSession, Subscription, PaymentSettings
- exceptions.py   → BillingError hierarchy
- signature.py    → Stripe-Signature verification on the raw body
- events.py       → typed webhook events
- gateway.py      → Stripe SDK calls (checkout, subscriptions, portal, catalog)
- services/       → checkout, customers, subscriptions, handlers, dispatcher,
                    entitlements, payment settings, sync
- views.py        → API endpoints
- urls.py         → Routes

Author: DSP Development Team
Version: 1.0.0
"""
