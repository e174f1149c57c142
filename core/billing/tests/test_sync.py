from unittest import mock

import stripe
from django.contrib.auth.models import User
from django.test import TestCase, override_settings

from core.billing.exceptions import (
    ExternalAPIFailure,
    NoBillingCustomer,
    SubscriptionNotFound,
    SubscriptionNotReactivatable,
)
from core.billing.models import CheckoutSession, PaymentSettings, Subscription
from core.billing.services.payment_settings import public_pricing, replace_payment_settings
from core.billing.services.sync import SubscriptionSyncService, expire_ended_subscriptions

from .utils import create_payment_settings, create_subscription, subscription_object


@override_settings(
    STRIPE_SECRET_KEY="sk_test_123",
    BILLING_REDIRECT_BASE_URL="https://courses.example.com",
)
class SubscriptionSyncServiceTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.user = User.objects.create_user(username="u1", password="pw")
        cls.other = User.objects.create_user(username="u2", password="pw")

    def setUp(self):
        self.service = SubscriptionSyncService()

    # --- checkout return ---

    @mock.patch("stripe.Subscription.retrieve", return_value=subscription_object())
    @mock.patch(
        "stripe.checkout.Session.retrieve",
        return_value={
            "id": "cs_1",
            "status": "complete",
            "customer": "cus_1",
            "subscription": "sub_1",
            "metadata": {"user_id": "1"},
        },
    )
    def test_sync_completed_checkout(self, retrieve_session, retrieve_subscription):
        CheckoutSession.objects.create(session_id="cs_1", user=self.user)

        result = self.service.sync_checkout_session(self.user, "cs_1")

        self.assertEqual(result, {"success": True})
        self.assertEqual(
            CheckoutSession.objects.get(session_id="cs_1").status,
            CheckoutSession.Status.COMPLETE,
        )
        self.assertEqual(Subscription.objects.get().user, self.user)

    @mock.patch("stripe.Subscription.retrieve")
    @mock.patch(
        "stripe.checkout.Session.retrieve",
        return_value={"id": "cs_1", "status": "open", "customer": None, "subscription": None},
    )
    def test_sync_open_checkout(self, retrieve_session, retrieve_subscription):
        CheckoutSession.objects.create(session_id="cs_1", user=self.user)

        self.assertEqual(self.service.sync_checkout_session(self.user, "cs_1"), {"success": False})
        self.assertEqual(
            CheckoutSession.objects.get(session_id="cs_1").status,
            CheckoutSession.Status.PENDING,
        )
        retrieve_subscription.assert_not_called()

    @mock.patch("stripe.checkout.Session.retrieve")
    def test_sync_foreign_checkout_is_not_found(self, retrieve_session):
        CheckoutSession.objects.create(session_id="cs_1", user=self.other)

        with self.assertRaises(SubscriptionNotFound):
            self.service.sync_checkout_session(self.user, "cs_1")
        retrieve_session.assert_not_called()

    # --- subscription re-sync ---

    @mock.patch(
        "stripe.Subscription.retrieve",
        return_value=subscription_object(status="past_due", current_period_end=9000),
    )
    def test_sync_own_subscription(self, retrieve):
        create_subscription(self.user)

        stored = self.service.sync_subscription(self.user, "sub_1")

        self.assertEqual(stored.status, Subscription.Status.PAST_DUE)
        self.assertEqual(stored.current_period_end, 9_000_000)

    @mock.patch("stripe.Subscription.retrieve")
    def test_sync_foreign_subscription_is_not_found(self, retrieve):
        create_subscription(self.other)
        with self.assertRaises(SubscriptionNotFound):
            self.service.sync_subscription(self.user, "sub_1")
        retrieve.assert_not_called()

    @mock.patch("stripe.Subscription.retrieve", return_value=subscription_object(status="canceled"))
    def test_admin_sync_user(self, retrieve):
        create_subscription(self.user)

        result = self.service.admin_sync_user(self.user)

        self.assertTrue(result["success"])
        self.assertIn("sub_1", result["message"])
        self.assertEqual(Subscription.objects.get().status, Subscription.Status.CANCELED)

    def test_admin_sync_user_without_subscription(self):
        self.assertEqual(
            self.service.admin_sync_user(self.user),
            {"success": False, "message": "User has no subscription"},
        )

    @mock.patch("stripe.Subscription.retrieve")
    def test_sync_all_counts_failures(self, retrieve):
        create_subscription(self.user, subscription_id="sub_ok")
        create_subscription(self.user, subscription_id="sub_broken")
        create_subscription(self.other, subscription_id="sub_weird", customer_id="cus_2")

        def fake_retrieve(subscription_id):
            if subscription_id == "sub_broken":
                raise stripe.APIConnectionError("timeout")
            if subscription_id == "sub_weird":
                return subscription_object(subscription_id, customer="cus_2", status="mystery")
            return subscription_object(subscription_id, status="past_due")

        retrieve.side_effect = fake_retrieve

        with self.assertLogs("core.billing", level="ERROR"):
            counts = self.service.sync_all()

        self.assertEqual(counts, {"synced": 1, "skipped": 1, "failed": 1})
        self.assertEqual(
            Subscription.objects.get(subscription_id="sub_ok").status, Subscription.Status.PAST_DUE
        )

    # --- reactivation ---

    @mock.patch("stripe.Subscription.modify", return_value=subscription_object())
    def test_reactivate(self, modify):
        create_subscription(self.user, cancel_at_period_end=True)

        stored = self.service.reactivate(self.user)

        modify.assert_called_once_with("sub_1", cancel_at_period_end=False)
        self.assertFalse(stored.cancel_at_period_end)

    @mock.patch("stripe.Subscription.modify")
    def test_reactivate_without_pending_cancellation(self, modify):
        create_subscription(self.user)
        with self.assertRaises(SubscriptionNotReactivatable):
            self.service.reactivate(self.user)
        modify.assert_not_called()

    def test_reactivate_without_active_subscription(self):
        create_subscription(self.user, status="canceled", cancel_at_period_end=True)
        with self.assertRaises(SubscriptionNotFound):
            self.service.reactivate(self.user)

    @mock.patch(
        "stripe.Subscription.modify",
        side_effect=stripe.InvalidRequestError("No such subscription", "id"),
    )
    def test_reactivate_stripe_failure(self, modify):
        create_subscription(self.user, cancel_at_period_end=True)
        with self.assertLogs("core.billing", level="ERROR"):
            with self.assertRaises(ExternalAPIFailure):
                self.service.reactivate(self.user)
        self.assertTrue(Subscription.objects.get().cancel_at_period_end)

    # --- customer portal ---

    @mock.patch(
        "stripe.billing_portal.Session.create",
        return_value={"url": "https://billing.stripe.com/p/session/abc"},
    )
    def test_portal_url(self, create):
        create_subscription(self.user, status="canceled")

        url = self.service.portal_url(self.user)

        self.assertEqual(url, "https://billing.stripe.com/p/session/abc")
        create.assert_called_once_with(
            customer="cus_1", return_url="https://courses.example.com/payments"
        )

    def test_portal_url_without_customer(self):
        with self.assertRaises(NoBillingCustomer):
            self.service.portal_url(self.user)


class ExpireEndedSubscriptionsTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.user = User.objects.create_user(username="u1", password="pw")

    def test_only_lapsed_entitled_rows_expire(self):
        create_subscription(self.user, subscription_id="sub_lapsed", current_period_end=1_000)
        create_subscription(
            self.user, subscription_id="sub_trial_lapsed", status="trialing", current_period_end=1_000
        )
        create_subscription(self.user, subscription_id="sub_running", current_period_end=10_000)
        create_subscription(
            self.user, subscription_id="sub_past_due", status="past_due", current_period_end=1_000
        )

        count = expire_ended_subscriptions(now=5_000)

        self.assertEqual(count, 2)
        statuses = dict(Subscription.objects.values_list("subscription_id", "status"))
        self.assertEqual(statuses["sub_lapsed"], "canceled")
        self.assertEqual(statuses["sub_trial_lapsed"], "canceled")
        self.assertEqual(statuses["sub_running"], "active")
        self.assertEqual(statuses["sub_past_due"], "past_due")
        # expiry rewrites the status only
        self.assertIsNone(Subscription.objects.get(subscription_id="sub_lapsed").canceled_at)


class PaymentSettingsServiceTests(TestCase):
    def test_replace_keeps_single_row(self):
        create_payment_settings()
        replaced = replace_payment_settings(
            product_id="prod_2",
            product_name="Pro 2",
            monthly_price_id="price_m2",
            monthly_price_amount=2500,
            monthly_price_currency="eur",
        )

        self.assertEqual(PaymentSettings.objects.count(), 1)
        self.assertEqual(PaymentSettings.current(), replaced)
        self.assertEqual(replaced.offered_price_ids, ["price_m2"])

    def test_public_pricing_display_fields(self):
        pricing = public_pricing(create_payment_settings())

        self.assertEqual(pricing["product_name"], "Course Platform Pro")
        self.assertEqual(
            pricing["monthly"],
            {
                "price_id": "price_month",
                "amount": 1999,
                "currency": "USD",
                "interval": "month",
                "interval_label": "Monthly",
                "price_display": "19.99 USD",
            },
        )
        self.assertEqual(pricing["yearly"]["price_display"], "199.00 USD")
        self.assertEqual(pricing["yearly"]["interval_label"], "Yearly")

    def test_public_pricing_without_yearly_price(self):
        pricing = public_pricing(
            create_payment_settings(
                yearly_price_id=None, yearly_price_amount=None, yearly_price_currency=None
            )
        )
        self.assertIsNone(pricing["yearly"])

    def test_public_pricing_without_settings(self):
        self.assertIsNone(public_pricing(None))
