from io import StringIO
from unittest import mock

import stripe
from django.contrib.auth.models import User
from django.core.management import CommandError, call_command
from django.test import TestCase, override_settings

from core.billing.models import Subscription

from .utils import create_subscription, subscription_object


class ExpireSubscriptionsCommandTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.user = User.objects.create_user(username="u1", password="pw")

    def test_expires_lapsed_rows(self):
        create_subscription(self.user, subscription_id="sub_old", current_period_end=1_000)
        out = StringIO()

        call_command("expire_subscriptions", stdout=out)

        self.assertIn("Expired 1 subscription(s)", out.getvalue())
        self.assertEqual(Subscription.objects.get().status, Subscription.Status.CANCELED)

    def test_dry_run_changes_nothing(self):
        create_subscription(self.user, subscription_id="sub_old", current_period_end=1_000)
        out = StringIO()

        call_command("expire_subscriptions", "--dry-run", stdout=out)

        self.assertIn("sub_old", out.getvalue())
        self.assertEqual(Subscription.objects.get().status, Subscription.Status.ACTIVE)

    def test_nothing_to_expire(self):
        out = StringIO()
        call_command("expire_subscriptions", stdout=out)
        self.assertIn("No ended subscriptions found", out.getvalue())


class SyncSubscriptionsCommandTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.user = User.objects.create_user(username="u1", password="pw")

    @override_settings(STRIPE_SECRET_KEY="sk_test_123")
    @mock.patch("stripe.Subscription.retrieve")
    def test_sync_reports_counts(self, retrieve):
        create_subscription(self.user, subscription_id="sub_1")
        create_subscription(self.user, subscription_id="sub_2")
        retrieve.side_effect = [
            subscription_object("sub_1", status="past_due"),
            stripe.APIConnectionError("timeout"),
        ]
        out = StringIO()

        with self.assertLogs("core.billing", level="ERROR"):
            call_command("sync_subscriptions", stdout=out)

        self.assertIn("Synced: 1", out.getvalue())
        self.assertIn("Failed: 1", out.getvalue())
        self.assertEqual(
            Subscription.objects.get(subscription_id="sub_1").status, Subscription.Status.PAST_DUE
        )

    @override_settings(STRIPE_SECRET_KEY="")
    def test_sync_without_key(self):
        with self.assertRaises(CommandError):
            call_command("sync_subscriptions", stdout=StringIO())
