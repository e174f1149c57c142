"""
Sync Subscriptions Command

Re-fetches every stored subscription from Stripe and writes it back locally.
Failures for single subscriptions are reported and skipped.

Author: DSP Development Team
Version: 1.0.0
"""

from django.core.management.base import BaseCommand, CommandError

from core.billing.exceptions import BillingConfigurationError
from core.billing.gateway import configure_stripe
from core.billing.services.sync import SubscriptionSyncService


class Command(BaseCommand):
    help = "Sync all stored subscriptions with Stripe"

    def handle(self, *args, **options):
        try:
            configure_stripe()
        except BillingConfigurationError as exc:
            raise CommandError(exc.message) from exc

        counts = SubscriptionSyncService().sync_all()

        self.stdout.write(f"Synced: {counts['synced']}")
        self.stdout.write(f"Skipped (unsupported status): {counts['skipped']}")
        if counts["failed"]:
            self.stdout.write(self.style.ERROR(f"Failed: {counts['failed']}"))
        else:
            self.stdout.write(self.style.SUCCESS("All subscriptions synced"))
