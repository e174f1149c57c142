"""
Expire Subscriptions Command

Cancels active/trialing subscriptions whose billing period already ended.
Meant to run daily via cron, as a safety net for missed
``customer.subscription.deleted`` events.

Author: DSP Development Team
Version: 1.0.0
"""

from django.core.management.base import BaseCommand

from core.billing.models import Subscription
from core.billing.services.subscriptions import now_ms
from core.billing.services.sync import expire_ended_subscriptions


class Command(BaseCommand):
    """
    Usage:
        python manage.py expire_subscriptions
        python manage.py expire_subscriptions --dry-run

    Crontab:
        0 2 * * * cd /path/to/project && python manage.py expire_subscriptions
    """

    help = "Cancel active subscriptions whose current period has ended"

    def add_arguments(self, parser):
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Only list the subscriptions that would be expired",
        )

    def handle(self, *args, **options):
        now = now_ms()

        if options["dry_run"]:
            candidates = Subscription.objects.filter(
                status__in=Subscription.ENTITLED_STATUSES,
                current_period_end__lt=now,
            ).order_by("current_period_end")
            self.stdout.write(
                self.style.WARNING(f"DRY RUN: would expire {candidates.count()} subscription(s)")
            )
            for subscription in candidates:
                self.stdout.write(f"   - {subscription.subscription_id} (user {subscription.user_id})")
            return

        count = expire_ended_subscriptions(now)
        if count == 0:
            self.stdout.write(self.style.SUCCESS("No ended subscriptions found"))
        else:
            self.stdout.write(self.style.SUCCESS(f"Expired {count} subscription(s)"))
