from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="PaymentSettings",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("product_id", models.CharField(max_length=255)),
                ("product_name", models.CharField(max_length=255)),
                ("monthly_price_id", models.CharField(max_length=255)),
                ("monthly_price_amount", models.PositiveIntegerField(help_text="Amount in the smallest currency unit (cents)")),
                ("monthly_price_currency", models.CharField(max_length=8)),
                ("yearly_price_id", models.CharField(blank=True, max_length=255, null=True)),
                ("yearly_price_amount", models.PositiveIntegerField(blank=True, null=True)),
                ("yearly_price_currency", models.CharField(blank=True, max_length=8, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "verbose_name": "Payment Settings",
                "verbose_name_plural": "Payment Settings",
                "db_table": "billing_payment_settings",
            },
        ),
        migrations.CreateModel(
            name="CheckoutSession",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("session_id", models.CharField(max_length=255, unique=True, verbose_name="Stripe session id")),
                ("status", models.CharField(choices=[("pending", "Pending"), ("complete", "Complete"), ("expired", "Expired")], default="pending", max_length=16)),
                ("customer_id", models.CharField(blank=True, db_index=True, max_length=255, null=True, verbose_name="Stripe customer id")),
                ("subscription_id", models.CharField(blank=True, max_length=255, null=True, verbose_name="Stripe subscription id")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="checkout_sessions", to=settings.AUTH_USER_MODEL, verbose_name="User")),
            ],
            options={
                "verbose_name": "Checkout Session",
                "verbose_name_plural": "Checkout Sessions",
                "db_table": "billing_checkout_session",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="Subscription",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("subscription_id", models.CharField(max_length=255, unique=True, verbose_name="Stripe subscription id")),
                ("customer_id", models.CharField(max_length=255, verbose_name="Stripe customer id")),
                ("status", models.CharField(choices=[("incomplete", "Incomplete"), ("trialing", "Trialing"), ("active", "Active"), ("past_due", "Past due"), ("unpaid", "Unpaid"), ("canceled", "Canceled")], max_length=16)),
                ("current_period_start", models.BigIntegerField(help_text="Start of the current billing period (epoch ms)")),
                ("current_period_end", models.BigIntegerField(help_text="End of the current billing period (epoch ms)")),
                ("cancel_at_period_end", models.BooleanField(default=False)),
                ("canceled_at", models.BigIntegerField(blank=True, help_text="Cancellation time (epoch ms)", null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="subscriptions", to=settings.AUTH_USER_MODEL, verbose_name="User")),
            ],
            options={
                "verbose_name": "Subscription",
                "verbose_name_plural": "Subscriptions",
                "db_table": "billing_subscription",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["user", "status"], name="billing_sub_user_status_idx"),
                    models.Index(fields=["status"], name="billing_sub_status_idx"),
                ],
            },
        ),
    ]
