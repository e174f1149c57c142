"""
Billing AppConfig
=================

Registers the ``core.billing`` application with Django and configures the
Stripe SDK once the app registry is ready.

Operational notes
-----------------
- ``apps.py`` is executed on every process start (runserver, gunicorn worker,
  management commands); avoid DB/network calls in ``ready()``.
- The Stripe secret key is applied again before each API call (see
  ``gateway.configure_stripe``), so settings overrides in tests take effect.

Author: DSP Development Team
Version: 1.0.0
"""

from django.apps import AppConfig


class BillingConfig(AppConfig):
    """
    App configuration for the `core.billing` package.
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "core.billing"
    label = "billing"
    verbose_name = "Billing"

    def ready(self):
        from .gateway import configure_stripe

        configure_stripe(require_key=False)
