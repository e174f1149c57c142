"""
Course Platform URL Configuration

URL Structure:
- /admin/: Django admin (billing back office for operators)
- /api/billing/: checkout, entitlement, payment settings and the Stripe webhook

Author: DSP Development Team
Version: 1.0.0
"""

from typing import List

from django.contrib import admin
from django.urls import include, path, URLPattern

urlpatterns: List[URLPattern] = [
    path("admin/", admin.site.urls),
    path("api/billing/", include("core.billing.urls")),
]
