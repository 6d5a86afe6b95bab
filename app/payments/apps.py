"""
Payments app configuration.

This app provides escrow payment processing:
- Payment ledger (authorize-only holds, capture, void/refund)
- Stripe gateway adapter
- Webhook ingestion and reconciliation
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"
