"""
Webhook handling for payment events from Stripe.

Events are verified, stored idempotently as WebhookEvent rows, parsed
into typed events and applied to the ledger by the registered handler.

Usage:
    # In urls.py
    from payments.webhooks.views import stripe_webhook

    urlpatterns = [
        path("webhooks/stripe/", stripe_webhook, name="stripe_webhook"),
    ]
"""

from payments.webhooks.handlers import (
    dispatch_event,
    handle_webhook_event,
    register_handler,
)
from payments.webhooks.views import stripe_webhook

__all__ = [
    "dispatch_event",
    "handle_webhook_event",
    "register_handler",
    "stripe_webhook",
]
