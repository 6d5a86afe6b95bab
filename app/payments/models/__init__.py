"""
Payment domain models.

- Payment: One escrow transaction per funding attempt for a mission
- WebhookEvent: Stripe webhook delivery tracking for idempotent processing
"""

from payments.models.payment import Payment
from payments.models.webhook_event import WebhookEvent

__all__ = [
    "Payment",
    "WebhookEvent",
]
