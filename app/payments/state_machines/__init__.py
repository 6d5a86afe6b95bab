"""
State machine enums for payment models.
"""

from payments.state_machines.states import (
    EscrowStatus,
    PaymentStatus,
    WebhookEventStatus,
)

__all__ = [
    "EscrowStatus",
    "PaymentStatus",
    "WebhookEventStatus",
]
