"""
State enums for payment models.

These are Django TextChoices used by django-fsm fields and the admin.

State Machines Overview:

Payment.status:
    pending -> succeeded            (hold authorized)
    pending -> failed -> succeeded  (card retried within the same checkout)
    pending / failed -> canceled    (checkout expired or intent canceled)
    succeeded -> refunded           (hold voided or charge refunded)

Payment.escrow_status (monotonic):
    held -> released   (captured on mission completion)
    held -> refunded   (voided or refunded on cancellation)

WebhookEvent.status:
    pending -> processing -> processed | failed | ignored
"""

from django.db import models


class PaymentStatus(models.TextChoices):
    """
    Processor-confirmed status of an escrow payment.

    Terminal states: CANCELED, REFUNDED
    """

    PENDING = "pending", "Pending"
    SUCCEEDED = "succeeded", "Succeeded"
    FAILED = "failed", "Failed"
    CANCELED = "canceled", "Canceled"
    REFUNDED = "refunded", "Refunded"


class EscrowStatus(models.TextChoices):
    """
    Where the authorized funds are.

    HELD: authorized on the client's card, not captured
    RELEASED: captured and paid out toward the student
    REFUNDED: hold voided or charge refunded to the client
    """

    HELD = "held", "Held"
    RELEASED = "released", "Released"
    REFUNDED = "refunded", "Refunded"


class WebhookEventStatus(models.TextChoices):
    """
    Processing status for Stripe webhook events.

    PENDING: Stored, not yet processed
    PROCESSING: Currently being processed
    PROCESSED: Successfully applied to the ledger
    FAILED: Processing raised; eligible for retry
    IGNORED: Event type or object not relevant to the ledger
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"
    IGNORED = "ignored", "Ignored"
