"""
WebhookEvent model: audit and idempotency record for Stripe deliveries.

Stripe delivers at least once and may reorder. Every delivery is stored
under its unique Stripe event id, so a replay of an event that was
already processed (or deliberately ignored) is acknowledged without
touching the ledger again.

Usage:
    from payments.models import WebhookEvent

    webhook_event, created = WebhookEvent.objects.get_or_create(
        stripe_event_id=event["id"],
        defaults={"event_type": event["type"], "payload": event},
    )
    if webhook_event.is_settled:
        return JsonResponse({"received": True})
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from payments.state_machines import WebhookEventStatus

MAX_WEBHOOK_RETRIES = 5


class WebhookEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    One Stripe webhook delivery.

    Processing Flow:
        1. View verifies the signature (or logs that it is unverified)
        2. get_or_create by stripe_event_id
        3. PROCESSED / IGNORED -> acknowledge, nothing else
        4. mark_processing, parse, dispatch to the handler
        5. mark_processed, mark_ignored (unknown or malformed) or mark_failed
        6. FAILED rows are re-driven by retry_failed_webhook_events

    Fields:
        stripe_event_id: Stripe Event ID (evt_xxx), unique
        event_type: Stripe event type
        payload: Full event JSON
        status: Processing status
        processed_at: When processing finished (processed or ignored)
        error_message: Last failure reason
        retry_count: Number of processing attempts
    """

    stripe_event_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Stripe Event ID (evt_xxx) - unique for idempotency",
    )
    event_type = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Stripe event type (e.g. 'payment_intent.succeeded')",
    )
    payload = models.JSONField(help_text="Full webhook payload from Stripe")

    status = models.CharField(
        max_length=20,
        choices=WebhookEventStatus.choices,
        default=WebhookEventStatus.PENDING,
        db_index=True,
    )
    processed_at = models.DateTimeField(null=True, blank=True)
    error_message = models.TextField(null=True, blank=True)
    retry_count = models.PositiveSmallIntegerField(default=0)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Webhook Event"
        verbose_name_plural = "Webhook Events"
        indexes = [
            models.Index(fields=["status", "retry_count"], name="webhook_status_retry_idx"),
        ]

    def __str__(self) -> str:
        return f"WebhookEvent({self.stripe_event_id}, {self.event_type})"

    @property
    def is_settled(self) -> bool:
        """Processed or deliberately ignored; replays are no-ops."""
        return self.status in (WebhookEventStatus.PROCESSED, WebhookEventStatus.IGNORED)

    @property
    def can_retry(self) -> bool:
        return (
            self.status == WebhookEventStatus.FAILED
            and self.retry_count < MAX_WEBHOOK_RETRIES
        )

    # Status helpers below do not save; the caller saves.

    def mark_processing(self) -> None:
        self.status = WebhookEventStatus.PROCESSING
        self.retry_count += 1

    def mark_processed(self) -> None:
        self.status = WebhookEventStatus.PROCESSED
        self.processed_at = timezone.now()
        self.error_message = None

    def mark_ignored(self, reason: str) -> None:
        """Acknowledged without effect (unknown type, malformed, no payment)."""
        self.status = WebhookEventStatus.IGNORED
        self.processed_at = timezone.now()
        self.error_message = reason

    def mark_failed(self, error_message: str) -> None:
        self.status = WebhookEventStatus.FAILED
        self.error_message = error_message
