"""
Payment admin configuration.

Payments and webhook events form the audit trail of escrow money
movement: neither can be added or deleted through the admin, and FSM
state fields are read-only.
"""

from django.contrib import admin, messages

from payments.models import Payment, WebhookEvent
from payments.tasks import process_webhook_event

__all__ = [
    "PaymentAdmin",
    "WebhookEventAdmin",
]


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    """
    Admin configuration for Payment.

    Provides visibility into escrow holds and their Stripe references.
    """

    list_display = [
        "id",
        "mission",
        "client",
        "student",
        "amount_display",
        "status",
        "escrow_status",
        "stripe_payment_intent_id",
        "created_at",
    ]
    list_filter = ["status", "escrow_status", "currency", "created_at"]
    search_fields = [
        "id",
        "stripe_payment_intent_id",
        "stripe_checkout_session_id",
        "client__email",
        "student__email",
        "mission__title",
    ]
    raw_id_fields = ["mission", "client", "student"]
    readonly_fields = [
        "id",
        "status",
        "escrow_status",
        "stripe_payment_intent_id",
        "stripe_checkout_session_id",
        "stripe_payment_method_id",
        "completed_at",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "mission", "client", "student"),
            },
        ),
        (
            "Amount",
            {
                "fields": ("amount", "currency"),
            },
        ),
        (
            "Status",
            {
                "fields": ("status", "escrow_status", "completed_at"),
            },
        ),
        (
            "Stripe",
            {
                "fields": (
                    "stripe_payment_intent_id",
                    "stripe_checkout_session_id",
                    "stripe_payment_method_id",
                ),
            },
        ),
        (
            "Metadata",
            {
                "fields": ("metadata",),
                "classes": ("collapse",),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )

    @admin.display(description="Amount")
    def amount_display(self, obj: Payment) -> str:
        return f"{obj.amount:.2f} {obj.currency.upper()}"

    def has_add_permission(self, request) -> bool:
        """Payments are created by EscrowService only."""
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        """Disable delete for payments (audit trail)."""
        return False


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    """
    Admin configuration for WebhookEvent.

    Failed events can be re-queued with the "Re-process" action.
    """

    list_display = [
        "id",
        "stripe_event_id",
        "event_type",
        "status",
        "retry_count",
        "processed_at",
        "created_at",
    ]
    list_filter = ["status", "event_type", "created_at"]
    search_fields = ["id", "stripe_event_id", "event_type"]
    readonly_fields = [
        "id",
        "created_at",
        "updated_at",
        "stripe_event_id",
        "event_type",
        "payload",
        "status",
        "processed_at",
        "retry_count",
        "error_message",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]
    actions = ["reprocess_events"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "stripe_event_id", "event_type", "status"),
            },
        ),
        (
            "Processing",
            {
                "fields": ("processed_at", "retry_count", "error_message"),
            },
        ),
        (
            "Payload",
            {
                "fields": ("payload",),
                "classes": ("collapse",),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )

    @admin.action(description="Re-process selected webhook events")
    def reprocess_events(self, request, queryset):
        queued = 0
        for webhook_event in queryset:
            if webhook_event.is_settled:
                continue
            process_webhook_event.delay(str(webhook_event.id))
            queued += 1
        self.message_user(
            request,
            f"Queued {queued} webhook event(s) for processing.",
            level=messages.SUCCESS,
        )

    def has_add_permission(self, request) -> bool:
        """Disable adding webhook events through admin."""
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        """Disable delete for webhook events (audit trail)."""
        return False
