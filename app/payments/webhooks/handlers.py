"""
Webhook event handlers for Stripe events.

This module provides a handler registry keyed by parsed event type and
the handlers that advance Payment and Mission state from Stripe's
confirmations.

Every handler:
- Locks the Mission row, then the Payment row
- Applies a transition only from the statuses it is guarded on, so a
  late or duplicated event can never undo a newer state
- Returns an outcome string: "applied", "noop" (already in the target
  state, i.e. a replay) or "skipped" (nothing to act on)

Usage:
    from payments.webhooks.handlers import handle_webhook_event

    outcome = handle_webhook_event(webhook_event)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from django.db import transaction
from django_fsm import can_proceed

from missions.models import Mission
from missions.states import MissionPaymentStatus, MissionStatus
from payments.adapters import IdempotencyKeyGenerator, StripeAdapter
from payments.exceptions import MalformedEventError
from payments.hazards import report_reconciliation_hazard
from payments.models import Payment
from payments.state_machines import EscrowStatus, PaymentStatus
from payments.webhooks.events import (
    AuthorizationSucceeded,
    CheckoutCompleted,
    PaymentCanceled,
    PaymentFailed,
    ProcessorEvent,
    RefundIssued,
    UnhandledEvent,
    parse_event,
)

if TYPE_CHECKING:
    from payments.models import WebhookEvent


logger = logging.getLogger(__name__)

APPLIED = "applied"
NOOP = "noop"
SKIPPED = "skipped"


# =============================================================================
# Handler Registry
# =============================================================================


EVENT_HANDLERS: dict[type[ProcessorEvent], Callable[..., str]] = {}


def register_handler(event_class: type[ProcessorEvent]) -> Callable:
    """
    Decorator to register the handler for a parsed event type.

    Usage:
        @register_handler(PaymentFailed)
        def handle_payment_failed(event, stripe_adapter) -> str:
            ...
    """

    def decorator(func: Callable[..., str]) -> Callable[..., str]:
        EVENT_HANDLERS[event_class] = func
        return func

    return decorator


def dispatch_event(event: ProcessorEvent, stripe_adapter=None) -> str:
    """
    Run the handler registered for an event inside one transaction.

    Unhandled event types are acknowledged with outcome "skipped".
    """
    handler = EVENT_HANDLERS.get(type(event))
    if handler is None:
        logger.info(
            f"No handler registered for event type: {event.event_type}",
            extra={"stripe_event_id": event.event_id},
        )
        return SKIPPED

    with transaction.atomic():
        return handler(event, stripe_adapter or StripeAdapter)


def handle_webhook_event(webhook_event: WebhookEvent, stripe_adapter=None) -> str:
    """
    Process a stored WebhookEvent and record the result on it.

    Malformed and unhandled events are marked IGNORED so Stripe's retries
    stop. Handler exceptions mark the row FAILED and propagate, so the
    caller can answer with an error status (Stripe redelivers) or let
    Celery retry.

    Returns:
        The handler outcome ("applied", "noop" or "skipped")
    """
    webhook_event.mark_processing()
    webhook_event.save()

    log_extra = {
        "stripe_event_id": webhook_event.stripe_event_id,
        "event_type": webhook_event.event_type,
        "retry_count": webhook_event.retry_count,
    }

    try:
        event = parse_event(webhook_event.payload)
    except MalformedEventError as e:
        logger.warning(f"Ignoring malformed webhook event: {e.message}", extra=log_extra)
        webhook_event.mark_ignored(e.message)
        webhook_event.save()
        return SKIPPED

    if isinstance(event, UnhandledEvent):
        logger.info("Ignoring unhandled webhook event type", extra=log_extra)
        webhook_event.mark_ignored(f"Unhandled event type: {event.event_type}")
        webhook_event.save()
        return SKIPPED

    try:
        outcome = dispatch_event(event, stripe_adapter)
    except Exception as e:
        webhook_event.mark_failed(f"{type(e).__name__}: {e}")
        webhook_event.save()
        logger.exception("Webhook processing failed", extra=log_extra)
        raise

    if outcome == SKIPPED:
        webhook_event.mark_ignored("No matching payment or nothing to apply")
    else:
        webhook_event.mark_processed()
    webhook_event.save()

    logger.info(
        "Webhook processed",
        extra={**log_extra, "outcome": outcome},
    )
    return outcome


# =============================================================================
# Lookups
# =============================================================================


def _locate_payment(
    event: ProcessorEvent,
    payment_intent_id: str | None = None,
    payment_id: str | None = None,
    checkout_session_id: str | None = None,
) -> Payment | None:
    """
    Lock the Payment an event refers to, binding the PaymentIntent id.

    Lock order is Mission, then Payment, the same order
    EscrowService takes. The locked Mission is attached as payment.mission.

    Returns None (and logs) when no Payment matches.
    """
    match = (
        Payment.objects.for_processor_reference(
            payment_intent_id=payment_intent_id,
            payment_id=payment_id,
            checkout_session_id=checkout_session_id,
        )
        .values_list("id", "mission_id")
        .first()
    )

    if match is None:
        logger.warning(
            "Payment not found for webhook event",
            extra={
                "stripe_event_id": event.event_id,
                "event_type": event.event_type,
                "payment_intent_id": payment_intent_id,
                "payment_id": payment_id,
                "checkout_session_id": checkout_session_id,
            },
        )
        return None

    locked_payment_id, mission_id = match
    mission = Mission.objects.select_for_update().get(id=mission_id)
    payment = Payment.objects.select_for_update().get(id=locked_payment_id)
    payment.mission = mission

    if payment_intent_id and not payment.stripe_payment_intent_id:
        payment.stripe_payment_intent_id = payment_intent_id
        payment.save(update_fields=["stripe_payment_intent_id", "updated_at"])
        logger.info(
            "Bound PaymentIntent to payment",
            extra={"payment_id": str(payment.id), "payment_intent_id": payment_intent_id},
        )

    return payment


def _lock_mission(payment: Payment) -> Mission:
    """The Mission row locked by _locate_payment."""
    return payment.mission


def _mark_mission_refunded(mission: Mission, payment: Payment) -> None:
    """
    Mission -> REFUNDED once no other payment still funds it.

    A voided duplicate hold leaves the mission PAID while the original
    hold (or its capture) stands.
    """
    still_funded = (
        Payment.objects.filter(mission_id=mission.id, status=PaymentStatus.SUCCEEDED)
        .exclude(id=payment.id)
        .exists()
    )
    if still_funded:
        logger.info(
            "Mission still funded by another payment; payment status unchanged",
            extra={"mission_id": str(mission.id), "payment_id": str(payment.id)},
        )
        return

    if mission.payment_status in (
        MissionPaymentStatus.PENDING,
        MissionPaymentStatus.PAID,
    ):
        mission.mark_refunded()
        mission.save()


def _void_hold(payment: Payment, stripe_adapter, reason: str) -> None:
    """
    Cancel an uncaptured authorization at Stripe.

    The refund bookkeeping is applied when payment_intent.canceled
    arrives. Gateway errors propagate so the event is retried.
    """
    logger.warning(
        f"Voiding escrow hold: {reason}",
        extra={
            "payment_id": str(payment.id),
            "payment_intent_id": payment.stripe_payment_intent_id,
            "mission_id": str(payment.mission_id),
        },
    )
    stripe_adapter.cancel_payment_intent(
        payment.stripe_payment_intent_id,
        idempotency_key=IdempotencyKeyGenerator.generate("cancel", payment.id),
    )


# =============================================================================
# Handlers
# =============================================================================


@register_handler(CheckoutCompleted)
def handle_checkout_completed(event: CheckoutCompleted, stripe_adapter) -> str:
    """Bind the PaymentIntent id created by Checkout to the Payment."""
    payment = _locate_payment(
        event,
        payment_intent_id=event.payment_intent_id,
        payment_id=event.payment_id,
        checkout_session_id=event.checkout_session_id,
    )
    if payment is None:
        return SKIPPED
    return APPLIED if event.payment_intent_id else NOOP


@register_handler(AuthorizationSucceeded)
def handle_authorization_succeeded(
    event: AuthorizationSucceeded, stripe_adapter
) -> str:
    """
    Funds are held: Payment PENDING/FAILED -> SUCCEEDED, Mission -> PAID.

    If the mission was canceled while the client was in Checkout, or
    another payment already funds it, the new hold is voided instead of
    funding the mission.
    """
    payment = _locate_payment(
        event,
        payment_intent_id=event.payment_intent_id,
        payment_id=event.payment_id,
    )
    if payment is None:
        return SKIPPED

    if payment.status in (PaymentStatus.PENDING, PaymentStatus.FAILED):
        payment.mark_succeeded(payment_method_id=event.payment_method_id)
        payment.save()
        outcome = APPLIED
    elif payment.status == PaymentStatus.SUCCEEDED:
        outcome = NOOP
    else:
        logger.warning(
            "Authorization received for a payment that is no longer open",
            extra={
                "payment_id": str(payment.id),
                "payment_intent_id": event.payment_intent_id,
                "status": payment.status,
            },
        )
        return NOOP

    mission = _lock_mission(payment)

    if mission.status == MissionStatus.CANCELED:
        if payment.is_hold_active:
            _void_hold(payment, stripe_adapter, "mission was canceled")
        return outcome

    if mission.payment_status == MissionPaymentStatus.PAID:
        other_hold = (
            Payment.objects.held()
            .filter(mission_id=mission.id)
            .exclude(id=payment.id)
            .exists()
        )
        if other_hold and payment.is_hold_active:
            _void_hold(payment, stripe_adapter, "mission is already funded")
        return outcome

    if not can_proceed(mission.mark_paid):
        logger.warning(
            "Mission cannot be marked paid",
            extra={
                "mission_id": str(mission.id),
                "status": mission.status,
                "payment_status": mission.payment_status,
            },
        )
        return outcome

    mission.mark_paid(paid_at=payment.completed_at)
    mission.save()
    logger.info(
        "Mission funded",
        extra={
            "mission_id": str(mission.id),
            "payment_id": str(payment.id),
            "payment_intent_id": event.payment_intent_id,
        },
    )
    return APPLIED


@register_handler(PaymentFailed)
def handle_payment_failed(event: PaymentFailed, stripe_adapter) -> str:
    """Authorization attempt failed: PENDING -> FAILED only."""
    payment = _locate_payment(
        event,
        payment_intent_id=event.payment_intent_id,
        payment_id=event.payment_id,
    )
    if payment is None:
        return SKIPPED

    if payment.status != PaymentStatus.PENDING:
        logger.info(
            "Ignoring payment failure for non-pending payment",
            extra={"payment_id": str(payment.id), "status": payment.status},
        )
        return NOOP

    payment.mark_failed(reason=event.reason)
    payment.save()
    return APPLIED


@register_handler(PaymentCanceled)
def handle_payment_canceled(event: PaymentCanceled, stripe_adapter) -> str:
    """
    PaymentIntent canceled or checkout expired.

    Before authorization: PENDING/FAILED -> CANCELED. After
    authorization the cancel is a voided hold, recorded as a refund.
    """
    payment = _locate_payment(
        event,
        payment_intent_id=event.payment_intent_id,
        payment_id=event.payment_id,
        checkout_session_id=event.checkout_session_id,
    )
    if payment is None:
        return SKIPPED

    if payment.status in (PaymentStatus.PENDING, PaymentStatus.FAILED):
        payment.mark_canceled()
        payment.save()
        return APPLIED

    if payment.is_hold_active:
        payment.mark_refunded()
        payment.refund_escrow()
        payment.save()
        mission = _lock_mission(payment)
        _mark_mission_refunded(mission, payment)
        logger.info(
            "Escrow hold voided",
            extra={
                "payment_id": str(payment.id),
                "payment_intent_id": payment.stripe_payment_intent_id,
                "mission_id": str(mission.id),
            },
        )
        return APPLIED

    return NOOP


@register_handler(RefundIssued)
def handle_refund_issued(event: RefundIssued, stripe_adapter) -> str:
    """
    Charge refunded: SUCCEEDED -> REFUNDED, escrow HELD -> REFUNDED,
    Mission -> REFUNDED.

    Partial refunds are logged and skipped. A refund after release leaves
    escrow RELEASED and is reported as a reconciliation hazard.
    """
    if not event.fully_refunded:
        logger.warning(
            "Ignoring partial refund",
            extra={
                "payment_intent_id": event.payment_intent_id,
                "charge_id": event.charge_id,
                "amount_refunded": event.amount_refunded,
            },
        )
        return SKIPPED

    payment = _locate_payment(event, payment_intent_id=event.payment_intent_id)
    if payment is None:
        return SKIPPED

    if payment.status == PaymentStatus.REFUNDED and payment.escrow_status != EscrowStatus.HELD:
        return NOOP

    if payment.status == PaymentStatus.SUCCEEDED:
        payment.mark_refunded()

    if payment.escrow_status == EscrowStatus.HELD:
        payment.refund_escrow()
    elif payment.escrow_status == EscrowStatus.RELEASED:
        report_reconciliation_hazard(
            "refund after release",
            payment_intent_id=event.payment_intent_id,
            mission_id=payment.mission_id,
            payment_id=payment.id,
            error="Captured escrow was refunded at Stripe",
        )

    payment.save()
    _mark_mission_refunded(_lock_mission(payment), payment)
    return APPLIED
