"""
Reconciliation service for payments the webhooks never settled.

Webhooks are delivered at least once, but a deployment can still miss
them (endpoint down longer than Stripe's retry window, secret rotated).
This service polls Stripe for Payments that have stayed PENDING past
ESCROW_RECONCILE_AFTER_MINUTES and feeds what it finds through the same
handlers the webhook path uses, so both paths apply identical guarded
transitions. Holds still open on missions canceled past the same
threshold are checked too, since their void webhook was lost.

Detection (PENDING payments):
    PaymentIntent requires_capture / succeeded -> AuthorizationSucceeded
    PaymentIntent canceled                     -> PaymentCanceled
    No PaymentIntent and session expired       -> PaymentCanceled
    Anything else                              -> left alone

Detection (held payments on canceled missions):
    PaymentIntent canceled                     -> PaymentCanceled
    PaymentIntent requires_capture             -> void, then PaymentCanceled
    PaymentIntent succeeded                    -> reconciliation hazard

Usage:
    from payments.services import ReconciliationService

    result = ReconciliationService().reconcile_stale_payments()
    if result.success:
        print(f"Applied {result.data.applied} of {result.data.checked}")
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import timedelta

from django.conf import settings
from django.utils import timezone

from core.exceptions import NotFoundError
from core.services import BaseService, ServiceResult
from missions.states import MissionStatus
from payments.adapters import IdempotencyKeyGenerator, StripeAdapter
from payments.exceptions import StripeError
from payments.hazards import report_reconciliation_hazard
from payments.models import Payment
from payments.state_machines import PaymentStatus
from payments.webhooks.events import (
    AuthorizationSucceeded,
    PaymentCanceled,
    ProcessorEvent,
)
from payments.webhooks.handlers import APPLIED, NOOP, dispatch_event

logger = logging.getLogger(__name__)

DEFAULT_MAX_RECORDS = 200
RECONCILIATION_EVENT_TYPE = "reconciliation.poll"

AUTHORIZED_INTENT_STATUSES = frozenset({"requires_capture", "succeeded"})


@dataclass
class ReconciliationRunResult:
    checked: int = 0
    applied: int = 0
    unchanged: int = 0
    errors: list[str] = field(default_factory=list)


class ReconciliationService(BaseService):
    """
    Brings payments the webhooks never settled in line with Stripe.

    The Stripe adapter is injected; defaults to StripeAdapter.
    """

    def __init__(self, stripe_adapter=None):
        self.stripe = stripe_adapter or StripeAdapter

    def reconcile_stale_payments(
        self,
        older_than_minutes: int | None = None,
        limit: int = DEFAULT_MAX_RECORDS,
    ) -> ServiceResult[ReconciliationRunResult]:
        """
        Reconcile every PENDING payment older than the threshold, then
        every hold left open on a mission canceled before it.

        Gateway errors on one payment are recorded and the run continues.
        """
        minutes = older_than_minutes or settings.ESCROW_RECONCILE_AFTER_MINUTES
        cutoff = timezone.now() - timedelta(minutes=minutes)
        payment_ids = list(
            Payment.objects.stale_pending(cutoff)
            .order_by("created_at")
            .values_list("id", flat=True)[:limit]
        )
        payment_ids += list(
            Payment.objects.held_on_canceled_missions(cutoff)
            .order_by("created_at")
            .values_list("id", flat=True)[: max(limit - len(payment_ids), 0)]
        )

        run = ReconciliationRunResult()
        for payment_id in payment_ids:
            run.checked += 1
            result = self.reconcile_payment(payment_id)
            if not result.success:
                run.errors.append(f"{payment_id}: {result.error}")
            elif result.data == APPLIED:
                run.applied += 1
            else:
                run.unchanged += 1

        logger.info(
            "Reconciliation run finished",
            extra={
                "checked": run.checked,
                "applied": run.applied,
                "unchanged": run.unchanged,
                "errors": len(run.errors),
            },
        )
        return ServiceResult.success(run)

    def reconcile_payment(self, payment_id: uuid.UUID | str) -> ServiceResult[str]:
        """
        Reconcile a single payment.

        Returns:
            ServiceResult with the handler outcome ("applied", "noop",
            "skipped")
        """
        try:
            payment = Payment.objects.get(id=payment_id)
        except Payment.DoesNotExist:
            return self.handle_exception(
                NotFoundError(
                    "Payment not found",
                    error_code="PAYMENT_NOT_FOUND",
                    details={"payment_id": str(payment_id)},
                ),
                "reconcile_payment",
                log_level=logging.WARNING,
            )

        if payment.status == PaymentStatus.PENDING:
            build_event = self._event_from_gateway
        elif payment.is_hold_active and payment.mission.status == MissionStatus.CANCELED:
            build_event = self._event_for_orphaned_hold
        else:
            return ServiceResult.success(NOOP)

        try:
            event = build_event(payment)
            if event is None:
                return ServiceResult.success(NOOP)
            outcome = dispatch_event(event, self.stripe)
        except StripeError as e:
            return self.handle_exception(e, "reconcile_payment", log_level=logging.WARNING)

        if outcome == APPLIED:
            logger.warning(
                "Reconciled payment missed by webhooks",
                extra={
                    "payment_id": str(payment.id),
                    "event_type": type(event).__name__,
                    "payment_intent_id": getattr(event, "payment_intent_id", None),
                },
            )
        return ServiceResult.success(outcome)

    def _event_from_gateway(self, payment: Payment) -> ProcessorEvent | None:
        event_id = f"reconcile:{payment.id}"
        payment_intent_id = payment.stripe_payment_intent_id

        if not payment_intent_id:
            session = self.stripe.retrieve_checkout_session(
                payment.stripe_checkout_session_id
            )
            if session.payment_intent_id:
                payment_intent_id = session.payment_intent_id
            elif session.status == "expired":
                return PaymentCanceled(
                    event_id=event_id,
                    event_type=RECONCILIATION_EVENT_TYPE,
                    checkout_session_id=session.id,
                    payment_id=str(payment.id),
                )
            else:
                return None

        intent = self.stripe.retrieve_payment_intent(payment_intent_id)

        if intent.status in AUTHORIZED_INTENT_STATUSES:
            return AuthorizationSucceeded(
                event_id=event_id,
                event_type=RECONCILIATION_EVENT_TYPE,
                payment_intent_id=intent.id,
                payment_method_id=intent.payment_method_id,
                payment_id=str(payment.id),
                intent_status=intent.status,
            )
        if intent.status == "canceled":
            return PaymentCanceled(
                event_id=event_id,
                event_type=RECONCILIATION_EVENT_TYPE,
                payment_intent_id=intent.id,
                payment_id=str(payment.id),
            )
        return None

    def _event_for_orphaned_hold(self, payment: Payment) -> ProcessorEvent | None:
        """
        A hold on a canceled mission: cancel_mission voided it (or tried to),
        but no payment_intent.canceled ever settled the ledger.
        """
        payment_intent_id = payment.stripe_payment_intent_id
        if not payment_intent_id:
            return None

        intent = self.stripe.retrieve_payment_intent(payment_intent_id)
        if intent.status == "requires_capture":
            intent = self.stripe.cancel_payment_intent(
                payment_intent_id,
                idempotency_key=IdempotencyKeyGenerator.generate("cancel", payment.id),
            )

        if intent.status == "canceled":
            return PaymentCanceled(
                event_id=f"reconcile:{payment.id}",
                event_type=RECONCILIATION_EVENT_TYPE,
                payment_intent_id=intent.id,
                payment_id=str(payment.id),
            )

        if intent.status == "succeeded":
            report_reconciliation_hazard(
                "capture",
                payment_intent_id=payment_intent_id,
                mission_id=payment.mission_id,
                payment_id=payment.id,
                error="Funds captured for a canceled mission are still held in the ledger",
            )
        return None
