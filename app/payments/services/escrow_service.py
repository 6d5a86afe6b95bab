"""
Escrow state machine for mission payments.

EscrowService is the only writer of Payment rows outside webhook
handling. It drives three operations:

- initiate_payment: authorize-only Checkout Session, then a PENDING Payment
- release_escrow: capture the authorized hold once the mission is completed
- cancel_mission: cancel the mission and void (or refund) any held funds

Ordering rules:
    - Validation and authorization run before any Stripe call
    - The Payment row is inserted only after Stripe answered, so a
      gateway failure never leaves an orphaned pending row
    - Payment status only advances to SUCCEEDED through webhooks (or
      reconciliation); nothing here assumes synchronous confirmation
    - A Stripe call that succeeded followed by a failed local write is
      reported as a reconciliation hazard, never swallowed

Usage:
    from payments.services import EscrowService, InitiatePaymentParams

    service = EscrowService()  # or EscrowService(stripe_adapter=MockStripeAdapter)
    result = service.initiate_payment(
        InitiatePaymentParams(mission_id=mission.id, amount_cents=10000, currency="eur"),
        user=request.user,
    )
    if result.success:
        redirect_url = result.data.url
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from django.conf import settings
from django.db import DatabaseError
from django_fsm import ConcurrentTransition

from core.exceptions import (
    BaseApplicationError,
    NotFoundError,
    PermissionDeniedError,
    PreconditionError,
    ValidationError,
)
from core.services import BaseService, ServiceResult
from missions.models import Mission
from missions.services import MissionService
from missions.states import MissionPaymentStatus, MissionStatus
from payments.adapters import (
    CreateCheckoutSessionParams,
    IdempotencyKeyGenerator,
    StripeAdapter,
)
from payments.exceptions import StripeError
from payments.hazards import report_reconciliation_hazard
from payments.models import Payment
from payments.money import from_minor_units, validate_escrow_amount
from payments.state_machines import EscrowStatus, PaymentStatus

if TYPE_CHECKING:
    from authentication.models import User


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class InitiatePaymentParams:
    """
    Parameters for funding a mission.

    Attributes:
        mission_id: Mission to fund
        amount_cents: Amount in minor currency units
        currency: Currency code; ESCROW_DEFAULT_CURRENCY when omitted
        metadata: Free-form caller metadata stored on the Payment
        origin: Base URL for the Checkout redirects (request Origin)
    """

    mission_id: uuid.UUID | str
    amount_cents: int
    currency: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    origin: str | None = None


@dataclass
class CheckoutResult:
    payment: Payment
    url: str
    session_id: str


@dataclass
class ReleaseResult:
    """
    Outcome of a release.

    Attributes:
        payment: The released Payment
        payment_intent_id: Captured PaymentIntent
        status: Stripe's PaymentIntent status after capture
        escrow_status: Always "released"
    """

    payment: Payment
    payment_intent_id: str
    status: str
    escrow_status: str = EscrowStatus.RELEASED


@dataclass
class CancelResult:
    mission: Mission
    voided_payment_intents: list[str] = field(default_factory=list)
    refunded_payment_intents: list[str] = field(default_factory=list)
    expired_sessions: list[str] = field(default_factory=list)


# =============================================================================
# Escrow Service
# =============================================================================


class EscrowService(BaseService):
    """
    Escrow operations for missions.

    The Stripe adapter is injected so tests can pass a double with the
    same methods. Defaults to StripeAdapter.
    """

    def __init__(self, stripe_adapter=None):
        self.stripe = stripe_adapter or StripeAdapter

    # =========================================================================
    # Fund Initiation
    # =========================================================================

    def initiate_payment(
        self, params: InitiatePaymentParams, user: User
    ) -> ServiceResult[CheckoutResult]:
        """
        Create an authorize-only Checkout Session and a PENDING Payment.

        Checks, in order: amount and currency; mission exists and belongs
        to the user; exactly one accepted application; mission not paid
        and not terminal.

        Returns:
            ServiceResult with CheckoutResult (redirect URL + session id)
        """
        logger = self.get_logger()

        try:
            currency = validate_escrow_amount(params.amount_cents, params.currency)
            mission = MissionService.get_mission_for_client(params.mission_id, user)
            application = MissionService.get_accepted_application(mission)
            self._check_fundable(mission)
        except BaseApplicationError as e:
            return self.handle_exception(e, "initiate_payment", log_level=logging.INFO)

        payment_id = uuid.uuid4()
        attempt = int(time.time() * 1000)
        idempotency_key = IdempotencyKeyGenerator.generate(
            "checkout", mission.id, attempt=attempt
        )
        origin = (params.origin or settings.FRONTEND_URL).rstrip("/")
        stripe_metadata = {
            "mission_id": str(mission.id),
            "client_id": str(user.id),
            "student_id": str(application.student_id),
            "payment_id": str(payment_id),
        }

        try:
            customer = self.stripe.find_or_create_customer(
                user.email, name=user.full_name or None
            )
            session = self.stripe.create_checkout_session(
                CreateCheckoutSessionParams(
                    amount_cents=params.amount_cents,
                    currency=currency,
                    product_name=f"Mission: {mission.title}"[:250],
                    success_url=f"{origin}/missions/{mission.id}?payment=success",
                    cancel_url=f"{origin}/missions/{mission.id}?payment=canceled",
                    idempotency_key=idempotency_key,
                    customer_id=customer.id,
                    metadata=stripe_metadata,
                )
            )
        except StripeError as e:
            return self.handle_exception(e, "initiate_payment", log_level=logging.WARNING)

        try:
            with self.atomic():
                mission = Mission.objects.select_for_update().get(id=mission.id)
                self._check_fundable(mission)

                payment = Payment.objects.create(
                    id=payment_id,
                    mission=mission,
                    client=user,
                    student_id=application.student_id,
                    amount=from_minor_units(params.amount_cents, currency),
                    currency=currency,
                    stripe_checkout_session_id=session.id,
                    stripe_payment_intent_id=session.payment_intent_id,
                    metadata={
                        **(params.metadata or {}),
                        "idempotency_key": idempotency_key,
                        "checkout_session_id": session.id,
                    },
                )
                mission.mark_payment_pending()
                mission.save()
        except PreconditionError as e:
            # Mission changed while the session was being created.
            self._expire_session_quietly(session.id)
            return self.handle_exception(e, "initiate_payment", log_level=logging.INFO)
        except (DatabaseError, ConcurrentTransition) as e:
            report_reconciliation_hazard(
                "checkout",
                checkout_session_id=session.id,
                payment_intent_id=session.payment_intent_id,
                mission_id=mission.id,
                payment_id=payment_id,
                error=e,
            )
            self._expire_session_quietly(session.id)
            return ServiceResult.failure(
                "Failed to record payment. Please try again.",
                error_code="DATABASE_ERROR",
                status_code=500,
            )

        logger.info(
            "Escrow payment initiated",
            extra={
                "mission_id": str(mission.id),
                "payment_id": str(payment.id),
                "checkout_session_id": session.id,
                "amount_cents": params.amount_cents,
                "currency": currency,
            },
        )
        return ServiceResult.success(
            CheckoutResult(payment=payment, url=session.url, session_id=session.id)
        )

    def _check_fundable(self, mission: Mission) -> None:
        if mission.payment_status == MissionPaymentStatus.PAID:
            raise PreconditionError(
                "Mission is already paid",
                error_code="MISSION_ALREADY_PAID",
                details={"mission_id": str(mission.id)},
            )
        if mission.is_terminal or mission.payment_status == MissionPaymentStatus.REFUNDED:
            raise PreconditionError(
                f"Cannot fund a mission that is {mission.status}",
                error_code="MISSION_NOT_FUNDABLE",
                details={"mission_id": str(mission.id), "status": mission.status},
            )

    def _expire_session_quietly(self, session_id: str) -> None:
        """Best-effort expiry; failures are logged, the session times out anyway."""
        try:
            self.stripe.expire_checkout_session(session_id)
        except StripeError as e:
            self.get_logger().warning(
                "Could not expire checkout session",
                extra={"checkout_session_id": session_id, "error_code": e.error_code},
            )

    # =========================================================================
    # Release (Capture)
    # =========================================================================

    def release_escrow(
        self, payment_intent_id: str | None, user: User
    ) -> ServiceResult[ReleaseResult]:
        """
        Capture the held funds for the student.

        Checks, in order: payment exists; user is the client; mission is
        COMPLETED; payment SUCCEEDED; escrow still HELD; the accepted
        application still names the payment's student.

        The capture uses a deterministic idempotency key per payment, so
        a retried release can never capture twice.
        """
        logger = self.get_logger()
        intent = None

        try:
            if not payment_intent_id:
                raise ValidationError(
                    "Payment intent ID is required",
                    error_code="PAYMENT_INTENT_REQUIRED",
                )

            with self.atomic():
                payment, mission = self._lock_for_release(payment_intent_id)
                if payment.client_id != user.id:
                    raise PermissionDeniedError(
                        "Unauthorized: You are not the client for this payment",
                        details={"payment_intent_id": payment_intent_id},
                    )

                self._check_releasable(payment, mission)

                intent = self.stripe.capture_payment_intent(
                    payment_intent_id,
                    idempotency_key=IdempotencyKeyGenerator.generate(
                        "capture", payment.id
                    ),
                )

                payment.mission = mission
                payment.release()
                payment.save()

        except BaseApplicationError as e:
            return self.handle_exception(e, "release_escrow", log_level=logging.INFO)
        except (DatabaseError, ConcurrentTransition) as e:
            if intent is None:
                return self.handle_exception(e, "release_escrow")

            # Funds were captured; tell the client it worked and alert operators.
            report_reconciliation_hazard(
                "capture",
                payment_intent_id=payment_intent_id,
                mission_id=payment.mission_id,
                payment_id=payment.id,
                error=e,
            )
            return ServiceResult.success(
                ReleaseResult(
                    payment=payment,
                    payment_intent_id=payment_intent_id,
                    status=intent.status,
                )
            )

        logger.info(
            "Escrow released",
            extra={
                "payment_id": str(payment.id),
                "payment_intent_id": payment_intent_id,
                "mission_id": str(payment.mission_id),
                "amount_received": intent.amount_received,
            },
        )
        return ServiceResult.success(
            ReleaseResult(
                payment=payment,
                payment_intent_id=payment_intent_id,
                status=intent.status,
            )
        )

    def _lock_for_release(self, payment_intent_id: str) -> tuple[Payment, Mission]:
        """Lock the Mission, then the Payment (the order cancel_mission uses)."""
        match = (
            Payment.objects.filter(stripe_payment_intent_id=payment_intent_id)
            .values_list("id", "mission_id")
            .first()
        )
        if match is None:
            raise NotFoundError(
                "Payment not found",
                error_code="PAYMENT_NOT_FOUND",
                details={"payment_intent_id": payment_intent_id},
            )

        payment_id, mission_id = match
        mission = Mission.objects.select_for_update().get(id=mission_id)
        payment = Payment.objects.select_for_update().get(id=payment_id)
        return payment, mission

    def _check_releasable(self, payment: Payment, mission: Mission) -> None:
        if mission.status != MissionStatus.COMPLETED:
            raise PreconditionError(
                "Cannot release escrow: Mission is not marked as completed",
                error_code="MISSION_NOT_COMPLETED",
                details={"mission_id": str(mission.id), "status": mission.status},
            )
        if payment.status != PaymentStatus.SUCCEEDED:
            raise PreconditionError(
                "Cannot release escrow: Payment has not succeeded",
                error_code="PAYMENT_NOT_SUCCEEDED",
                details={"payment_id": str(payment.id), "status": payment.status},
            )
        if payment.escrow_status == EscrowStatus.RELEASED:
            raise PreconditionError(
                "Escrow has already been released",
                error_code="ESCROW_ALREADY_RELEASED",
                details={"payment_id": str(payment.id)},
            )
        if payment.escrow_status == EscrowStatus.REFUNDED:
            raise PreconditionError(
                "Escrow has already been refunded",
                error_code="ESCROW_ALREADY_REFUNDED",
                details={"payment_id": str(payment.id)},
            )

        application = MissionService.get_accepted_application(mission)
        if application.student_id != payment.student_id:
            raise PreconditionError(
                "Accepted applicant does not match the payment recipient",
                error_code="PAYEE_MISMATCH",
                details={
                    "payment_id": str(payment.id),
                    "application_id": str(application.id),
                },
            )

    # =========================================================================
    # Cancellation
    # =========================================================================

    def cancel_mission(
        self, mission_id: uuid.UUID | str, user: User
    ) -> ServiceResult[CancelResult]:
        """
        Cancel a mission and return any held funds to the client.

        For each authorized hold, the PaymentIntent is retrieved first:
        requires_capture is voided (cancel), succeeded (already captured)
        is refunded. Open checkout sessions are expired. Payment and
        mission payment fields are then updated by the resulting
        payment_intent.canceled / charge.refunded webhooks.
        """
        logger = self.get_logger()
        result: CancelResult | None = None

        try:
            with self.atomic():
                mission = MissionService.get_mission_for_client(
                    mission_id, user, for_update=True
                )
                if mission.is_terminal:
                    raise PreconditionError(
                        f"Cannot cancel a mission that is already {mission.status}",
                        error_code="MISSION_NOT_CANCELABLE",
                        details={"mission_id": str(mission.id), "status": mission.status},
                    )

                result = CancelResult(mission=mission)
                payments = list(
                    Payment.objects.select_for_update().filter(mission=mission)
                )
                held = [p for p in payments if p.is_hold_active]
                if held:
                    self._log_payee(mission, held)

                for payment in held:
                    self._return_held_funds(payment, result)

                for payment in payments:
                    if payment.status in (PaymentStatus.PENDING, PaymentStatus.FAILED):
                        self._expire_session_quietly(payment.stripe_checkout_session_id)
                        result.expired_sessions.append(payment.stripe_checkout_session_id)

                mission.cancel()
                mission.save()

        except BaseApplicationError as e:
            if result is not None:
                self._report_returned_funds(result, e)
            return self.handle_exception(e, "cancel_mission", log_level=logging.INFO)
        except (DatabaseError, ConcurrentTransition) as e:
            if result is not None and self._report_returned_funds(result, e):
                return ServiceResult.success(result)
            return self.handle_exception(e, "cancel_mission")

        logger.info(
            "Mission canceled",
            extra={
                "mission_id": str(mission.id),
                "voided": result.voided_payment_intents,
                "refunded": result.refunded_payment_intents,
            },
        )
        return ServiceResult.success(result)

    def _return_held_funds(self, payment: Payment, result: CancelResult) -> None:
        payment_intent_id = payment.stripe_payment_intent_id
        if not payment_intent_id:
            self.get_logger().error(
                "Held payment has no PaymentIntent",
                extra={"payment_id": str(payment.id)},
            )
            return

        intent = self.stripe.retrieve_payment_intent(payment_intent_id)

        if intent.status == "requires_capture":
            self.stripe.cancel_payment_intent(
                payment_intent_id,
                idempotency_key=IdempotencyKeyGenerator.generate("cancel", payment.id),
            )
            result.voided_payment_intents.append(payment_intent_id)
        elif intent.status == "succeeded":
            self.stripe.create_refund(
                payment_intent_id,
                idempotency_key=IdempotencyKeyGenerator.generate("refund", payment.id),
                metadata={"payment_id": str(payment.id), "mission_id": str(payment.mission_id)},
            )
            result.refunded_payment_intents.append(payment_intent_id)
        elif intent.status == "canceled":
            # Already voided; the canceled webhook settles the ledger.
            pass
        else:
            raise PreconditionError(
                f"Cannot cancel: payment is in unexpected state {intent.status}",
                error_code="UNEXPECTED_PAYMENT_STATE",
                details={
                    "payment_id": str(payment.id),
                    "payment_intent_id": payment_intent_id,
                    "intent_status": intent.status,
                },
            )

    def _log_payee(self, mission: Mission, held: list[Payment]) -> None:
        # Refunds must not be blocked by a missing or duplicated acceptance.
        try:
            application = MissionService.get_accepted_application(mission)
        except BaseApplicationError:
            application = None

        for payment in held:
            if application is None or application.student_id != payment.student_id:
                self.get_logger().warning(
                    "Held payment does not match the accepted application",
                    extra={"mission_id": str(mission.id), "payment_id": str(payment.id)},
                )

    def _report_returned_funds(self, result: CancelResult, error: Exception) -> bool:
        """Report voids/refunds that Stripe accepted before a failure."""
        returned = result.voided_payment_intents + result.refunded_payment_intents
        for payment_intent_id in returned:
            report_reconciliation_hazard(
                "cancel",
                payment_intent_id=payment_intent_id,
                mission_id=result.mission.id,
                error=error,
            )
        return bool(returned)
