"""
Payment model for mission escrow.

A Payment is one escrow transaction tied to exactly one Mission and the
student whose application was accepted. Funds are authorized at checkout
(manual capture) and stay on hold until the client releases them or the
mission is canceled.

Usage:
    from payments.models import Payment
    from payments.state_machines import PaymentStatus

    payment = Payment.objects.for_processor_reference(
        payment_intent_id="pi_123",
    ).select_for_update().first()

    # State transitions using django-fsm
    payment.mark_succeeded(payment_method_id="pm_123")  # pending -> succeeded
    payment.save()
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone
from django_fsm import ConcurrentTransitionMixin, FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from missions.states import MissionStatus
from payments.money import to_minor_units
from payments.state_machines import EscrowStatus, PaymentStatus


def _payment_succeeded(payment: Payment) -> bool:
    return payment.status == PaymentStatus.SUCCEEDED


def _mission_completed(payment: Payment) -> bool:
    return payment.mission.status == MissionStatus.COMPLETED


class PaymentQuerySet(models.QuerySet):
    """Query helpers for escrow payments."""

    def for_user(self, user) -> PaymentQuerySet:
        """Payments where the user is the paying client or the payee student."""
        return self.filter(models.Q(client=user) | models.Q(student=user))

    def held(self) -> PaymentQuerySet:
        """Authorized holds that have not been captured or returned."""
        return self.filter(status=PaymentStatus.SUCCEEDED, escrow_status=EscrowStatus.HELD)

    def stale_pending(self, created_before) -> PaymentQuerySet:
        """Pending payments old enough to be checked against the processor."""
        return self.filter(status=PaymentStatus.PENDING, created_at__lt=created_before)

    def held_on_canceled_missions(self, canceled_before) -> PaymentQuerySet:
        """Uncaptured holds on missions canceled before the cutoff."""
        return self.held().filter(
            mission__status=MissionStatus.CANCELED,
            mission__updated_at__lt=canceled_before,
        )

    def for_processor_reference(
        self,
        payment_intent_id: str | None = None,
        payment_id: str | uuid.UUID | None = None,
        checkout_session_id: str | None = None,
    ) -> PaymentQuerySet:
        """
        Narrow to the payment a processor object refers to.

        The PaymentIntent id is the primary key between the processor and
        the ledger. Before it is bound (checkout not yet completed), the
        payment id carried in metadata or the checkout session id is used.
        """
        if payment_intent_id:
            by_intent = self.filter(stripe_payment_intent_id=payment_intent_id)
            if by_intent.exists():
                return by_intent

        if payment_id:
            try:
                return self.filter(id=uuid.UUID(str(payment_id)))
            except ValueError:
                pass

        if checkout_session_id:
            return self.filter(stripe_checkout_session_id=checkout_session_id)

        return self.none()


class Payment(ConcurrentTransitionMixin, UUIDPrimaryKeyMixin, BaseModel):
    """
    One escrow transaction for a mission.

    State Flow (status):
        PENDING -> SUCCEEDED -> REFUNDED
        PENDING -> FAILED -> SUCCEEDED
        PENDING / FAILED -> CANCELED

    State Flow (escrow_status, monotonic):
        HELD -> RELEASED
        HELD -> REFUNDED

    Fields:
        mission: Funded mission (PROTECT: missions with payments cannot be deleted)
        client: Paying client
        student: Student of the accepted application at initiation time
        amount: Decimal amount at rest; converted to minor units for Stripe
        currency: Lowercase ISO 4217 code
        stripe_payment_intent_id: External transaction id (unique)
        stripe_checkout_session_id: Checkout session that created the intent
        stripe_payment_method_id: Card used for the authorization
        metadata: Caller metadata plus idempotency key and session id
        completed_at: Authorization time, then release time

    Invariants:
        - release() requires status == SUCCEEDED and the mission to be
          COMPLETED. A released payment can later only become REFUNDED
          (a refund issued from the Stripe dashboard); the check
          constraint allows exactly those two statuses.
        - Writes go through transitions; ConcurrentTransitionMixin turns
          each save into a compare-and-set on the loaded status values
    """

    mission = models.ForeignKey(
        "missions.Mission",
        on_delete=models.PROTECT,
        related_name="payments",
        help_text="Mission funded by this payment",
    )
    client = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="payments_made",
        help_text="Client whose card is authorized",
    )
    student = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="payments_received",
        help_text="Student of the accepted application",
    )

    amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text="Amount in major currency units (e.g. 100.00)",
    )
    currency = models.CharField(
        max_length=3,
        default="eur",
        help_text="ISO 4217 currency code (lowercase)",
    )

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=PaymentStatus.PENDING,
        choices=PaymentStatus.choices,
        db_index=True,
        protected=True,
        help_text="Processor-confirmed payment status (managed by FSM)",
    )
    escrow_status = FSMField(
        default=EscrowStatus.HELD,
        choices=EscrowStatus.choices,
        db_index=True,
        protected=True,
        help_text="Escrow hold status (managed by FSM)",
    )

    # ==========================================================================
    # Stripe References
    # ==========================================================================

    stripe_payment_intent_id = models.CharField(
        max_length=255,
        unique=True,
        null=True,
        blank=True,
        help_text="Stripe PaymentIntent ID (pi_xxx)",
    )
    stripe_checkout_session_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Stripe Checkout Session ID (cs_xxx)",
    )
    stripe_payment_method_id = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Stripe PaymentMethod ID (pm_xxx)",
    )

    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Request metadata, idempotency key and session id",
    )
    completed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the hold was authorized, then when it was released",
    )

    objects = PaymentQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "created_at"], name="payment_status_created_idx"),
            models.Index(fields=["mission", "status"], name="payment_mission_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="payment_amount_positive",
            ),
            models.CheckConstraint(
                condition=~models.Q(escrow_status=EscrowStatus.RELEASED)
                | models.Q(
                    status__in=[PaymentStatus.SUCCEEDED, PaymentStatus.REFUNDED]
                ),
                name="payment_released_requires_succeeded",
            ),
        ]

    def __str__(self) -> str:
        return (
            f"Payment({self.id}, {self.status}/{self.escrow_status}, "
            f"{self.amount} {self.currency.upper()})"
        )

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def amount_cents(self) -> int:
        """Amount in minor units, as sent to Stripe."""
        return to_minor_units(Decimal(self.amount), self.currency)

    @property
    def is_hold_active(self) -> bool:
        """Funds are authorized and neither captured nor returned."""
        return (
            self.status == PaymentStatus.SUCCEEDED
            and self.escrow_status == EscrowStatus.HELD
        )

    # ==========================================================================
    # Status Transitions
    # ==========================================================================

    @transition(
        field=status,
        source=[PaymentStatus.PENDING, PaymentStatus.FAILED],
        target=PaymentStatus.SUCCEEDED,
    )
    def mark_succeeded(self, payment_method_id: str | None = None):
        """Stripe confirmed the authorization hold."""
        if payment_method_id:
            self.stripe_payment_method_id = payment_method_id
        self.completed_at = timezone.now()

    @transition(
        field=status,
        source=PaymentStatus.PENDING,
        target=PaymentStatus.FAILED,
    )
    def mark_failed(self, reason: str | None = None):
        """The authorization attempt failed (card declined, etc.)."""
        if reason:
            self.metadata = {**(self.metadata or {}), "failure_reason": reason}

    @transition(
        field=status,
        source=[PaymentStatus.PENDING, PaymentStatus.FAILED],
        target=PaymentStatus.CANCELED,
    )
    def mark_canceled(self):
        """The checkout expired or the intent was canceled before authorization."""

    @transition(
        field=status,
        source=PaymentStatus.SUCCEEDED,
        target=PaymentStatus.REFUNDED,
    )
    def mark_refunded(self):
        """The hold was voided or the charge refunded."""

    # ==========================================================================
    # Escrow Transitions
    # ==========================================================================

    @transition(
        field=escrow_status,
        source=EscrowStatus.HELD,
        target=EscrowStatus.RELEASED,
        conditions=[_payment_succeeded, _mission_completed],
    )
    def release(self):
        """Funds captured for the student. HELD -> RELEASED."""
        self.completed_at = timezone.now()

    @transition(
        field=escrow_status,
        source=EscrowStatus.HELD,
        target=EscrowStatus.REFUNDED,
    )
    def refund_escrow(self):
        """Funds returned to the client. HELD -> REFUNDED."""
