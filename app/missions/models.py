"""
Mission and Application models.

Mission is the unit of work a client posts and funds through escrow.
Application is a student's bid for a mission; at most one application per
mission is ever accepted.

Usage:
    from missions.models import Application, Mission

    mission = Mission.objects.create(
        client=client,
        title="Landing page redesign",
        budget=Decimal("100.00"),
    )

    # State transitions using django-fsm
    mission.begin_discussion()  # open -> in_discussion
    mission.save()

Concurrency:
    Both models use ConcurrentTransitionMixin: save() only updates the
    row if its state fields still hold the values that were loaded, so a
    concurrent writer raises django_fsm.ConcurrentTransition instead of
    being silently overwritten. Services additionally lock rows with
    select_for_update() inside transaction.atomic().
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone
from django_fsm import ConcurrentTransitionMixin, FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from missions.states import (
    CANCELABLE_MISSION_STATUSES,
    PAYABLE_MISSION_STATUSES,
    ApplicationStatus,
    MissionPaymentStatus,
    MissionStatus,
)


def _is_paid(mission: Mission) -> bool:
    return mission.payment_status == MissionPaymentStatus.PAID


def _accepts_payment(mission: Mission) -> bool:
    return mission.status in PAYABLE_MISSION_STATUSES


class MissionQuerySet(models.QuerySet):
    """Query helpers for missions."""

    def for_client(self, user) -> MissionQuerySet:
        return self.filter(client=user)

    def visible_to(self, user) -> MissionQuerySet:
        """Missions the user owns or has applied to."""
        return self.filter(
            models.Q(client=user) | models.Q(applications__student=user)
        ).distinct()


class Mission(ConcurrentTransitionMixin, UUIDPrimaryKeyMixin, BaseModel):
    """
    A paid unit of work posted by a client.

    State Flow:
        OPEN -> IN_DISCUSSION -> IN_PROGRESS -> COMPLETED
        OPEN / IN_DISCUSSION / IN_PROGRESS -> CANCELED

    Payment Flow:
        UNSET -> PENDING -> PAID -> REFUNDED

    Invariants:
        - payment_status == PAID only while status is in_discussion,
          in_progress or completed (enforced by mark_paid's condition)
        - in_progress is only reachable once payment_status == PAID
        - A mission referenced by a payment cannot be deleted
          (Payment.mission uses on_delete=PROTECT)
    """

    client = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="missions",
        help_text="Client who posted and funds this mission",
    )

    title = models.CharField(max_length=200, help_text="Short mission title")
    description = models.TextField(blank=True, help_text="What needs to be done")
    category = models.CharField(
        max_length=100,
        blank=True,
        db_index=True,
        help_text="Free-form category label",
    )
    budget = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text="Budget as a decimal amount (currency-agnostic)",
    )
    deadline = models.DateField(null=True, blank=True, help_text="Optional due date")
    is_remote = models.BooleanField(default=True, help_text="Can be done remotely")
    location = models.CharField(
        max_length=255,
        blank=True,
        help_text="Location for on-site missions",
    )

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=MissionStatus.OPEN,
        choices=MissionStatus.choices,
        db_index=True,
        protected=True,
        help_text="Lifecycle status (managed by FSM)",
    )
    payment_status = FSMField(
        default=MissionPaymentStatus.UNSET,
        choices=MissionPaymentStatus.choices,
        db_index=True,
        protected=True,
        help_text="Escrow funding status (managed by FSM)",
    )
    paid_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the escrow hold was confirmed",
    )

    objects = MissionQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["client", "status"], name="mission_client_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(budget__gt=0),
                name="mission_budget_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"Mission({self.id}, {self.status}, {self.payment_status})"

    # ==========================================================================
    # Lifecycle Transitions
    # ==========================================================================

    @transition(
        field=status,
        source=MissionStatus.OPEN,
        target=MissionStatus.IN_DISCUSSION,
    )
    def begin_discussion(self):
        """An application was accepted. OPEN -> IN_DISCUSSION."""

    @transition(
        field=status,
        source=MissionStatus.IN_DISCUSSION,
        target=MissionStatus.IN_PROGRESS,
        conditions=[_is_paid],
    )
    def start(self):
        """Work begins; requires funds held in escrow. IN_DISCUSSION -> IN_PROGRESS."""

    @transition(
        field=status,
        source=MissionStatus.IN_PROGRESS,
        target=MissionStatus.COMPLETED,
    )
    def complete(self):
        """Client marks the work done. IN_PROGRESS -> COMPLETED."""

    @transition(
        field=status,
        source=list(CANCELABLE_MISSION_STATUSES),
        target=MissionStatus.CANCELED,
    )
    def cancel(self):
        """Cancel from any non-terminal status."""

    # ==========================================================================
    # Payment Transitions
    # ==========================================================================

    @transition(
        field=payment_status,
        source=[MissionPaymentStatus.UNSET, MissionPaymentStatus.PENDING],
        target=MissionPaymentStatus.PENDING,
    )
    def mark_payment_pending(self):
        """A checkout session was created for this mission."""

    @transition(
        field=payment_status,
        source=[MissionPaymentStatus.UNSET, MissionPaymentStatus.PENDING],
        target=MissionPaymentStatus.PAID,
        conditions=[_accepts_payment],
    )
    def mark_paid(self, paid_at=None):
        """Escrow hold confirmed by the payment processor."""
        self.paid_at = paid_at or timezone.now()

    @transition(
        field=payment_status,
        source=[MissionPaymentStatus.PENDING, MissionPaymentStatus.PAID],
        target=MissionPaymentStatus.REFUNDED,
    )
    def mark_refunded(self):
        """Held funds were returned to the client."""

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def is_paid(self) -> bool:
        return _is_paid(self)

    @property
    def is_terminal(self) -> bool:
        return self.status in (MissionStatus.COMPLETED, MissionStatus.CANCELED)


class Application(ConcurrentTransitionMixin, UUIDPrimaryKeyMixin, BaseModel):
    """
    A student's bid for a mission.

    State Flow:
        PENDING -> ACCEPTED
        PENDING -> REJECTED

    Invariants:
        - One application per (mission, student)
        - At most one ACCEPTED application per mission. MissionService
          checks this under a row lock; the partial unique constraint
          below is the storage-level backstop.
    """

    mission = models.ForeignKey(
        Mission,
        on_delete=models.CASCADE,
        related_name="applications",
        help_text="Mission applied to",
    )
    student = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="applications",
        help_text="Applying student",
    )
    status = FSMField(
        default=ApplicationStatus.PENDING,
        choices=ApplicationStatus.choices,
        db_index=True,
        protected=True,
        help_text="Application status (managed by FSM)",
    )
    cover_letter = models.TextField(blank=True, help_text="Optional cover letter")

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["mission", "student"],
                name="unique_application_per_student",
            ),
            models.UniqueConstraint(
                fields=["mission"],
                condition=models.Q(status=ApplicationStatus.ACCEPTED),
                name="unique_accepted_application_per_mission",
            ),
        ]

    def __str__(self) -> str:
        return f"Application({self.id}, {self.status})"

    @transition(
        field=status,
        source=ApplicationStatus.PENDING,
        target=ApplicationStatus.ACCEPTED,
    )
    def accept(self):
        pass

    @transition(
        field=status,
        source=ApplicationStatus.PENDING,
        target=ApplicationStatus.REJECTED,
    )
    def reject(self):
        pass
