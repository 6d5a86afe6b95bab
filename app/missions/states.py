"""
State enums for mission models.

Mission.status:
    open -> in_discussion -> in_progress -> completed
    open / in_discussion / in_progress -> canceled

Mission.payment_status:
    unset -> pending -> paid -> refunded
    pending -> refunded (hold voided before the mission was paid)

Application.status:
    pending -> accepted | rejected
"""

from django.db import models


class MissionStatus(models.TextChoices):
    """
    Lifecycle of a mission.

    Terminal states: COMPLETED, CANCELED
    """

    OPEN = "open", "Open"
    IN_DISCUSSION = "in_discussion", "In Discussion"
    IN_PROGRESS = "in_progress", "In Progress"
    COMPLETED = "completed", "Completed"
    CANCELED = "canceled", "Canceled"


class MissionPaymentStatus(models.TextChoices):
    """Funding status of a mission, mirrored from its escrow payment."""

    UNSET = "unset", "Unset"
    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"
    REFUNDED = "refunded", "Refunded"


class ApplicationStatus(models.TextChoices):
    """Status of a student's application to a mission."""

    PENDING = "pending", "Pending"
    ACCEPTED = "accepted", "Accepted"
    REJECTED = "rejected", "Rejected"


# Statuses in which a mission may hold a paid escrow payment
PAYABLE_MISSION_STATUSES = frozenset(
    [
        MissionStatus.IN_DISCUSSION,
        MissionStatus.IN_PROGRESS,
        MissionStatus.COMPLETED,
    ]
)

# Statuses from which a mission can still be canceled
CANCELABLE_MISSION_STATUSES = frozenset(
    [
        MissionStatus.OPEN,
        MissionStatus.IN_DISCUSSION,
        MissionStatus.IN_PROGRESS,
    ]
)
