"""
Mission lifecycle service.

This module provides MissionService, the only writer of Mission.status
and Application.status outside the escrow flow. Escrow-specific
transitions (funding, release, cancellation with void/refund) live in
payments.services.EscrowService and reuse the lookups defined here.

Every write runs inside transaction.atomic() with the affected rows locked
via select_for_update(), and state is re-checked after the lock is taken.

Usage:
    from missions.services import MissionService

    result = MissionService.accept_application(application_id, request.user)
    if result.success:
        application = result.data
    else:
        return Response(result.to_response(), status=result.status_code)
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

from django.core.exceptions import ValidationError as DjangoValidationError

from core.exceptions import (
    BaseApplicationError,
    NotFoundError,
    PermissionDeniedError,
    PreconditionError,
    ValidationError,
)
from core.services import BaseService, ServiceResult
from missions.models import Application, Mission
from missions.states import ApplicationStatus, MissionPaymentStatus, MissionStatus

if TYPE_CHECKING:
    from authentication.models import User


# =============================================================================
# Parameter Types
# =============================================================================


@dataclass
class CreateMissionParams:
    """
    Parameters for posting a new mission.

    Attributes:
        title: Short mission title
        budget: Decimal budget (must be positive)
        description: What needs to be done
        category: Free-form category label
        deadline: Optional due date
        is_remote: Whether the work can be done remotely
        location: Location for on-site missions
    """

    title: str
    budget: Decimal
    description: str = ""
    category: str = ""
    deadline: date | None = None
    is_remote: bool = True
    location: str = ""


class AcceptedApplicationIntegrityError(BaseApplicationError):
    """More than one accepted application exists for a single mission."""

    default_error_code = "DATA_INTEGRITY_ERROR"
    http_status = 500


# =============================================================================
# Mission Service
# =============================================================================


class MissionService(BaseService):
    """
    Drives the mission and application state machines.

    All methods are class methods; no instance state is maintained.
    """

    # =========================================================================
    # Lookups (shared with the escrow flow)
    # =========================================================================

    @classmethod
    def get_mission_for_client(
        cls,
        mission_id: uuid.UUID | str,
        user: User,
        *,
        for_update: bool = False,
    ) -> Mission:
        """
        Load a mission and check that the user is its client.

        Raises:
            NotFoundError: No mission with that id
            PermissionDeniedError: User is not the mission's client
        """
        queryset = Mission.objects.all()
        if for_update:
            queryset = queryset.select_for_update()

        try:
            mission = queryset.get(id=mission_id)
        except (Mission.DoesNotExist, DjangoValidationError, ValueError) as e:
            raise NotFoundError(
                "Mission not found",
                error_code="MISSION_NOT_FOUND",
                details={"mission_id": str(mission_id)},
            ) from e

        if mission.client_id != user.id:
            raise PermissionDeniedError(
                "Unauthorized: You are not the client for this mission",
                details={"mission_id": str(mission.id)},
            )
        return mission

    @classmethod
    def get_accepted_application(cls, mission: Mission) -> Application:
        """
        Re-derive the accepted application for a mission.

        Raises:
            PreconditionError: No accepted application
            AcceptedApplicationIntegrityError: More than one accepted
        """
        accepted = list(
            Application.objects.filter(
                mission=mission,
                status=ApplicationStatus.ACCEPTED,
            ).select_related("student")[:2]
        )

        if not accepted:
            raise PreconditionError(
                "No accepted application found for this mission",
                error_code="NO_ACCEPTED_APPLICATION",
                details={"mission_id": str(mission.id)},
            )

        if len(accepted) > 1:
            cls.get_logger().critical(
                "Multiple accepted applications for mission",
                extra={
                    "mission_id": str(mission.id),
                    "application_ids": [str(a.id) for a in accepted],
                },
            )
            raise AcceptedApplicationIntegrityError(
                "Mission has more than one accepted application",
                details={"mission_id": str(mission.id)},
            )

        return accepted[0]

    # =========================================================================
    # Mission Operations
    # =========================================================================

    @classmethod
    def create_mission(
        cls, client: User, params: CreateMissionParams
    ) -> ServiceResult[Mission]:
        """
        Post a new mission (status=open, payment_status=unset).

        Only users with the client role may post missions.
        """
        if not client.is_client:
            return ServiceResult.from_error(
                PermissionDeniedError("Only clients can post missions")
            )
        if not params.title or not params.title.strip():
            return ServiceResult.from_error(ValidationError("Title is required"))
        if params.budget is None or params.budget <= 0:
            return ServiceResult.from_error(
                ValidationError("Budget must be positive", error_code="INVALID_BUDGET")
            )

        mission = Mission.objects.create(
            client=client,
            title=params.title.strip(),
            description=params.description,
            category=params.category,
            budget=params.budget,
            deadline=params.deadline,
            is_remote=params.is_remote,
            location=params.location,
        )

        cls.get_logger().info(
            "Mission created",
            extra={"mission_id": str(mission.id), "client_id": str(client.id)},
        )
        return ServiceResult.success(mission)

    @classmethod
    def start_mission(
        cls, mission_id: uuid.UUID | str, user: User
    ) -> ServiceResult[Mission]:
        """
        Begin work on a funded mission. IN_DISCUSSION -> IN_PROGRESS.

        Work may not begin before the escrow hold is confirmed.
        """
        try:
            with cls.atomic():
                mission = cls.get_mission_for_client(mission_id, user, for_update=True)

                if mission.status != MissionStatus.IN_DISCUSSION:
                    raise PreconditionError(
                        "Mission can only be started from in_discussion",
                        error_code="INVALID_MISSION_STATUS",
                        details={"status": mission.status},
                    )
                if mission.payment_status != MissionPaymentStatus.PAID:
                    raise PreconditionError(
                        "Cannot start mission: payment has not been received",
                        error_code="MISSION_NOT_PAID",
                        details={"payment_status": mission.payment_status},
                    )

                mission.start()
                mission.save()
        except BaseApplicationError as e:
            return cls.handle_exception(e, "start_mission", log_level=logging.INFO)

        cls.get_logger().info(
            "Mission started",
            extra={"mission_id": str(mission.id)},
        )
        return ServiceResult.success(mission)

    @classmethod
    def complete_mission(
        cls, mission_id: uuid.UUID | str, user: User
    ) -> ServiceResult[Mission]:
        """
        Mark a mission completed. IN_PROGRESS -> COMPLETED.

        Releasing the escrow is a separate call
        (EscrowService.release_escrow).
        """
        try:
            with cls.atomic():
                mission = cls.get_mission_for_client(mission_id, user, for_update=True)

                if mission.status != MissionStatus.IN_PROGRESS:
                    raise PreconditionError(
                        "Mission can only be completed from in_progress",
                        error_code="INVALID_MISSION_STATUS",
                        details={"status": mission.status},
                    )

                mission.complete()
                mission.save()
        except BaseApplicationError as e:
            return cls.handle_exception(e, "complete_mission", log_level=logging.INFO)

        cls.get_logger().info(
            "Mission completed",
            extra={"mission_id": str(mission.id)},
        )
        return ServiceResult.success(mission)

    # =========================================================================
    # Application Operations
    # =========================================================================

    @classmethod
    def apply_to_mission(
        cls,
        mission_id: uuid.UUID | str,
        student: User,
        cover_letter: str = "",
    ) -> ServiceResult[Application]:
        """
        Submit a student's application to an open mission.
        """
        try:
            with cls.atomic():
                try:
                    mission = Mission.objects.select_for_update().get(id=mission_id)
                except (Mission.DoesNotExist, DjangoValidationError, ValueError) as e:
                    raise NotFoundError(
                        "Mission not found",
                        error_code="MISSION_NOT_FOUND",
                        details={"mission_id": str(mission_id)},
                    ) from e

                if not student.is_student:
                    raise PermissionDeniedError("Only students can apply to missions")
                if mission.client_id == student.id:
                    raise PermissionDeniedError("You cannot apply to your own mission")
                if mission.status != MissionStatus.OPEN:
                    raise PreconditionError(
                        "Mission is not open for applications",
                        error_code="MISSION_NOT_OPEN",
                        details={"status": mission.status},
                    )
                if Application.objects.filter(mission=mission, student=student).exists():
                    raise PreconditionError(
                        "You have already applied to this mission",
                        error_code="DUPLICATE_APPLICATION",
                    )

                application = Application.objects.create(
                    mission=mission,
                    student=student,
                    cover_letter=cover_letter or "",
                )
        except BaseApplicationError as e:
            return cls.handle_exception(e, "apply_to_mission", log_level=logging.INFO)

        cls.get_logger().info(
            "Application submitted",
            extra={
                "mission_id": str(mission.id),
                "application_id": str(application.id),
                "student_id": str(student.id),
            },
        )
        return ServiceResult.success(application)

    @classmethod
    def accept_application(
        cls, application_id: uuid.UUID | str, user: User
    ) -> ServiceResult[Application]:
        """
        Accept one application. Application PENDING -> ACCEPTED and
        mission OPEN -> IN_DISCUSSION.

        The mission row is locked before any other accepted application
        is looked for, so two concurrent accepts cannot both succeed.
        """
        try:
            with cls.atomic():
                application = cls._get_application(application_id)
                mission = cls.get_mission_for_client(
                    application.mission_id, user, for_update=True
                )
                application = Application.objects.select_for_update().get(
                    id=application.id
                )

                if application.status != ApplicationStatus.PENDING:
                    raise PreconditionError(
                        "Application is no longer pending",
                        error_code="APPLICATION_NOT_PENDING",
                        details={"status": application.status},
                    )
                if mission.status != MissionStatus.OPEN:
                    raise PreconditionError(
                        "Mission is not open",
                        error_code="MISSION_NOT_OPEN",
                        details={"status": mission.status},
                    )
                if Application.objects.filter(
                    mission=mission, status=ApplicationStatus.ACCEPTED
                ).exists():
                    raise PreconditionError(
                        "Mission already has an accepted application",
                        error_code="APPLICATION_ALREADY_ACCEPTED",
                    )

                application.accept()
                application.save()
                mission.begin_discussion()
                mission.save()
        except BaseApplicationError as e:
            return cls.handle_exception(e, "accept_application", log_level=logging.INFO)

        cls.get_logger().info(
            "Application accepted",
            extra={
                "mission_id": str(mission.id),
                "application_id": str(application.id),
                "student_id": str(application.student_id),
            },
        )
        return ServiceResult.success(application)

    @classmethod
    def reject_application(
        cls, application_id: uuid.UUID | str, user: User
    ) -> ServiceResult[Application]:
        """Reject a pending application. PENDING -> REJECTED."""
        try:
            with cls.atomic():
                application = cls._get_application(application_id)
                cls.get_mission_for_client(application.mission_id, user)
                application = Application.objects.select_for_update().get(
                    id=application.id
                )

                if application.status != ApplicationStatus.PENDING:
                    raise PreconditionError(
                        "Application is no longer pending",
                        error_code="APPLICATION_NOT_PENDING",
                        details={"status": application.status},
                    )

                application.reject()
                application.save()
        except BaseApplicationError as e:
            return cls.handle_exception(e, "reject_application", log_level=logging.INFO)

        return ServiceResult.success(application)

    @classmethod
    def _get_application(cls, application_id: uuid.UUID | str) -> Application:
        try:
            return Application.objects.get(id=application_id)
        except (Application.DoesNotExist, DjangoValidationError, ValueError) as e:
            raise NotFoundError(
                "Application not found",
                error_code="APPLICATION_NOT_FOUND",
                details={"application_id": str(application_id)},
            ) from e
