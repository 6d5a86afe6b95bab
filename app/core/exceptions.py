"""
Base exception classes for application-wide error handling.

Every domain error carries a human-readable message, a machine-readable
error code and the HTTP status the API layer answers with, so services
can turn any of them into a ServiceResult and views into a response
without a lookup table per endpoint.

Exception Hierarchy:
    BaseApplicationError (base, 500)
    ├── ValidationError - Bad input, nothing was written (400)
    ├── PermissionDeniedError - Requester may not act on the resource (403)
    ├── NotFoundError - Lookup miss (404)
    ├── ConflictError - State conflict (409)
    │   └── PreconditionError - Lifecycle precondition not met (409)
    └── ExternalServiceError - Third-party call failed (502)

Usage:
    from core.exceptions import PreconditionError

    raise PreconditionError(
        "Cannot release escrow: Mission is not marked as completed",
        error_code="MISSION_NOT_COMPLETED",
        details={"mission_id": str(mission.id), "status": mission.status},
    )

    try:
        ...
    except BaseApplicationError as e:
        return Response(e.to_dict(), status=e.http_status)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (ids, current state, etc.)
        http_status: Status code the API layer responds with
    """

    default_error_code: str = "APPLICATION_ERROR"
    http_status: int = 500

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Example:
            {
                "error": "Mission not found or unauthorized",
                "error_code": "MISSION_NOT_FOUND",
                "details": {"mission_id": "..."}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input validation fails.

    Raised before any side effect, so the caller can fix the request
    and resubmit.

    Example:
        raise ValidationError(
            "Amount must be at least 50",
            error_code="AMOUNT_TOO_SMALL",
            details={"amount": 49},
        )
    """

    default_error_code: str = "VALIDATION_ERROR"
    http_status: int = 400


class NotFoundError(BaseApplicationError):
    """
    Raised when a requested resource is not found.

    Example:
        raise NotFoundError(
            "Payment not found",
            error_code="PAYMENT_NOT_FOUND",
            details={"payment_intent_id": payment_intent_id},
        )
    """

    default_error_code: str = "NOT_FOUND"
    http_status: int = 404


class PermissionDeniedError(BaseApplicationError):
    """
    Raised when the requesting user may not perform the operation.

    Used for ownership checks (only the mission's client may fund,
    release or cancel) and role checks (only students apply).

    Note:
        Missing or invalid credentials are handled by DRF's
        authentication layer. This is for authorization failures.
    """

    default_error_code: str = "PERMISSION_DENIED"
    http_status: int = 403


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with current resource state.

    Example:
        raise ConflictError(
            "You have already applied to this mission",
            error_code="DUPLICATE_APPLICATION",
        )
    """

    default_error_code: str = "CONFLICT"
    http_status: int = 409


class PreconditionError(ConflictError):
    """
    Raised when a lifecycle precondition is violated.

    Examples: no accepted applicant, mission not completed, escrow
    already released. State is left unchanged.
    """

    default_error_code: str = "PRECONDITION_FAILED"


class ExternalServiceError(BaseApplicationError):
    """
    Raised when an external service call fails.

    Subclasses set is_retryable so callers can tell transient failures
    (present as "try again") from permanent rejections.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
    http_status: int = 502
    is_retryable: bool = False
