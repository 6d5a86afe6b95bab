"""
Error response helpers for API views.

Every failed API response carries an "error" string and, where one is
known, a machine-readable "error_code":

    {"error": "Mission is already paid", "error_code": "MISSION_ALREADY_PAID"}

Usage:
    from core.responses import invalid_request, service_error

    serializer = InitiatePaymentSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_request(serializer)

    result = EscrowService().initiate_payment(params, user=request.user)
    if not result.success:
        return service_error(result)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rest_framework import status
from rest_framework.response import Response

if TYPE_CHECKING:
    from rest_framework.serializers import Serializer

    from core.services import ServiceResult


def service_error(result: ServiceResult) -> Response:
    """Translate a failed ServiceResult into a Response with its HTTP status."""
    body = {"error": result.error, "error_code": result.error_code}
    if result.errors:
        body["errors"] = result.errors
    return Response(body, status=result.status_code)


def invalid_request(serializer: Serializer) -> Response:
    """
    400 response for a serializer that failed validation.

    The first field message becomes "error"; the full map stays under
    "errors" for clients that render per-field messages.
    """
    errors = serializer.errors
    return Response(
        {
            "error": _first_message(errors) or "Invalid request",
            "error_code": "VALIDATION_ERROR",
            "errors": errors,
        },
        status=status.HTTP_400_BAD_REQUEST,
    )


def _first_message(errors) -> str | None:
    if isinstance(errors, dict):
        for field_name, value in errors.items():
            message = _first_message(value)
            if message:
                if field_name == "non_field_errors":
                    return message
                return f"{field_name}: {message}"
        return None
    if isinstance(errors, list):
        for value in errors:
            message = _first_message(value)
            if message:
                return message
        return None
    return str(errors) if errors else None
