"""
Tests for ServiceResult and BaseService.

These tests verify:
- Failed results carry message, code and HTTP status
- Domain exceptions convert with their own status
- handle_exception logs and maps unexpected errors to 500
"""

from __future__ import annotations

import logging

import pytest

from core.exceptions import (
    BaseApplicationError,
    ExternalServiceError,
    NotFoundError,
    PermissionDeniedError,
    PreconditionError,
    ValidationError,
)
from core.services import BaseService, ServiceResult


class TestServiceResult:
    """Tests for ServiceResult constructors and serialization."""

    def test_success_is_truthy_and_carries_data(self):
        result = ServiceResult.success({"id": 1})

        assert result
        assert result.data == {"id": 1}
        assert result.error is None

    def test_failure_defaults_to_400(self):
        """
        Given a failure without an explicit status
        When the result is created
        Then it is falsy and answers 400
        """
        result = ServiceResult.failure("Bad input", error_code="BAD")

        assert not result
        assert result.status_code == 400
        assert result.error_code == "BAD"

    @pytest.mark.parametrize(
        "exc_class,expected_status,expected_code",
        [
            (ValidationError, 400, "VALIDATION_ERROR"),
            (PermissionDeniedError, 403, "PERMISSION_DENIED"),
            (NotFoundError, 404, "NOT_FOUND"),
            (PreconditionError, 409, "PRECONDITION_FAILED"),
            (ExternalServiceError, 502, "EXTERNAL_SERVICE_ERROR"),
            (BaseApplicationError, 500, "APPLICATION_ERROR"),
        ],
    )
    def test_from_error_uses_exception_status(
        self, exc_class, expected_status, expected_code
    ):
        result = ServiceResult.from_error(exc_class("Something went wrong"))

        assert result.success is False
        assert result.status_code == expected_status
        assert result.error_code == expected_code
        assert result.error == "Something went wrong"

    def test_from_error_keeps_explicit_code(self):
        exc = PreconditionError("Mission is not paid", error_code="MISSION_NOT_PAID")

        assert ServiceResult.from_error(exc).error_code == "MISSION_NOT_PAID"

    def test_to_response_for_failure(self):
        result = ServiceResult.failure(
            "Invalid", error_code="VALIDATION_ERROR", errors={"amount": ["Required"]}
        )

        assert result.to_response() == {
            "success": False,
            "error": "Invalid",
            "error_code": "VALIDATION_ERROR",
            "errors": {"amount": ["Required"]},
        }


class TestHandleException:
    """Tests for BaseService.handle_exception()."""

    def test_domain_error_keeps_code_and_status(self, caplog):
        exc = NotFoundError("Payment not found", error_code="PAYMENT_NOT_FOUND")

        with caplog.at_level(logging.WARNING):
            result = BaseService.handle_exception(
                exc, context="release", log_level=logging.WARNING
            )

        assert result.status_code == 404
        assert result.error_code == "PAYMENT_NOT_FOUND"
        assert "release" in caplog.text

    def test_unexpected_error_becomes_internal_error(self, caplog):
        """
        Given an exception that is not a domain error
        When handle_exception is called
        Then the result is a 500 INTERNAL_ERROR and the traceback is logged
        """
        # Arrange
        try:
            raise RuntimeError("boom")
        except RuntimeError as exc:
            error = exc

        # Act
        with caplog.at_level(logging.ERROR):
            result = BaseService.handle_exception(error)

        # Assert
        assert result.status_code == 500
        assert result.error_code == "INTERNAL_ERROR"
        assert caplog.records[-1].exc_info is not None
