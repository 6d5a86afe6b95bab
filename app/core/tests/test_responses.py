"""
Tests for API error response helpers and serializer mixins.
"""

from __future__ import annotations

from rest_framework import serializers

from core.responses import invalid_request, service_error
from core.serializer_mixins import CamelCaseAliasMixin, camel_to_snake
from core.services import ServiceResult


class _ReleaseRequest(CamelCaseAliasMixin, serializers.Serializer):
    payment_intent_id = serializers.CharField()
    note = serializers.CharField(required=False)


class TestServiceError:
    def test_uses_result_status_and_code(self):
        result = ServiceResult.failure(
            "Mission already paid", error_code="MISSION_ALREADY_PAID", status_code=409
        )

        response = service_error(result)

        assert response.status_code == 409
        assert response.data == {
            "error": "Mission already paid",
            "error_code": "MISSION_ALREADY_PAID",
        }


class TestInvalidRequest:
    def test_first_field_message_becomes_error(self):
        serializer = _ReleaseRequest(data={})
        assert serializer.is_valid() is False

        response = invalid_request(serializer)

        assert response.status_code == 400
        assert response.data["error_code"] == "VALIDATION_ERROR"
        assert response.data["error"].startswith("payment_intent_id:")
        assert "payment_intent_id" in response.data["errors"]


class TestCamelCaseAliasMixin:
    def test_camel_to_snake(self):
        assert camel_to_snake("paymentIntentId") == "payment_intent_id"
        assert camel_to_snake("amount") == "amount"

    def test_accepts_camel_case_keys(self):
        serializer = _ReleaseRequest(data={"paymentIntentId": "pi_123"})

        assert serializer.is_valid(), serializer.errors
        assert serializer.validated_data["payment_intent_id"] == "pi_123"

    def test_snake_case_wins_when_both_present(self):
        serializer = _ReleaseRequest(
            data={"paymentIntentId": "pi_camel", "payment_intent_id": "pi_snake"}
        )

        assert serializer.is_valid(), serializer.errors
        assert serializer.validated_data["payment_intent_id"] == "pi_snake"
