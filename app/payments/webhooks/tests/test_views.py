"""
Tests for the Stripe webhook endpoint.

Tests cover:
- Signature verification (configured secret) and unverified mode
- WebhookEvent creation and replay idempotency
- Processing failures answered with 500 so Stripe redelivers
"""

import json

import pytest
from django.test import RequestFactory

from payments.exceptions import WebhookSignatureError
from payments.models import Payment, WebhookEvent
from payments.state_machines import PaymentStatus, WebhookEventStatus
from payments.tests.factories import WebhookEventFactory, build_event
from payments.webhooks.views import stripe_webhook

WEBHOOK_URL = "/api/v1/payments/webhooks/stripe/"


# =============================================================================
# Setup
# =============================================================================


@pytest.fixture
def rf():
    """Request factory for creating test requests."""
    return RequestFactory()


@pytest.fixture
def signed(settings):
    settings.STRIPE_WEBHOOK_SECRET = "whsec_test"


@pytest.fixture
def unsigned(settings):
    settings.STRIPE_WEBHOOK_SECRET = ""


def make_webhook_request(rf, payload, signature: str | None = "t=1,v1=abc"):
    """Create a POST request to the webhook endpoint."""
    headers = {"HTTP_STRIPE_SIGNATURE": signature} if signature else {}
    body = payload if isinstance(payload, str) else json.dumps(payload)
    return rf.post(WEBHOOK_URL, data=body, content_type="application/json", **headers)


# =============================================================================
# Signature Verification Tests
# =============================================================================


class TestStripeWebhookSignature:
    """Tests for signature verification."""

    def test_missing_signature_returns_400(self, rf, db, signed, mock_stripe_adapter):
        request = make_webhook_request(rf, build_event("payment_intent.succeeded", {}), None)

        response = stripe_webhook(request, stripe_adapter=mock_stripe_adapter)

        assert response.status_code == 400
        assert b"Missing signature" in response.content
        assert WebhookEvent.objects.count() == 0

    def test_invalid_signature_returns_400(self, rf, db, signed, mock_stripe_adapter):
        mock_stripe_adapter.side_effects["verify_webhook_signature"] = WebhookSignatureError(
            "Invalid webhook signature"
        )
        request = make_webhook_request(rf, build_event("payment_intent.succeeded", {}))

        response = stripe_webhook(request, stripe_adapter=mock_stripe_adapter)

        assert response.status_code == 400
        assert WebhookEvent.objects.count() == 0

    def test_verified_event_is_processed(
        self, rf, signed, mock_stripe_adapter, pending_payment
    ):
        """
        Given a correctly signed authorization event
        When Stripe posts it
        Then the event is stored, applied and acknowledged
        """
        # Arrange
        payload = build_event(
            "payment_intent.amount_capturable_updated", {"id": "pi_pending_001"}
        )
        request = make_webhook_request(rf, payload)

        # Act
        response = stripe_webhook(request, stripe_adapter=mock_stripe_adapter)

        # Assert
        assert response.status_code == 200
        assert json.loads(response.content) == {"received": True}
        assert mock_stripe_adapter.calls["verify_webhook_signature"][0]["signature"] == (
            "t=1,v1=abc"
        )
        webhook_event = WebhookEvent.objects.get(stripe_event_id=payload["id"])
        assert webhook_event.status == WebhookEventStatus.PROCESSED
        assert Payment.objects.get(id=pending_payment.id).status == PaymentStatus.SUCCEEDED


class TestUnverifiedMode:
    def test_processes_without_signature(self, rf, unsigned, mock_stripe_adapter, pending_payment):
        payload = build_event("payment_intent.payment_failed", {"id": "pi_pending_001"})

        response = stripe_webhook(
            make_webhook_request(rf, payload, None), stripe_adapter=mock_stripe_adapter
        )

        assert response.status_code == 200
        assert "verify_webhook_signature" not in mock_stripe_adapter.calls
        assert Payment.objects.get(id=pending_payment.id).status == PaymentStatus.FAILED

    def test_invalid_json_returns_400(self, rf, db, unsigned, mock_stripe_adapter):
        response = stripe_webhook(
            make_webhook_request(rf, "{not json", None), stripe_adapter=mock_stripe_adapter
        )

        assert response.status_code == 400

    def test_event_without_id_returns_400(self, rf, db, unsigned, mock_stripe_adapter):
        response = stripe_webhook(
            make_webhook_request(rf, {"type": "payment_intent.succeeded"}, None),
            stripe_adapter=mock_stripe_adapter,
        )

        assert response.status_code == 400
        assert WebhookEvent.objects.count() == 0


class TestWebhookIdempotency:
    def test_replay_of_processed_event_is_acknowledged(
        self, rf, db, unsigned, mock_stripe_adapter, mocker
    ):
        webhook_event = WebhookEventFactory(status=WebhookEventStatus.PROCESSED)
        handler = mocker.patch("payments.webhooks.views.handle_webhook_event")

        response = stripe_webhook(
            make_webhook_request(rf, webhook_event.payload, None),
            stripe_adapter=mock_stripe_adapter,
        )

        assert response.status_code == 200
        handler.assert_not_called()
        assert WebhookEvent.objects.count() == 1

    def test_failed_event_is_retried_on_redelivery(
        self, rf, unsigned, mock_stripe_adapter, pending_payment
    ):
        payload = build_event("payment_intent.payment_failed", {"id": "pi_pending_001"})
        WebhookEventFactory(
            payload=payload, status=WebhookEventStatus.FAILED, retry_count=1
        )

        response = stripe_webhook(
            make_webhook_request(rf, payload, None), stripe_adapter=mock_stripe_adapter
        )

        assert response.status_code == 200
        stored = WebhookEvent.objects.get(stripe_event_id=payload["id"])
        assert stored.status == WebhookEventStatus.PROCESSED
        assert stored.retry_count == 2

    def test_processing_failure_returns_500(
        self, rf, db, unsigned, mock_stripe_adapter, mocker
    ):
        mocker.patch(
            "payments.webhooks.views.handle_webhook_event",
            side_effect=RuntimeError("boom"),
        )

        response = stripe_webhook(
            make_webhook_request(rf, build_event("payment_intent.succeeded", {"id": "pi_x"}), None),
            stripe_adapter=mock_stripe_adapter,
        )

        assert response.status_code == 500


class TestHttpMethods:
    def test_options_preflight(self, rf):
        response = stripe_webhook(rf.options(WEBHOOK_URL))

        assert response.status_code == 200
        assert response["Access-Control-Allow-Origin"] == "*"
        assert "stripe-signature" in response["Access-Control-Allow-Headers"]

    def test_get_not_allowed(self, rf):
        assert stripe_webhook(rf.get(WEBHOOK_URL)).status_code == 405
