"""
End-to-end escrow journeys through the HTTP API.

Each test drives the public endpoints in the order a real client,
student and Stripe would: post mission, apply, accept, fund, webhook,
then release or cancel. Stripe is MockStripeAdapter; webhooks are
posted unsigned (STRIPE_WEBHOOK_SECRET empty).
"""

import json

import pytest
from rest_framework import status

from missions.models import Mission
from missions.states import MissionPaymentStatus, MissionStatus
from payments.adapters import PaymentIntentResult
from payments.models import Payment
from payments.state_machines import EscrowStatus, PaymentStatus
from payments.tests.factories import build_event
from payments.views import EscrowServiceMixin

WEBHOOK_URL = "/api/v1/payments/webhooks/stripe/"


@pytest.fixture(autouse=True)
def mock_gateway(mocker, mock_stripe_adapter, settings):
    settings.STRIPE_WEBHOOK_SECRET = ""
    mocker.patch.object(EscrowServiceMixin, "stripe_adapter", mock_stripe_adapter)
    mocker.patch("payments.webhooks.views.StripeAdapter", mock_stripe_adapter)
    return mock_stripe_adapter


def post_webhook(api_client, event_type: str, obj: dict):
    response = api_client.post(
        WEBHOOK_URL,
        data=json.dumps(build_event(event_type, obj)),
        content_type="application/json",
    )
    assert response.status_code == 200, response.content
    return response


def fund_mission(client_api, student_api, api_client) -> tuple[Mission, Payment]:
    """Post, apply, accept, initiate, and confirm the authorization."""
    mission_id = client_api.post(
        "/api/v1/missions/",
        {"title": "Brand identity", "budget": "100.00"},
        format="json",
    ).data["id"]

    application_id = student_api.post(
        f"/api/v1/missions/{mission_id}/applications/",
        {"coverLetter": "Happy to help"},
        format="json",
    ).data["id"]
    accepted = client_api.post(f"/api/v1/missions/applications/{application_id}/accept/")
    assert accepted.status_code == status.HTTP_200_OK

    checkout = client_api.post(
        "/api/v1/payments/initiate/",
        {"missionId": mission_id, "amount": 10000, "currency": "eur"},
        format="json",
    )
    assert checkout.status_code == status.HTTP_200_OK

    payment = Payment.objects.get(stripe_checkout_session_id=checkout.data["sessionId"])
    assert payment.status == PaymentStatus.PENDING
    assert payment.escrow_status == EscrowStatus.HELD
    assert payment.amount_cents == 10000

    post_webhook(
        api_client,
        "checkout.session.completed",
        {
            "id": payment.stripe_checkout_session_id,
            "payment_intent": "pi_e2e_001",
            "metadata": {"payment_id": str(payment.id)},
        },
    )
    post_webhook(
        api_client,
        "payment_intent.amount_capturable_updated",
        {"id": "pi_e2e_001", "status": "requires_capture", "payment_method": "pm_card"},
    )

    payment = Payment.objects.get(id=payment.id)
    mission = Mission.objects.get(id=mission_id)
    assert payment.status == PaymentStatus.SUCCEEDED
    assert mission.payment_status == MissionPaymentStatus.PAID
    return mission, payment


class TestEscrowReleaseJourney:
    def test_fund_complete_and_release(
        self, client_api, student_api, api_client, mock_gateway
    ):
        """
        Given a funded mission
        When the client starts, completes and releases it
        Then the hold is captured once and escrow is released
        """
        mission, payment = fund_mission(client_api, student_api, api_client)

        started = client_api.post(f"/api/v1/missions/{mission.id}/start/")
        completed = client_api.post(f"/api/v1/missions/{mission.id}/complete/")
        released = client_api.post(
            "/api/v1/payments/release/", {"paymentIntentId": "pi_e2e_001"}, format="json"
        )

        assert started.data["status"] == MissionStatus.IN_PROGRESS
        assert completed.data["status"] == MissionStatus.COMPLETED
        assert released.status_code == status.HTTP_200_OK
        assert released.data["escrowStatus"] == "released"
        assert Payment.objects.get(id=payment.id).escrow_status == EscrowStatus.RELEASED
        assert mock_gateway.call_count("capture_payment_intent") == 1

        replay = client_api.post(
            "/api/v1/payments/release/", {"paymentIntentId": "pi_e2e_001"}, format="json"
        )
        assert replay.status_code == status.HTTP_409_CONFLICT
        assert mock_gateway.call_count("capture_payment_intent") == 1


class TestEscrowCancelJourney:
    @pytest.mark.parametrize(
        "intent_status,gateway_call,event_type,event_object",
        [
            (
                "requires_capture",
                "cancel_payment_intent",
                "payment_intent.canceled",
                {"id": "pi_e2e_001"},
            ),
            (
                "succeeded",
                "create_refund",
                "charge.refunded",
                {"id": "ch_e2e", "payment_intent": "pi_e2e_001", "refunded": True},
            ),
        ],
    )
    def test_cancel_returns_held_funds(
        self,
        client_api,
        student_api,
        api_client,
        mock_gateway,
        intent_status,
        gateway_call,
        event_type,
        event_object,
    ):
        """
        Given a funded mission with escrow held
        When the client cancels it and Stripe confirms the void or refund
        Then payment, escrow and mission payment status are all refunded
        """
        # Arrange
        mission, payment = fund_mission(client_api, student_api, api_client)
        mock_gateway.responses["retrieve_payment_intent"] = PaymentIntentResult(
            id="pi_e2e_001", status=intent_status, amount_cents=10000, currency="eur"
        )

        # Act
        canceled = client_api.post(f"/api/v1/missions/{mission.id}/cancel/")
        post_webhook(api_client, event_type, event_object)

        # Assert
        assert canceled.status_code == status.HTTP_200_OK
        assert canceled.data["mission"]["status"] == MissionStatus.CANCELED
        assert mock_gateway.call_count(gateway_call) == 1

        payment = Payment.objects.get(id=payment.id)
        mission = Mission.objects.get(id=mission.id)
        assert payment.status == PaymentStatus.REFUNDED
        assert payment.escrow_status == EscrowStatus.REFUNDED
        assert mission.payment_status == MissionPaymentStatus.REFUNDED
