"""
Shared fixtures for payments tests (models, services, webhooks, tasks).

Sections:
    - Mock Stripe Adapter
    - Escrow Scenarios
    - Row Lock Recording
"""

from __future__ import annotations

import json
import uuid
from typing import Any

import pytest
from django.db.models.query import QuerySet

from missions.models import Mission
from missions.states import MissionPaymentStatus, MissionStatus
from missions.tests.factories import ApplicationFactory, MissionFactory
from payments.adapters import (
    CheckoutSessionResult,
    CustomerResult,
    PaymentIntentResult,
    RefundResult,
)
from payments.models import Payment
from payments.tests.factories import PaymentFactory


# =============================================================================
# Mock Stripe Adapter
# =============================================================================


class MockStripeAdapter:
    """
    Mock Stripe adapter for testing.

    Same classmethod surface as StripeAdapter. Per test, set:
        responses["retrieve_payment_intent"] = PaymentIntentResult(...)
        side_effects["capture_payment_intent"] = StripeAPIUnavailableError(...)

    Every call is recorded in calls[method_name] as a dict of arguments.
    """

    responses: dict[str, Any] = {}
    side_effects: dict[str, Exception] = {}
    calls: dict[str, list[dict[str, Any]]] = {}

    @classmethod
    def reset(cls):
        """Reset all mock state."""
        cls.responses = {}
        cls.side_effects = {}
        cls.calls = {}

    @classmethod
    def _record(cls, method: str, **kwargs) -> Any:
        cls.calls.setdefault(method, []).append(kwargs)
        if method in cls.side_effects:
            raise cls.side_effects[method]
        return cls.responses.get(method)

    @classmethod
    def call_count(cls, method: str) -> int:
        return len(cls.calls.get(method, []))

    @classmethod
    def find_or_create_customer(cls, email, name=None):
        response = cls._record("find_or_create_customer", email=email, name=name)
        return response or CustomerResult(id="cus_test_123", email=email, created=True)

    @classmethod
    def create_checkout_session(cls, params):
        response = cls._record("create_checkout_session", params=params)
        if response:
            return response
        session_id = f"cs_test_{uuid.uuid4().hex[:12]}"
        return CheckoutSessionResult(
            id=session_id,
            url=f"https://checkout.stripe.com/c/pay/{session_id}",
            status="open",
            metadata=params.metadata,
        )

    @classmethod
    def retrieve_checkout_session(cls, session_id):
        response = cls._record("retrieve_checkout_session", session_id=session_id)
        return response or CheckoutSessionResult(id=session_id, url=None, status="open")

    @classmethod
    def expire_checkout_session(cls, session_id):
        response = cls._record("expire_checkout_session", session_id=session_id)
        return response or CheckoutSessionResult(id=session_id, url=None, status="expired")

    @classmethod
    def retrieve_payment_intent(cls, payment_intent_id):
        response = cls._record("retrieve_payment_intent", payment_intent_id=payment_intent_id)
        return response or PaymentIntentResult(
            id=payment_intent_id,
            status="requires_capture",
            amount_cents=10000,
            currency="eur",
            payment_method_id="pm_card_visa",
        )

    @classmethod
    def capture_payment_intent(cls, payment_intent_id, idempotency_key, amount_to_capture=None):
        response = cls._record(
            "capture_payment_intent",
            payment_intent_id=payment_intent_id,
            idempotency_key=idempotency_key,
            amount_to_capture=amount_to_capture,
        )
        return response or PaymentIntentResult(
            id=payment_intent_id,
            status="succeeded",
            amount_cents=10000,
            currency="eur",
            amount_received=10000,
        )

    @classmethod
    def cancel_payment_intent(
        cls, payment_intent_id, idempotency_key, cancellation_reason="requested_by_customer"
    ):
        response = cls._record(
            "cancel_payment_intent",
            payment_intent_id=payment_intent_id,
            idempotency_key=idempotency_key,
        )
        return response or PaymentIntentResult(
            id=payment_intent_id, status="canceled", amount_cents=10000, currency="eur"
        )

    @classmethod
    def create_refund(
        cls,
        payment_intent_id,
        idempotency_key,
        amount_cents=None,
        reason="requested_by_customer",
        metadata=None,
    ):
        response = cls._record(
            "create_refund",
            payment_intent_id=payment_intent_id,
            idempotency_key=idempotency_key,
            metadata=metadata,
        )
        return response or RefundResult(
            id=f"re_test_{uuid.uuid4().hex[:12]}",
            amount_cents=10000,
            currency="eur",
            status="succeeded",
            payment_intent_id=payment_intent_id,
        )

    @classmethod
    def verify_webhook_signature(cls, payload, signature):
        response = cls._record("verify_webhook_signature", signature=signature)
        return response or json.loads(payload)


@pytest.fixture
def mock_stripe_adapter():
    """Provide a clean MockStripeAdapter for each test."""
    MockStripeAdapter.reset()
    yield MockStripeAdapter
    MockStripeAdapter.reset()


# =============================================================================
# Escrow Scenarios
# =============================================================================


def _escrow(client, student, mission_kwargs: dict, **payment_kwargs) -> Payment:
    mission = MissionFactory(client=client, **mission_kwargs)
    ApplicationFactory(mission=mission, student=student, accepted=True)
    return PaymentFactory(mission=mission, client=client, student=student, **payment_kwargs)


@pytest.fixture
def accepted_mission(client_user, student_user) -> Mission:
    """Mission in discussion with student_user's application accepted; unfunded."""
    mission = MissionFactory(client=client_user, in_discussion=True)
    ApplicationFactory(mission=mission, student=student_user, accepted=True)
    return mission


@pytest.fixture
def pending_payment(client_user, student_user) -> Payment:
    """Checkout created, authorization not yet confirmed."""
    return _escrow(
        client_user,
        student_user,
        {
            "status": MissionStatus.IN_DISCUSSION,
            "payment_status": MissionPaymentStatus.PENDING,
        },
        stripe_payment_intent_id="pi_pending_001",
        stripe_checkout_session_id="cs_pending_001",
    )


@pytest.fixture
def held_payment(client_user, student_user) -> Payment:
    """Funds held for a paid mission still in discussion."""
    return _escrow(
        client_user,
        student_user,
        {"paid": True},
        held=True,
        stripe_payment_intent_id="pi_held_001",
    )


@pytest.fixture
def releasable_payment(client_user, student_user) -> Payment:
    """Funds held for a completed mission."""
    return _escrow(
        client_user,
        student_user,
        {"completed": True},
        held=True,
        stripe_payment_intent_id="pi_complete_001",
    )


# =============================================================================
# Row Lock Recording
# =============================================================================


@pytest.fixture
def lock_order(mocker) -> list[str]:
    """
    Record the model name of every select_for_update() call, in order.

    sqlite takes no row locks, so the order rows would be locked in on
    PostgreSQL is asserted from this list instead.
    """
    order: list[str] = []
    original = QuerySet.select_for_update

    def recording(self, *args, **kwargs):
        order.append(self.model.__name__)
        return original(self, *args, **kwargs)

    mocker.patch.object(QuerySet, "select_for_update", recording)
    return order
