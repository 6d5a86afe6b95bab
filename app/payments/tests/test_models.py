"""
Tests for Payment and WebhookEvent models.

These tests verify:
- Payment status and escrow transitions (django-fsm)
- Storage constraints on amount and released escrow
- Query helpers used by webhooks, reconciliation and the dashboard
"""

from decimal import Decimal

import pytest
from django.db import IntegrityError
from django_fsm import TransitionNotAllowed

from missions.tests.factories import MissionFactory
from payments.models import Payment, WebhookEvent
from payments.models.webhook_event import MAX_WEBHOOK_RETRIES
from payments.state_machines import EscrowStatus, PaymentStatus, WebhookEventStatus
from payments.tests.factories import PaymentFactory, WebhookEventFactory


class TestPaymentStatusTransitions:
    def test_new_payment_is_pending_and_held(self, pending_payment):
        assert pending_payment.status == PaymentStatus.PENDING
        assert pending_payment.escrow_status == EscrowStatus.HELD
        assert pending_payment.is_hold_active is False

    def test_mark_succeeded_records_card_and_time(self, pending_payment):
        pending_payment.mark_succeeded(payment_method_id="pm_123")

        assert pending_payment.status == PaymentStatus.SUCCEEDED
        assert pending_payment.stripe_payment_method_id == "pm_123"
        assert pending_payment.completed_at is not None
        assert pending_payment.is_hold_active is True

    def test_failed_payment_can_still_succeed(self, db):
        """
        Given a payment whose first card attempt failed
        When the client retries within the same checkout and it authorizes
        Then the payment moves FAILED -> SUCCEEDED
        """
        payment = PaymentFactory(failed=True)

        payment.mark_succeeded()

        assert payment.status == PaymentStatus.SUCCEEDED

    def test_mark_failed_keeps_reason_in_metadata(self, pending_payment):
        pending_payment.mark_failed(reason="Your card was declined.")

        assert pending_payment.status == PaymentStatus.FAILED
        assert pending_payment.metadata["failure_reason"] == "Your card was declined."

    def test_succeeded_cannot_fail(self, held_payment):
        with pytest.raises(TransitionNotAllowed):
            held_payment.mark_failed()

    def test_refunded_is_terminal(self, db):
        payment = PaymentFactory(refunded=True)

        with pytest.raises(TransitionNotAllowed):
            payment.mark_succeeded()

    def test_status_is_protected(self, pending_payment):
        with pytest.raises(AttributeError):
            pending_payment.status = PaymentStatus.SUCCEEDED


class TestEscrowTransitions:
    def test_release_requires_completed_mission(self, held_payment):
        with pytest.raises(TransitionNotAllowed):
            held_payment.release()

        assert held_payment.escrow_status == EscrowStatus.HELD

    def test_release_requires_succeeded_payment(self, db):
        payment = PaymentFactory(mission=MissionFactory(completed=True))

        with pytest.raises(TransitionNotAllowed):
            payment.release()

    def test_release_completed_mission(self, releasable_payment):
        releasable_payment.release()
        releasable_payment.save()

        stored = Payment.objects.get(id=releasable_payment.id)
        assert stored.escrow_status == EscrowStatus.RELEASED

    def test_escrow_status_is_monotonic(self, releasable_payment):
        """A released hold can never be marked refunded, nor released twice."""
        releasable_payment.release()

        with pytest.raises(TransitionNotAllowed):
            releasable_payment.refund_escrow()
        with pytest.raises(TransitionNotAllowed):
            releasable_payment.release()


class TestPaymentConstraints:
    def test_amount_must_be_positive(self, db):
        with pytest.raises(IntegrityError):
            PaymentFactory(amount=Decimal("0.00"))

    def test_released_requires_succeeded_status(self, db):
        with pytest.raises(IntegrityError):
            PaymentFactory(
                status=PaymentStatus.PENDING,
                escrow_status=EscrowStatus.RELEASED,
            )

    def test_refund_after_release_is_storable(self, db):
        payment = PaymentFactory(
            status=PaymentStatus.REFUNDED,
            escrow_status=EscrowStatus.RELEASED,
        )

        assert payment.pk is not None

    def test_payment_intent_id_is_unique(self, held_payment):
        with pytest.raises(IntegrityError):
            PaymentFactory(stripe_payment_intent_id=held_payment.stripe_payment_intent_id)

    def test_amount_cents(self, db):
        assert PaymentFactory(amount=Decimal("123.45")).amount_cents == 12345


class TestPaymentQuerySet:
    def test_for_user_includes_client_and_student(self, held_payment, client_user, student_user):
        PaymentFactory()

        assert list(Payment.objects.for_user(client_user)) == [held_payment]
        assert list(Payment.objects.for_user(student_user)) == [held_payment]

    def test_held(self, held_payment, pending_payment):
        assert list(Payment.objects.held()) == [held_payment]

    def test_lookup_prefers_payment_intent_id(self, held_payment):
        found = Payment.objects.for_processor_reference(
            payment_intent_id="pi_held_001", payment_id="not-a-uuid"
        ).first()

        assert found == held_payment

    def test_lookup_falls_back_to_payment_id(self, db):
        payment = PaymentFactory(stripe_payment_intent_id=None)

        found = Payment.objects.for_processor_reference(
            payment_intent_id="pi_unbound", payment_id=str(payment.id)
        ).first()

        assert found == payment

    def test_lookup_falls_back_to_checkout_session(self, pending_payment):
        found = Payment.objects.for_processor_reference(
            payment_id="garbage", checkout_session_id="cs_pending_001"
        ).first()

        assert found == pending_payment

    def test_lookup_without_references_is_empty(self, held_payment):
        assert not Payment.objects.for_processor_reference().exists()


class TestWebhookEvent:
    def test_processing_counts_attempts(self, db):
        event = WebhookEventFactory()

        event.mark_processing()
        event.mark_failed("boom")

        assert event.retry_count == 1
        assert event.can_retry is True
        assert event.is_settled is False

    def test_retry_limit(self, db):
        event = WebhookEventFactory(
            status=WebhookEventStatus.FAILED, retry_count=MAX_WEBHOOK_RETRIES
        )

        assert event.can_retry is False

    @pytest.mark.parametrize(
        "method,args", [("mark_processed", ()), ("mark_ignored", ("unhandled",))]
    )
    def test_settled_states(self, db, method, args):
        event = WebhookEventFactory()

        getattr(event, method)(*args)

        assert event.is_settled is True
        assert event.processed_at is not None

    def test_stripe_event_id_is_unique(self, db):
        event = WebhookEventFactory()

        with pytest.raises(IntegrityError):
            WebhookEvent.objects.create(
                stripe_event_id=event.stripe_event_id,
                event_type=event.event_type,
                payload=event.payload,
            )
