"""
Factory Boy factories for payment models.

Payment states are FSM-protected, so they are chosen at construction
through traits rather than assigned afterwards.

Usage:
    from payments.tests.factories import PaymentFactory, WebhookEventFactory

    payment = PaymentFactory(mission=mission, held=True)
    event = WebhookEventFactory(payload=build_event("charge.refunded", {...}))
"""

import uuid
from decimal import Decimal

import factory
from django.utils import timezone

from authentication.tests.factories import StudentUserFactory
from missions.tests.factories import MissionFactory
from payments.models import Payment, WebhookEvent
from payments.state_machines import EscrowStatus, PaymentStatus, WebhookEventStatus


def build_event(event_type: str, obj: dict, event_id: str | None = None) -> dict:
    """Build a Stripe event payload around a data.object."""
    return {
        "id": event_id or f"evt_{uuid.uuid4().hex[:16]}",
        "object": "event",
        "type": event_type,
        "data": {"object": obj},
    }


class PaymentFactory(factory.django.DjangoModelFactory):
    """
    Factory for Payment.

    Default is a PENDING checkout for a funded-in-discussion mission.

    Traits:
        held: Authorization confirmed, funds held
        released: Captured for the student
        refunded: Hold voided or charge refunded
        failed / canceled: Authorization never completed
    """

    class Meta:
        model = Payment

    mission = factory.SubFactory(MissionFactory, in_discussion=True)
    client = factory.SelfAttribute("mission.client")
    student = factory.SubFactory(StudentUserFactory)
    amount = Decimal("100.00")
    currency = "eur"
    stripe_checkout_session_id = factory.Sequence(lambda n: f"cs_test_{n:06d}")
    stripe_payment_intent_id = factory.Sequence(lambda n: f"pi_test_{n:06d}")
    status = PaymentStatus.PENDING
    escrow_status = EscrowStatus.HELD
    metadata = factory.LazyFunction(dict)

    class Params:
        held = factory.Trait(
            status=PaymentStatus.SUCCEEDED,
            stripe_payment_method_id="pm_card_visa",
            completed_at=factory.LazyFunction(timezone.now),
        )
        released = factory.Trait(
            status=PaymentStatus.SUCCEEDED,
            escrow_status=EscrowStatus.RELEASED,
            completed_at=factory.LazyFunction(timezone.now),
        )
        refunded = factory.Trait(
            status=PaymentStatus.REFUNDED,
            escrow_status=EscrowStatus.REFUNDED,
        )
        failed = factory.Trait(status=PaymentStatus.FAILED)
        canceled = factory.Trait(status=PaymentStatus.CANCELED)


class WebhookEventFactory(factory.django.DjangoModelFactory):
    """
    Factory for WebhookEvent.

    stripe_event_id and event_type follow the payload when one is given.
    """

    class Meta:
        model = WebhookEvent

    payload = factory.LazyFunction(
        lambda: build_event(
            "payment_intent.payment_failed",
            {"id": f"pi_{uuid.uuid4().hex[:16]}", "object": "payment_intent"},
        )
    )
    stripe_event_id = factory.LazyAttribute(lambda o: o.payload["id"])
    event_type = factory.LazyAttribute(lambda o: o.payload["type"])
    status = WebhookEventStatus.PENDING
