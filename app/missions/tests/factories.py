"""
Factory Boy factories for mission models.

FSM fields are protected against assignment after load, so states are
set at construction time through factory kwargs or traits.

Usage:
    from missions.tests.factories import ApplicationFactory, MissionFactory

    mission = MissionFactory(client=client_user)
    paid = MissionFactory(client=client_user, paid=True)
    accepted = ApplicationFactory(mission=paid, accepted=True)
"""

from decimal import Decimal

import factory
from django.utils import timezone

from authentication.tests.factories import ClientUserFactory, StudentUserFactory
from missions.models import Application, Mission
from missions.states import ApplicationStatus, MissionPaymentStatus, MissionStatus


class MissionFactory(factory.django.DjangoModelFactory):
    """
    Factory for Mission.

    Traits:
        in_discussion: Application accepted, not yet funded
        paid: In discussion with escrow confirmed
        in_progress: Funded and started
        completed: Funded, work done, ready for release
    """

    class Meta:
        model = Mission

    client = factory.SubFactory(ClientUserFactory)
    title = factory.Sequence(lambda n: f"Mission {n}")
    description = factory.Faker("sentence")
    category = "design"
    budget = Decimal("100.00")
    is_remote = True
    status = MissionStatus.OPEN
    payment_status = MissionPaymentStatus.UNSET

    class Params:
        in_discussion = factory.Trait(status=MissionStatus.IN_DISCUSSION)
        paid = factory.Trait(
            status=MissionStatus.IN_DISCUSSION,
            payment_status=MissionPaymentStatus.PAID,
            paid_at=factory.LazyFunction(timezone.now),
        )
        in_progress = factory.Trait(
            status=MissionStatus.IN_PROGRESS,
            payment_status=MissionPaymentStatus.PAID,
            paid_at=factory.LazyFunction(timezone.now),
        )
        completed = factory.Trait(
            status=MissionStatus.COMPLETED,
            payment_status=MissionPaymentStatus.PAID,
            paid_at=factory.LazyFunction(timezone.now),
        )


class ApplicationFactory(factory.django.DjangoModelFactory):
    """Factory for Application. Use accepted=True for the chosen applicant."""

    class Meta:
        model = Application

    mission = factory.SubFactory(MissionFactory)
    student = factory.SubFactory(StudentUserFactory)
    cover_letter = "I can do this."
    status = ApplicationStatus.PENDING

    class Params:
        accepted = factory.Trait(status=ApplicationStatus.ACCEPTED)
        rejected = factory.Trait(status=ApplicationStatus.REJECTED)
