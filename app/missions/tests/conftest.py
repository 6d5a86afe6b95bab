"""
Fixtures for mission tests.

Users (client_user, student_user) and API clients come from app/conftest.py.
"""

import pytest

from missions.tests.factories import ApplicationFactory, MissionFactory


@pytest.fixture
def open_mission(client_user):
    """An open mission owned by client_user."""
    return MissionFactory(client=client_user, title="Logo design")


@pytest.fixture
def pending_application(open_mission, student_user):
    """student_user's pending application to open_mission."""
    return ApplicationFactory(mission=open_mission, student=student_user)
