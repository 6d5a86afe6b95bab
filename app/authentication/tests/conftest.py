"""
Test configuration and fixtures for authentication tests.

User and API client fixtures shared by every app live in app/conftest.py.
"""

import pytest

from authentication.models import User


@pytest.fixture
def superuser(db):
    """Create a superuser with admin privileges."""
    return User.objects.create_superuser(
        email="admin@example.com", password="AdminPass123!"
    )
