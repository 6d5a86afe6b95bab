"""
Tests for the User model.
"""

import pytest
from django.db import IntegrityError
from freezegun import freeze_time

from authentication.models import User
from authentication.tests.factories import ClientUserFactory, UserFactory


class TestUserModel:
    """Field defaults, uniqueness and display helpers."""

    def test_email_must_be_unique(self, db):
        UserFactory(email="dup@example.com")

        with pytest.raises(IntegrityError):
            User.objects.create_user(email="dup@example.com", password="pw")

    def test_primary_key_is_uuid(self, db):
        user = UserFactory()

        assert len(str(user.pk)) == 36

    def test_str_returns_email(self, db):
        user = UserFactory(email="str@example.com")

        assert str(user) == "str@example.com"

    def test_get_full_name_falls_back_to_email(self, db):
        user = UserFactory(email="anon@example.com", full_name="")

        assert user.get_full_name() == "anon@example.com"

    def test_get_full_name_uses_full_name(self, db):
        user = UserFactory(full_name="Ada Lovelace")

        assert user.get_full_name() == "Ada Lovelace"

    def test_get_short_name(self, db):
        named = UserFactory(full_name="Ada Lovelace")
        unnamed = UserFactory(email="grace@example.com", full_name="")

        assert named.get_short_name() == "Ada"
        assert unnamed.get_short_name() == "grace"

    def test_role_properties(self, db):
        client = ClientUserFactory()

        assert client.is_client is True
        assert client.is_student is False

    def test_users_ordered_by_date_joined_descending(self, db):
        with freeze_time("2024-01-01 10:00:00"):
            first = UserFactory()
        with freeze_time("2024-01-02 10:00:00"):
            second = UserFactory()

        ids = list(
            User.objects.filter(pk__in=[first.pk, second.pk]).values_list("pk", flat=True)
        )

        assert ids == [second.pk, first.pk]
