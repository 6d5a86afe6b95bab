"""
Tests for authentication API views.

- RoleTokenObtainPairView: email + password -> JWT pair with role claim
- CurrentUserView: the authenticated user
"""

from rest_framework import status
from rest_framework_simplejwt.tokens import AccessToken

from authentication.tests.factories import ClientUserFactory

TOKEN_URL = "/api/v1/auth/token/"
REFRESH_URL = "/api/v1/auth/token/refresh/"
ME_URL = "/api/v1/auth/me/"


class TestTokenObtain:
    def test_issues_tokens_with_role_claim(self, db, api_client):
        user = ClientUserFactory(email="token@example.com", password="TestPass123!")

        response = api_client.post(
            TOKEN_URL,
            {"email": "token@example.com", "password": "TestPass123!"},
            format="json",
        )

        assert response.status_code == status.HTTP_200_OK
        access = AccessToken(response.data["access"])
        assert access["role"] == "client"
        assert access["user_id"] == str(user.id)

    def test_rejects_wrong_password(self, db, api_client):
        ClientUserFactory(email="wrong@example.com", password="TestPass123!")

        response = api_client.post(
            TOKEN_URL,
            {"email": "wrong@example.com", "password": "nope"},
            format="json",
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_refresh_returns_new_access_token(self, db, api_client):
        ClientUserFactory(email="refresh@example.com", password="TestPass123!")
        tokens = api_client.post(
            TOKEN_URL,
            {"email": "refresh@example.com", "password": "TestPass123!"},
            format="json",
        ).data

        response = api_client.post(REFRESH_URL, {"refresh": tokens["refresh"]}, format="json")

        assert response.status_code == status.HTTP_200_OK
        assert "access" in response.data


class TestCurrentUser:
    def test_returns_current_user(self, client_user, authenticated_client_factory):
        response = authenticated_client_factory(client_user).get(ME_URL)

        assert response.status_code == status.HTTP_200_OK
        assert response.data["email"] == client_user.email
        assert response.data["role"] == "client"

    def test_requires_authentication(self, db, api_client):
        response = api_client.get(ME_URL)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
