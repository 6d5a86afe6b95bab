"""
Serializers for the authentication app.

Token issuance uses simplejwt's TokenObtainPairSerializer, which already
authenticates against USERNAME_FIELD (email). Only the user's own record
is serialized here.
"""

from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from authentication.models import User


class UserSerializer(serializers.ModelSerializer):
    """Current user, as returned by /api/v1/auth/me/."""

    class Meta:
        model = User
        fields = ["id", "email", "full_name", "role", "date_joined"]
        read_only_fields = fields


class RoleTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    Access/refresh pair with the marketplace role as an extra claim.

    The web client reads the role to decide which mission actions to show;
    the API still checks the role server-side on every call.
    """

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token["role"] = user.role
        return token
