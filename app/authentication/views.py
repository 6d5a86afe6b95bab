"""
Authentication views.

Endpoints:
    POST /api/v1/auth/token/          - Obtain JWT pair (email + password)
    POST /api/v1/auth/token/refresh/  - Refresh access token
    GET  /api/v1/auth/me/             - Current user

Registration and login flows beyond token issuance are out of scope;
accounts are created through the Django admin.
"""

from drf_spectacular.utils import extend_schema
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.views import TokenObtainPairView

from authentication.serializers import RoleTokenObtainPairSerializer, UserSerializer


@extend_schema(tags=["Auth"], summary="Obtain JWT access/refresh pair")
class RoleTokenObtainPairView(TokenObtainPairView):
    serializer_class = RoleTokenObtainPairSerializer


class CurrentUserView(APIView):
    """Return the authenticated user."""

    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["Auth"], summary="Current user", responses=UserSerializer)
    def get(self, request):
        return Response(UserSerializer(request.user).data)
