"""
URL configuration for the authentication app.

URL structure:
    /api/v1/auth/token/          - Obtain JWT pair
    /api/v1/auth/token/refresh/  - Refresh access token
    /api/v1/auth/me/             - Current user
"""

from django.urls import path
from rest_framework_simplejwt.views import TokenRefreshView

from authentication.views import CurrentUserView, RoleTokenObtainPairView

app_name = "authentication"

urlpatterns = [
    path("token/", RoleTokenObtainPairView.as_view(), name="token-obtain"),
    path("token/refresh/", TokenRefreshView.as_view(), name="token-refresh"),
    path("me/", CurrentUserView.as_view(), name="me"),
]
