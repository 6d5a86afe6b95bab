"""
Root URL configuration.

URL Structure:
    /                                  - ReDoc API documentation
    /schema/                           - OpenAPI schema (YAML)
    /admin/                            - Django admin interface
    /health/                           - Health check endpoint (load balancers, Docker)
    /api/v1/auth/                      - JWT token endpoints and current user
        token/                         - Obtain access/refresh pair (email + password)
        token/refresh/                 - Refresh access token
        me/                            - Current user
    /api/v1/missions/                  - Missions and applications
        {id}/applications/             - Apply to a mission (students)
        {id}/start/                    - Start a funded mission
        {id}/complete/                 - Mark a mission completed
        {id}/cancel/                   - Cancel, voiding or refunding held funds
        applications/{id}/accept/      - Accept an application
        applications/{id}/reject/      - Reject an application
    /api/v1/payments/                  - Payment dashboard
        initiate/                      - Fund a mission (Stripe Checkout)
        release/                       - Release escrowed funds
        webhooks/stripe/               - Stripe webhook endpoint (POST)
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
api_v1_patterns = [
    path("auth/", include("authentication.urls")),
    path("missions/", include("missions.urls")),
    path("payments/", include("payments.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    path("admin/", admin.site.urls),
    path("health/", health_check, name="health_check"),
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Mission Escrow Admin"
admin.site.site_title = "Mission Escrow"
admin.site.index_title = "Missions, applications and payments"
