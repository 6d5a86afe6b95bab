"""
URL configuration for the missions app.

All routes are prefixed with /api/v1/missions/ when included in the main URLconf.
"""

from django.urls import path

from missions.views import (
    AcceptApplicationView,
    ApplyToMissionView,
    CancelMissionView,
    CompleteMissionView,
    MissionDetailView,
    MissionListCreateView,
    RejectApplicationView,
    StartMissionView,
)

app_name = "missions"

urlpatterns = [
    path("", MissionListCreateView.as_view(), name="mission-list"),
    path("<uuid:pk>/", MissionDetailView.as_view(), name="mission-detail"),
    path(
        "<uuid:pk>/applications/",
        ApplyToMissionView.as_view(),
        name="mission-apply",
    ),
    path("<uuid:pk>/start/", StartMissionView.as_view(), name="mission-start"),
    path("<uuid:pk>/complete/", CompleteMissionView.as_view(), name="mission-complete"),
    path("<uuid:pk>/cancel/", CancelMissionView.as_view(), name="mission-cancel"),
    # Client decisions on applications
    path(
        "applications/<uuid:pk>/accept/",
        AcceptApplicationView.as_view(),
        name="application-accept",
    ),
    path(
        "applications/<uuid:pk>/reject/",
        RejectApplicationView.as_view(),
        name="application-reject",
    ),
]
