"""
DRF serializers for the missions app.

This module provides serializers for:
- Mission creation requests and mission output
- Applications (create + output)

Usage:
    serializer = MissionCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_request(serializer)
    result = MissionService.create_mission(request.user, serializer.to_params())
"""

from __future__ import annotations

from rest_framework import serializers

from core.serializer_mixins import CamelCaseAliasMixin, TimestampMixin
from missions.models import Application, Mission
from missions.services import CreateMissionParams


class MissionCreateSerializer(CamelCaseAliasMixin, serializers.Serializer):
    """
    Request body for posting a mission.

    Fields:
        title: Short title (required)
        description: Free text
        category: Free-form category label
        budget: Positive decimal amount
        deadline: Optional due date (YYYY-MM-DD)
        is_remote / isRemote: Whether the work can be done remotely
        location: Location for on-site missions
    """

    title = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    category = serializers.CharField(
        required=False, allow_blank=True, max_length=100, default=""
    )
    budget = serializers.DecimalField(max_digits=10, decimal_places=2)
    deadline = serializers.DateField(required=False, allow_null=True, default=None)
    is_remote = serializers.BooleanField(required=False, default=True)
    location = serializers.CharField(
        required=False, allow_blank=True, max_length=255, default=""
    )

    def to_params(self) -> CreateMissionParams:
        return CreateMissionParams(**self.validated_data)


class ApplicationCreateSerializer(CamelCaseAliasMixin, serializers.Serializer):
    """Request body for applying to a mission."""

    cover_letter = serializers.CharField(required=False, allow_blank=True, default="")


class ApplicationSerializer(TimestampMixin, serializers.ModelSerializer):
    """Application output, with the applicant's display name."""

    student_name = serializers.CharField(source="student.get_full_name", read_only=True)

    class Meta:
        model = Application
        fields = [
            "id",
            "mission",
            "student",
            "student_name",
            "status",
            "cover_letter",
        ]
        read_only_fields = fields


class MissionSerializer(TimestampMixin, serializers.ModelSerializer):
    """
    Mission output.

    Applications are only included for the mission's client; an applicant
    sees the mission without the other bids.
    """

    applications = serializers.SerializerMethodField()

    class Meta:
        model = Mission
        fields = [
            "id",
            "client",
            "title",
            "description",
            "category",
            "budget",
            "deadline",
            "is_remote",
            "location",
            "status",
            "payment_status",
            "paid_at",
            "applications",
        ]
        read_only_fields = fields

    def get_applications(self, obj: Mission) -> list[dict]:
        request = self.context.get("request")
        if request is None or obj.client_id != request.user.id:
            return []
        return ApplicationSerializer(obj.applications.all(), many=True).data
