"""
DRF views for the missions app.

URL Structure:
    /api/v1/missions/                              GET, POST
    /api/v1/missions/{id}/                         GET
    /api/v1/missions/{id}/applications/            POST
    /api/v1/missions/{id}/start/                   POST
    /api/v1/missions/{id}/complete/                POST
    /api/v1/missions/{id}/cancel/                  POST
    /api/v1/missions/applications/{id}/accept/     POST
    /api/v1/missions/applications/{id}/reject/     POST

Design Decisions:
    - Views handle HTTP only; MissionService and EscrowService own the rules
    - Cancel goes through EscrowService so held funds are voided or refunded
    - Failed service results are returned as {"error", "error_code"}
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import generics, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.responses import invalid_request, service_error
from missions.models import Mission
from missions.serializers import (
    ApplicationCreateSerializer,
    ApplicationSerializer,
    MissionCreateSerializer,
    MissionSerializer,
)
from missions.services import MissionService
from payments.views import EscrowServiceMixin


@extend_schema(tags=["Missions"])
class MissionListCreateView(generics.ListAPIView):
    """
    GET: missions the user posted (clients) or applied to (students).
    POST: post a new mission (clients only).
    """

    permission_classes = [IsAuthenticated]
    serializer_class = MissionSerializer

    def get_queryset(self):
        queryset = Mission.objects.visible_to(self.request.user)
        if mission_status := self.request.query_params.get("status"):
            queryset = queryset.filter(status=mission_status)
        return queryset

    @extend_schema(
        operation_id="missions_create",
        request=MissionCreateSerializer,
        responses={201: MissionSerializer, 403: OpenApiResponse(description="Not a client")},
    )
    def post(self, request):
        serializer = MissionCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_request(serializer)

        result = MissionService.create_mission(request.user, serializer.to_params())
        if not result.success:
            return service_error(result)

        return Response(
            MissionSerializer(result.data, context={"request": request}).data,
            status=status.HTTP_201_CREATED,
        )


@extend_schema(tags=["Missions"])
class MissionDetailView(generics.RetrieveAPIView):
    """Mission detail for its client or one of its applicants."""

    permission_classes = [IsAuthenticated]
    serializer_class = MissionSerializer

    def get_queryset(self):
        return Mission.objects.visible_to(self.request.user).prefetch_related(
            "applications__student"
        )


class ApplyToMissionView(APIView):
    """
    POST /api/v1/missions/{id}/applications/

    Request body:
        {"coverLetter": "..."}
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="missions_apply",
        tags=["Missions"],
        request=ApplicationCreateSerializer,
        responses={201: ApplicationSerializer},
    )
    def post(self, request, pk):
        serializer = ApplicationCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_request(serializer)

        result = MissionService.apply_to_mission(
            pk,
            request.user,
            cover_letter=serializer.validated_data["cover_letter"],
        )
        if not result.success:
            return service_error(result)

        return Response(
            ApplicationSerializer(result.data).data,
            status=status.HTTP_201_CREATED,
        )


class ApplicationActionView(APIView):
    """Base for client decisions on an application (accept / reject)."""

    permission_classes = [IsAuthenticated]
    service_method: str = ""

    @extend_schema(tags=["Missions"], request=None, responses={200: ApplicationSerializer})
    def post(self, request, pk):
        result = getattr(MissionService, self.service_method)(pk, request.user)
        if not result.success:
            return service_error(result)
        return Response(ApplicationSerializer(result.data).data)


class AcceptApplicationView(ApplicationActionView):
    """POST /api/v1/missions/applications/{id}/accept/"""

    service_method = "accept_application"


class RejectApplicationView(ApplicationActionView):
    """POST /api/v1/missions/applications/{id}/reject/"""

    service_method = "reject_application"


class MissionActionView(APIView):
    """Base for client-only lifecycle transitions on a mission."""

    permission_classes = [IsAuthenticated]
    service_method: str = ""

    @extend_schema(tags=["Missions"], request=None, responses={200: MissionSerializer})
    def post(self, request, pk):
        result = getattr(MissionService, self.service_method)(pk, request.user)
        if not result.success:
            return service_error(result)
        return Response(MissionSerializer(result.data, context={"request": request}).data)


class StartMissionView(MissionActionView):
    """POST /api/v1/missions/{id}/start/ (requires payment_status=paid)"""

    service_method = "start_mission"


class CompleteMissionView(MissionActionView):
    """POST /api/v1/missions/{id}/complete/"""

    service_method = "complete_mission"


class CancelMissionView(EscrowServiceMixin, APIView):
    """
    Cancel a mission and return any held funds.

    POST /api/v1/missions/{id}/cancel/

    Returns:
        {
            "mission": {...},
            "voidedPaymentIntents": ["pi_..."],
            "refundedPaymentIntents": [],
            "expiredSessions": []
        }

    Payment rows settle when Stripe confirms the void or refund via webhook.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(operation_id="missions_cancel", tags=["Missions"], request=None)
    def post(self, request, pk):
        result = self.get_escrow_service().cancel_mission(pk, user=request.user)
        if not result.success:
            return service_error(result)

        cancel = result.data
        return Response(
            {
                "mission": MissionSerializer(
                    cancel.mission, context={"request": request}
                ).data,
                "voidedPaymentIntents": cancel.voided_payment_intents,
                "refundedPaymentIntents": cancel.refunded_payment_intents,
                "expiredSessions": cancel.expired_sessions,
            }
        )
