"""
DRF views for the payments app.

This module provides API views for:
- Escrow funding (Checkout Session creation)
- Escrow release (capture)
- Payment dashboard listing

Related files:
    - services/escrow_service.py: EscrowService
    - serializers.py: Request/response serializers
    - webhooks/views.py: Stripe webhook endpoint (plain Django view)

Endpoints:
    GET  /api/v1/payments/           - Payments where the user is client or student
    POST /api/v1/payments/initiate/  - Fund a mission, returns {url, sessionId}
    POST /api/v1/payments/release/   - Release held funds to the student

Security:
    - All endpoints require JWT authentication
    - Ownership is enforced by EscrowService (client-only operations)
"""

from __future__ import annotations

import logging
import uuid

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import generics, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.responses import invalid_request, service_error
from payments.models import Payment
from payments.serializers import (
    InitiatePaymentSerializer,
    PaymentSerializer,
    ReleaseEscrowSerializer,
)
from payments.services import EscrowService

logger = logging.getLogger(__name__)


class EscrowServiceMixin:
    """
    Supplies the EscrowService used by a view.

    Tests swap the gateway by assigning escrow_service_class or by
    overriding get_escrow_service().
    """

    escrow_service_class = EscrowService
    stripe_adapter = None

    def get_escrow_service(self) -> EscrowService:
        return self.escrow_service_class(stripe_adapter=self.stripe_adapter)


class InitiatePaymentView(EscrowServiceMixin, APIView):
    """
    Create an authorize-only Stripe Checkout Session for a mission.

    POST /api/v1/payments/initiate/

    Request body:
        {
            "missionId": "6f1c...",
            "amount": 10000,
            "currency": "eur",
            "metadata": {}
        }

    Returns:
        {"url": "https://checkout.stripe.com/...", "sessionId": "cs_..."}
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="payments_initiate",
        summary="Fund a mission through escrow",
        tags=["Payments"],
        request=InitiatePaymentSerializer,
        responses={
            200: OpenApiTypes.OBJECT,
            400: OpenApiResponse(description="Invalid amount, currency or payload"),
            403: OpenApiResponse(description="Not the mission's client"),
            404: OpenApiResponse(description="Mission not found"),
            409: OpenApiResponse(description="No accepted applicant or already paid"),
            502: OpenApiResponse(description="Stripe rejected the request"),
            503: OpenApiResponse(description="Stripe unavailable, try again"),
        },
    )
    def post(self, request):
        serializer = InitiatePaymentSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_request(serializer)

        params = serializer.to_params(origin=request.headers.get("Origin"))
        result = self.get_escrow_service().initiate_payment(params, user=request.user)
        if not result.success:
            return service_error(result)

        return Response(
            {"url": result.data.url, "sessionId": result.data.session_id},
            status=status.HTTP_200_OK,
        )


class ReleaseEscrowView(EscrowServiceMixin, APIView):
    """
    Capture the held funds once the mission is completed.

    POST /api/v1/payments/release/

    Request body:
        {"paymentIntentId": "pi_..."}

    Returns:
        {
            "success": true,
            "paymentIntentId": "pi_...",
            "status": "succeeded",
            "escrowStatus": "released"
        }
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="payments_release",
        summary="Release escrowed funds to the student",
        tags=["Payments"],
        request=ReleaseEscrowSerializer,
        responses={
            200: OpenApiTypes.OBJECT,
            400: OpenApiResponse(description="Missing payment intent id"),
            403: OpenApiResponse(description="Not the payment's client"),
            404: OpenApiResponse(description="Payment not found"),
            409: OpenApiResponse(description="Mission not completed or already released"),
        },
    )
    def post(self, request):
        serializer = ReleaseEscrowSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_request(serializer)

        result = self.get_escrow_service().release_escrow(
            serializer.validated_data.get("payment_intent_id"),
            user=request.user,
        )
        if not result.success:
            return service_error(result)

        return Response(
            {
                "success": True,
                "paymentIntentId": result.data.payment_intent_id,
                "status": result.data.status,
                "escrowStatus": str(result.data.escrow_status),
            }
        )


@extend_schema(
    operation_id="payments_list",
    summary="List payments where the user is client or student",
    tags=["Payments"],
)
class PaymentListView(generics.ListAPIView):
    """
    Payment dashboard.

    GET /api/v1/payments/

    Query params:
        - mission: Filter by mission id
        - status: Filter by payment status
        - escrow_status: Filter by escrow status
    """

    permission_classes = [IsAuthenticated]
    serializer_class = PaymentSerializer

    def get_queryset(self):
        queryset = Payment.objects.for_user(self.request.user).select_related("mission")

        params = self.request.query_params
        if mission_id := params.get("mission"):
            try:
                queryset = queryset.filter(mission_id=uuid.UUID(mission_id))
            except ValueError:
                return queryset.none()
        if payment_status := params.get("status"):
            queryset = queryset.filter(status=payment_status)
        if escrow_status := params.get("escrow_status"):
            queryset = queryset.filter(escrow_status=escrow_status)
        return queryset
