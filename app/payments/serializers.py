"""
DRF serializers for the payments app.

This module provides serializers for:
- Escrow funding requests (initiate)
- Escrow release requests
- Payment dashboard listing

Request serializers only check shape. Amount and currency rules live in
payments.money so they apply identically to API and service callers.

Usage:
    serializer = InitiatePaymentSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_request(serializer)
    params = serializer.to_params(origin=request.headers.get("Origin"))
"""

from __future__ import annotations

from rest_framework import serializers

from core.serializer_mixins import CamelCaseAliasMixin, TimestampMixin
from payments.models import Payment
from payments.services import InitiatePaymentParams


class InitiatePaymentSerializer(CamelCaseAliasMixin, serializers.Serializer):
    """
    Request body for funding a mission.

    Fields:
        mission_id / missionId: Mission to fund
        amount: Integer amount in minor currency units (e.g. 10000 = 100.00)
        currency: ISO 4217 code, optional
        metadata: Free-form object stored on the Payment

    The amount is passed through untouched so that the escrow amount
    rules report AMOUNT_REQUIRED / INVALID_AMOUNT / AMOUNT_TOO_SMALL.
    """

    mission_id = serializers.UUIDField(help_text="Mission to fund")
    amount = serializers.JSONField(
        required=False,
        allow_null=True,
        help_text="Amount in minor currency units",
    )
    currency = serializers.CharField(
        required=False,
        allow_blank=True,
        max_length=3,
        help_text="ISO 4217 currency code",
    )
    metadata = serializers.DictField(
        required=False,
        default=dict,
        help_text="Free-form metadata stored with the payment",
    )

    def to_params(self, origin: str | None = None) -> InitiatePaymentParams:
        data = self.validated_data
        return InitiatePaymentParams(
            mission_id=data["mission_id"],
            amount_cents=data.get("amount"),
            currency=data.get("currency") or None,
            metadata=data.get("metadata") or {},
            origin=origin,
        )


class ReleaseEscrowSerializer(CamelCaseAliasMixin, serializers.Serializer):
    """Request body for releasing held funds: the PaymentIntent id (pi_xxx)."""

    payment_intent_id = serializers.CharField(
        max_length=255,
        required=False,
        allow_blank=True,
        help_text="Stripe PaymentIntent ID (pi_xxx)",
    )


class PaymentSerializer(TimestampMixin, serializers.ModelSerializer):
    """
    Payment row for the dashboard.

    Amount is exposed both as the stored decimal and in minor units.
    """

    amount_cents = serializers.IntegerField(read_only=True)
    mission_title = serializers.CharField(source="mission.title", read_only=True)

    class Meta:
        model = Payment
        fields = [
            "id",
            "mission",
            "mission_title",
            "client",
            "student",
            "amount",
            "amount_cents",
            "currency",
            "status",
            "escrow_status",
            "stripe_payment_intent_id",
            "stripe_checkout_session_id",
            "completed_at",
        ]
        read_only_fields = fields
