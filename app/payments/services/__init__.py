"""
Payment services.

This module provides:
- EscrowService: Fund initiation, release (capture) and cancellation
- ReconciliationService: Polls Stripe for payments stuck in PENDING

Usage:
    from payments.services import EscrowService, InitiatePaymentParams

    result = EscrowService().initiate_payment(
        InitiatePaymentParams(mission_id=mission.id, amount_cents=10000),
        user=request.user,
    )

    result = EscrowService().release_escrow("pi_xxx", user=request.user)
"""

from payments.services.escrow_service import (
    CancelResult,
    CheckoutResult,
    EscrowService,
    InitiatePaymentParams,
    ReleaseResult,
)
from payments.services.reconciliation_service import (
    ReconciliationRunResult,
    ReconciliationService,
)

__all__ = [
    "CancelResult",
    "CheckoutResult",
    "EscrowService",
    "InitiatePaymentParams",
    "ReconciliationRunResult",
    "ReconciliationService",
    "ReleaseResult",
]
