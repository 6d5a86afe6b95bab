"""
Payments app for escrow-backed mission funding.

This app handles:
- Authorize-only Stripe Checkout Sessions (funds held, not captured)
- Capture on release, void or refund on cancellation
- Stripe webhook ingestion with idempotent, guarded transitions
- Reconciliation of payments whose webhooks never arrived

Related apps:
    - missions: Mission payment_status follows the Payment ledger
    - authentication: User model for client and student

Usage:
    from payments.services import EscrowService, InitiatePaymentParams

    result = EscrowService().initiate_payment(
        InitiatePaymentParams(mission_id=mission.id, amount_cents=10000),
        user=request.user,
    )
"""
