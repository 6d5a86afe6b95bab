"""
Payment adapters for external services.

All Stripe calls go through StripeAdapter so timeouts, idempotency,
error translation and timing logs are applied consistently.

Usage:
    from payments.adapters import StripeAdapter

    intent = StripeAdapter.retrieve_payment_intent("pi_xxx")
    if intent.status == "requires_capture":
        ...
"""

from payments.adapters.stripe_adapter import (
    CheckoutSessionResult,
    CreateCheckoutSessionParams,
    CustomerResult,
    IdempotencyKeyGenerator,
    PaymentIntentResult,
    RefundResult,
    StripeAdapter,
    is_retryable_stripe_error,
)

__all__ = [
    "CheckoutSessionResult",
    "CreateCheckoutSessionParams",
    "CustomerResult",
    "IdempotencyKeyGenerator",
    "PaymentIntentResult",
    "RefundResult",
    "StripeAdapter",
    "is_retryable_stripe_error",
]
