"""
Payment-specific exceptions for escrow operations.

Exception Hierarchy:
    PaymentError (base for payment domain)
    ├── PaymentNotFoundError - Payment lookup by PaymentIntent id failed (404)
    ├── PaymentValidationError - Payment input rejected (400)
    ├── MalformedEventError - Webhook payload has an unrecognized shape
    └── WebhookSignatureError - Stripe-Signature verification failed (400)

    StripeError - Base for all gateway errors (502)
    ├── StripeCardDeclinedError - Card declined (permanent)
    ├── StripeInvalidRequestError - Invalid request params (permanent)
    ├── StripeRateLimitError - Rate limited (transient, 503)
    ├── StripeAPIUnavailableError - Connection or 5xx error (transient, 503)
    └── StripeTimeoutError - Request timeout (transient, 503)

Usage:
    from payments.exceptions import StripeError

    try:
        StripeAdapter.capture_payment_intent(pi_id, idempotency_key=key)
    except StripeError as e:
        if e.is_retryable:
            ...  # present as "try again"
        raise
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import BaseApplicationError, ExternalServiceError

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Payment Domain Exceptions
# =============================================================================


class PaymentError(BaseApplicationError):
    """Base exception for payment operations."""

    default_error_code: str = "PAYMENT_ERROR"


class PaymentNotFoundError(PaymentError):
    """
    Raised when no Payment matches an external transaction id.

    Example:
        raise PaymentNotFoundError(
            "Payment not found",
            details={"payment_intent_id": payment_intent_id},
        )
    """

    default_error_code: str = "PAYMENT_NOT_FOUND"
    http_status: int = 404


class PaymentValidationError(PaymentError):
    """Raised when payment input is rejected before any side effect."""

    default_error_code: str = "PAYMENT_VALIDATION_ERROR"
    http_status: int = 400


class MalformedEventError(PaymentError):
    """
    Raised when a webhook payload cannot be parsed into a known event.

    Such events are acknowledged and recorded as ignored so Stripe does
    not redeliver them indefinitely.
    """

    default_error_code: str = "MALFORMED_EVENT"
    http_status: int = 400


class WebhookSignatureError(PaymentError):
    """Raised when the Stripe-Signature header does not verify."""

    default_error_code: str = "SIGNATURE_ERROR"
    http_status: int = 400


# =============================================================================
# Stripe-Specific Exceptions
# =============================================================================


class StripeError(ExternalServiceError):
    """
    Base exception for all Stripe-related errors.

    Provides common attributes for Stripe error handling:
    - stripe_code: Stripe's internal error code
    - decline_code: Card decline code (if applicable)
    - is_retryable: Whether the caller may retry

    Gateway calls are never retried automatically for user-initiated
    operations; is_retryable only tells the caller how to present the
    failure.
    """

    default_error_code: str = "GATEWAY_ERROR"
    http_status: int = 502
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        stripe_code: str | None = None,
        decline_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if stripe_code:
            details["stripe_code"] = stripe_code
        if decline_code:
            details["decline_code"] = decline_code
        super().__init__(message, error_code=error_code, details=details)
        self.stripe_code = stripe_code
        self.decline_code = decline_code


# -----------------------------------------------------------------------------
# Permanent Errors (do not retry)
# -----------------------------------------------------------------------------


class StripeCardDeclinedError(StripeError):
    """Card was declined by the issuing bank."""

    default_error_code: str = "CARD_DECLINED"


class StripeInvalidRequestError(StripeError):
    """
    Stripe rejected the request parameters.

    Also used for unknown objects (resource_missing) and authentication
    failures, which are operational faults rather than user errors.
    """

    default_error_code: str = "INVALID_STRIPE_REQUEST"


# -----------------------------------------------------------------------------
# Transient Errors (caller may retry)
# -----------------------------------------------------------------------------


class StripeRateLimitError(StripeError):
    """Too many requests to Stripe."""

    default_error_code: str = "GATEWAY_UNAVAILABLE"
    http_status: int = 503
    is_retryable: bool = True


class StripeAPIUnavailableError(StripeError):
    """Stripe could not be reached or returned a server error."""

    default_error_code: str = "GATEWAY_UNAVAILABLE"
    http_status: int = 503
    is_retryable: bool = True


class StripeTimeoutError(StripeAPIUnavailableError):
    """The bounded gateway timeout elapsed."""

    default_error_code: str = "GATEWAY_TIMEOUT"
