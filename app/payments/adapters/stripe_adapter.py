"""
Stripe API adapter for escrow payment operations.

This module provides the StripeAdapter class which encapsulates all
Stripe API interactions. All Stripe calls go through this adapter to
ensure consistent error handling, timeouts, idempotency, and
observability.

Escrow on Stripe:
    A Checkout Session is created with payment_intent_data.capture_method
    set to "manual". Completing checkout authorizes the card (a hold);
    nothing moves until capture_payment_intent is called on release, or
    the hold is voided with cancel_payment_intent on cancellation.

Configuration (via settings):
- STRIPE_SECRET_KEY: Stripe API secret key
- STRIPE_WEBHOOK_SECRET: Webhook signing secret
- STRIPE_API_TIMEOUT_SECONDS: API call timeout (default: 10)
- STRIPE_MAX_RETRIES: SDK network retries (default: 0)

Usage:
    from payments.adapters import CreateCheckoutSessionParams, StripeAdapter

    session = StripeAdapter.create_checkout_session(
        CreateCheckoutSessionParams(
            amount_cents=10000,
            currency="eur",
            product_name="Mission: Landing page",
            success_url="https://app.example/missions/1?payment=success",
            cancel_url="https://app.example/missions/1?payment=canceled",
            idempotency_key=IdempotencyKeyGenerator.generate(
                "checkout", mission.id, attempt=attempt
            ),
            metadata={"mission_id": str(mission.id)},
        )
    )

    StripeAdapter.capture_payment_intent(
        "pi_xxx",
        idempotency_key=IdempotencyKeyGenerator.generate("capture", payment.id),
    )
"""

from __future__ import annotations

import hashlib
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any

import stripe
from django.conf import settings

from payments.exceptions import (
    StripeAPIUnavailableError,
    StripeCardDeclinedError,
    StripeError,
    StripeInvalidRequestError,
    StripeRateLimitError,
    StripeTimeoutError,
    WebhookSignatureError,
)

# =============================================================================
# Data Types
# =============================================================================


@dataclass
class CreateCheckoutSessionParams:
    """
    Parameters for creating a manual-capture Checkout Session.

    Attributes:
        amount_cents: Amount in smallest currency unit
        currency: Lowercase ISO 4217 currency code
        product_name: Line item label shown on the Checkout page
        success_url: Redirect after authorization
        cancel_url: Redirect when the client backs out
        idempotency_key: Per-attempt key so retried requests reuse the session
        customer_id: Stripe Customer ID (cus_xxx)
        metadata: Copied onto both the session and its PaymentIntent
    """

    amount_cents: int
    currency: str
    product_name: str
    success_url: str
    cancel_url: str
    idempotency_key: str
    customer_id: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.amount_cents <= 0:
            raise ValueError("amount_cents must be positive")
        if not self.idempotency_key:
            raise ValueError("idempotency_key is required")
        if not self.currency:
            raise ValueError("currency is required")


@dataclass
class CheckoutSessionResult:
    """
    Result from Checkout Session operations.

    Attributes:
        id: Session ID (cs_xxx)
        url: Hosted checkout URL to redirect the client to
        payment_intent_id: PaymentIntent ID, when Stripe has created it
        status: Session status (open, complete, expired)
        metadata: Attached metadata
    """

    id: str
    url: str | None
    payment_intent_id: str | None = None
    status: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass
class CustomerResult:
    id: str
    email: str | None = None
    created: bool = False


@dataclass
class PaymentIntentResult:
    """
    Result from Stripe PaymentIntent operations.

    Attributes:
        id: PaymentIntent ID (pi_xxx)
        status: requires_capture while held, succeeded once captured,
            canceled once voided
        amount_cents: Amount in cents
        currency: Currency code
        payment_method_id: PaymentMethod used for authorization
        amount_received: Captured amount in cents
        metadata: Attached metadata
    """

    id: str
    status: str
    amount_cents: int
    currency: str
    payment_method_id: str | None = None
    amount_received: int = 0
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass
class RefundResult:
    id: str
    amount_cents: int
    currency: str
    status: str
    payment_intent_id: str
    metadata: dict[str, str] = field(default_factory=dict)


# =============================================================================
# Idempotency Key Generator
# =============================================================================


class IdempotencyKeyGenerator:
    """
    Generate idempotency keys for Stripe API calls.

    Format: "{operation}:{entity_id}:{attempt}:{hash}"

    Checkout keys use a per-request attempt (millisecond timestamp) so a
    retried HTTP request inside Stripe's idempotency window cannot create
    a second session with the same key, while a deliberate new attempt
    gets a new one. Capture, cancel and refund keys use attempt=1 so a
    second call for the same payment is collapsed by Stripe.

    Example:
        key = IdempotencyKeyGenerator.generate(
            operation="capture",
            entity_id=payment.id,
        )
        # "capture:550e8400-e29b-41d4-a716-446655440000:1:a1b2c3d4"
    """

    @staticmethod
    def generate(
        operation: str,
        entity_id: uuid.UUID | str,
        attempt: int = 1,
    ) -> str:
        entity_str = str(entity_id)
        hash_input = f"{operation}:{entity_str}:{attempt}:{settings.SECRET_KEY}"
        short_hash = hashlib.sha256(hash_input.encode()).hexdigest()[:8]

        return f"{operation}:{entity_str}:{attempt}:{short_hash}"


def is_retryable_stripe_error(error: Exception) -> bool:
    """
    Check if a Stripe error is transient.

    Used by Celery tasks (reconciliation, webhook re-drive) to decide
    whether to retry. User-initiated operations are not retried here.
    """
    if isinstance(error, StripeError):
        return getattr(error, "is_retryable", False)
    return False


def _object_id(value: Any) -> str | None:
    """Stripe fields may hold an id string or an expanded object."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return getattr(value, "id", None)


# =============================================================================
# Stripe Adapter
# =============================================================================


class StripeAdapter:
    """
    Adapter for Stripe API operations.

    All methods are class methods; no instance state is maintained.
    Services receive this class (or a test double with the same methods)
    through their constructor.
    """

    # =========================================================================
    # Configuration
    # =========================================================================

    @staticmethod
    def _configure_stripe() -> None:
        """Configure Stripe client with API key, timeout and retries."""
        stripe.api_key = settings.STRIPE_SECRET_KEY
        stripe.max_network_retries = getattr(settings, "STRIPE_MAX_RETRIES", 0)
        timeout = getattr(settings, "STRIPE_API_TIMEOUT_SECONDS", 10)
        stripe.default_http_client = stripe.RequestsClient(timeout=timeout)

    @classmethod
    def get_logger(cls) -> logging.Logger:
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    def _log_completed(
        cls, log_context: dict[str, Any], start_time: float, **fields: Any
    ) -> None:
        duration_ms = (time.time() - start_time) * 1000
        cls.get_logger().info(
            "Stripe operation completed",
            extra={**log_context, **fields, "duration_ms": duration_ms},
        )

    # =========================================================================
    # Customers
    # =========================================================================

    @classmethod
    def find_or_create_customer(
        cls,
        email: str,
        name: str | None = None,
    ) -> CustomerResult:
        """
        Resolve the Stripe Customer for an email, creating one if absent.

        Raises:
            StripeError subclass on gateway failure
        """
        cls._configure_stripe()
        logger = cls.get_logger()

        log_context = {"operation": "find_or_create_customer"}
        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            existing = stripe.Customer.list(email=email, limit=1)
            if existing.data:
                customer = existing.data[0]
                cls._log_completed(log_context, start_time, customer_id=customer.id)
                return CustomerResult(id=customer.id, email=customer.email)

            create_kwargs: dict[str, Any] = {"email": email}
            if name:
                create_kwargs["name"] = name
            customer = stripe.Customer.create(**create_kwargs)

            cls._log_completed(
                log_context, start_time, customer_id=customer.id, customer_created=True
            )
            return CustomerResult(id=customer.id, email=customer.email, created=True)

        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise

    # =========================================================================
    # Checkout Sessions
    # =========================================================================

    @classmethod
    def create_checkout_session(
        cls,
        params: CreateCheckoutSessionParams,
    ) -> CheckoutSessionResult:
        """
        Create a Checkout Session whose PaymentIntent is captured manually.

        Returns:
            CheckoutSessionResult with the hosted URL. payment_intent_id is
            often None at this point; it is bound later from the
            checkout.session.completed webhook.

        Raises:
            StripeInvalidRequestError: Invalid parameters
            StripeAPIUnavailableError: Stripe unreachable or erroring
            StripeTimeoutError: Request timed out
        """
        cls._configure_stripe()
        logger = cls.get_logger()

        log_context = {
            "operation": "create_checkout_session",
            "amount_cents": params.amount_cents,
            "currency": params.currency,
            "idempotency_key": params.idempotency_key,
            "mission_id": params.metadata.get("mission_id"),
        }

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            create_kwargs: dict[str, Any] = {
                "mode": "payment",
                "payment_method_types": ["card"],
                "line_items": [
                    {
                        "price_data": {
                            "currency": params.currency,
                            "product_data": {"name": params.product_name},
                            "unit_amount": params.amount_cents,
                        },
                        "quantity": 1,
                    }
                ],
                "payment_intent_data": {
                    "capture_method": "manual",
                    "metadata": params.metadata,
                },
                "metadata": params.metadata,
                "success_url": params.success_url,
                "cancel_url": params.cancel_url,
                "idempotency_key": params.idempotency_key,
            }
            if params.customer_id:
                create_kwargs["customer"] = params.customer_id

            session = stripe.checkout.Session.create(**create_kwargs)

            payment_intent_id = _object_id(session.payment_intent)
            cls._log_completed(
                log_context,
                start_time,
                checkout_session_id=session.id,
                payment_intent_id=payment_intent_id,
            )

            return CheckoutSessionResult(
                id=session.id,
                url=session.url,
                payment_intent_id=payment_intent_id,
                status=session.status,
                metadata=dict(session.metadata or {}),
            )

        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise

    @classmethod
    def retrieve_checkout_session(cls, session_id: str) -> CheckoutSessionResult:
        """Fetch a Checkout Session (used by reconciliation)."""
        cls._configure_stripe()
        logger = cls.get_logger()

        log_context = {
            "operation": "retrieve_checkout_session",
            "checkout_session_id": session_id,
        }
        start_time = time.time()
        logger.debug("Starting Stripe operation", extra=log_context)

        try:
            session = stripe.checkout.Session.retrieve(session_id)
            cls._log_completed(log_context, start_time, status=session.status)
            return CheckoutSessionResult(
                id=session.id,
                url=session.url,
                payment_intent_id=_object_id(session.payment_intent),
                status=session.status,
                metadata=dict(session.metadata or {}),
            )

        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise

    @classmethod
    def expire_checkout_session(cls, session_id: str) -> CheckoutSessionResult:
        """
        Expire an open Checkout Session so it can no longer be paid.

        Used when the local Payment row could not be written, and when a
        mission is canceled before checkout completes.
        """
        cls._configure_stripe()
        logger = cls.get_logger()

        log_context = {
            "operation": "expire_checkout_session",
            "checkout_session_id": session_id,
        }
        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            session = stripe.checkout.Session.expire(session_id)
            cls._log_completed(log_context, start_time, status=session.status)
            return CheckoutSessionResult(
                id=session.id,
                url=session.url,
                payment_intent_id=_object_id(session.payment_intent),
                status=session.status,
            )

        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise

    # =========================================================================
    # PaymentIntents
    # =========================================================================

    @classmethod
    def _to_intent_result(cls, intent: Any) -> PaymentIntentResult:
        return PaymentIntentResult(
            id=intent.id,
            status=intent.status,
            amount_cents=intent.amount,
            currency=intent.currency,
            payment_method_id=_object_id(intent.payment_method),
            amount_received=intent.amount_received or 0,
            metadata=dict(intent.metadata or {}),
        )

    @classmethod
    def retrieve_payment_intent(cls, payment_intent_id: str) -> PaymentIntentResult:
        """
        Fetch the current state of a PaymentIntent.

        Used before cancellation to decide between void and refund, and by
        reconciliation to catch up on missed webhooks.
        """
        cls._configure_stripe()
        logger = cls.get_logger()

        log_context = {
            "operation": "retrieve_payment_intent",
            "payment_intent_id": payment_intent_id,
        }
        start_time = time.time()
        logger.debug("Starting Stripe operation", extra=log_context)

        try:
            intent = stripe.PaymentIntent.retrieve(payment_intent_id)
            cls._log_completed(log_context, start_time, status=intent.status)
            return cls._to_intent_result(intent)

        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise

    @classmethod
    def capture_payment_intent(
        cls,
        payment_intent_id: str,
        idempotency_key: str,
        amount_to_capture: int | None = None,
    ) -> PaymentIntentResult:
        """
        Capture an authorized PaymentIntent (escrow release).

        Args:
            payment_intent_id: PaymentIntent in requires_capture state
            idempotency_key: Unique key; repeated captures collapse to one
            amount_to_capture: Partial capture amount (None = full amount)

        Raises:
            StripeInvalidRequestError: Not capturable (already captured,
                canceled, or authorization expired)
            StripeAPIUnavailableError: Stripe unreachable or erroring
        """
        cls._configure_stripe()
        logger = cls.get_logger()

        log_context = {
            "operation": "capture_payment_intent",
            "payment_intent_id": payment_intent_id,
            "amount_to_capture": amount_to_capture,
            "idempotency_key": idempotency_key,
        }
        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            capture_kwargs: dict[str, Any] = {"idempotency_key": idempotency_key}
            if amount_to_capture is not None:
                capture_kwargs["amount_to_capture"] = amount_to_capture

            intent = stripe.PaymentIntent.capture(payment_intent_id, **capture_kwargs)

            cls._log_completed(
                log_context,
                start_time,
                status=intent.status,
                amount_received=intent.amount_received,
            )
            return cls._to_intent_result(intent)

        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise

    @classmethod
    def cancel_payment_intent(
        cls,
        payment_intent_id: str,
        idempotency_key: str,
        cancellation_reason: str = "requested_by_customer",
    ) -> PaymentIntentResult:
        """
        Void an uncaptured authorization. The hold is released on the card.

        Only valid while the PaymentIntent has not been captured; captured
        funds are returned with create_refund instead.
        """
        cls._configure_stripe()
        logger = cls.get_logger()

        log_context = {
            "operation": "cancel_payment_intent",
            "payment_intent_id": payment_intent_id,
            "idempotency_key": idempotency_key,
        }
        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            intent = stripe.PaymentIntent.cancel(
                payment_intent_id,
                cancellation_reason=cancellation_reason,
                idempotency_key=idempotency_key,
            )
            cls._log_completed(log_context, start_time, status=intent.status)
            return cls._to_intent_result(intent)

        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise

    # =========================================================================
    # Refunds
    # =========================================================================

    @classmethod
    def create_refund(
        cls,
        payment_intent_id: str,
        idempotency_key: str,
        amount_cents: int | None = None,
        reason: str = "requested_by_customer",
        metadata: dict[str, str] | None = None,
    ) -> RefundResult:
        """
        Refund a captured PaymentIntent.

        Args:
            payment_intent_id: Captured PaymentIntent
            idempotency_key: Unique key for idempotent creation
            amount_cents: Partial amount (None = full refund)
            reason: Stripe refund reason
            metadata: Attached metadata
        """
        cls._configure_stripe()
        logger = cls.get_logger()

        log_context = {
            "operation": "create_refund",
            "payment_intent_id": payment_intent_id,
            "amount_cents": amount_cents,
            "idempotency_key": idempotency_key,
        }
        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            refund_kwargs: dict[str, Any] = {
                "payment_intent": payment_intent_id,
                "reason": reason,
                "metadata": metadata or {},
                "idempotency_key": idempotency_key,
            }
            if amount_cents is not None:
                refund_kwargs["amount"] = amount_cents

            refund = stripe.Refund.create(**refund_kwargs)

            cls._log_completed(
                log_context, start_time, refund_id=refund.id, status=refund.status
            )
            return RefundResult(
                id=refund.id,
                amount_cents=refund.amount,
                currency=refund.currency,
                status=refund.status,
                payment_intent_id=_object_id(refund.payment_intent) or payment_intent_id,
                metadata=dict(refund.metadata or {}),
            )

        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    @classmethod
    def verify_webhook_signature(
        cls,
        payload: bytes,
        signature: str,
    ) -> dict[str, Any]:
        """
        Verify and parse a Stripe webhook event.

        Args:
            payload: Raw webhook payload bytes
            signature: Stripe-Signature header value

        Returns:
            Parsed event data dict

        Raises:
            WebhookSignatureError: Invalid signature or unparseable payload
        """
        try:
            event = stripe.Webhook.construct_event(
                payload,
                signature,
                settings.STRIPE_WEBHOOK_SECRET,
            )
        except stripe.SignatureVerificationError as e:
            raise WebhookSignatureError(
                "Invalid webhook signature",
                details={"error": str(e)},
            ) from e
        except ValueError as e:
            raise WebhookSignatureError(
                "Invalid webhook payload",
                details={"error": str(e)},
            ) from e
        return event.to_dict()

    # =========================================================================
    # Error Handling
    # =========================================================================

    @classmethod
    def _handle_stripe_error(
        cls,
        error: Exception,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Translate Stripe SDK exceptions to domain exceptions.

        Raises:
            StripeCardDeclinedError: Card was declined
            StripeInvalidRequestError: Invalid request or authentication
            StripeRateLimitError: Rate limited
            StripeTimeoutError: Request timed out
            StripeAPIUnavailableError: Connection or server error
        """
        logger = cls.get_logger()
        log_context = {**log_context, "duration_ms": duration_ms}

        if isinstance(error, stripe.CardError):
            decline_code = getattr(error, "decline_code", None)
            logger.warning(
                "Card error from Stripe",
                extra={**log_context, "decline_code": decline_code},
            )
            raise StripeCardDeclinedError(
                str(error.user_message or error),
                stripe_code=error.code,
                decline_code=decline_code,
            ) from error

        elif isinstance(error, stripe.InvalidRequestError):
            logger.error(
                "Invalid request to Stripe",
                extra={**log_context, "stripe_code": error.code},
            )
            raise StripeInvalidRequestError(
                str(error.user_message or error),
                stripe_code=error.code,
            ) from error

        elif isinstance(error, stripe.RateLimitError):
            logger.warning("Rate limited by Stripe", extra=log_context)
            raise StripeRateLimitError(
                "Payment service is busy. Please try again.",
                stripe_code="rate_limit",
            ) from error

        elif isinstance(error, stripe.APIConnectionError):
            logger.error(
                "Connection error to Stripe",
                extra=log_context,
                exc_info=True,
            )
            if "timed out" in str(error).lower() or "timeout" in str(error).lower():
                raise StripeTimeoutError(
                    "Payment service timed out. Please try again.",
                    stripe_code="timeout",
                ) from error
            raise StripeAPIUnavailableError(
                "Could not connect to payment service. Please try again.",
                stripe_code="api_connection_error",
            ) from error

        elif isinstance(error, stripe.AuthenticationError):
            logger.critical(
                "Stripe authentication failed - check API key",
                extra=log_context,
            )
            raise StripeInvalidRequestError(
                "Payment service authentication failed",
                stripe_code="authentication_error",
            ) from error

        elif isinstance(error, stripe.APIError):
            logger.error("Stripe API error", extra=log_context, exc_info=True)
            raise StripeAPIUnavailableError(
                "Payment service error. Please try again.",
                stripe_code="api_error",
            ) from error

        else:
            logger.error(
                f"Unexpected error from Stripe: {type(error).__name__}",
                extra=log_context,
                exc_info=True,
            )
            raise StripeAPIUnavailableError(
                f"Unexpected payment service error: {error}",
                stripe_code="unknown_error",
            ) from error
