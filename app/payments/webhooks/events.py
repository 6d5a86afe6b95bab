"""
Typed Stripe webhook events.

Raw event payloads are parsed once, here, into small frozen dataclasses.
Handlers only ever see these types; anything that does not have the
expected shape is rejected with MalformedEventError before it reaches
the ledger.

Event mapping:
    checkout.session.completed               -> CheckoutCompleted
    payment_intent.amount_capturable_updated -> AuthorizationSucceeded
    payment_intent.succeeded                 -> AuthorizationSucceeded
    payment_intent.payment_failed            -> PaymentFailed
    payment_intent.canceled                  -> PaymentCanceled
    checkout.session.expired                 -> PaymentCanceled
    charge.refunded                          -> RefundIssued
    anything else                            -> UnhandledEvent

Usage:
    from payments.webhooks.events import AuthorizationSucceeded, parse_event

    event = parse_event(webhook_event.payload)
    if isinstance(event, AuthorizationSucceeded):
        ...
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from payments.exceptions import MalformedEventError


@dataclass(frozen=True)
class ProcessorEvent:
    event_id: str
    event_type: str


@dataclass(frozen=True)
class CheckoutCompleted(ProcessorEvent):
    """Checkout finished; binds the PaymentIntent id to the Payment."""

    checkout_session_id: str
    payment_intent_id: str | None = None
    payment_id: str | None = None


@dataclass(frozen=True)
class AuthorizationSucceeded(ProcessorEvent):
    """Funds are held on the card (requires_capture) or already captured."""

    payment_intent_id: str
    payment_method_id: str | None = None
    payment_id: str | None = None
    intent_status: str | None = None


@dataclass(frozen=True)
class PaymentFailed(ProcessorEvent):
    payment_intent_id: str
    payment_id: str | None = None
    reason: str | None = None


@dataclass(frozen=True)
class PaymentCanceled(ProcessorEvent):
    """
    The PaymentIntent was canceled or the checkout session expired.

    payment_intent_id is None for sessions that expired before the client
    entered card details.
    """

    payment_intent_id: str | None = None
    checkout_session_id: str | None = None
    payment_id: str | None = None


@dataclass(frozen=True)
class RefundIssued(ProcessorEvent):
    payment_intent_id: str
    charge_id: str
    amount_refunded: int = 0
    fully_refunded: bool = True


@dataclass(frozen=True)
class UnhandledEvent(ProcessorEvent):
    """An event type the ledger does not act on."""


# =============================================================================
# Parsing
# =============================================================================


def _require_str(obj: dict[str, Any], key: str, event_type: str) -> str:
    value = obj.get(key)
    if not isinstance(value, str) or not value:
        raise MalformedEventError(
            f"{event_type}: missing '{key}'",
            details={"event_type": event_type, "field": key},
        )
    return value


def _optional_id(value: Any) -> str | None:
    """Stripe fields may be an id string, an expanded object, or null."""
    if isinstance(value, str) and value:
        return value
    if isinstance(value, dict) and isinstance(value.get("id"), str):
        return value["id"]
    return None


def _metadata(obj: dict[str, Any]) -> dict[str, Any]:
    metadata = obj.get("metadata")
    return metadata if isinstance(metadata, dict) else {}


def _parse_checkout_completed(event_id, event_type, obj) -> CheckoutCompleted:
    return CheckoutCompleted(
        event_id=event_id,
        event_type=event_type,
        checkout_session_id=_require_str(obj, "id", event_type),
        payment_intent_id=_optional_id(obj.get("payment_intent")),
        payment_id=_metadata(obj).get("payment_id"),
    )


def _parse_authorization(event_id, event_type, obj) -> AuthorizationSucceeded:
    return AuthorizationSucceeded(
        event_id=event_id,
        event_type=event_type,
        payment_intent_id=_require_str(obj, "id", event_type),
        payment_method_id=_optional_id(obj.get("payment_method")),
        payment_id=_metadata(obj).get("payment_id"),
        intent_status=obj.get("status"),
    )


def _parse_failed(event_id, event_type, obj) -> PaymentFailed:
    last_error = obj.get("last_payment_error")
    reason = last_error.get("message") if isinstance(last_error, dict) else None
    return PaymentFailed(
        event_id=event_id,
        event_type=event_type,
        payment_intent_id=_require_str(obj, "id", event_type),
        payment_id=_metadata(obj).get("payment_id"),
        reason=reason,
    )


def _parse_intent_canceled(event_id, event_type, obj) -> PaymentCanceled:
    return PaymentCanceled(
        event_id=event_id,
        event_type=event_type,
        payment_intent_id=_require_str(obj, "id", event_type),
        payment_id=_metadata(obj).get("payment_id"),
    )


def _parse_session_expired(event_id, event_type, obj) -> PaymentCanceled:
    return PaymentCanceled(
        event_id=event_id,
        event_type=event_type,
        payment_intent_id=_optional_id(obj.get("payment_intent")),
        checkout_session_id=_require_str(obj, "id", event_type),
        payment_id=_metadata(obj).get("payment_id"),
    )


def _parse_charge_refunded(event_id, event_type, obj) -> RefundIssued:
    payment_intent_id = _optional_id(obj.get("payment_intent"))
    if not payment_intent_id:
        raise MalformedEventError(
            f"{event_type}: charge has no payment_intent",
            details={"event_type": event_type, "field": "payment_intent"},
        )

    amount = obj.get("amount") or 0
    amount_refunded = obj.get("amount_refunded") or 0
    fully_refunded = obj.get("refunded") is True or (
        amount > 0 and amount_refunded >= amount
    )
    return RefundIssued(
        event_id=event_id,
        event_type=event_type,
        payment_intent_id=payment_intent_id,
        charge_id=_require_str(obj, "id", event_type),
        amount_refunded=amount_refunded,
        fully_refunded=fully_refunded,
    )


EVENT_PARSERS = {
    "checkout.session.completed": _parse_checkout_completed,
    "checkout.session.expired": _parse_session_expired,
    "payment_intent.amount_capturable_updated": _parse_authorization,
    "payment_intent.succeeded": _parse_authorization,
    "payment_intent.payment_failed": _parse_failed,
    "payment_intent.canceled": _parse_intent_canceled,
    "charge.refunded": _parse_charge_refunded,
}


def parse_event(payload: Any) -> ProcessorEvent:
    """
    Parse a Stripe event payload into a typed event.

    Raises:
        MalformedEventError: Payload is not an event, or a handled event
            type lacks the fields its handler needs
    """
    if not isinstance(payload, dict):
        raise MalformedEventError("Event payload is not an object")

    event_id = payload.get("id")
    event_type = payload.get("type")
    if not isinstance(event_id, str) or not isinstance(event_type, str):
        raise MalformedEventError("Event is missing id or type")

    parser = EVENT_PARSERS.get(event_type)
    if parser is None:
        return UnhandledEvent(event_id=event_id, event_type=event_type)

    data = payload.get("data")
    obj = data.get("object") if isinstance(data, dict) else None
    if not isinstance(obj, dict):
        raise MalformedEventError(
            f"{event_type}: missing data.object",
            details={"event_type": event_type},
        )

    return parser(event_id, event_type, obj)
