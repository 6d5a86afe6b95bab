"""
Webhook endpoint views for Stripe.

The view:
1. Verifies the webhook signature (or, with no secret configured, parses
   the body unverified and logs a warning)
2. Creates/retrieves the WebhookEvent record (idempotent)
3. Processes the event synchronously and acknowledges it

Processing is synchronous so the acknowledgement reflects the ledger: a
200 means the event was applied, was a replay, or was deliberately
ignored. A processing failure answers 500 and Stripe redelivers.

Usage:
    # In urls.py
    from payments.webhooks.views import stripe_webhook

    urlpatterns = [
        path("webhooks/stripe/", stripe_webhook, name="stripe_webhook"),
    ]
"""

from __future__ import annotations

import json
import logging

from django.conf import settings
from django.http import HttpRequest, HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from payments.adapters import StripeAdapter
from payments.exceptions import WebhookSignatureError
from payments.models import WebhookEvent
from payments.webhooks.handlers import handle_webhook_event

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type, stripe-signature",
}


def _json(data: dict, status: int = 200) -> JsonResponse:
    response = JsonResponse(data, status=status)
    for header, value in CORS_HEADERS.items():
        response[header] = value
    return response


@csrf_exempt
@require_http_methods(["POST", "OPTIONS"])
def stripe_webhook(request: HttpRequest, stripe_adapter=None) -> HttpResponse:
    """
    Receive and process Stripe webhook events.

    Returns:
        - 200 {"received": true}: event applied, replayed or ignored
        - 200 (empty) for OPTIONS preflight, with permissive CORS headers
        - 400 {"error": ...}: missing/invalid signature or body
        - 500 {"error": ...}: processing failed; Stripe will redeliver
    """
    if request.method == "OPTIONS":
        response = HttpResponse(status=200)
        for header, value in CORS_HEADERS.items():
            response[header] = value
        return response

    adapter = stripe_adapter or StripeAdapter
    payload = request.body

    if settings.STRIPE_WEBHOOK_SECRET:
        signature = request.headers.get("Stripe-Signature", "")
        if not signature:
            logger.warning("Webhook received without Stripe-Signature header")
            return _json({"error": "Missing signature"}, status=400)

        try:
            event_data = adapter.verify_webhook_signature(payload, signature)
        except WebhookSignatureError as e:
            logger.warning(
                "Webhook signature verification failed",
                extra={"error": str(e.details.get("error", e.message))},
            )
            return _json({"error": e.message}, status=400)
    else:
        logger.warning(
            "STRIPE_WEBHOOK_SECRET is not set; processing webhook without signature verification"
        )
        try:
            event_data = json.loads(payload)
        except (ValueError, UnicodeDecodeError):
            return _json({"error": "Invalid JSON payload"}, status=400)

    stripe_event_id = event_data.get("id") if isinstance(event_data, dict) else None
    event_type = event_data.get("type") if isinstance(event_data, dict) else None

    if not stripe_event_id or not event_type:
        logger.warning("Webhook missing required fields")
        return _json({"error": "Invalid event"}, status=400)

    logger.info(
        f"Received Stripe webhook: {event_type}",
        extra={"stripe_event_id": stripe_event_id, "event_type": event_type},
    )

    webhook_event, created = WebhookEvent.objects.get_or_create(
        stripe_event_id=stripe_event_id,
        defaults={"event_type": event_type, "payload": event_data},
    )

    if not created and webhook_event.is_settled:
        logger.info(
            "Webhook already handled, acknowledging",
            extra={"stripe_event_id": stripe_event_id, "status": webhook_event.status},
        )
        return _json({"received": True})

    try:
        handle_webhook_event(webhook_event, stripe_adapter=adapter)
    except Exception:
        # handle_webhook_event already logged and marked the row failed.
        return _json({"error": "Webhook processing failed"}, status=500)

    return _json({"received": True})
