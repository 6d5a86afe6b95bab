"""
URL configuration for the payments app.

Routes:
    - GET  /                  - Payment dashboard listing
    - POST /initiate/         - Fund a mission (Stripe Checkout, manual capture)
    - POST /release/          - Release escrowed funds
    - POST /webhooks/stripe/  - Stripe webhook endpoint

All routes are prefixed with /api/v1/payments/ when included in the main URLconf.
"""

from django.urls import path

from payments.views import InitiatePaymentView, PaymentListView, ReleaseEscrowView
from payments.webhooks.views import stripe_webhook

app_name = "payments"

urlpatterns = [
    path("", PaymentListView.as_view(), name="payment-list"),
    path("initiate/", InitiatePaymentView.as_view(), name="initiate"),
    path("release/", ReleaseEscrowView.as_view(), name="release"),
    # Webhook endpoints
    path("webhooks/stripe/", stripe_webhook, name="stripe_webhook"),
]
