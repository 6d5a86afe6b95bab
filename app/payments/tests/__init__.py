"""
Tests for payments app.

This package contains test modules for:
- test_models.py: Payment and WebhookEvent model tests
- test_money.py: Amount and currency rules
- test_views.py: Initiate, release and listing endpoints
- test_integration.py: Full escrow journeys through the API

Service, webhook and adapter tests live beside their packages
(services/tests, webhooks/tests, adapters/tests).

Usage:
    pytest payments/tests/
    pytest payments/tests/test_integration.py
"""
