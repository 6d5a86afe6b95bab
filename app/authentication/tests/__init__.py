"""
Tests for authentication app.

This package contains test modules for:
- test_managers.py: UserManager create_user / create_superuser
- test_models.py: User model, roles and ordering
- test_views.py: JWT token endpoints and /me

Usage:
    pytest authentication/tests/
    pytest authentication/tests/test_views.py
"""
