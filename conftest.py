"""
Root pytest configuration for the Django project.

Sets environment defaults so the test suite runs without a .env file:
SQLite database, a throwaway SECRET_KEY and no Stripe credentials. App
fixtures live in each app's tests/conftest.py.
"""

import os

# Settings are read from the environment at import time
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECURE_SSL_REDIRECT", "False")
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")
os.environ.setdefault("ENV_FILE", os.devnull)
