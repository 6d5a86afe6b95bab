"""
Authentication app: the marketplace user model.

API requests authenticate with JWT bearer tokens issued by
rest_framework_simplejwt (see config/urls.py).
"""
