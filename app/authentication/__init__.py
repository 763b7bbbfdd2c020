"""
Authentication application.

Owns rider identities. Authentication itself is handled by
djangorestframework-simplejwt (token endpoints are mounted in config.urls).

Key components:
    - User model: Custom email-based user with a display name

Usage:
    from authentication.models import User
"""
