"""
Test configuration and fixtures for authentication tests.

Usage:
    def test_example(user):
        assert user.is_active
"""

import pytest

from authentication.models import User
from authentication.tests.factories import UserFactory


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def user(db):
    """Create a basic active rider with a display name."""
    return UserFactory(first_name="Ada", last_name="Lovelace")


@pytest.fixture
def nameless_user(db):
    """Create a user without first or last name."""
    return UserFactory(first_name="", last_name="", email="anon@example.com")


@pytest.fixture
def superuser(db):
    """Create a superuser with admin privileges."""
    return User.objects.create_superuser(
        email="admin@example.com", password="AdminPass123!"
    )
