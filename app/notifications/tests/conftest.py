"""
Test configuration and fixtures for notification tests.

This module provides:
- Users: a rider (recipient), another rider, a ride organizer
- Rides: an active ride with RSVPs in every status
- Notifications: read/unread sets for the read API
- API client helpers for JWT-authenticated requests

Usage:
    def test_example(user, unread_notifications, authenticated_client):
        response = authenticated_client.get("/api/v1/notifications/")
        assert response.status_code == 200
"""

from datetime import datetime, timedelta, timezone as dt_timezone

import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from authentication.tests.factories import UserFactory
from events.models import RsvpStatus
from events.tests.factories import EventFactory, RsvpFactory
from notifications.tests.factories import NotificationFactory


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def user(db):
    """Create a rider to receive notifications."""
    return UserFactory(first_name="Ria", last_name="Rider")


@pytest.fixture
def other_user(db):
    """Create another rider for multi-user tests."""
    return UserFactory(first_name="Otto", last_name="Other")


@pytest.fixture
def organizer(db):
    """Create a ride organizer."""
    return UserFactory(first_name="Olive", last_name="Organizer")


# =============================================================================
# Ride Fixtures
# =============================================================================


@pytest.fixture
def ride_start():
    """Fixed ride start used by time-sensitive scenarios."""
    return datetime(2024, 6, 15, 9, 0, tzinfo=dt_timezone.utc)


@pytest.fixture
def event(organizer, ride_start):
    """An active ride owned by ``organizer``."""
    return EventFactory(
        organizer=organizer,
        title="Saturday Ride",
        start_at=ride_start,
        start_location="Main Street Bike Shop",
    )


@pytest.fixture
def riders(event):
    """
    RSVPs on ``event``: three going, one maybe, one not going.

    Returns:
        Dict of status -> list of users
    """
    going = [RsvpFactory(event=event, status=RsvpStatus.GOING).user for _ in range(3)]
    maybe = [RsvpFactory(event=event, status=RsvpStatus.MAYBE).user]
    not_going = [RsvpFactory(event=event, status=RsvpStatus.NOT_GOING).user]
    return {"going": going, "maybe": maybe, "not_going": not_going}


@pytest.fixture
def snapshot(event):
    """Snapshot of ``event``."""
    from notifications.triggers import EventSnapshot

    return EventSnapshot.from_event(event)


# =============================================================================
# Notification Fixtures
# =============================================================================


@pytest.fixture
def unread_notification(user):
    """Create a single unread notification for ``user``."""
    return NotificationFactory(recipient=user)


@pytest.fixture
def read_notification(user):
    """Create a single read notification for ``user``."""
    return NotificationFactory(recipient=user, is_read=True)


@pytest.fixture
def unread_notifications(user):
    """Create three unread notifications for ``user``."""
    return NotificationFactory.create_batch(3, recipient=user)


@pytest.fixture
def read_notifications(user):
    """Create two read notifications for ``user``."""
    return NotificationFactory.create_batch(2, recipient=user, is_read=True)


@pytest.fixture
def other_user_notification(other_user):
    """Create a notification owned by ``other_user``."""
    return NotificationFactory(recipient=other_user)


# =============================================================================
# API Client Fixtures
# =============================================================================


@pytest.fixture
def api_client():
    """Unauthenticated DRF API client."""
    return APIClient()


@pytest.fixture
def authenticated_client(user):
    """API client authenticated as ``user`` with a JWT access token."""
    client = APIClient()
    token = RefreshToken.for_user(user).access_token
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
    return client


@pytest.fixture
def other_user_client(other_user):
    """API client authenticated as ``other_user``."""
    client = APIClient()
    token = RefreshToken.for_user(other_user).access_token
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
    return client
