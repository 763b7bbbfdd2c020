"""
Test configuration and fixtures for ride tests.
"""

import pytest

from authentication.tests.factories import UserFactory
from events.models import RsvpStatus
from events.tests.factories import EventFactory, RsvpFactory


@pytest.fixture
def organizer(db):
    """Ride organizer with a display name."""
    return UserFactory(first_name="Olive", last_name="Organizer")


@pytest.fixture
def rider(db):
    """A rider who is not yet on any ride."""
    return UserFactory(first_name="Ria", last_name="Rider")


@pytest.fixture
def event(organizer):
    """An active ride owned by ``organizer``."""
    return EventFactory(organizer=organizer, title="Saturday Ride")


@pytest.fixture
def going_rsvp(event, rider):
    """``rider`` is going on ``event``."""
    return RsvpFactory(event=event, user=rider, status=RsvpStatus.GOING)


@pytest.fixture
def mock_handlers(mocker):
    """Patch every notification entry point EventService calls."""
    return {
        name: mocker.patch(f"notifications.handlers.{name}")
        for name in (
            "on_event_updated",
            "on_event_cancelled",
            "on_participant_joined",
            "on_participant_left",
        )
    }
