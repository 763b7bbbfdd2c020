"""
Read-only view of rides and RSVPs for the notification system.

This is the only notification module that imports the events app. Handlers
and the reminder scanner ask it "what does this ride look like, and who is
on it, as of now"; nothing here writes.

Usage:
    from notifications import roster

    snapshot = roster.get_event_snapshot(event_id)
    rider_ids = roster.get_rsvp_user_ids(event_id, statuses=["going", "maybe"])
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.contrib.auth import get_user_model

from events.models import Event, EventStatus, Rsvp
from notifications.triggers import EventSnapshot

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime

logger = logging.getLogger(__name__)

# Shown when a participant's account no longer exists
UNKNOWN_PARTICIPANT_NAME = "A rider"


def get_event_snapshot(event_id: int) -> EventSnapshot | None:
    """Snapshot of a ride's display fields, or None if the ride is gone."""
    event = Event.objects.select_related("organizer").filter(pk=event_id).first()
    if event is None:
        return None
    return EventSnapshot.from_event(event)


def get_event_organizer_id(event_id: int) -> int | None:
    """Organizer of a ride, or None if the ride is gone."""
    return (
        Event.objects.filter(pk=event_id)
        .values_list("organizer_id", flat=True)
        .first()
    )


def get_rsvp_user_ids(
    event_id: int,
    statuses: Iterable[str] | None = None,
    exclude_user_ids: Iterable[int] = (),
) -> list[int]:
    """
    Users holding an RSVP on a ride.

    Args:
        event_id: Ride to look at
        statuses: Only RSVPs in these statuses (None means any status)
        exclude_user_ids: Users to leave out (typically the organizer)

    Returns:
        User ids ordered by RSVP time
    """
    rsvps = Rsvp.objects.filter(event_id=event_id)
    if statuses is not None:
        rsvps = rsvps.filter(status__in=list(statuses))
    exclude_user_ids = list(exclude_user_ids)
    if exclude_user_ids:
        rsvps = rsvps.exclude(user_id__in=exclude_user_ids)
    return list(rsvps.order_by("created_at", "id").values_list("user_id", flat=True))


def get_user_display_name(user_id: int) -> str:
    """Display name for a user, as shown to ride organizers."""
    user = get_user_model().objects.filter(pk=user_id).first()
    if user is None:
        return UNKNOWN_PARTICIPANT_NAME
    return user.get_full_name()


def find_events_starting_between(
    start: datetime,
    end: datetime,
    limit: int,
) -> list[Event]:
    """
    Active rides with ``start < start_at <= end``, earliest first.

    Args:
        start: Exclusive lower bound
        end: Inclusive upper bound
        limit: Maximum rides returned

    Returns:
        Rides with their organizer loaded
    """
    return list(
        Event.objects.select_related("organizer")
        .filter(
            status=EventStatus.ACTIVE,
            start_at__gt=start,
            start_at__lte=end,
        )
        .order_by("start_at", "id")[:limit]
    )


def existing_event_ids(event_ids: Iterable[int]) -> set[int]:
    """Subset of ``event_ids`` that still resolve to a ride."""
    return set(
        Event.objects.filter(pk__in=list(event_ids)).values_list("id", flat=True)
    )
