"""
Event and RSVP models.

This module defines the ride models the notification system reads from:
- Event: A group ride organized by a user
- Rsvp: A rider's answer (going / maybe / not going) for one ride

Design Decisions:
    - Event inherits from BaseModel; updated_at doubles as the change
      timestamp for "ride updated" notifications
    - One RSVP per (event, user), enforced by a unique constraint
    - Notifications reference events by id only, so deleting an Event
      never touches notification rows

Usage:
    from events.models import Event, EventStatus, Rsvp, RsvpStatus

    ride = Event.objects.create(
        organizer=user,
        title="Saturday Ride",
        start_at=start,
        start_location="Bike shop",
    )
    Rsvp.objects.create(event=ride, user=rider, status=RsvpStatus.GOING)
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.models import BaseModel


# =============================================================================
# Enums
# =============================================================================


class EventStatus(models.TextChoices):
    """
    Lifecycle of a ride.

    State Flow:
        ACTIVE -> CANCELLED (organizer cancels, terminal)
        ACTIVE -> COMPLETED (ride took place, terminal)
    """

    ACTIVE = "active", "Active"
    CANCELLED = "cancelled", "Cancelled"
    COMPLETED = "completed", "Completed"


class RsvpStatus(models.TextChoices):
    """A rider's answer for a ride."""

    GOING = "going", "Going"
    MAYBE = "maybe", "Maybe"
    NOT_GOING = "not_going", "Not going"


# =============================================================================
# Models
# =============================================================================


class Event(BaseModel):
    """
    A group ride.

    Fields:
        organizer: User who created and owns the ride
        title: Ride name shown in listings and notifications
        description: Free-form details
        start_at: When the ride starts (reminders are scheduled from this)
        start_location: Meeting point
        status: Lifecycle state (see EventStatus)

    Inherits from BaseModel:
        created_at: Timestamp (auto, indexed)
        updated_at: Timestamp (auto)
    """

    organizer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="organized_events",
        help_text="User who organizes this ride",
    )

    title = models.CharField(
        max_length=255,
        help_text="Ride title",
    )

    description = models.TextField(
        blank=True,
        default="",
        help_text="Ride details",
    )

    start_at = models.DateTimeField(
        db_index=True,
        help_text="When the ride starts",
    )

    start_location = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Meeting point",
    )

    status = models.CharField(
        max_length=20,
        choices=EventStatus.choices,
        default=EventStatus.ACTIVE,
        db_index=True,
        help_text="Lifecycle state of the ride",
    )

    class Meta:
        db_table = "events_event"
        ordering = ["start_at"]
        indexes = [
            # Reminder scan: active rides by start time
            models.Index(
                fields=["status", "start_at"],
                name="event_status_start_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.title} ({self.start_at:%Y-%m-%d %H:%M})"


class Rsvp(BaseModel):
    """
    A rider's RSVP for a ride.

    Fields:
        event: The ride
        user: The rider answering
        status: going / maybe / not_going
        message: Optional note to the organizer
    """

    event = models.ForeignKey(
        Event,
        on_delete=models.CASCADE,
        related_name="rsvps",
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="rsvps",
    )

    status = models.CharField(
        max_length=20,
        choices=RsvpStatus.choices,
        default=RsvpStatus.GOING,
        help_text="Rider's answer",
    )

    message = models.TextField(
        blank=True,
        default="",
        help_text="Optional note to the organizer",
    )

    class Meta:
        db_table = "events_rsvp"
        verbose_name = "RSVP"
        verbose_name_plural = "RSVPs"
        constraints = [
            models.UniqueConstraint(
                fields=["event", "user"],
                name="unique_event_rsvp",
            ),
        ]
        indexes = [
            models.Index(
                fields=["event", "status"],
                name="rsvp_event_status_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"Rsvp(event={self.event_id}, user={self.user_id}, {self.status})"
