"""
Notification store.

This module defines the single persistent entity of the notification system:
- NotificationType: Closed enumeration of notification kinds
- Notification: One in-app notification for one recipient

Design Decisions:
    - Notification inherits from BaseModel (timestamps, ordering)
    - recipient CASCADE: notifications belong to their recipient
    - event_id is a plain integer, NOT a foreign key: deleting a ride must
      never delete or corrupt the notifications that mention it
    - event_title/event_start_at/event_location/event_organizer_name are a
      point-in-time snapshot taken at creation and never updated
    - dedupe_key is unique and non-null; the database constraint is the only
      thing that decides whether a trigger has already produced a row
    - sent_at is set once (pending -> sent) and never cleared

Usage:
    from notifications.models import Notification, NotificationType

    unread = Notification.objects.filter(recipient=user, is_read=False)
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.models import BaseModel


# Column length of Notification.dedupe_key; longer keys are hashed
DEDUPE_KEY_MAX_LENGTH = 255


# =============================================================================
# Enums
# =============================================================================


class NotificationType(models.TextChoices):
    """
    Kinds of notification the system creates.

    Every consumer (trigger builders, writer, serializers) handles all five;
    notifications.triggers checks its template table against this list at
    import time.
    """

    EVENT_REMINDER = "event_reminder", "Ride reminder"
    EVENT_UPDATED = "event_updated", "Ride updated"
    EVENT_CANCELLED = "event_cancelled", "Ride cancelled"
    NEW_PARTICIPANT = "new_participant", "New participant"
    PARTICIPANT_LEFT = "participant_left", "Participant left"


# =============================================================================
# Models
# =============================================================================


class Notification(BaseModel):
    """
    Individual notification record for a user.

    Notifications are immutable once created apart from ``is_read`` (owned
    by the recipient through the read API) and ``sent_at`` (owned by the
    delivery marker). A changed situation produces a new notification
    instead of an edit.

    Fields:
        recipient: User who sees this notification (scopes all queries)
        notification_type: One of NotificationType
        title: Fully rendered title
        message: Fully rendered body
        data: JSON context (changed fields, participant id, ...)
        event_id: Id of the ride this is about (weak reference, may be dead)
        event_title, event_start_at, event_location, event_organizer_name:
            Snapshot of the ride at creation time
        is_read: Whether the recipient has read it (false -> true only)
        send_at: When the notification becomes relevant
        sent_at: When it was marked delivered (null while pending)
        dedupe_key: Deterministic key of the trigger that produced it

    Inherits from BaseModel:
        created_at: Timestamp (auto, indexed)
        updated_at: Timestamp (auto)
    """

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
        help_text="User receiving this notification",
    )

    notification_type = models.CharField(
        max_length=32,
        choices=NotificationType.choices,
        help_text="Kind of notification",
    )

    title = models.CharField(
        max_length=500,
        help_text="Fully rendered notification title",
    )

    message = models.TextField(
        blank=True,
        default="",
        help_text="Fully rendered notification body",
    )

    data = models.JSONField(
        default=dict,
        blank=True,
        help_text="Context data (changed fields, participant, ...)",
    )

    # Weak reference to the ride plus display snapshot
    event_id = models.BigIntegerField(
        null=True,
        blank=True,
        help_text="Id of the ride this notification is about (not enforced)",
    )

    event_title = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Ride title at creation time",
    )

    event_start_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Ride start time at creation time",
    )

    event_location = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Ride meeting point at creation time",
    )

    event_organizer_name = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Organizer display name at creation time",
    )

    is_read = models.BooleanField(
        default=False,
        help_text="Whether recipient has read this notification",
    )

    send_at = models.DateTimeField(
        help_text="When this notification becomes relevant",
    )

    sent_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When this notification was marked delivered",
    )

    dedupe_key = models.CharField(
        max_length=DEDUPE_KEY_MAX_LENGTH,
        unique=True,
        help_text="Deterministic key guaranteeing one row per trigger",
    )

    class Meta:
        db_table = "notifications_notification"
        ordering = ["-created_at", "-id"]  # Newest first
        indexes = [
            # Listing: recipient's notifications newest first
            models.Index(
                fields=["recipient", "-created_at"],
                name="notif_recipient_created_idx",
            ),
            # Unread count
            models.Index(
                fields=["recipient", "is_read"],
                name="notif_recipient_unread_idx",
            ),
            # Pending sweep (partial index for unsent rows only)
            models.Index(
                fields=["send_at"],
                name="notif_pending_send_at_idx",
                condition=models.Q(sent_at__isnull=True),
            ),
        ]

    def __str__(self) -> str:
        read_status = "read" if self.is_read else "unread"
        return (
            f"Notification({self.notification_type}) -> "
            f"User {self.recipient_id} [{read_status}]"
        )

    @property
    def has_event_snapshot(self) -> bool:
        """Whether this notification carries a ride reference."""
        return self.event_id is not None
