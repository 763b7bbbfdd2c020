"""
Notification triggers.

A trigger is the fully-formed description of one notification to create:
recipient, kind, rendered text, ride snapshot, ``send_at`` and the bucket
that makes its dedupe key unique per logical occurrence. Triggers are plain
frozen dataclasses; they are built here, persisted by
``notifications.services.NotificationWriter`` and serialized to JSON when a
write has to be retried by Celery.

Dedupe buckets:
    event_reminder    the ride's start time (a moved ride gets a new reminder)
    event_updated     the time of the edit
    event_cancelled   fixed; cancellation is terminal, so cancel-then-delete
                      still notifies once
    new_participant   participant id + time of the RSVP change
    participant_left  participant id + time of the RSVP change

Usage:
    from notifications.triggers import EventSnapshot, build_reminder_trigger

    snapshot = EventSnapshot.from_event(ride)
    trigger = build_reminder_trigger(snapshot, rider.id, timedelta(hours=24))
    trigger.dedupe_key  # "event_reminder:42:7:20240615T090000.000000Z"
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from datetime import datetime, timezone as dt_timezone
from typing import TYPE_CHECKING

from django.core.exceptions import ImproperlyConfigured
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from notifications.exceptions import InvalidTriggerError
from notifications.models import DEDUPE_KEY_MAX_LENGTH, NotificationType

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import timedelta
    from typing import Any

    from events.models import Event


CANCELLED_BUCKET = "cancelled"

# Human-readable names for edited ride fields
CHANGED_FIELD_LABELS = {
    "title": "title",
    "description": "description",
    "start_at": "start time",
    "start_location": "location",
}


# =============================================================================
# Templates
# =============================================================================

# (title template, message template) per notification type
TEMPLATES: dict[str, tuple[str, str]] = {
    NotificationType.EVENT_REMINDER: (
        "Ride Reminder: {title}",
        'Don\'t forget about the ride "{title}" organized by {organizer_name} '
        "on {start}!",
    ),
    NotificationType.EVENT_UPDATED: (
        "Ride Updated: {title}",
        'The ride "{title}" has been updated. Changes: {changes}',
    ),
    NotificationType.EVENT_CANCELLED: (
        "Ride Cancelled: {title}",
        'Unfortunately, the ride "{title}" organized by {organizer_name} '
        "has been cancelled.",
    ),
    NotificationType.NEW_PARTICIPANT: (
        "New Participant: {title}",
        '{participant_name} has joined your ride "{title}"!',
    ),
    NotificationType.PARTICIPANT_LEFT: (
        "Participant Left: {title}",
        '{participant_name} has left your ride "{title}".',
    ),
}

_missing_templates = set(NotificationType.values) - set(TEMPLATES)
if _missing_templates:
    raise ImproperlyConfigured(
        f"No notification template for: {', '.join(sorted(_missing_templates))}"
    )


def _render(
    notification_type: str, snapshot: EventSnapshot, **context: Any
) -> tuple[str, str]:
    """Render (title, message) for a type from the snapshot plus extras."""
    title_template, message_template = TEMPLATES[notification_type]
    values = {
        "title": snapshot.title,
        "organizer_name": snapshot.organizer_name or "the organizer",
        "start": format_start(snapshot.start_at),
        **context,
    }
    return title_template.format(**values), message_template.format(**values)


def format_start(start_at: datetime) -> str:
    """Format a ride start for notification text, e.g. 'Sat Jun 15, 2024 at 09:00 UTC'."""
    return start_at.astimezone(dt_timezone.utc).strftime("%a %b %d, %Y at %H:%M UTC")


def _timestamp_bucket(value: datetime) -> str:
    """Deterministic, timezone-independent bucket string for a timestamp."""
    return value.astimezone(dt_timezone.utc).strftime("%Y%m%dT%H%M%S.%fZ")


def build_dedupe_key(
    recipient_id: int,
    event_id: int | None,
    notification_type: str,
    bucket: str,
) -> str:
    """
    Compose the dedupe key for a trigger.

    Format is ``type:event:recipient:bucket``. Keys longer than the column
    are replaced by ``type:sha256:<hex digest of the full key>`` so they
    stay deterministic and fit.

    Args:
        recipient_id: User who receives the notification
        event_id: Ride the notification is about (None is encoded as "-")
        notification_type: NotificationType value
        bucket: Occurrence discriminator (see module docstring)

    Returns:
        Key of at most DEDUPE_KEY_MAX_LENGTH characters
    """
    event_part = "-" if event_id is None else str(event_id)
    key = f"{notification_type}:{event_part}:{recipient_id}:{bucket}"
    if len(key) <= DEDUPE_KEY_MAX_LENGTH:
        return key
    digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
    return f"{notification_type}:sha256:{digest}"


# =============================================================================
# Value Objects
# =============================================================================


@dataclass(frozen=True)
class EventSnapshot:
    """Point-in-time copy of the ride fields shown on a notification."""

    event_id: int
    title: str
    start_at: datetime
    location: str = ""
    organizer_name: str = ""

    @classmethod
    def from_event(cls, event: Event) -> EventSnapshot:
        return cls(
            event_id=event.id,
            title=event.title,
            start_at=event.start_at,
            location=event.start_location,
            organizer_name=event.organizer.get_full_name(),
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "title": self.title,
            "start_at": self.start_at.isoformat(),
            "location": self.location,
            "organizer_name": self.organizer_name,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> EventSnapshot:
        return cls(
            event_id=payload["event_id"],
            title=payload["title"],
            start_at=_parse_timestamp(payload["start_at"]),
            location=payload.get("location", ""),
            organizer_name=payload.get("organizer_name", ""),
        )


@dataclass(frozen=True)
class Trigger:
    """
    Everything needed to create one notification.

    Attributes:
        recipient_id: User who will see the notification
        notification_type: NotificationType value
        title: Rendered title
        message: Rendered message
        send_at: When the notification becomes relevant
        event: Ride snapshot (None only for malformed input)
        bucket: Occurrence discriminator folded into the dedupe key
        data: JSON-safe context stored on the notification
    """

    recipient_id: int
    notification_type: str
    title: str
    message: str
    send_at: datetime
    event: EventSnapshot | None
    bucket: str
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def dedupe_key(self) -> str:
        event_id = self.event.event_id if self.event is not None else None
        return build_dedupe_key(
            self.recipient_id, event_id, self.notification_type, self.bucket
        )

    def validate(self) -> dict[str, list[str]]:
        """
        Check the trigger is well-formed.

        Returns:
            Field errors; empty when the trigger can be written
        """
        errors: dict[str, list[str]] = {}

        if not _is_positive_int(self.recipient_id):
            errors["recipient_id"] = ["Must be a positive integer."]
        if self.notification_type not in NotificationType.values:
            errors["notification_type"] = [
                f"Must be one of {NotificationType.values}."
            ]
        if not self.title:
            errors["title"] = ["This field is required."]
        if not isinstance(self.send_at, datetime) or timezone.is_naive(self.send_at):
            errors["send_at"] = ["Must be a timezone-aware datetime."]
        if not self.bucket:
            errors["bucket"] = ["This field is required."]
        if self.event is None:
            errors["event"] = ["Ride notifications need a ride snapshot."]
        elif not _is_positive_int(self.event.event_id):
            errors["event"] = ["Ride id must be a positive integer."]

        return errors

    def to_payload(self) -> dict[str, Any]:
        """JSON-safe representation for Celery task arguments."""
        return {
            "recipient_id": self.recipient_id,
            "notification_type": str(self.notification_type),
            "title": self.title,
            "message": self.message,
            "send_at": self.send_at.isoformat(),
            "event": self.event.to_payload() if self.event is not None else None,
            "bucket": self.bucket,
            "data": self.data,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Trigger:
        """
        Rebuild and validate a trigger serialized by ``to_payload``.

        Raises:
            InvalidTriggerError: If the payload is corrupt or fails validation
        """
        try:
            event_payload = payload.get("event")
            trigger = cls(
                recipient_id=payload["recipient_id"],
                notification_type=payload["notification_type"],
                title=payload["title"],
                message=payload.get("message", ""),
                send_at=_parse_timestamp(payload["send_at"]),
                event=(
                    EventSnapshot.from_payload(event_payload)
                    if event_payload is not None
                    else None
                ),
                bucket=payload["bucket"],
                data=payload.get("data") or {},
            )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise InvalidTriggerError(
                f"Corrupt trigger payload: {e}",
                details={"payload": payload},
            ) from e

        errors = trigger.validate()
        if errors:
            raise InvalidTriggerError("Invalid trigger payload", details=errors)
        return trigger


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _parse_timestamp(value: str) -> datetime:
    parsed = parse_datetime(value)
    if parsed is None:
        raise ValueError(f"Not an ISO timestamp: {value!r}")
    return parsed


# =============================================================================
# Builders
# =============================================================================


def build_reminder_trigger(
    snapshot: EventSnapshot,
    recipient_id: int,
    lead_time: timedelta,
) -> Trigger:
    """
    Reminder for one rider, due ``lead_time`` before the ride starts.

    Bucketed by start time: repeated scans of the same ride produce the same
    key, a rescheduled ride produces a new one.
    """
    title, message = _render(NotificationType.EVENT_REMINDER, snapshot)
    return Trigger(
        recipient_id=recipient_id,
        notification_type=NotificationType.EVENT_REMINDER,
        title=title,
        message=message,
        send_at=snapshot.start_at - lead_time,
        event=snapshot,
        bucket=_timestamp_bucket(snapshot.start_at),
        data={"lead_minutes": int(lead_time.total_seconds() // 60)},
    )


def build_event_updated_trigger(
    snapshot: EventSnapshot,
    recipient_id: int,
    changed_fields: Iterable[str],
    occurred_at: datetime,
) -> Trigger:
    """Alert one rider that the ride's details changed."""
    changed_fields = list(changed_fields)
    changes = ", ".join(
        CHANGED_FIELD_LABELS.get(name, name.replace("_", " "))
        for name in changed_fields
    )
    title, message = _render(
        NotificationType.EVENT_UPDATED, snapshot, changes=changes or "details"
    )
    return Trigger(
        recipient_id=recipient_id,
        notification_type=NotificationType.EVENT_UPDATED,
        title=title,
        message=message,
        send_at=occurred_at,
        event=snapshot,
        bucket=_timestamp_bucket(occurred_at),
        data={"changed_fields": changed_fields},
    )


def build_event_cancelled_trigger(
    snapshot: EventSnapshot,
    recipient_id: int,
    occurred_at: datetime,
) -> Trigger:
    """Alert one rider that the ride is cancelled (or deleted)."""
    title, message = _render(NotificationType.EVENT_CANCELLED, snapshot)
    return Trigger(
        recipient_id=recipient_id,
        notification_type=NotificationType.EVENT_CANCELLED,
        title=title,
        message=message,
        send_at=occurred_at,
        event=snapshot,
        bucket=CANCELLED_BUCKET,
    )


def build_participant_joined_trigger(
    snapshot: EventSnapshot,
    organizer_id: int,
    participant_id: int,
    participant_name: str,
    occurred_at: datetime,
) -> Trigger:
    """Tell the organizer a rider is now going."""
    return _build_participant_trigger(
        NotificationType.NEW_PARTICIPANT,
        snapshot,
        organizer_id,
        participant_id,
        participant_name,
        occurred_at,
    )


def build_participant_left_trigger(
    snapshot: EventSnapshot,
    organizer_id: int,
    participant_id: int,
    participant_name: str,
    occurred_at: datetime,
) -> Trigger:
    """Tell the organizer a rider is no longer going."""
    return _build_participant_trigger(
        NotificationType.PARTICIPANT_LEFT,
        snapshot,
        organizer_id,
        participant_id,
        participant_name,
        occurred_at,
    )


def _build_participant_trigger(
    notification_type: str,
    snapshot: EventSnapshot,
    organizer_id: int,
    participant_id: int,
    participant_name: str,
    occurred_at: datetime,
) -> Trigger:
    title, message = _render(
        notification_type, snapshot, participant_name=participant_name
    )
    return Trigger(
        recipient_id=organizer_id,
        notification_type=notification_type,
        title=title,
        message=message,
        send_at=occurred_at,
        event=snapshot,
        bucket=f"{participant_id}:{_timestamp_bucket(occurred_at)}",
        data={
            "participant_id": participant_id,
            "participant_name": participant_name,
        },
    )
