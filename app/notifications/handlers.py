"""
Trigger emitter: business events in, notification writes out.

The events app calls these functions (after its transaction commits) when
something happened that should notify someone. Each call picks recipients
by role, builds one trigger per recipient and hands each to
NotificationWriter independently.

Recipient rules:
    on_event_updated      everyone with an RSVP (any status) except the organizer
    on_event_cancelled    everyone with an RSVP (any status) except the organizer
    on_participant_joined the organizer only (never when the organizer joins)
    on_participant_left   the organizer only (never when the organizer leaves)

Failure policy:
    - A dedupe hit counts as a duplicate, not a failure
    - An invalid trigger is logged and dropped
    - StorageUnavailableError for one recipient is logged, the trigger is
      handed to the retry_notification_trigger task, and the remaining
      recipients are still attempted
    - Nothing raises into the caller; unexpected errors are logged and
      reported as an aborted EmitReport

Related files:
    - events/services.py: Calls these functions via transaction.on_commit
    - roster.py: Ride and RSVP lookups
    - tasks.py: Retry task for storage outages

Usage:
    from notifications import handlers

    report = handlers.on_event_cancelled(event.id)
    report.created  # rows written by this call
"""

from __future__ import annotations

import functools
import logging
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING

from django.utils import timezone

from notifications import roster, tasks
from notifications.exceptions import StorageUnavailableError
from notifications.services import NotificationWriter
from notifications.triggers import (
    build_event_cancelled_trigger,
    build_event_updated_trigger,
    build_participant_joined_trigger,
    build_participant_left_trigger,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from datetime import datetime

    from notifications.triggers import EventSnapshot, Trigger

logger = logging.getLogger(__name__)


@dataclass
class EmitReport:
    """
    Outcome of one emitter call.

    Attributes:
        created: Notifications written
        duplicates: Triggers that already had a notification
        failed: Writes that hit a storage outage (handed to the retry task)
        invalid: Triggers dropped as malformed
        aborted: The call stopped on an unexpected error
    """

    created: int = 0
    duplicates: int = 0
    failed: int = 0
    invalid: int = 0
    aborted: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


def _never_raises(func: Callable[..., EmitReport]) -> Callable[..., EmitReport]:
    """Log and absorb any error so the calling business operation is unaffected."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> EmitReport:
        try:
            return func(*args, **kwargs)
        except Exception:
            logger.exception(
                f"Notification emitter {func.__name__} failed",
                extra={"emitter_args": repr(args)},
            )
            return EmitReport(aborted=True)

    return wrapper


def _enqueue_retry(trigger: Trigger) -> None:
    """Hand a failed write to Celery; a broker outage is logged and dropped."""
    try:
        tasks.retry_notification_trigger.delay(trigger.to_payload())
    except Exception as e:
        logger.error(
            f"Failed to queue notification retry: {e}",
            extra={"dedupe_key": trigger.dedupe_key},
        )


def _emit(triggers: Iterable[Trigger]) -> EmitReport:
    """Write each trigger independently and tally the outcomes."""
    report = EmitReport()

    for trigger in triggers:
        try:
            result = NotificationWriter.create_if_absent(trigger)
        except StorageUnavailableError as e:
            report.failed += 1
            logger.error(
                f"Notification write failed, queuing retry: {e}",
                extra={
                    "dedupe_key": trigger.dedupe_key,
                    "recipient_id": trigger.recipient_id,
                },
            )
            _enqueue_retry(trigger)
            continue

        if result.success:
            report.created += 1
        elif result.error_code == "ALREADY_EXISTS":
            report.duplicates += 1
        else:
            report.invalid += 1

    return report


def _missing_event(event_id: int, action: str) -> EmitReport:
    logger.warning(
        f"Ignoring {action} for unknown event {event_id}",
        extra={"event_id": event_id},
    )
    return EmitReport(invalid=1)


def _log_report(action: str, event_id: int, report: EmitReport) -> EmitReport:
    logger.info(
        f"{action} notifications for event {event_id}: "
        f"{report.created} created, {report.duplicates} duplicate, "
        f"{report.failed} failed, {report.invalid} invalid",
        extra={"event_id": event_id, "emit": report.to_dict()},
    )
    return report


# =============================================================================
# Ride Lifecycle
# =============================================================================


@_never_raises
def on_event_updated(
    event_id: int,
    changed_fields: Iterable[str],
    occurred_at: datetime | None = None,
) -> EmitReport:
    """
    Notify RSVP holders that a ride's details changed.

    Args:
        event_id: Ride that changed
        changed_fields: Names of the edited fields
        occurred_at: When the edit happened (defaults to now); distinct
            edits notify again, a replayed edit does not
    """
    occurred_at = occurred_at or timezone.now()
    snapshot = roster.get_event_snapshot(event_id)
    if snapshot is None:
        return _missing_event(event_id, "update")

    organizer_id = roster.get_event_organizer_id(event_id)
    recipient_ids = roster.get_rsvp_user_ids(event_id, exclude_user_ids=(organizer_id,))
    changed_fields = list(changed_fields)

    report = _emit(
        build_event_updated_trigger(snapshot, recipient_id, changed_fields, occurred_at)
        for recipient_id in recipient_ids
    )
    return _log_report("Update", event_id, report)


@_never_raises
def on_event_cancelled(
    event_id: int,
    occurred_at: datetime | None = None,
    snapshot: EventSnapshot | None = None,
    recipient_ids: Iterable[int] | None = None,
) -> EmitReport:
    """
    Notify RSVP holders that a ride is cancelled.

    When the ride is being deleted the caller captures ``snapshot`` and
    ``recipient_ids`` beforehand, because neither can be looked up once the
    row is gone.

    Args:
        event_id: Ride that was cancelled or deleted
        occurred_at: When it happened (defaults to now)
        snapshot: Ride snapshot taken before deletion
        recipient_ids: Recipients computed before deletion
    """
    occurred_at = occurred_at or timezone.now()
    if snapshot is None:
        snapshot = roster.get_event_snapshot(event_id)
        if snapshot is None:
            return _missing_event(event_id, "cancellation")

    if recipient_ids is None:
        organizer_id = roster.get_event_organizer_id(event_id)
        recipient_ids = roster.get_rsvp_user_ids(
            event_id, exclude_user_ids=(organizer_id,)
        )

    report = _emit(
        build_event_cancelled_trigger(snapshot, recipient_id, occurred_at)
        for recipient_id in recipient_ids
    )
    return _log_report("Cancellation", event_id, report)


# =============================================================================
# Participants
# =============================================================================


@_never_raises
def on_participant_joined(
    event_id: int,
    user_id: int,
    occurred_at: datetime | None = None,
) -> EmitReport:
    """Tell the organizer that ``user_id`` is now going."""
    return _notify_organizer(
        event_id, user_id, occurred_at, build_participant_joined_trigger, "Join"
    )


@_never_raises
def on_participant_left(
    event_id: int,
    user_id: int,
    occurred_at: datetime | None = None,
) -> EmitReport:
    """Tell the organizer that ``user_id`` is no longer going."""
    return _notify_organizer(
        event_id, user_id, occurred_at, build_participant_left_trigger, "Leave"
    )


def _notify_organizer(
    event_id: int,
    user_id: int,
    occurred_at: datetime | None,
    builder: Callable[..., Trigger],
    action: str,
) -> EmitReport:
    occurred_at = occurred_at or timezone.now()
    snapshot = roster.get_event_snapshot(event_id)
    if snapshot is None:
        return _missing_event(event_id, action.lower())

    organizer_id = roster.get_event_organizer_id(event_id)
    if organizer_id == user_id:
        logger.debug(f"Organizer RSVP on own event {event_id}, not notifying")
        return EmitReport()

    participant_name = roster.get_user_display_name(user_id)
    report = _emit(
        [builder(snapshot, organizer_id, user_id, participant_name, occurred_at)]
    )
    return _log_report(action, event_id, report)

