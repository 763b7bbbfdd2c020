"""
Celery tasks for reminder scheduling and delivery bookkeeping.

Tasks:
    process_notifications: Periodic entry point (scan, then pending sweep)
    scan_event_reminders: Create reminders that became due
    mark_pending_notifications_sent: Mark due, still-pending rows as sent
    retry_notification_trigger: Re-attempt a write that hit a storage outage

Design:
    - The scanner keeps no state between runs. Each run covers every ride
      that has not started yet and whose reminder is due, so reminders
      missed during downtime, or for rides created or moved inside the lead
      time, are still created (late) on the next run
    - Repeated or overlapping runs are safe: the dedupe key unique
      constraint makes every reminder write idempotent
    - A failed reminder write is counted and left to the next run
    - Work per run is capped at NOTIFICATION_SCAN_BATCH_SIZE rides

Usage:
    # Scheduled every NOTIFICATION_SCAN_INTERVAL_MINUTES by celery-beat
    # (see migrations/0002_add_reminder_scan_schedule.py), or manually:
    from notifications.tasks import process_notifications
    process_notifications.delay()

    # In-process, e.g. from a test or management command:
    report = ReminderScanner().run(now=timezone.now())
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

from celery import shared_task
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.utils import timezone

from notifications import roster
from notifications.exceptions import InvalidTriggerError, StorageUnavailableError
from notifications.services import DeliveryMarker, NotificationWriter
from notifications.triggers import EventSnapshot, Trigger, build_reminder_trigger

if TYPE_CHECKING:
    from datetime import datetime

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# RSVP statuses whose holders get ride reminders
REMINDER_RSVP_STATUSES = ("going", "maybe")


# =============================================================================
# Reminder Scanner
# =============================================================================


@dataclass(frozen=True)
class ReminderSchedule:
    """
    Reminder timing configuration.

    Attributes:
        lead_time: How long before the ride a reminder is due
        scan_interval: How often the scan runs
        batch_size: Maximum rides handled per run
        remind_organizer: Also remind the organizer, RSVP or not
    """

    lead_time: timedelta = timedelta(hours=24)
    scan_interval: timedelta = timedelta(minutes=10)
    batch_size: int = 200
    remind_organizer: bool = False

    def __post_init__(self):
        if self.lead_time <= timedelta(0):
            raise ImproperlyConfigured("Reminder lead time must be positive")
        if self.lead_time < self.scan_interval:
            raise ImproperlyConfigured(
                "NOTIFICATION_REMINDER_LEAD_HOURS must cover at least one "
                "NOTIFICATION_SCAN_INTERVAL_MINUTES, otherwise reminders can "
                "fall between two runs"
            )
        if self.batch_size < 1:
            raise ImproperlyConfigured("NOTIFICATION_SCAN_BATCH_SIZE must be >= 1")

    @classmethod
    def from_settings(cls) -> ReminderSchedule:
        """Build the schedule from the NOTIFICATION_* settings."""
        return cls(
            lead_time=timedelta(hours=settings.NOTIFICATION_REMINDER_LEAD_HOURS),
            scan_interval=timedelta(
                minutes=settings.NOTIFICATION_SCAN_INTERVAL_MINUTES
            ),
            batch_size=settings.NOTIFICATION_SCAN_BATCH_SIZE,
            remind_organizer=settings.NOTIFICATION_REMIND_ORGANIZER,
        )


@dataclass
class ScanReport:
    """Outcome of one scanner run."""

    events_scanned: int = 0
    created: int = 0
    duplicates: int = 0
    failed: int = 0
    invalid: int = 0
    truncated: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


class ReminderScanner:
    """
    Creates ride reminders that are due and not yet written.

    A reminder for a ride starting at S is due from S - lead until the ride
    starts. A run at ``now`` therefore handles every active ride with

        now < start_at <= now + lead

    Consecutive runs overlap almost entirely; the dedupe key absorbs the
    overlap. A ride created or rescheduled inside the lead time, or one whose
    due time passed while the scanner was down, is reminded by the next run.

    Usage:
        report = ReminderScanner(ReminderSchedule.from_settings()).run()
    """

    def __init__(self, schedule: ReminderSchedule | None = None):
        self.schedule = schedule or ReminderSchedule.from_settings()

    def window(self, now: datetime) -> tuple[datetime, datetime]:
        """(exclusive start, inclusive end) of ride start times for this run."""
        return now, now + self.schedule.lead_time

    def run(self, now: datetime | None = None) -> ScanReport:
        """
        Scan once.

        Args:
            now: Reference time (defaults to now)

        Returns:
            ScanReport with per-outcome counts
        """
        now = now or timezone.now()
        window_start, window_end = self.window(now)
        batch_size = self.schedule.batch_size
        report = ScanReport()

        logger.info(
            "Starting reminder scan",
            extra={
                "window_start": window_start.isoformat(),
                "window_end": window_end.isoformat(),
            },
        )

        events = roster.find_events_starting_between(
            window_start, window_end, limit=batch_size + 1
        )
        if len(events) > batch_size:
            report.truncated = True
            events = events[:batch_size]
            logger.warning(
                f"Reminder scan truncated at {batch_size} events; "
                "later rides are picked up once earlier ones start",
                extra={"batch_size": batch_size},
            )

        for event in events:
            report.events_scanned += 1
            self._remind(event, report)

        logger.info(
            f"Reminder scan complete: {report.events_scanned} events, "
            f"{report.created} created, {report.duplicates} duplicate, "
            f"{report.failed} failed",
            extra={"scan": report.to_dict()},
        )
        return report

    def _remind(self, event, report: ScanReport) -> None:
        snapshot = EventSnapshot.from_event(event)
        recipient_ids = roster.get_rsvp_user_ids(
            event.id, statuses=REMINDER_RSVP_STATUSES
        )
        if self.schedule.remind_organizer and event.organizer_id not in recipient_ids:
            recipient_ids.append(event.organizer_id)

        for recipient_id in recipient_ids:
            trigger = build_reminder_trigger(
                snapshot, recipient_id, self.schedule.lead_time
            )
            try:
                result = NotificationWriter.create_if_absent(trigger)
            except StorageUnavailableError as e:
                report.failed += 1
                logger.error(
                    f"Reminder write failed, next scan will retry: {e}",
                    extra={"event_id": event.id, "recipient_id": recipient_id},
                )
                continue

            if result.success:
                report.created += 1
            elif result.error_code == "ALREADY_EXISTS":
                report.duplicates += 1
            else:
                report.invalid += 1


# =============================================================================
# Periodic Tasks
# =============================================================================


@shared_task(bind=True)
def scan_event_reminders(self) -> dict:
    """
    Create every due reminder for rides that have not started yet.

    Returns:
        ScanReport as a dict
    """
    return ReminderScanner().run().to_dict()


@shared_task(bind=True)
def mark_pending_notifications_sent(self) -> dict:
    """
    Mark due notifications that are still pending as sent.

    Returns:
        Dict with marked_count
    """
    return {"marked_count": DeliveryMarker.mark_pending_sent()}


@shared_task(bind=True)
def process_notifications(self) -> dict:
    """
    Periodic entry point: reminder scan followed by the pending sweep.

    Both halves use the same reference time so a reminder created by the
    scan is never left for the sweep.

    Returns:
        ScanReport fields plus marked_count
    """
    now = timezone.now()
    result = ReminderScanner().run(now=now).to_dict()
    result["marked_count"] = DeliveryMarker.mark_pending_sent(now=now)
    return result


# =============================================================================
# Out-of-band Retry
# =============================================================================


@shared_task(
    bind=True,
    autoretry_for=(StorageUnavailableError,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": settings.NOTIFICATION_TRIGGER_MAX_RETRIES},
    acks_late=True,
)
def retry_notification_trigger(self, payload: dict) -> dict:
    """
    Re-attempt a notification write that failed on a storage outage.

    Args:
        payload: Trigger.to_payload() output

    Returns:
        Dict with status: "created", "already_exists" or "invalid"

    Raises:
        StorageUnavailableError: Store still down (triggers Celery retry)
    """
    try:
        trigger = Trigger.from_payload(payload)
    except InvalidTriggerError as e:
        logger.warning(
            f"Dropping corrupt notification retry: {e}",
            extra={"details": e.details},
        )
        return {"status": "invalid", "error": e.message}

    result = NotificationWriter.create_if_absent(trigger)
    if result.success:
        return {"status": "created", "notification_id": result.data.id}
    if result.error_code == "ALREADY_EXISTS":
        return {"status": "already_exists"}
    return {"status": "invalid", "error": result.error}
