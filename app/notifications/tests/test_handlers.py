"""
Tests for the trigger emitter.

Test Classes:
    TestOnEventUpdated: Fan-out to RSVP holders on ride edits
    TestOnEventCancelled: Fan-out on cancellation and deletion
    TestParticipantHandlers: Organizer-only join/leave notifications
    TestEmitterFailures: Partial failure, retries and never raising
"""

from datetime import timedelta

import pytest
from django.utils import timezone

from authentication.tests.factories import UserFactory
from events.models import RsvpStatus
from events.tests.factories import RsvpFactory


@pytest.fixture
def mock_retry(mocker):
    """Patch the retry task so no broker is needed."""
    return mocker.patch("notifications.tasks.retry_notification_trigger.delay")


@pytest.mark.django_db
class TestOnEventUpdated:
    """
    Tests for handlers.on_event_updated().

    Verifies:
    - Every RSVP holder (any status) is notified, the organizer never
    - Replaying the same edit creates nothing new
    - A later edit notifies again
    """

    def test_notifies_rsvp_holders_not_organizer(self, event, riders, organizer):
        """All five RSVP holders are notified; the organizer is not."""
        from notifications import handlers
        from notifications.models import Notification, NotificationType

        RsvpFactory(event=event, user=organizer, status=RsvpStatus.GOING)

        report = handlers.on_event_updated(event.id, ["start_location"])

        assert report.created == 5
        assert report.aborted is False
        notified = set(
            Notification.objects.filter(
                notification_type=NotificationType.EVENT_UPDATED
            ).values_list("recipient_id", flat=True)
        )
        expected = {u.id for group in riders.values() for u in group}
        assert notified == expected
        assert organizer.id not in notified

    def test_replayed_edit_dedupes(self, event, riders):
        """Calling twice for the same edit leaves one row per rider."""
        from notifications import handlers
        from notifications.models import Notification

        occurred_at = timezone.now()
        handlers.on_event_updated(event.id, ["title"], occurred_at=occurred_at)
        report = handlers.on_event_updated(event.id, ["title"], occurred_at=occurred_at)

        assert report.created == 0
        assert report.duplicates == 5
        assert Notification.objects.count() == 5

    def test_later_edit_notifies_again(self, event, riders):
        """A second, distinct edit creates a second round."""
        from notifications import handlers
        from notifications.models import Notification

        occurred_at = timezone.now()
        handlers.on_event_updated(event.id, ["title"], occurred_at=occurred_at)
        handlers.on_event_updated(
            event.id, ["start_at"], occurred_at=occurred_at + timedelta(minutes=1)
        )

        assert Notification.objects.count() == 10

    def test_unknown_event_is_invalid(self, db):
        """An unknown ride id is dropped without raising."""
        from notifications import handlers

        report = handlers.on_event_updated(424242, ["title"])

        assert report.invalid == 1
        assert report.created == 0


@pytest.mark.django_db
class TestOnEventCancelled:
    """
    Tests for handlers.on_event_cancelled().

    Verifies:
    - 5 going + 1 maybe, organizer excluded -> exactly 6 notifications
    - Cancelling twice notifies once
    - Deleted rides use the caller's snapshot and recipients
    """

    def test_six_riders_notified(self, event, organizer):
        """Exactly one cancellation per RSVP holder, none for the organizer."""
        from notifications import handlers
        from notifications.models import Notification, NotificationType

        for _ in range(5):
            RsvpFactory(event=event, status=RsvpStatus.GOING)
        RsvpFactory(event=event, status=RsvpStatus.MAYBE)
        RsvpFactory(event=event, user=organizer, status=RsvpStatus.GOING)

        report = handlers.on_event_cancelled(event.id)

        cancellations = Notification.objects.filter(
            notification_type=NotificationType.EVENT_CANCELLED
        )
        assert report.created == 6
        assert report.aborted is False
        assert cancellations.count() == 6
        assert not cancellations.filter(recipient=organizer).exists()

    def test_cancelling_twice_notifies_once(self, event, riders):
        """Cancellation is terminal; a repeat is a duplicate."""
        from notifications import handlers

        handlers.on_event_cancelled(event.id)
        report = handlers.on_event_cancelled(event.id)

        assert report.created == 0
        assert report.duplicates == 5

    def test_deleted_ride_uses_captured_snapshot(self, event, riders):
        """Snapshot and recipients captured before deletion are used."""
        from notifications import handlers, roster
        from notifications.models import Notification

        snapshot = roster.get_event_snapshot(event.id)
        recipient_ids = roster.get_rsvp_user_ids(
            event.id, exclude_user_ids=(event.organizer_id,)
        )
        event_id = event.id
        event.delete()

        report = handlers.on_event_cancelled(
            event_id, snapshot=snapshot, recipient_ids=recipient_ids
        )

        assert report.created == 5
        assert set(
            Notification.objects.values_list("event_title", flat=True)
        ) == {"Saturday Ride"}


@pytest.mark.django_db
class TestParticipantHandlers:
    """
    Tests for on_participant_joined() / on_participant_left().

    Verifies:
    - Only the organizer is notified
    - The organizer joining their own ride notifies nobody
    - The participant's name appears in the message
    """

    def test_join_notifies_only_organizer(self, event, riders, organizer):
        """Other participants are not told about a new rider."""
        from notifications import handlers
        from notifications.models import Notification, NotificationType

        newcomer = UserFactory(first_name="Nina", last_name="New")
        RsvpFactory(event=event, user=newcomer, status=RsvpStatus.GOING)

        report = handlers.on_participant_joined(event.id, newcomer.id)

        assert report.created == 1
        assert report.aborted is False
        notification = Notification.objects.get()
        assert notification.recipient_id == organizer.id
        assert notification.notification_type == NotificationType.NEW_PARTICIPANT
        assert "Nina New" in notification.message
        assert notification.data["participant_id"] == newcomer.id

    def test_leave_notifies_organizer(self, event, organizer, user):
        """Leaving notifies the organizer."""
        from notifications import handlers
        from notifications.models import Notification, NotificationType

        report = handlers.on_participant_left(event.id, user.id)

        assert report.created == 1
        notification = Notification.objects.get()
        assert notification.recipient_id == organizer.id
        assert notification.notification_type == NotificationType.PARTICIPANT_LEFT
        assert "Ria Rider" in notification.message

    def test_organizer_own_rsvp_is_silent(self, event, organizer):
        """The organizer never notifies themself."""
        from notifications import handlers
        from notifications.models import Notification

        report = handlers.on_participant_joined(event.id, organizer.id)

        assert report.created == 0
        assert Notification.objects.count() == 0

    def test_rejoin_notifies_again(self, event, user):
        """Join, leave and join again at different times are three notifications."""
        from notifications import handlers
        from notifications.models import Notification

        now = timezone.now()
        handlers.on_participant_joined(event.id, user.id, occurred_at=now)
        handlers.on_participant_left(
            event.id, user.id, occurred_at=now + timedelta(minutes=1)
        )
        handlers.on_participant_joined(
            event.id, user.id, occurred_at=now + timedelta(minutes=2)
        )

        assert Notification.objects.count() == 3


@pytest.mark.django_db
class TestEmitterFailures:
    """
    Tests for emitter failure handling.

    Verifies:
    - A storage outage for one recipient does not stop the others
    - Failed writes are handed to the retry task
    - Unexpected errors are absorbed and reported as aborted
    - A successful fan-out is logged with its report and not aborted
    """

    def test_success_is_logged_not_aborted(self, event, riders, caplog):
        """The summary log line carries the report; the call is not aborted."""
        import logging

        from notifications import handlers

        notifications_logger = logging.getLogger("notifications")
        notifications_logger.addHandler(caplog.handler)
        caplog.set_level(logging.INFO, logger="notifications")
        try:
            report = handlers.on_event_cancelled(event.id)
        finally:
            notifications_logger.removeHandler(caplog.handler)

        assert report.aborted is False
        assert report.created == 5
        summaries = [r for r in caplog.records if hasattr(r, "emit")]
        assert len(summaries) == 1
        assert summaries[0].emit == report.to_dict()
        assert summaries[0].event_id == event.id
        assert not [r for r in caplog.records if r.levelno >= logging.ERROR]

    def test_partial_failure_queues_retry(self, event, riders, mocker, mock_retry):
        """One failed write is retried out of band; the rest succeed."""
        from notifications import handlers
        from notifications.exceptions import StorageUnavailableError
        from notifications.models import Notification
        from notifications.services import NotificationWriter

        original = NotificationWriter.create_if_absent
        calls = {"n": 0}

        def flaky(trigger):
            calls["n"] += 1
            if calls["n"] == 2:
                raise StorageUnavailableError("database is locked")
            return original(trigger)

        mocker.patch.object(NotificationWriter, "create_if_absent", side_effect=flaky)

        report = handlers.on_event_cancelled(event.id)

        assert report.created == 4
        assert report.failed == 1
        assert Notification.objects.count() == 4
        mock_retry.assert_called_once()
        payload = mock_retry.call_args.args[0]
        assert payload["notification_type"] == "event_cancelled"

    def test_broker_outage_is_swallowed(self, event, riders, mocker, mock_retry):
        """A failure to enqueue the retry is logged, not raised."""
        from notifications import handlers
        from notifications.exceptions import StorageUnavailableError
        from notifications.services import NotificationWriter

        mocker.patch.object(
            NotificationWriter,
            "create_if_absent",
            side_effect=StorageUnavailableError("down"),
        )
        mock_retry.side_effect = ConnectionError("broker unreachable")

        report = handlers.on_event_cancelled(event.id)

        assert report.failed == 5
        assert report.aborted is False

    def test_unexpected_error_never_raises(self, event, mocker):
        """An unexpected error is absorbed and reported as aborted."""
        from notifications import handlers

        mocker.patch(
            "notifications.roster.get_event_snapshot",
            side_effect=RuntimeError("boom"),
        )

        report = handlers.on_event_updated(event.id, ["title"])

        assert report.aborted is True
