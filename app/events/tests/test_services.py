"""
Tests for EventService.

Notification entry points are patched (see ``mock_handlers``); these tests
check which of them the service schedules, with what arguments, and that
nothing is scheduled before the business transaction commits.
"""

from datetime import timedelta

import pytest

from authentication.tests.factories import UserFactory
from events.models import Event, EventStatus, Rsvp, RsvpStatus
from events.tests.factories import EventFactory, RsvpFactory


# =============================================================================
# Ride Edits
# =============================================================================


@pytest.mark.django_db
class TestUpdateEvent:
    """
    Tests for EventService.update_event.

    Verifies:
    - Only the organizer can edit
    - Only fields that really change are reported
    - The update alert is scheduled after commit
    """

    def test_changed_fields_reported_after_commit(
        self, event, organizer, mock_handlers, django_capture_on_commit_callbacks
    ):
        """Changed fields are passed to on_event_updated once committed."""
        from events.services import EventService

        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            result = EventService.update_event(
                event,
                organizer,
                title=event.title,
                start_location="Town Square",
                start_at=event.start_at + timedelta(hours=1),
            )

        assert result.success
        assert len(callbacks) == 1
        mock_handlers["on_event_updated"].assert_called_once_with(
            event.id,
            ["start_at", "start_location"],
            occurred_at=result.data.updated_at,
        )
        event.refresh_from_db()
        assert event.start_location == "Town Square"

    def test_no_change_schedules_nothing(
        self, event, organizer, mock_handlers, django_capture_on_commit_callbacks
    ):
        """Re-submitting the same values is a silent success."""
        from events.services import EventService

        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            result = EventService.update_event(event, organizer, title=event.title)

        assert result.success
        assert callbacks == []
        mock_handlers["on_event_updated"].assert_not_called()

    def test_non_organizer_forbidden(self, event, rider, mock_handlers):
        """Only the organizer may edit."""
        from events.services import EventService

        result = EventService.update_event(event, rider, title="Hijacked")

        assert not result.success
        assert result.error_code == "FORBIDDEN"
        mock_handlers["on_event_updated"].assert_not_called()

    def test_unknown_field_rejected(self, event, organizer):
        """Fields outside EDITABLE_FIELDS are a validation error."""
        from events.services import EventService

        result = EventService.update_event(event, organizer, status="completed")

        assert result.error_code == "VALIDATION_ERROR"
        assert "status" in result.errors

    def test_cancelled_event_not_editable(self, organizer):
        """Cancelled rides cannot be edited."""
        from events.services import EventService

        event = EventFactory(organizer=organizer, status=EventStatus.CANCELLED)
        result = EventService.update_event(event, organizer, title="New title")

        assert result.error_code == "EVENT_NOT_ACTIVE"


# =============================================================================
# Cancellation and Deletion
# =============================================================================


@pytest.mark.django_db
class TestCancelAndDeleteEvent:
    """
    Tests for EventService.cancel_event and delete_event.

    Verifies:
    - Cancellation is scheduled after commit
    - Deletion captures the snapshot and recipients before the row is gone
    """

    def test_cancel_schedules_cancellation(
        self, event, organizer, mock_handlers, django_capture_on_commit_callbacks
    ):
        """Cancelling calls on_event_cancelled with the change time."""
        from events.services import EventService

        with django_capture_on_commit_callbacks(execute=True):
            result = EventService.cancel_event(event, organizer)

        assert result.success
        assert result.data.status == EventStatus.CANCELLED
        mock_handlers["on_event_cancelled"].assert_called_once_with(
            event.id, occurred_at=result.data.updated_at
        )

    def test_cancel_twice_rejected(self, event, organizer, mock_handlers):
        """A cancelled ride cannot be cancelled again."""
        from events.services import EventService

        EventService.cancel_event(event, organizer)
        result = EventService.cancel_event(event, organizer)

        assert result.error_code == "ALREADY_CANCELLED"

    def test_cancel_by_non_organizer_forbidden(self, event, rider):
        """Only the organizer may cancel."""
        from events.services import EventService

        result = EventService.cancel_event(event, rider)

        assert result.error_code == "FORBIDDEN"
        event.refresh_from_db()
        assert event.status == EventStatus.ACTIVE

    def test_delete_passes_captured_roster(
        self,
        event,
        organizer,
        going_rsvp,
        mock_handlers,
        django_capture_on_commit_callbacks,
    ):
        """The deleted ride's snapshot and RSVP holders reach the emitter."""
        from events.services import EventService

        maybe = RsvpFactory(event=event, status=RsvpStatus.MAYBE)
        event_id = event.id

        with django_capture_on_commit_callbacks(execute=True):
            result = EventService.delete_event(event, organizer)

        assert result.success
        assert not Event.objects.filter(id=event_id).exists()

        call = mock_handlers["on_event_cancelled"].call_args
        assert call.args == (event_id,)
        assert call.kwargs["snapshot"].title == "Saturday Ride"
        assert set(call.kwargs["recipient_ids"]) == {going_rsvp.user_id, maybe.user_id}


# =============================================================================
# RSVPs
# =============================================================================


@pytest.mark.django_db
class TestRsvpTransitions:
    """
    Tests for EventService.set_rsvp and remove_rsvp.

    Verifies:
    - Joining (into going) and leaving (out of going) notify the organizer
    - Other transitions are silent
    """

    def test_new_going_rsvp_notifies_join(
        self, event, rider, mock_handlers, django_capture_on_commit_callbacks
    ):
        """A first-time going RSVP is a join."""
        from events.services import EventService

        with django_capture_on_commit_callbacks(execute=True):
            result = EventService.set_rsvp(event, rider, RsvpStatus.GOING)

        mock_handlers["on_participant_joined"].assert_called_once_with(
            event.id, rider.id, occurred_at=result.data.updated_at
        )
        mock_handlers["on_participant_left"].assert_not_called()

    def test_maybe_to_going_notifies_join(
        self, event, rider, mock_handlers, django_capture_on_commit_callbacks
    ):
        """Upgrading maybe to going is a join."""
        from events.services import EventService

        RsvpFactory(event=event, user=rider, status=RsvpStatus.MAYBE)

        with django_capture_on_commit_callbacks(execute=True):
            EventService.set_rsvp(event, rider, RsvpStatus.GOING)

        assert mock_handlers["on_participant_joined"].call_count == 1

    def test_going_to_not_going_notifies_leave(
        self,
        event,
        rider,
        going_rsvp,
        mock_handlers,
        django_capture_on_commit_callbacks,
    ):
        """Dropping out of going is a leave."""
        from events.services import EventService

        with django_capture_on_commit_callbacks(execute=True):
            EventService.set_rsvp(event, rider, RsvpStatus.NOT_GOING)

        mock_handlers["on_participant_left"].assert_called_once()
        mock_handlers["on_participant_joined"].assert_not_called()
        assert Rsvp.objects.get(event=event, user=rider).status == RsvpStatus.NOT_GOING

    def test_new_maybe_rsvp_is_silent(
        self, event, rider, mock_handlers, django_capture_on_commit_callbacks
    ):
        """A maybe RSVP neither joins nor leaves."""
        from events.services import EventService

        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            EventService.set_rsvp(event, rider, RsvpStatus.MAYBE)

        assert callbacks == []

    def test_going_again_is_silent(
        self,
        event,
        rider,
        going_rsvp,
        mock_handlers,
        django_capture_on_commit_callbacks,
    ):
        """Re-submitting going (e.g. to edit the message) is not a new join."""
        from events.services import EventService

        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            EventService.set_rsvp(event, rider, RsvpStatus.GOING, message="Bringing snacks")

        assert callbacks == []

    def test_invalid_status_rejected(self, event, rider):
        """Unknown RSVP statuses fail validation."""
        from events.services import EventService

        result = EventService.set_rsvp(event, rider, "perhaps")

        assert result.error_code == "VALIDATION_ERROR"

    def test_rsvp_on_cancelled_ride_rejected(self, rider):
        """Cancelled rides take no RSVPs."""
        from events.services import EventService

        event = EventFactory(status=EventStatus.CANCELLED)
        result = EventService.set_rsvp(event, rider, RsvpStatus.GOING)

        assert result.error_code == "EVENT_NOT_ACTIVE"

    def test_remove_going_rsvp_notifies_leave(
        self,
        event,
        rider,
        going_rsvp,
        mock_handlers,
        django_capture_on_commit_callbacks,
    ):
        """Withdrawing a going RSVP is a leave."""
        from events.services import EventService

        with django_capture_on_commit_callbacks(execute=True):
            result = EventService.remove_rsvp(event, rider)

        assert result.success
        assert not Rsvp.objects.filter(event=event, user=rider).exists()
        assert mock_handlers["on_participant_left"].call_args.args == (event.id, rider.id)

    def test_remove_maybe_rsvp_is_silent(
        self, event, mock_handlers, django_capture_on_commit_callbacks
    ):
        """Withdrawing a maybe RSVP notifies nobody."""
        from events.services import EventService

        user = UserFactory()
        RsvpFactory(event=event, user=user, status=RsvpStatus.MAYBE)

        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            EventService.remove_rsvp(event, user)

        assert callbacks == []

    def test_remove_missing_rsvp_not_found(self, event, rider):
        """Removing a non-existent RSVP fails with NOT_FOUND."""
        from events.services import EventService

        result = EventService.remove_rsvp(event, rider)

        assert result.error_code == "NOT_FOUND"
