"""
Unit tests for the notification store.

Test Classes:
    TestNotificationType: Closed enumeration of kinds
    TestNotificationModel: Field defaults, constraints and ordering
"""

import pytest
from django.db import IntegrityError

from notifications.tests.factories import NotificationFactory


class TestNotificationType:
    """
    Tests for NotificationType choices.

    Verifies:
    - Exactly the five supported kinds exist
    """

    def test_has_five_kinds(self):
        """The enumeration is closed over the supported kinds."""
        from notifications.models import NotificationType

        assert set(NotificationType.values) == {
            "event_reminder",
            "event_updated",
            "event_cancelled",
            "new_participant",
            "participant_left",
        }


@pytest.mark.django_db
class TestNotificationModel:
    """
    Tests for Notification model.

    Verifies:
    - Defaults (unread, empty data)
    - dedupe_key uniqueness at the database level
    - Ride reference is a plain id, not a foreign key
    - Cascade on recipient deletion
    - Newest-first default ordering
    """

    def test_defaults_to_unread(self, user):
        """New notifications are unread with an empty data payload."""
        from notifications.models import Notification, NotificationType
        from django.utils import timezone

        notification = Notification.objects.create(
            recipient=user,
            notification_type=NotificationType.EVENT_REMINDER,
            title="Ride Reminder: Saturday Ride",
            send_at=timezone.now(),
            dedupe_key="event_reminder:1:1:x",
        )

        assert notification.is_read is False
        assert notification.sent_at is None
        assert notification.data == {}

    def test_dedupe_key_is_unique(self, user):
        """A second row with the same dedupe key is rejected by the database."""
        NotificationFactory(recipient=user, dedupe_key="same-key")

        with pytest.raises(IntegrityError):
            NotificationFactory(recipient=user, dedupe_key="same-key")

    def test_event_id_survives_ride_deletion(self, user, event):
        """Deleting a ride leaves notifications and their snapshot intact."""
        from notifications.models import Notification

        notification = NotificationFactory(
            recipient=user, event_id=event.id, event_title="Saturday Ride"
        )
        event_id = event.id
        event.delete()

        notification = Notification.objects.get(pk=notification.pk)
        assert notification.event_id == event_id
        assert notification.event_title == "Saturday Ride"

    def test_deleted_recipient_cascades(self, user):
        """Notifications are removed with their recipient."""
        from notifications.models import Notification

        NotificationFactory.create_batch(2, recipient=user)
        user.delete()

        assert Notification.objects.count() == 0

    def test_ordering_newest_first(self, user):
        """Default ordering is newest first."""
        from notifications.models import Notification

        first = NotificationFactory(recipient=user)
        second = NotificationFactory(recipient=user)

        assert list(Notification.objects.filter(recipient=user)) == [second, first]

    def test_has_event_snapshot(self, user):
        """has_event_snapshot reflects whether a ride id is stored."""
        assert NotificationFactory(recipient=user).has_event_snapshot is True
        assert NotificationFactory(recipient=user, event_id=None).has_event_snapshot is False

    def test_str(self, user):
        """String representation shows type, recipient and read state."""
        notification = NotificationFactory(recipient=user)

        assert str(notification) == (
            f"Notification(event_reminder) -> User {user.id} [unread]"
        )
