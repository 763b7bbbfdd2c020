"""
Factory Boy factories for notification models.

Usage:
    from notifications.tests.factories import NotificationFactory

    # An unread, already-sent ride reminder
    notification = NotificationFactory(recipient=user)

    # A read notification about a specific ride
    notification = NotificationFactory(recipient=user, event_id=ride.id, is_read=True)

    # A pending (not yet sent) notification
    notification = NotificationFactory(recipient=user, sent_at=None)
"""

from datetime import timedelta

import factory
from django.utils import timezone

from authentication.tests.factories import UserFactory
from notifications.models import Notification, NotificationType


class NotificationFactory(factory.django.DjangoModelFactory):
    """
    Factory for Notification model.

    Creates unread ride reminders that are already marked sent, with a
    unique dedupe key and a snapshot of a ride that does not exist (use
    ``event_id=ride.id`` to point at a real one).

    Examples:
        notification = NotificationFactory()
        updated = NotificationFactory(notification_type=NotificationType.EVENT_UPDATED)
        without_ride = NotificationFactory(event_id=None)
    """

    class Meta:
        model = Notification

    recipient = factory.SubFactory(UserFactory)
    notification_type = NotificationType.EVENT_REMINDER
    title = factory.Sequence(lambda n: f"Ride Reminder: Group Ride {n}")
    message = "Don't forget about the ride tomorrow!"
    data = factory.LazyFunction(dict)
    event_id = factory.Sequence(lambda n: 100_000 + n)
    event_title = factory.Sequence(lambda n: f"Group Ride {n}")
    event_start_at = factory.LazyFunction(lambda: timezone.now() + timedelta(days=1))
    event_location = "Main Street Bike Shop"
    event_organizer_name = "Olive Organizer"
    is_read = False
    send_at = factory.LazyFunction(timezone.now)
    sent_at = factory.LazyFunction(timezone.now)
    dedupe_key = factory.Sequence(lambda n: f"test:{n}")
