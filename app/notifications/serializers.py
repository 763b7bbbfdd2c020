"""
Serializers for notification API.

This module provides DRF serializers for the notification endpoints.

Serializers:
    NotificationEventSerializer: Ride snapshot embedded in a notification
    NotificationSerializer: Read-only serializer for notification details
    UnreadCountSerializer: Response for unread count endpoint
    MarkAllReadResponseSerializer: Response for mark all read endpoint

Usage:
    from notifications.serializers import NotificationSerializer

    live_ids = NotificationService.live_event_ids(notifications)
    serializer = NotificationSerializer(
        notifications, many=True, context={"live_event_ids": live_ids}
    )
    data = serializer.data
"""

from __future__ import annotations

from rest_framework import serializers

from notifications.models import Notification


class NotificationEventSerializer(serializers.Serializer):
    """
    Ride snapshot as stored on the notification.

    Fields:
        event_id: Referenced ride id
        title: Ride title when the notification was created
        start_at: Ride start when the notification was created
        location: Ride start location when the notification was created
        organizer_name: Organizer display name when the notification was created
        is_available: Whether the ride still exists (drives the "view ride" link)
    """

    event_id = serializers.IntegerField()
    title = serializers.CharField()
    start_at = serializers.DateTimeField(allow_null=True)
    location = serializers.CharField()
    organizer_name = serializers.CharField()
    is_available = serializers.BooleanField()


class NotificationSerializer(serializers.ModelSerializer):
    """
    Serializer for Notification model.

    Read-only serializer that includes:
    - Basic notification fields (id, type, title, message, data, is_read)
    - Delivery timestamps (send_at, sent_at, created_at)
    - event: snapshot of the referenced ride, or null

    The serializer expects ``live_event_ids`` (a set of ride ids that still
    exist) in its context. Without it, every ride is reported unavailable.

    Usage:
        serializer = NotificationSerializer(notification, context={...})
        serializer = NotificationSerializer(notifications, many=True, context={...})
    """

    type = serializers.CharField(source="notification_type", read_only=True)
    event = serializers.SerializerMethodField()

    class Meta:
        model = Notification
        fields = [
            "id",
            "type",
            "title",
            "message",
            "data",
            "event",
            "is_read",
            "send_at",
            "sent_at",
            "created_at",
        ]
        read_only_fields = fields

    def get_event(self, obj: Notification) -> dict | None:
        """
        Build the embedded ride snapshot.

        Returns None for notifications that never referenced a ride.
        """
        if not obj.has_event_snapshot:
            return None

        live_event_ids = self.context.get("live_event_ids", set())
        return NotificationEventSerializer(
            {
                "event_id": obj.event_id,
                "title": obj.event_title,
                "start_at": obj.event_start_at,
                "location": obj.event_location,
                "organizer_name": obj.event_organizer_name,
                "is_available": obj.event_id in live_event_ids,
            }
        ).data


class UnreadCountSerializer(serializers.Serializer):
    """
    Response serializer for unread count endpoint.

    Fields:
        unreadCount: Integer count of unread notifications
    """

    unreadCount = serializers.IntegerField()  # noqa: N815


class MarkAllReadResponseSerializer(serializers.Serializer):
    """
    Response serializer for mark all read endpoint.

    Fields:
        marked_count: Integer count of notifications marked as read
    """

    marked_count = serializers.IntegerField()
