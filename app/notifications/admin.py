"""
Django admin configuration for notification models.

Notifications are written only by NotificationWriter, so the admin is a
read-only view for debugging and support.
"""

from django.contrib import admin

from notifications.models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    """
    Admin configuration for Notification.

    Provides read-only view of notifications for debugging and support.
    """

    list_display = [
        "id",
        "notification_type",
        "recipient",
        "title",
        "event_id",
        "is_read",
        "send_at",
        "sent_at",
        "created_at",
    ]
    list_filter = ["is_read", "notification_type", "created_at"]
    search_fields = ["title", "recipient__email", "dedupe_key", "event_title"]
    ordering = ["-created_at"]
    readonly_fields = [
        "notification_type",
        "recipient",
        "title",
        "message",
        "data",
        "event_id",
        "event_title",
        "event_start_at",
        "event_location",
        "event_organizer_name",
        "is_read",
        "send_at",
        "sent_at",
        "dedupe_key",
        "created_at",
        "updated_at",
    ]
    raw_id_fields = ["recipient"]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
