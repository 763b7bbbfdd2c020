"""
Notifications app for ride reminders and ride activity notifications.

This app provides:
- Notification model: one row per (recipient, ride, type, occurrence),
  deduplicated by a unique dedupe key
- NotificationWriter: the single idempotent write path
- handlers: entry points the events app calls when a ride changes
- ReminderScanner and Celery tasks: periodic reminder creation
- REST API for listing notifications and managing read state

Usage:
    from notifications import handlers

    # After a ride was edited
    handlers.on_event_updated(event.id, ["start_at"])

    # Read side
    from notifications.services import NotificationService

    count = NotificationService.unread_count(user)
"""
