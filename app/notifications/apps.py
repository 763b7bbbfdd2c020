"""Django app configuration for notifications."""

from django.apps import AppConfig


class NotificationsConfig(AppConfig):
    """
    Configuration for the notifications app.

    Celery discovers notifications.tasks through config.celery; the
    periodic schedule is stored by django-celery-beat (see migrations).
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "notifications"
    verbose_name = "Ride Notifications"
