"""
Django app configuration for events.
"""

from django.apps import AppConfig


class EventsConfig(AppConfig):
    """Configuration for the events application (rides and RSVPs)."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "events"
    verbose_name = "Events"
