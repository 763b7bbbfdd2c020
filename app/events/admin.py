"""
Django admin configuration for ride models.

Edits made here bypass EventService, so they do not notify riders.
"""

from django.contrib import admin

from events.models import Event, Rsvp


class RsvpInline(admin.TabularInline):
    """Inline RSVP list on the ride page."""

    model = Rsvp
    extra = 0
    fields = ("user", "status", "message", "updated_at")
    readonly_fields = ("updated_at",)
    raw_id_fields = ("user",)


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    """Admin configuration for Event model."""

    list_display = ("title", "organizer", "start_at", "start_location", "status")
    list_filter = ("status", "start_at")
    search_fields = ("title", "start_location", "organizer__email")
    raw_id_fields = ("organizer",)
    readonly_fields = ("created_at", "updated_at")
    date_hierarchy = "start_at"
    inlines = [RsvpInline]


@admin.register(Rsvp)
class RsvpAdmin(admin.ModelAdmin):
    """Admin configuration for Rsvp model."""

    list_display = ("event", "user", "status", "updated_at")
    list_filter = ("status",)
    search_fields = ("event__title", "user__email")
    raw_id_fields = ("event", "user")
    readonly_fields = ("created_at", "updated_at")
