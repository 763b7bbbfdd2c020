"""
Events application.

Group rides and the RSVPs riders leave on them. This app owns the ride and
RSVP rules; every state change that should notify someone is handed to
notifications.handlers once the surrounding transaction commits.

Usage:
    from events.models import Event, Rsvp
    from events.services import EventService
"""
