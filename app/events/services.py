"""
Ride and RSVP service layer.

Services:
    EventService: Ride edits, cancellation, deletion and RSVP changes

Notification hand-off:
    Every change that should notify someone is registered with
    ``transaction.on_commit``. The notification call runs only after the
    business change is durable, and nothing it does can roll that change
    back. The emitter itself never raises (see notifications.handlers).

Usage:
    from events.services import EventService

    result = EventService.update_event(ride, request.user, start_location="Café")
    if not result.success:
        return Response(result.to_response(), status=400)

    result = EventService.set_rsvp(ride, request.user, RsvpStatus.GOING)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.db import transaction
from django.utils import timezone

from core.services import BaseService, ServiceResult
from events.models import Event, EventStatus, Rsvp, RsvpStatus
from notifications import handlers as notification_handlers
from notifications import roster

if TYPE_CHECKING:
    from datetime import datetime

    from authentication.models import User

logger = logging.getLogger(__name__)


class EventService(BaseService):
    """
    Service for ride and RSVP operations.

    Methods:
        create_event: Create a ride owned by the organizer
        update_event: Edit ride fields; notifies RSVP'd riders of the changes
        cancel_event: Cancel a ride; notifies RSVP'd riders
        delete_event: Delete a ride; notifies RSVP'd riders it is cancelled
        set_rsvp: Create or change an RSVP; notifies the organizer on join/leave
        remove_rsvp: Withdraw an RSVP; notifies the organizer if the rider was going

    Error codes:
        FORBIDDEN: Actor is not the ride organizer
        EVENT_NOT_ACTIVE: Ride is cancelled or completed
        ALREADY_CANCELLED: Ride was already cancelled
        VALIDATION_ERROR: Unknown field or RSVP status
        NOT_FOUND: No RSVP to remove
    """

    EDITABLE_FIELDS = ("title", "description", "start_at", "start_location")

    @classmethod
    def create_event(
        cls,
        organizer: User,
        title: str,
        start_at: datetime,
        description: str = "",
        start_location: str = "",
    ) -> ServiceResult[Event]:
        """
        Create a new active ride.

        No notification is sent; reminders are picked up by the periodic scan.
        """
        event = Event.objects.create(
            organizer=organizer,
            title=title,
            start_at=start_at,
            description=description,
            start_location=start_location,
        )
        cls.get_logger().info(f"User {organizer.id} created event {event.id}")
        return ServiceResult.success(event)

    @classmethod
    def update_event(cls, event: Event, actor: User, **changes) -> ServiceResult[Event]:
        """
        Apply field edits to a ride.

        Only fields whose value actually changes are saved and reported. An
        edit that changes nothing succeeds without notifying anyone. A change
        of ``start_at`` produces a new reminder on the next scan (the reminder
        dedupe key is bucketed by start time) in addition to the update alert.

        Args:
            event: Ride to edit
            actor: User making the change (must be the organizer)
            **changes: New values for any of EDITABLE_FIELDS

        Returns:
            ServiceResult with the saved Event
        """
        if event.organizer_id != actor.id:
            return ServiceResult.failure(
                "Only the ride organizer can edit this ride",
                error_code="FORBIDDEN",
            )

        if event.status != EventStatus.ACTIVE:
            return ServiceResult.failure(
                f"Ride is {event.status} and can no longer be edited",
                error_code="EVENT_NOT_ACTIVE",
            )

        unknown = sorted(set(changes) - set(cls.EDITABLE_FIELDS))
        if unknown:
            return ServiceResult.failure(
                "Unknown ride fields",
                error_code="VALIDATION_ERROR",
                errors={field: ["This field cannot be edited."] for field in unknown},
            )

        changed_fields = [
            field
            for field in cls.EDITABLE_FIELDS
            if field in changes and getattr(event, field) != changes[field]
        ]
        if not changed_fields:
            return ServiceResult.success(event)

        with cls.atomic():
            for field in changed_fields:
                setattr(event, field, changes[field])
            event.save(update_fields=[*changed_fields, "updated_at"])

            event_id = event.id
            occurred_at = event.updated_at
            transaction.on_commit(
                lambda: notification_handlers.on_event_updated(
                    event_id, changed_fields, occurred_at=occurred_at
                )
            )

        cls.get_logger().info(
            f"Event {event.id} updated by organizer: {', '.join(changed_fields)}"
        )
        return ServiceResult.success(event)

    @classmethod
    def cancel_event(cls, event: Event, actor: User) -> ServiceResult[Event]:
        """
        Cancel a ride and notify everyone who RSVP'd.

        Returns:
            ServiceResult with the cancelled Event
        """
        if event.organizer_id != actor.id:
            return ServiceResult.failure(
                "Only the ride organizer can cancel this ride",
                error_code="FORBIDDEN",
            )

        if event.status == EventStatus.CANCELLED:
            return ServiceResult.failure(
                "Ride is already cancelled",
                error_code="ALREADY_CANCELLED",
            )

        with cls.atomic():
            event.status = EventStatus.CANCELLED
            event.save(update_fields=["status", "updated_at"])

            event_id = event.id
            occurred_at = event.updated_at
            transaction.on_commit(
                lambda: notification_handlers.on_event_cancelled(
                    event_id, occurred_at=occurred_at
                )
            )

        cls.get_logger().info(f"Event {event.id} cancelled by organizer")
        return ServiceResult.success(event)

    @classmethod
    def delete_event(cls, event: Event, actor: User) -> ServiceResult[int]:
        """
        Delete a ride, telling RSVP'd riders it is cancelled.

        The snapshot and recipient list are captured before the row goes
        away; existing notifications keep pointing at the (now dead) event id
        and remain readable from their stored snapshot.

        Returns:
            ServiceResult with the deleted event id
        """
        if event.organizer_id != actor.id:
            return ServiceResult.failure(
                "Only the ride organizer can delete this ride",
                error_code="FORBIDDEN",
            )

        event_id = event.id
        snapshot = roster.get_event_snapshot(event_id)
        recipient_ids = roster.get_rsvp_user_ids(
            event_id, exclude_user_ids=(event.organizer_id,)
        )
        occurred_at = timezone.now()

        with cls.atomic():
            event.delete()
            transaction.on_commit(
                lambda: notification_handlers.on_event_cancelled(
                    event_id,
                    occurred_at=occurred_at,
                    snapshot=snapshot,
                    recipient_ids=recipient_ids,
                )
            )

        cls.get_logger().info(f"Event {event_id} deleted by organizer")
        return ServiceResult.success(event_id)

    @classmethod
    def set_rsvp(
        cls,
        event: Event,
        user: User,
        status: str,
        message: str = "",
    ) -> ServiceResult[Rsvp]:
        """
        Create or change a rider's RSVP.

        Transitions that matter to the organizer:
            anything (or nothing) -> going : participant joined
            going -> maybe / not_going     : participant left

        Args:
            event: Ride to RSVP on (must be active)
            user: Rider answering
            status: One of RsvpStatus
            message: Optional note

        Returns:
            ServiceResult with the saved Rsvp
        """
        if status not in RsvpStatus.values:
            return ServiceResult.failure(
                f"Invalid RSVP status: {status}",
                error_code="VALIDATION_ERROR",
                errors={"status": [f"Must be one of {RsvpStatus.values}"]},
            )

        if event.status != EventStatus.ACTIVE:
            return ServiceResult.failure(
                f"Ride is {event.status} and not open for RSVPs",
                error_code="EVENT_NOT_ACTIVE",
            )

        with cls.atomic():
            existing = (
                Rsvp.objects.select_for_update()
                .filter(event=event, user=user)
                .first()
            )
            previous_status = existing.status if existing else None

            rsvp, _ = Rsvp.objects.update_or_create(
                event=event,
                user=user,
                defaults={"status": status, "message": message},
            )

            joined = status == RsvpStatus.GOING and previous_status != RsvpStatus.GOING
            left = previous_status == RsvpStatus.GOING and status != RsvpStatus.GOING

            event_id, user_id, occurred_at = event.id, user.id, rsvp.updated_at
            if joined:
                transaction.on_commit(
                    lambda: notification_handlers.on_participant_joined(
                        event_id, user_id, occurred_at=occurred_at
                    )
                )
            elif left:
                transaction.on_commit(
                    lambda: notification_handlers.on_participant_left(
                        event_id, user_id, occurred_at=occurred_at
                    )
                )

        cls.get_logger().info(
            f"User {user.id} RSVP on event {event.id}: {previous_status} -> {status}"
        )
        return ServiceResult.success(rsvp)

    @classmethod
    def remove_rsvp(cls, event: Event, user: User) -> ServiceResult[bool]:
        """
        Withdraw a rider's RSVP.

        Returns:
            ServiceResult with True once removed
        """
        with cls.atomic():
            rsvp = (
                Rsvp.objects.select_for_update()
                .filter(event=event, user=user)
                .first()
            )
            if rsvp is None:
                return ServiceResult.failure(
                    "No RSVP to remove",
                    error_code="NOT_FOUND",
                )

            was_going = rsvp.status == RsvpStatus.GOING
            rsvp.delete()

            if was_going:
                event_id, user_id, occurred_at = event.id, user.id, timezone.now()
                transaction.on_commit(
                    lambda: notification_handlers.on_participant_left(
                        event_id, user_id, occurred_at=occurred_at
                    )
                )

        cls.get_logger().info(f"User {user.id} removed RSVP on event {event.id}")
        return ServiceResult.success(True)
