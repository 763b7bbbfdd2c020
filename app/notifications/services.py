"""
Notification service layer.

This module provides the business logic for the notification system. It is
the only code that writes notification rows.

Services:
    NotificationWriter: Turns a trigger into at most one notification row
    DeliveryMarker: Advances notifications from pending to sent
    NotificationService: Recipient-facing queries and read-state changes

Design Principles:
    - Services are stateless (use class methods)
    - Expected outcomes return ServiceResult.failure() with an error code:
        ALREADY_EXISTS  dedupe hit (not an error)
        INVALID_TRIGGER malformed trigger (logged, dropped)
        NOT_FOUND       notification id does not exist
        FORBIDDEN       notification belongs to someone else
    - Storage outages raise StorageUnavailableError (retryable)
    - The unique constraint on dedupe_key is the only duplicate check;
      there is no check-then-insert
    - The writer never touches is_read; the read API never creates rows
      or sets sent_at

Usage:
    from notifications.services import NotificationService, NotificationWriter

    result = NotificationWriter.create_if_absent(trigger)
    if result.success:
        notification = result.data
    elif result.error_code == "ALREADY_EXISTS":
        pass  # another writer got there first

    result = NotificationService.mark_all_as_read(user)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.db import IntegrityError, InterfaceError, OperationalError
from django.utils import timezone

from core.services import BaseService, ServiceResult
from notifications import roster
from notifications.exceptions import StorageUnavailableError
from notifications.models import Notification

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime

    from django.db.models import QuerySet

    from authentication.models import User
    from notifications.triggers import Trigger

logger = logging.getLogger(__name__)

# Upper bound on rows marked by one pending sweep
PENDING_SWEEP_LIMIT = 500


class DeliveryMarker(BaseService):
    """
    Advances notifications from pending to sent.

    In-app delivery cannot fail independently of storage, so the writer marks
    rows sent in the same transaction that creates them. The sweep exists for
    rows left pending by anything else (manual inserts, a future out-of-band
    channel).

    Methods:
        mark_sent: Set sent_at on one notification if still pending
        mark_pending_sent: Set sent_at on due notifications still pending
    """

    @classmethod
    def mark_sent(
        cls,
        notification: Notification,
        sent_at: datetime | None = None,
    ) -> bool:
        """
        Mark one notification as sent.

        Conditional update (``WHERE sent_at IS NULL``): an already-sent row
        keeps its original timestamp, so sent_at never moves or clears.

        Args:
            notification: Row to mark
            sent_at: Delivery time (defaults to now)

        Returns:
            True if this call moved the row to sent
        """
        sent_at = sent_at or timezone.now()
        updated = Notification.objects.filter(
            pk=notification.pk,
            sent_at__isnull=True,
        ).update(sent_at=sent_at, updated_at=sent_at)

        if updated:
            notification.sent_at = sent_at
            notification.updated_at = sent_at
        return bool(updated)

    @classmethod
    def mark_pending_sent(
        cls,
        now: datetime | None = None,
        limit: int = PENDING_SWEEP_LIMIT,
    ) -> int:
        """
        Mark every due, still-pending notification as sent.

        Args:
            now: Reference time (defaults to now); rows with send_at <= now
            limit: Maximum rows handled in one call

        Returns:
            Number of notifications marked sent
        """
        now = now or timezone.now()
        pending_ids = list(
            Notification.objects.filter(sent_at__isnull=True, send_at__lte=now)
            .order_by("send_at")
            .values_list("id", flat=True)[:limit]
        )
        if not pending_ids:
            return 0

        count = Notification.objects.filter(
            id__in=pending_ids,
            sent_at__isnull=True,
        ).update(sent_at=now, updated_at=now)

        cls.get_logger().info(
            f"Marked {count} pending notifications as sent",
            extra={"marked_count": count},
        )
        return count


class NotificationWriter(BaseService):
    """
    Single choke point that persists notifications.

    Methods:
        create_if_absent: Insert the notification for a trigger unless it exists
    """

    @classmethod
    def create_if_absent(cls, trigger: Trigger) -> ServiceResult[Notification]:
        """
        Create the notification described by ``trigger`` at most once.

        Implementation:
            1. Validate the trigger (INVALID_TRIGGER on failure)
            2. INSERT inside a savepoint; the unique dedupe_key constraint
               decides the winner between concurrent writers
            3. On IntegrityError return ALREADY_EXISTS
            4. Mark the new row sent in the same transaction

        Args:
            trigger: Fully-formed trigger

        Returns:
            ServiceResult with the created Notification

        Error codes:
            ALREADY_EXISTS: A row with this dedupe key already exists
            INVALID_TRIGGER: Trigger failed validation

        Raises:
            StorageUnavailableError: The store could not be reached
        """
        errors = trigger.validate()
        if errors:
            cls.get_logger().warning(
                f"Dropping invalid {trigger.notification_type} trigger "
                f"for recipient {trigger.recipient_id}",
                extra={"errors": errors},
            )
            return ServiceResult.failure(
                "Invalid notification trigger",
                error_code="INVALID_TRIGGER",
                errors=errors,
            )

        dedupe_key = trigger.dedupe_key
        snapshot = trigger.event

        try:
            with cls.atomic():
                notification = Notification.objects.create(
                    recipient_id=trigger.recipient_id,
                    notification_type=trigger.notification_type,
                    title=trigger.title,
                    message=trigger.message,
                    data=trigger.data,
                    event_id=snapshot.event_id,
                    event_title=snapshot.title,
                    event_start_at=snapshot.start_at,
                    event_location=snapshot.location,
                    event_organizer_name=snapshot.organizer_name,
                    send_at=trigger.send_at,
                    dedupe_key=dedupe_key,
                )
                DeliveryMarker.mark_sent(notification)
        except IntegrityError as e:
            if not cls._dedupe_key_taken(dedupe_key):
                # Some other constraint failed, e.g. the recipient was deleted
                cls.get_logger().warning(
                    f"Dropping {trigger.notification_type} trigger for "
                    f"recipient {trigger.recipient_id}: {e}"
                )
                return ServiceResult.failure(
                    f"Notification could not be stored: {e}",
                    error_code="INVALID_TRIGGER",
                )
            cls.get_logger().debug(
                f"Notification already exists: dedupe_key={dedupe_key}"
            )
            return ServiceResult.failure(
                f"Notification already exists: {dedupe_key}",
                error_code="ALREADY_EXISTS",
            )
        except (OperationalError, InterfaceError) as e:
            raise StorageUnavailableError(
                f"Notification store unavailable: {e}",
                details={"dedupe_key": dedupe_key},
            ) from e

        cls.get_logger().info(
            f"Created notification {notification.id} of type "
            f"{trigger.notification_type} for user {trigger.recipient_id}"
        )
        return ServiceResult.success(notification)

    @classmethod
    def _dedupe_key_taken(cls, dedupe_key: str) -> bool:
        """Whether a row owns ``dedupe_key``; store outages raise."""
        try:
            return Notification.objects.filter(dedupe_key=dedupe_key).exists()
        except (OperationalError, InterfaceError) as e:
            raise StorageUnavailableError(
                f"Notification store unavailable: {e}",
                details={"dedupe_key": dedupe_key},
            ) from e


class NotificationService(BaseService):
    """
    Recipient-facing notification operations.

    Methods:
        list_for_recipient: Page of a recipient's notifications, newest first
        unread_count: Number of unread notifications
        mark_as_read: Mark one of the recipient's notifications read
        mark_all_as_read: Mark all of the recipient's notifications read
        live_event_ids: Which referenced rides still exist
    """

    @classmethod
    def for_recipient(cls, recipient: User) -> QuerySet[Notification]:
        """Base queryset of a recipient's notifications, newest first."""
        return Notification.objects.filter(recipient=recipient).order_by(
            "-created_at", "-id"
        )

    @classmethod
    def list_for_recipient(
        cls,
        recipient: User,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Notification]:
        """
        Return a page of the recipient's notifications.

        Read-only. Notifications about deleted rides are returned unchanged;
        their snapshot fields still describe the ride.
        """
        return list(cls.for_recipient(recipient)[offset : offset + limit])

    @classmethod
    def unread_count(cls, recipient: User) -> int:
        """Count of the recipient's unread notifications."""
        return Notification.objects.filter(recipient=recipient, is_read=False).count()

    @classmethod
    def mark_as_read(
        cls,
        recipient: User,
        notification_id: int,
    ) -> ServiceResult[Notification]:
        """
        Mark a single notification as read.

        Idempotent: an already-read notification is returned unchanged.

        Args:
            recipient: The user making the request
            notification_id: Id of the notification

        Returns:
            ServiceResult with the Notification

        Error codes:
            NOT_FOUND: No notification with this id
            FORBIDDEN: Notification belongs to another user
        """
        notification = Notification.objects.filter(pk=notification_id).first()
        if notification is None:
            return ServiceResult.failure(
                "Notification not found",
                error_code="NOT_FOUND",
            )

        if notification.recipient_id != recipient.id:
            cls.get_logger().warning(
                f"User {recipient.id} attempted to mark notification "
                f"{notification.id} owned by user {notification.recipient_id}"
            )
            return ServiceResult.failure(
                "Cannot mark notification you don't own",
                error_code="FORBIDDEN",
            )

        if not notification.is_read:
            now = timezone.now()
            # Conditional update: concurrent calls flip the flag once
            Notification.objects.filter(pk=notification.pk, is_read=False).update(
                is_read=True, updated_at=now
            )
            notification.is_read = True
            notification.updated_at = now
            cls.get_logger().debug(f"Marked notification {notification.id} as read")

        return ServiceResult.success(notification)

    @classmethod
    def mark_all_as_read(cls, recipient: User) -> ServiceResult[int]:
        """
        Mark all of the recipient's unread notifications as read.

        Performs a bulk update in a single database query.

        Returns:
            ServiceResult with count of notifications marked as read
        """
        count = Notification.objects.filter(
            recipient=recipient,
            is_read=False,
        ).update(is_read=True, updated_at=timezone.now())

        cls.get_logger().info(
            f"Marked {count} notifications as read for user {recipient.id}"
        )

        return ServiceResult.success(count)

    @classmethod
    def live_event_ids(cls, notifications: Iterable[Notification]) -> set[int]:
        """
        Return the referenced ride ids that still resolve to a ride.

        Ids that are not positive integers are never live.
        """
        candidate_ids = {
            n.event_id
            for n in notifications
            if isinstance(n.event_id, int) and n.event_id > 0
        }
        if not candidate_ids:
            return set()
        return roster.existing_event_ids(candidate_ids)
