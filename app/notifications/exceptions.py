"""
Notification-specific exceptions.

Exception Hierarchy:
    ExternalServiceError (core)
    └── StorageUnavailableError - Notification store unreachable (retryable)

    ValidationError (core)
    └── InvalidTriggerError - Malformed trigger (never retried)

Expected outcomes are NOT exceptions: a dedupe hit is returned as
``ServiceResult.failure(..., error_code="ALREADY_EXISTS")``.

Usage:
    from notifications.exceptions import StorageUnavailableError

    try:
        NotificationWriter.create_if_absent(trigger)
    except StorageUnavailableError:
        retry_notification_trigger.delay(trigger.to_payload())
"""

from __future__ import annotations

from core.exceptions import ExternalServiceError, ValidationError


class StorageUnavailableError(ExternalServiceError):
    """
    Raised when the notification store cannot be reached.

    Wraps Django's OperationalError/InterfaceError. Safe to retry: the
    dedupe key makes a repeated write either create the row or observe
    that it already exists.
    """

    default_error_code: str = "STORAGE_UNAVAILABLE"
    is_retryable: bool = True


class InvalidTriggerError(ValidationError):
    """
    Raised when a payload cannot be turned into a valid trigger.

    Retrying cannot fix malformed input, so callers log and drop.
    """

    default_error_code: str = "INVALID_TRIGGER"
