"""
Views for notification API.

This module provides the ViewSet for the notification inbox.

ViewSets:
    NotificationViewSet: ReadOnlyModelViewSet with custom actions for read status

Endpoints:
    GET /api/v1/notifications/ - List user's notifications (limit/offset paginated)
    GET /api/v1/notifications/{id}/ - Get notification detail
    GET /api/v1/notifications/unread-count/ - Get unread count
    PATCH /api/v1/notifications/{id}/read/ - Mark single notification as read
    PATCH /api/v1/notifications/read-all/ - Mark all notifications as read

Usage:
    # In urls.py
    from rest_framework.routers import DefaultRouter
    from notifications.views import NotificationViewSet

    router = DefaultRouter()
    router.register(r"", NotificationViewSet, basename="notification")
"""

from __future__ import annotations

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.pagination import LimitOffsetPagination
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from drf_spectacular.utils import (
    extend_schema,
    extend_schema_view,
    OpenApiResponse,
)

from notifications.serializers import (
    MarkAllReadResponseSerializer,
    NotificationSerializer,
    UnreadCountSerializer,
)
from notifications.services import NotificationService

# ServiceResult error codes mapped to HTTP status
ERROR_STATUS = {
    "NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "FORBIDDEN": status.HTTP_403_FORBIDDEN,
}


class NotificationPagination(LimitOffsetPagination):
    """
    Limit/offset pagination that rejects malformed parameters.

    DRF's default silently falls back to the default limit on bad input;
    the inbox answers 400 instead. Limits above max_limit are clamped.
    """

    default_limit = 50
    max_limit = 100

    def _parse(self, request, param: str, minimum: int) -> int | None:
        raw = request.query_params.get(param)
        if raw is None:
            return None
        try:
            value = int(raw)
        except (TypeError, ValueError):
            raise ValidationError({param: ["A valid integer is required."]})
        if value < minimum:
            raise ValidationError(
                {param: [f"Ensure this value is greater than or equal to {minimum}."]}
            )
        return value

    def get_limit(self, request):
        limit = self._parse(request, self.limit_query_param, minimum=1)
        if limit is None:
            return self.default_limit
        return min(limit, self.max_limit)

    def get_offset(self, request):
        offset = self._parse(request, self.offset_query_param, minimum=0)
        return offset or 0


@extend_schema_view(
    list=extend_schema(
        operation_id="list_notifications",
        summary="List notifications",
        description=(
            "Get a page of notifications for the authenticated user, newest "
            "first. Each notification embeds a snapshot of its ride; "
            "event.is_available is false once the ride has been deleted."
        ),
        tags=["Notifications"],
    ),
    retrieve=extend_schema(
        operation_id="get_notification",
        summary="Get notification",
        description="Get details of one of the user's notifications.",
        tags=["Notifications"],
    ),
)
class NotificationViewSet(viewsets.ReadOnlyModelViewSet):
    """
    ViewSet for notification operations.

    Provides:
    - list: GET / - List user's notifications
    - retrieve: GET /{id}/ - Get notification detail
    - unread_count: GET /unread-count/ - Get badge count
    - read: PATCH /{id}/read/ - Mark single as read
    - read_all: PATCH /read-all/ - Mark all as read

    Permissions:
    - All endpoints require authentication
    - list/retrieve only ever see the user's own notifications
    - read answers 403 for another user's notification and 404 for an
      unknown id
    """

    permission_classes = [IsAuthenticated]
    serializer_class = NotificationSerializer
    pagination_class = NotificationPagination
    lookup_value_regex = r"\d+"

    def get_queryset(self):
        """Notifications of the current user, newest first."""
        return NotificationService.for_recipient(self.request.user)

    def get_serializer(self, *args, **kwargs):
        """Attach the set of still-existing ride ids to the serializer context."""
        if args:
            instance = args[0]
            notifications = instance if kwargs.get("many") else [instance]
            context = self.get_serializer_context()
            context["live_event_ids"] = NotificationService.live_event_ids(
                notifications
            )
            kwargs["context"] = context
        return super().get_serializer(*args, **kwargs)

    def list(self, request, *args, **kwargs):
        page = self.paginate_queryset(self.get_queryset())
        serializer = self.get_serializer(list(page), many=True)
        return self.get_paginated_response(serializer.data)

    @extend_schema(
        operation_id="get_unread_notification_count",
        summary="Get unread notification count",
        description="Get the count of unread notifications for badge display.",
        responses={200: UnreadCountSerializer},
        tags=["Notifications"],
    )
    @action(detail=False, methods=["get"], url_path="unread-count")
    def unread_count(self, request):
        """
        Get count of unread notifications.

        Returns:
            {"unreadCount": <int>}
        """
        count = NotificationService.unread_count(request.user)
        serializer = UnreadCountSerializer({"unreadCount": count})
        return Response(serializer.data)

    @extend_schema(
        operation_id="mark_notification_read",
        summary="Mark notification as read",
        description=(
            "Mark a single notification as read. "
            "This operation is idempotent - already-read notifications return success."
        ),
        request=None,
        responses={
            200: NotificationSerializer,
            403: OpenApiResponse(description="Notification belongs to another user"),
            404: OpenApiResponse(description="Notification not found"),
        },
        tags=["Notifications"],
    )
    @action(detail=True, methods=["patch"])
    def read(self, request, pk=None):
        """
        Mark single notification as read.

        Returns:
            Serialized notification data
        """
        result = NotificationService.mark_as_read(request.user, int(pk))

        if not result.success:
            return Response(
                {"detail": result.error, "code": result.error_code},
                status=ERROR_STATUS.get(result.error_code, status.HTTP_400_BAD_REQUEST),
            )

        serializer = self.get_serializer(result.data)
        return Response(serializer.data)

    @extend_schema(
        operation_id="mark_all_notifications_read",
        summary="Mark all notifications as read",
        description="Mark all unread notifications for the authenticated user as read.",
        request=None,
        responses={200: MarkAllReadResponseSerializer},
        tags=["Notifications"],
    )
    @action(detail=False, methods=["patch"], url_path="read-all")
    def read_all(self, request):
        """
        Mark all user's notifications as read.

        Returns:
            {"marked_count": <int>}
        """
        result = NotificationService.mark_all_as_read(request.user)

        serializer = MarkAllReadResponseSerializer({"marked_count": result.data})
        return Response(serializer.data)
