import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Notification",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "notification_type",
                    models.CharField(
                        choices=[
                            ("event_reminder", "Ride reminder"),
                            ("event_updated", "Ride updated"),
                            ("event_cancelled", "Ride cancelled"),
                            ("new_participant", "New participant"),
                            ("participant_left", "Participant left"),
                        ],
                        help_text="Kind of notification",
                        max_length=32,
                    ),
                ),
                (
                    "title",
                    models.CharField(
                        help_text="Fully rendered notification title", max_length=500
                    ),
                ),
                (
                    "message",
                    models.TextField(
                        blank=True,
                        default="",
                        help_text="Fully rendered notification body",
                    ),
                ),
                (
                    "data",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Context data (changed fields, participant, ...)",
                    ),
                ),
                (
                    "event_id",
                    models.BigIntegerField(
                        blank=True,
                        help_text="Id of the ride this notification is about (not enforced)",
                        null=True,
                    ),
                ),
                (
                    "event_title",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Ride title at creation time",
                        max_length=255,
                    ),
                ),
                (
                    "event_start_at",
                    models.DateTimeField(
                        blank=True, help_text="Ride start time at creation time", null=True
                    ),
                ),
                (
                    "event_location",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Ride meeting point at creation time",
                        max_length=255,
                    ),
                ),
                (
                    "event_organizer_name",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Organizer display name at creation time",
                        max_length=255,
                    ),
                ),
                (
                    "is_read",
                    models.BooleanField(
                        default=False,
                        help_text="Whether recipient has read this notification",
                    ),
                ),
                (
                    "send_at",
                    models.DateTimeField(
                        help_text="When this notification becomes relevant"
                    ),
                ),
                (
                    "sent_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When this notification was marked delivered",
                        null=True,
                    ),
                ),
                (
                    "dedupe_key",
                    models.CharField(
                        help_text="Deterministic key guaranteeing one row per trigger",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "recipient",
                    models.ForeignKey(
                        help_text="User receiving this notification",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="notifications",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "notifications_notification",
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(
                        fields=["recipient", "-created_at"],
                        name="notif_recipient_created_idx",
                    ),
                    models.Index(
                        fields=["recipient", "is_read"],
                        name="notif_recipient_unread_idx",
                    ),
                    models.Index(
                        condition=models.Q(("sent_at__isnull", True)),
                        fields=["send_at"],
                        name="notif_pending_send_at_idx",
                    ),
                ],
            },
        ),
    ]
