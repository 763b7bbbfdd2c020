"""
Run one notification cycle synchronously.

For deployments that schedule the reminder scan with cron instead of
celery-beat. Safe to run repeatedly or concurrently with the Celery task:
every write is deduplicated.

Usage:
    python manage.py process_notifications
    python manage.py process_notifications --skip-sweep
"""

from django.core.management.base import BaseCommand
from django.utils import timezone

from notifications.services import DeliveryMarker
from notifications.tasks import ReminderScanner


class Command(BaseCommand):
    help = "Create due ride reminders and mark pending notifications as sent"

    def add_arguments(self, parser):
        parser.add_argument(
            "--skip-sweep",
            action="store_true",
            help="Only scan for reminders; leave pending notifications alone",
        )

    def handle(self, *args, **options):
        now = timezone.now()

        self.stdout.write(
            self.style.NOTICE(f"[{now:%Y-%m-%d %H:%M:%S}] Starting notification cycle")
        )

        report = ReminderScanner().run(now=now)
        marked = 0 if options["skip_sweep"] else DeliveryMarker.mark_pending_sent(now=now)

        if report.truncated:
            self.stdout.write(
                self.style.WARNING(
                    "Scan hit the batch limit; remaining rides are handled next run"
                )
            )

        self.stdout.write(
            self.style.SUCCESS(
                f"[{now:%Y-%m-%d %H:%M:%S}] Completed: "
                f"{report.events_scanned} rides scanned, "
                f"{report.created} reminders created, "
                f"{report.duplicates} duplicates, "
                f"{report.failed} failed, "
                f"{marked} marked sent"
            )
        )
