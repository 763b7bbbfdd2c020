"""
Tests for notifications app.

This package contains test modules for:
- test_models.py: Notification store
- test_triggers.py: Trigger builders, dedupe keys, payloads
- test_services.py: Writer, delivery marker and read services
- test_handlers.py: Ride lifecycle and participant emitters
- test_tasks.py: Reminder scanner and Celery tasks
- test_views.py: API endpoint tests
- test_commands.py: process_notifications management command

Usage:
    pytest notifications/tests/
    pytest notifications/tests/test_tasks.py
"""
