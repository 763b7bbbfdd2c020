"""
Root pytest configuration for the Django project.

The Django project lives in app/ (put on sys.path by the pytest
``pythonpath`` setting). Shared hooks and fixtures are in app/conftest.py;
app-specific fixtures are defined in each app's tests/conftest.py.
"""

import os

# Ensure Django settings are configured before any tests run
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")
