"""
WSGI config for the Django application.

Provided for traditional WSGI servers (gunicorn, mod_wsgi). The ASGI entry
point in config.asgi serves the same Django application.

For more information on this file, see:
https://docs.djangoproject.com/en/5.2/howto/deployment/wsgi/
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_wsgi_application()
