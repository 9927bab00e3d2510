"""
WSGI config for social_feed project.

Serves the REST API only. Live connections need the ASGI application in
``config.asgi``; run that under uvicorn for anything beyond admin/API work.

"""

import os

from django.core.wsgi import get_wsgi_application

# If DJANGO_SETTINGS_MODULE is unset, select a sensible default based on BUILD_ENV
if "DJANGO_SETTINGS_MODULE" not in os.environ:
    build_env = os.environ.get("BUILD_ENV", "production").lower()
    default_settings = (
        "config.settings.local"
        if build_env == "local"
        else "config.settings.production"
    )
    os.environ.setdefault("DJANGO_SETTINGS_MODULE", default_settings)

# This application object is used by any WSGI server configured to use this
# file. This includes Django's development server, if the WSGI_APPLICATION
# setting points here.
application = get_wsgi_application()
