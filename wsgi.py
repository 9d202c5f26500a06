"""WSGI entry point for the PMS frontend."""

import os

from pms_frontend import create_app

app = create_app(os.getenv("FLASK_ENV", "production"))
