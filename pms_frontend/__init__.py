"""
PMS frontend Flask application factory.

Provides the ``create_app`` factory that assembles the frontend for the
project management system. The application is a stateless
Backend-for-Frontend (BFF): it renders HTML pages for projects, tasks, and
teams, exposes small JSON endpoints for board drag-and-drop, and
delegates all persistence to the PMS REST API.

The only state held here is a per-user query cache, a disposable
projection of server data that can be dropped at any time.

Key Concepts Demonstrated:
- Application factory pattern (``create_app``)
- Backend-for-Frontend (BFF) architecture
- Correlation ids propagated from inbound requests to the backend
- Blueprint-based route registration
"""

from __future__ import annotations

import logging
import uuid

from flask import Flask, g, request

from config import get_config

from .api_client import CORRELATION_ID_HEADER
from .cache import CacheRegistry
from .context import CACHE_EXTENSION

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(config_name: str | None = None) -> Flask:
    """
    Create and configure the PMS frontend application.

    Args:
        config_name: Optional configuration environment name
            (``"development"``, ``"testing"``, ``"production"``). When
            *None*, the value is read from the ``FLASK_ENV`` environment
            variable, defaulting to ``"development"``.

    Returns:
        A fully configured :class:`~flask.Flask` application instance.
    """
    app = Flask(__name__, instance_relative_config=True)
    config_class = get_config(config_name)
    app.config.from_object(config_class)

    app.extensions[CACHE_EXTENSION] = CacheRegistry(
        stale_after=app.config["CACHE_STALE_SECONDS"],
        idle_after=app.config["CACHE_IDLE_SECONDS"],
    )

    logger.info("Creating PMS frontend app with config: %s", config_class.__name__)

    @app.before_request
    def assign_correlation_id():
        g.correlation_id = request.headers.get(CORRELATION_ID_HEADER) or str(uuid.uuid4())

    @app.after_request
    def echo_correlation_id(response):
        correlation_id = g.get("correlation_id")
        if correlation_id:
            response.headers[CORRELATION_ID_HEADER] = correlation_id
        logger.info(
            "%s %s -> %s [%s]",
            request.method,
            request.path,
            response.status_code,
            correlation_id,
        )
        return response

    # Import inside the factory to avoid circular imports -- the blueprint
    # modules reference helpers from this package, which must exist first.
    from .routes.board import board_bp
    from .routes.views import views_bp

    app.register_blueprint(views_bp)
    app.register_blueprint(board_bp, url_prefix="/board")
    return app
