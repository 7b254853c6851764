"""
Roadmap Dependency Graph Engine
Flask Application Factory.

Usage:
    from depgraph import create_app
    app = create_app()           # APP_ENV, else "development"
    app = create_app("testing")
"""

import logging
import os

from flask import Flask, abort, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event

from depgraph.config import config
from depgraph.middleware.logging_config import configure_logging
from depgraph.middleware.rate_limiter import init_rate_limits
from depgraph.middleware.timing import init_request_timing
from depgraph.models import db

logger = logging.getLogger(__name__)

migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],
    storage_uri=os.getenv("REDIS_URL", "memory://"),
)


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """SQLite ignores ON DELETE CASCADE unless foreign keys are switched on."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# ── Factory helpers ──────────────────────────────────────────────────────────


def _init_extensions(app):
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)

    origins = [o.strip() for o in (app.config.get("CORS_ORIGINS") or "").split(",") if o.strip()]
    if origins == ["*"]:
        CORS(app)
    elif origins:
        CORS(app, origins=origins)
    else:
        logger.info("CORS disabled: CORS_ORIGINS is empty")


def _require_json_bodies(app):
    """Reject non-JSON request bodies on the API with 415."""

    @app.before_request
    def _guard_content_type():
        if request.method not in ("POST", "PUT", "PATCH") or not request.path.startswith("/api/"):
            return None
        if request.data and not request.is_json:
            abort(415, description="Content-Type must be application/json")
        return None


def _register_blueprints(app):
    from depgraph.blueprints.dependency_bp import dependency_bp
    from depgraph.blueprints.health_bp import health_bp

    app.register_blueprint(dependency_bp)
    app.register_blueprint(health_bp)


def _register_error_handlers(app):
    """JSON bodies for errors raised outside blueprint handlers."""

    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found", "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(413)
    def payload_too_large(e):
        limit = app.config.get("MAX_CONTENT_LENGTH")
        return {"error": "Request body too large", "max_bytes": limit}, 413

    @app.errorhandler(415)
    def unsupported_media_type(e):
        return {"error": e.description}, 415

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return {"error": "Internal server error"}, 500


# ── Factory ──────────────────────────────────────────────────────────────────


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: "development", "testing" or "production".
                     Defaults to the APP_ENV env var, else "development".

    Returns:
        Configured Flask application instance.
    """
    config_name = config_name or os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name]())
    os.makedirs(app.instance_path, exist_ok=True)

    # Logging before anything else writes a record
    configure_logging(app)

    _init_extensions(app)
    init_request_timing(app)
    _require_json_bodies(app)

    # Models must be imported before create_all / Alembic autogenerate
    from depgraph.models import workspace as _workspace_models  # noqa: F401

    with app.app_context():
        db.create_all()

    _register_blueprints(app)
    _register_error_handlers(app)

    # Limits attach to registered blueprints, so this runs last
    init_rate_limits(app, limiter)

    logger.info("Dependency graph service ready (config=%s)", config_name)
    return app
