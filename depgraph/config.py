"""
Roadmap Dependency Graph Engine
Environment configuration for the app factory.

Usage:
    from depgraph.config import config
    app.config.from_object(config[os.getenv("APP_ENV", "development")]())

Analysis settings (all overridable from the environment):
    GRAPH_TIMEOUT_EDGE_THRESHOLD     connections above which a time budget applies
    GRAPH_ANALYSIS_TIMEOUT_SECONDS   the budget itself
    GRAPH_ANALYZE_RATE_LIMIT         Flask-Limiter string, per workspace
    GRAPH_SCORING_WEIGHTS            ScoringWeights overrides (dict)
"""

import os

PROJECT_ROOT = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))

_SQLITE_DEV = "sqlite:///" + os.path.join(PROJECT_ROOT, "instance", "depgraph_dev.db")
_SQLITE_MEMORY = "sqlite:///:memory:"


def _database_url(env_var: str, fallback: str | None) -> str | None:
    """Read a database URL; Heroku-style ``postgres://`` is rewritten for SQLAlchemy 2."""
    raw = os.getenv(env_var, "")
    if not raw:
        return fallback
    if raw.startswith("postgres://"):
        raw = "postgresql://" + raw[len("postgres://"):]
    return raw


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


class Config:
    """Settings shared by every environment."""

    DEBUG = False
    TESTING = False

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}

    # Flask-Limiter storage (memory:// or redis://...)
    REDIS_URL = os.getenv("REDIS_URL", "memory://")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    # Inline snapshots of large workspaces are posted as one JSON body
    MAX_CONTENT_LENGTH = _env_int("MAX_CONTENT_LENGTH", 8 * 1024 * 1024)

    # Logging (see depgraph.middleware.logging_config)
    LOG_LEVEL = os.getenv("LOG_LEVEL")
    LOG_FORMAT = os.getenv("LOG_FORMAT")
    SLOW_REQUEST_MS = _env_int("SLOW_REQUEST_MS", 1000)

    # Dependency analysis
    GRAPH_TIMEOUT_EDGE_THRESHOLD = _env_int("GRAPH_TIMEOUT_EDGE_THRESHOLD", 5000)
    GRAPH_ANALYSIS_TIMEOUT_SECONDS = _env_float("GRAPH_ANALYSIS_TIMEOUT_SECONDS", 10.0)
    GRAPH_ANALYZE_RATE_LIMIT = os.getenv("GRAPH_ANALYZE_RATE_LIMIT", "30/minute")
    GRAPH_SCORING_WEIGHTS: dict = {}


class DevelopmentConfig(Config):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _database_url("DATABASE_URL", _SQLITE_DEV)


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = _database_url("TEST_DATABASE_URL", _SQLITE_MEMORY)
    RATELIMIT_ENABLED = False
    LOG_FORMAT = "console"


class ProductionConfig(Config):
    """PostgreSQL only; refuses to start without DATABASE_URL."""

    SQLALCHEMY_DATABASE_URI = _database_url("DATABASE_URL", None)
    # No wildcard default in production
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")
    LOG_FORMAT = os.getenv("LOG_FORMAT", "json")

    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 300,
        "pool_timeout": 20,
    }

    def __init__(self):
        if not self.SQLALCHEMY_DATABASE_URI:
            raise RuntimeError("DATABASE_URL environment variable is required in production")


config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
