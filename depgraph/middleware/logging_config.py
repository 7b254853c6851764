"""
Structured logging for the dependency graph service.

Every record emitted while a request is being served is tagged with the
request id and the workspace / team under analysis, so a slow or failing
analysis can be traced from the access log down to the engine.

    LOG_FORMAT=json     one JSON object per line (default outside DEBUG/TESTING)
    LOG_FORMAT=console  coloured single-line output (default in development)
    LOG_LEVEL           DEBUG / INFO / WARNING ...

Usage:
    from depgraph.middleware.logging_config import configure_logging
    configure_logging(app)
"""

import json
import logging
import sys
from datetime import datetime, timezone

from flask import g, has_request_context

# Attributes copied from the record into JSON output when set
CONTEXT_FIELDS = (
    "request_id",
    "workspace_id",
    "team_id",
    "method",
    "path",
    "status",
    "duration_ms",
    "remote_addr",
)

_NOISY_LOGGERS = ("werkzeug", "sqlalchemy.engine", "flask_limiter")


class AnalysisContextFilter(logging.Filter):
    """Copy request id / workspace / team from ``flask.g`` onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if has_request_context():
            for key in ("request_id", "workspace_id", "team_id"):
                if getattr(record, key, None) is None:
                    setattr(record, key, g.get(key))
        return True


class JSONFormatter(logging.Formatter):
    """One JSON document per record, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "source": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        entry.update(
            (key, getattr(record, key))
            for key in CONTEXT_FIELDS
            if getattr(record, key, None) is not None
        )
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ConsoleFormatter(logging.Formatter):
    """Compact coloured line for a developer terminal."""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelname, "")
        clock = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        scope = getattr(record, "workspace_id", None)
        scope_str = f" [ws={scope}]" if scope else ""
        duration = getattr(record, "duration_ms", None)
        duration_str = f" ({duration:.0f}ms)" if duration is not None else ""
        line = (
            f"{color}{clock} {record.levelname:<7}{self.RESET} "
            f"{record.name}{scope_str}: {record.getMessage()}{duration_str}"
        )
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _resolve_format(app) -> str:
    fmt = (app.config.get("LOG_FORMAT") or "").lower()
    if fmt in ("json", "console"):
        return fmt
    return "console" if app.debug or app.testing else "json"


def configure_logging(app):
    """Install a single stderr handler on the root logger.

    Handlers installed by an earlier ``create_app()`` call are replaced, so
    building several apps in one process (the test suite) does not
    duplicate output.
    """
    fmt = _resolve_format(app)
    default_level = "DEBUG" if app.debug else "INFO"
    level_name = str(app.config.get("LOG_LEVEL") or default_level).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if fmt == "json" else ConsoleFormatter())
    handler.addFilter(AnalysisContextFilter())
    handler.setLevel(level)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    app.logger.setLevel(level)

    if not app.testing:
        app.logger.info("Logging configured: level=%s format=%s", level_name, fmt)
