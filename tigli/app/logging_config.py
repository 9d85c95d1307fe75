"""
Logging for the landing backend.

Production writes one JSON object per line; development gets a coloured
single-line format; tests only see warnings. Records logged while serving a
request are tagged with the request id, the route and the client address, so
a lead can be followed from ``request.started`` through ``crm.*`` events to
``request.completed``.
"""

import logging
import sys
import time
import uuid
from datetime import datetime, timezone

from flask import Flask, g, has_request_context, request
from pythonjsonlogger import jsonlogger
from werkzeug.exceptions import HTTPException

from .services.request_utils import get_client_ip

LEVEL_BY_ENV = {
    "test": logging.WARNING,
    "development": logging.DEBUG,
}


def _elapsed_ms():
    started = getattr(g, "request_start_time", None)
    if started is None:
        return None
    return round((time.time() - started) * 1000, 2)


class ContextualJsonFormatter(jsonlogger.JsonFormatter):
    """JSON lines enriched with the app environment and the current request."""

    def __init__(self, *args, app_env="production", **kwargs):
        super().__init__(*args, **kwargs)
        self.app_env = app_env

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record.update(
            timestamp=datetime.now(timezone.utc).isoformat(),
            level=record.levelname,
            logger=record.name,
            app_env=self.app_env,
        )

        if has_request_context():
            log_record.update(
                request_id=g.get("request_id"),
                method=request.method,
                path=request.path,
                remote_addr=get_client_ip(request),
            )
            elapsed = _elapsed_ms()
            if elapsed is not None:
                log_record["response_time_ms"] = elapsed

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)


class DevelopmentFormatter(logging.Formatter):
    """``[time] LEVEL logger | message [request | event]`` with ANSI colours."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record):
        color = self.COLORS.get(record.levelname, "")
        stamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        line = f"{color}[{stamp}] {record.levelname:8s}{self.RESET} {record.name:20s} | {record.getMessage()}"

        tags = []
        if has_request_context():
            request_id = g.get("request_id")
            if request_id:
                tags.append(request_id[:8])
            tags.append(f"{request.method} {request.path}")
        event = getattr(record, "event", None)
        if event:
            tags.append(f"event={event}")
        if tags:
            line += f" [{' | '.join(tags)}]"

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _resolve_level(app_env, override):
    if override:
        return getattr(logging, str(override).upper(), logging.INFO)
    return LEVEL_BY_ENV.get(app_env, logging.INFO)


def configure_logging(app: Flask) -> None:
    """
    Installs one stdout handler on ``app.logger`` and the root logger.

    LOG_LEVEL overrides the level chosen from APP_ENV; LOG_JSON_ENABLED
    overrides the JSON-in-production default. Under test the existing
    handlers are kept and records propagate, so pytest's caplog sees them.
    """
    app_env = app.config.get("APP_ENV", "production")
    level = _resolve_level(app_env, app.config.get("LOG_LEVEL"))

    json_enabled = app.config.get("LOG_JSON_ENABLED")
    if json_enabled is None:
        json_enabled = app_env == "production"
    formatter = (
        ContextualJsonFormatter(fmt="%(message)s", app_env=app_env)
        if json_enabled
        else DevelopmentFormatter()
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(formatter)

    testing = app_env == "test"
    for logger in (app.logger, logging.getLogger()):
        if not testing:
            logger.handlers.clear()
        logger.addHandler(handler)
        logger.setLevel(level)
    app.logger.propagate = testing

    if app_env == "development":
        logging.getLogger("werkzeug").setLevel(logging.WARNING)
    # requests' connection pool is chatty at DEBUG
    logging.getLogger("urllib3").setLevel(max(level, logging.INFO))

    app.logger.info(
        "Logging configured",
        extra={
            "event": "logging.configured",
            "log_level": logging.getLevelName(level),
            "json_enabled": json_enabled,
        },
    )


def setup_request_logging(app: Flask) -> None:
    """Tags each request with an id and logs its start, completion and crashes."""

    @app.before_request
    def start_request_log():
        g.request_id = str(uuid.uuid4())
        g.request_start_time = time.time()
        app.logger.info("Request started", extra={"event": "request.started"})

    @app.after_request
    def finish_request_log(response):
        elapsed = _elapsed_ms()
        if elapsed is not None:
            app.logger.info(
                "Request completed",
                extra={
                    "event": "request.completed",
                    "status_code": response.status_code,
                    "response_time_ms": elapsed,
                },
            )
        return response

    @app.errorhandler(Exception)
    def log_uncaught_exception(error):
        # 400/404/429... keep their own responses
        if isinstance(error, HTTPException):
            return error

        app.logger.error(
            "Uncaught exception: %s", error,
            exc_info=True,
            extra={"event": "exception.uncaught", "exception_type": type(error).__name__},
        )
        raise error
