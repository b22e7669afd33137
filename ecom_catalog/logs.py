"""Logging setup and the request-scoped logger used by the HTTP handlers.

Events go through structlog and are rendered as one JSON object per line by
the handlers on ``app.logger``. Request metadata (request id, client ip, user
agent, user id) is bound with ``structlog.contextvars`` for the length of a
request and merged into every event logged while it is handled.
"""
import ipaddress
import logging
import os
import time
import uuid
from logging.handlers import TimedRotatingFileHandler

import structlog
from flask import g, request
from flask.logging import default_handler

# Paths excluded from the access log.
ACCESS_LOG_EXCLUDE = ("/health",)

SHARED_PROCESSORS = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
]


def json_formatter():
    """Formatter rendering structlog events and plain stdlib records as JSON."""
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=SHARED_PROCESSORS,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
    )


class _MaxLevelFilter(logging.Filter):
    def __init__(self, max_level):
        super().__init__()
        self.max_level = max_level

    def filter(self, record):
        return record.levelno < self.max_level


def configure_logging(app):
    """Route structlog through ``app.logger`` and attach JSON handlers.

    Everything goes to stderr through Flask's default stream. When ``LOG_DIR``
    is set, info and error records are also written to daily rotated files
    kept for 14 days.
    """
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *SHARED_PROCESSORS,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    logger = app.logger
    logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))
    formatter = json_formatter()

    for handler in list(logger.handlers):
        if isinstance(handler, TimedRotatingFileHandler):
            # left over from an earlier app with the same import name
            logger.removeHandler(handler)
            handler.close()
    if default_handler not in logger.handlers:
        logger.addHandler(default_handler)
    for handler in logger.handlers:
        handler.setFormatter(formatter)

    log_dir = app.config.get("LOG_DIR")
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

        info_handler = TimedRotatingFileHandler(
            os.path.join(log_dir, "app-info.log"), when="midnight", backupCount=14, utc=True
        )
        info_handler.setLevel(logging.DEBUG)
        info_handler.addFilter(_MaxLevelFilter(logging.ERROR))
        info_handler.setFormatter(formatter)

        error_handler = TimedRotatingFileHandler(
            os.path.join(log_dir, "app-error.log"), when="midnight", backupCount=14, utc=True
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(formatter)

        logger.addHandler(info_handler)
        logger.addHandler(error_handler)

    return logger


def get_logger(app):
    """Return a structlog logger writing through ``app.logger``'s handlers."""
    return structlog.get_logger(app.logger.name)


def _is_valid_ip(value):
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def get_ip_address(req):
    ip = req.headers.get("X-Real-IP", "").strip()
    if ip and _is_valid_ip(ip):
        return ip

    forwarded_for = req.headers.get("X-Forwarded-For", "")
    for candidate in forwarded_for.split(","):
        candidate = candidate.strip()
        if candidate and _is_valid_ip(candidate):
            return candidate

    remote = req.remote_addr or ""
    if remote and _is_valid_ip(remote):
        return remote
    return ""


def get_request_metadata(req):
    """Return ``(ip, user_agent)`` for a request."""
    return get_ip_address(req), req.headers.get("User-Agent", "")


class HandlerLogger:
    """Logs the outcome of a handler call with the caller's request metadata.

    The user and request ids come from the bound request context.
    """

    def __init__(self, logger):
        self.logger = logger

    def log_handler_success(self, operation, details, ip, user_agent):
        self.logger.info(
            "User action success",
            action=operation,
            status="success",
            details=details,
            ip=ip,
            user_agent=user_agent,
        )

    def log_handler_error(self, operation, code, message, ip, user_agent, err=None):
        fields = {}
        if err is not None:
            fields["error"] = str(err)
        self.logger.error(
            "User action failed",
            action=operation,
            status="fail",
            details=message,
            ip=ip,
            user_agent=user_agent,
            code=code,
            **fields,
        )


def bind_user_id(user_id):
    structlog.contextvars.bind_contextvars(user_id=user_id or None)


def init_request_logging(app):
    """Register the request-context and access-log hooks."""
    access_log = get_logger(app)

    @app.before_request
    def _start_request():
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        g.request_started = time.perf_counter()
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=g.request_id,
            user_id=None,
            ip=get_ip_address(request),
            user_agent=request.headers.get("User-Agent", ""),
        )

    @app.after_request
    def _log_request(response):
        response.headers["X-Request-ID"] = g.get("request_id", "")
        if request.path.startswith(ACCESS_LOG_EXCLUDE):
            return response

        started = g.get("request_started")
        latency_ms = (time.perf_counter() - started) * 1000 if started is not None else 0.0
        if response.status_code >= 500:
            status = "error"
        elif response.status_code >= 400:
            status = "fail"
        else:
            status = "success"

        access_log.info(
            "HTTP request",
            method=request.method,
            path=request.path,
            status=status,
            code=response.status_code,
            latency_ms=round(latency_ms, 2),
        )
        return response

    @app.teardown_request
    def _end_request(exc):
        structlog.contextvars.clear_contextvars()
