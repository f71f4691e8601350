"""
OTP Guard Logging
=================
Structured logging setup and audit events.

Usage:
    from otp_guard.logging import setup_logging, bind_request_context, log_audit

    setup_logging(service_name="login-service")
    bind_request_context(request_id="req_123", user_id="alice")
    log_audit("otp.verified", actor_id="alice", outcome="success")
"""

import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Optional

import structlog

# Module loggers are created through structlog; this one is for audit events
audit_logger = structlog.get_logger("otp_guard.audit")

_SERVICE_KEY = "service"


class JSONFormatter(logging.Formatter):
    """Formats log records as a single JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if hasattr(record, "extra_data"):
            log_data.update(record.extra_data)

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": traceback.format_exception(*record.exc_info),
            }

        log_data["source"] = {
            "file": record.filename,
            "line": record.lineno,
            "function": record.funcName,
        }

        return json.dumps(log_data, default=str)


def _render_to_extra_data(logger: Any, method_name: str, event_dict: dict) -> dict:
    """Hand the structlog event to the stdlib logger as extra_data."""
    event = event_dict.pop("event", "")
    event_dict.pop("level", None)
    exc_info = event_dict.pop("exc_info", None)
    kwargs = {"msg": event, "extra": {"extra_data": event_dict}}
    if exc_info:
        kwargs["exc_info"] = exc_info
    return kwargs


def setup_logging(
    service_name: str,
    level: str = "INFO",
    json_output: bool = True,
) -> logging.Logger:
    """
    Configure logging for a service using otp_guard.

    Args:
        service_name: Name of the service (e.g., "login-service")
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Whether to output JSON (for production)

    Returns:
        Configured root logger
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
        ))
    root_logger.addHandler(handler)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            _render_to_extra_data,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )
    structlog.contextvars.bind_contextvars(**{_SERVICE_KEY: service_name})

    root_logger.info(
        f"Logging configured for {service_name}",
        extra={"extra_data": {"event": "logging.configured", "service": service_name}},
    )
    return root_logger


def bind_request_context(
    request_id: Optional[str] = None,
    user_id: Optional[str] = None,
) -> None:
    """Attach request identifiers to every log line in this context."""
    values = {}
    if request_id:
        values["request_id"] = request_id
    if user_id:
        values["user_id"] = user_id
    structlog.contextvars.bind_contextvars(**values)


def clear_request_context() -> None:
    structlog.contextvars.unbind_contextvars("request_id", "user_id")


def log_audit(
    action: str,
    actor_id: Optional[str] = None,
    outcome: str = "success",
    **metadata: Any,
) -> None:
    """
    Log an audit event.

    Args:
        action: Action performed (e.g., "otp.verified", "otp.rejected")
        actor_id: Username the attempt was made for
        outcome: Result (success, failure)
        **metadata: Additional context; never pass codes or secrets
    """
    log = audit_logger.warning if outcome == "failure" else audit_logger.info
    log(
        action,
        audit=True,
        actor_id=actor_id,
        outcome=outcome,
        metadata=metadata,
    )
