"""
Structured JSON logging configuration.

Provides structured logging with channels (http, db, students, courses,
sequence), request ID tracking, and context-rich log entries. All log output
is valid JSON written to stdout for container log aggregation.

Student personal data (NIC, phone numbers, email, address, date of birth and
free-text search terms that may carry them) is masked before it is written.
"""

import logging
import json
import os
import uuid
from datetime import datetime, timezone
from contextvars import ContextVar

# Each incoming HTTP request gets a unique UUID, which is then
# attached to every log entry produced during that request.
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

CHANNELS = ["http", "db", "students", "courses", "sequence"]

# Masked wherever they appear in context or extra, nested dicts included
SENSITIVE_KEYS = frozenset({
    "nic", "phone", "guardian_phone", "guardianPhone", "email",
    "address", "date_of_birth", "dateOfBirth", "search",
})


def mask_value(value):
    """
    Mask a personal value, keeping only enough to tell records apart.

    Emails keep their first character and domain; anything else keeps its
    last three characters.
    """
    if value is None:
        return None
    text = str(value)
    if "@" in text:
        local, _, domain = text.partition("@")
        return "{}***@{}".format(local[:1], domain)
    if len(text) <= 3:
        return "*" * len(text)
    return "*" * (len(text) - 3) + text[-3:]


def redact(data):
    """Return a copy of a log dict with sensitive values masked."""
    if not isinstance(data, dict):
        return data
    return {
        key: redact(value) if isinstance(value, dict)
        else mask_value(value) if key in SENSITIVE_KEYS
        else value
        for key, value in data.items()
    }


class StructuredJsonFormatter(logging.Formatter):
    """
    Formatter that renders each record as one JSON object.

    Keys: timestamp (ISO 8601 UTC), level, message, channel, context
    (request_id plus business identifiers such as student_id), extra
    (duration_ms, status_code, ...) and, when present, exception.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level": record.levelname,
            "message": record.getMessage(),
            "channel": getattr(record, "channel", record.name.split(".")[-1] if "." in record.name else "app"),
            "context": {
                "request_id": request_id_var.get(""),
                **redact(getattr(record, "context", {}) or {})
            },
            "extra": redact(getattr(record, "extra_data", {}) or {})
        }
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def setup_logging():
    """
    Configure the root logger and all channel loggers.

    Output goes to stdout through a single handler on the root logger; the
    channel loggers only carry names and levels.
    """
    formatter = StructuredJsonFormatter()

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
    root_logger.handlers = [handler]

    for channel in CHANNELS:
        logger = logging.getLogger(f"app.{channel}")
        logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))

    return root_logger


def get_logger(channel: str) -> logging.Logger:
    """Get the logger for a channel (http, db, students, courses, sequence)."""
    return logging.getLogger(f"app.{channel}")


def log_with_context(logger: logging.Logger, level: str, message: str,
                     context: dict = None, extra_data: dict = None,
                     exc_info: bool = False):
    """
    Emit a structured log entry with business context and extra metadata.

    Args:
        logger: The channel logger to use
        level: Log level string (INFO, WARNING, ERROR, DEBUG)
        message: Human-readable log message
        context: Business context dict (student_id, course_id, ...)
        extra_data: Additional metadata dict (ip, duration_ms, query_params)
        exc_info: Attach the active exception's traceback
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    logger.log(
        log_level,
        message,
        exc_info=exc_info,
        extra={"context": context or {}, "extra_data": extra_data or {}, "channel": logger.name.split(".")[-1]}
    )


def generate_request_id() -> str:
    """Generate a new UUID for request tracking."""
    return str(uuid.uuid4())
