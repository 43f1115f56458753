"""
Structured logging for queue adapters and workers.

Application modules log through the standard library with ``extra`` fields;
structlog renders those records. Delivery handles and message bodies show up
in those fields, so they are shortened before rendering.
"""

import logging
import sys
from typing import Any

import structlog
from opentelemetry import trace

from sqs_job_queue.config import get_settings

HANDLE_FIELDS = ("handle", "receipt_handle")
BODY_FIELDS = ("body",)
MAX_BODY_LENGTH = 200

# boto debug output includes request signing details
QUIET_LOGGERS = ("botocore", "boto3", "urllib3")


def shorten_handle(handle: str, keep: int = 8) -> str:
    """
    Shorten a delivery handle for display.

    Receipt handles run to several hundred characters; only the head and
    tail are kept.
    """
    if len(handle) <= keep * 2 + 3:
        return handle
    return f"{handle[:keep]}...{handle[-keep:]}"


def add_trace_context(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Add the current OpenTelemetry trace and span ids."""
    span = trace.get_current_span()
    if span and span.is_recording():
        ctx = span.get_span_context()
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


def redact_message_fields(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Shorten delivery handles and truncate message bodies.

    Args:
        logger: The logger instance.
        method_name: The method name being called.
        event_dict: The event dictionary.

    Returns:
        The event dictionary with handle and body fields shortened.
    """
    for key in HANDLE_FIELDS:
        value = event_dict.get(key)
        if isinstance(value, str):
            event_dict[key] = shorten_handle(value)

    for key in BODY_FIELDS:
        value = event_dict.get(key)
        if isinstance(value, str) and len(value) > MAX_BODY_LENGTH:
            event_dict[key] = f"{value[:MAX_BODY_LENGTH]}... ({len(value)} chars)"

    return event_dict


def build_processors() -> list[Any]:
    """Processors shared by structlog loggers and standard library records."""
    return [
        structlog.contextvars.merge_contextvars,
        add_trace_context,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ExtraAdder(),
        redact_message_fields,
    ]


def setup_logging(level: str | None = None, log_format: str | None = None) -> None:
    """
    Route standard library logging through structlog.

    Args:
        level: Log level name. Defaults to LOG_LEVEL.
        log_format: "json" or "console". Defaults to LOG_FORMAT.
    """
    settings = get_settings()
    level = level or settings.log_level
    log_format = log_format or settings.log_format

    shared_processors = build_processors()

    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_worker_context(worker_id: str, queue_name: str) -> None:
    """Tag every following log record of this context with the worker and its queue."""
    structlog.contextvars.bind_contextvars(worker_id=worker_id, queue_name=queue_name)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
