"""
Observability module.
Contains logging, metrics, and tracing setup.
"""

from sqs_job_queue.observability.logging import setup_logging, shorten_handle
from sqs_job_queue.observability.metrics import (
    MetricsCollector,
    get_metrics,
    setup_metrics,
)
from sqs_job_queue.observability.tracing import get_tracer, setup_tracing

__all__ = [
    "setup_logging",
    "shorten_handle",
    "setup_metrics",
    "get_metrics",
    "MetricsCollector",
    "setup_tracing",
    "get_tracer",
]
