"""
Application constants.
Centralized location for all constant values used across the application.
"""

from enum import StrEnum


class ReceiveMode(StrEnum):
    """
    How a received message is held.

    - TAKE: received and deleted at once (at-most-once)
    - RESERVE: received and hidden until finished, released or expired (at-least-once)
    - PEEK: received with a zero visibility window, stays visible to everyone
    """

    TAKE = "take"
    RESERVE = "reserve"
    PEEK = "peek"


class BackendType(StrEnum):
    """Queue backend implementations selectable from settings."""

    SQS = "sqs"
    MEMORY = "memory"


# Default values
DEFAULT_TIMEOUT_SECONDS = 60
DEFAULT_VISIBILITY_TIMEOUT_SECONDS = 300

# Backend limits
LONG_POLL_CEILING_SECONDS = 20
MAX_RECEIVE_BATCH = 10
MAX_VISIBILITY_TIMEOUT_SECONDS = 43_200
MAX_DELAY_SECONDS = 900
MAX_QUEUE_NAME_LENGTH = 80

# Backend attribute names
ATTR_RECEIVE_COUNT = "ApproximateReceiveCount"
ATTR_MESSAGES_READY = "ApproximateNumberOfMessages"
ATTR_MESSAGES_NOT_VISIBLE = "ApproximateNumberOfMessagesNotVisible"
ATTR_MESSAGES_DELAYED = "ApproximateNumberOfMessagesDelayed"
ATTR_VISIBILITY_TIMEOUT = "VisibilityTimeout"

# Envelope
ENVELOPE_PAYLOAD_KEY = "payload"

# Metrics names
METRIC_QUEUE_DEPTH = "queue_depth"
METRIC_MESSAGES_SUBMITTED = "queue_messages_submitted_total"
METRIC_MESSAGES_RECEIVED = "queue_messages_received_total"
METRIC_MESSAGES_FINISHED = "queue_messages_finished_total"
METRIC_MESSAGES_RELEASED = "queue_messages_released_total"
METRIC_VISIBILITY_EXTENSIONS = "queue_visibility_extensions_total"
METRIC_BACKEND_REQUESTS = "queue_backend_requests_total"
METRIC_BACKEND_LATENCY = "queue_backend_request_latency_seconds"
METRIC_JOBS_COMPLETED = "jobs_completed_total"
METRIC_JOB_DURATION = "job_duration_seconds"

# Trace span names
SPAN_EXECUTE_JOB = "execute_job"
