"""
Type definitions for the job queue.
Contains the message, option and job types shared across modules.
"""

from sqs_job_queue.types.job import (
    JobContext,
    JobPayload,
    JobResult,
)
from sqs_job_queue.types.message import (
    Message,
    QueueOptions,
    ReceivedMessage,
)

__all__ = [
    # Message types
    "Message",
    "ReceivedMessage",
    "QueueOptions",
    # Job types
    "JobPayload",
    "JobResult",
    "JobContext",
]
