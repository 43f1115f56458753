"""
Queue backends.
Each backend implements the operations the queue adapter delegates to.
"""

from sqs_job_queue.backends.base import QueueBackend
from sqs_job_queue.backends.memory import InMemoryBackend
from sqs_job_queue.backends.sqs import SqsBackend, create_sqs_client

__all__ = [
    "QueueBackend",
    "InMemoryBackend",
    "SqsBackend",
    "create_sqs_client",
]
