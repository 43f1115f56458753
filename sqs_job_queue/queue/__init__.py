"""
Queue module.
Contains the uniform queue contract, its adapter and the factory wiring them up.
"""

from sqs_job_queue.queue.factory import create_queue, get_backend
from sqs_job_queue.queue.interface import QueueInterface
from sqs_job_queue.queue.sqs_queue import SqsQueue

__all__ = [
    "QueueInterface",
    "SqsQueue",
    "create_queue",
    "get_backend",
]
