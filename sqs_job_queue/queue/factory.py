"""
Composition root for queue adapters.

Builds backends and adapters from settings so application code never
constructs network clients itself.
"""

import logging
from typing import Any, Mapping

from pydantic import ValidationError

from sqs_job_queue.backends.base import QueueBackend
from sqs_job_queue.backends.memory import InMemoryBackend
from sqs_job_queue.backends.sqs import SqsBackend
from sqs_job_queue.config import Settings, get_settings
from sqs_job_queue.constants import BackendType
from sqs_job_queue.errors import QueueConfigurationError
from sqs_job_queue.queue.sqs_queue import SqsQueue
from sqs_job_queue.types.message import QueueOptions

logger = logging.getLogger(__name__)

# Shared so producers and workers in one process see the same queues
_memory_backend: InMemoryBackend | None = None


def get_backend(settings: Settings | None = None) -> QueueBackend:
    """
    Build the queue backend selected by QUEUE_BACKEND.

    Args:
        settings: Settings to use. Defaults to the cached application settings.

    Returns:
        QueueBackend: An SqsBackend, or the process-wide InMemoryBackend.
    """
    global _memory_backend
    settings = settings or get_settings()

    match BackendType(settings.queue_backend):
        case BackendType.MEMORY:
            if _memory_backend is None:
                _memory_backend = InMemoryBackend()
                logger.info("Using in-memory queue backend")
            return _memory_backend

        case BackendType.SQS:
            logger.info(
                "Using SQS queue backend",
                extra={"region": settings.aws_region, "endpoint_url": settings.aws_endpoint_url},
            )
            return SqsBackend(settings=settings)


def create_queue(
    name: str | None = None,
    options: QueueOptions | Mapping[str, Any] | None = None,
    *,
    backend: QueueBackend | None = None,
    settings: Settings | None = None,
) -> SqsQueue:
    """
    Create a queue adapter with defaults taken from settings.

    QUEUE_URL only applies to the queue named by QUEUE_NAME; any other
    queue is provisioned by name unless options carry an endpoint.

    Args:
        name: Queue name. Defaults to QUEUE_NAME.
        options: Overrides for the settings-derived options.
        backend: Backend to use. Built from settings if not provided.
        settings: Settings to use. Defaults to the cached application settings.
    """
    settings = settings or get_settings()
    name = name or settings.queue_name

    merged: dict[str, Any] = {
        "default_timeout": settings.queue_default_timeout,
        "default_visibility_timeout": settings.queue_default_visibility_timeout,
    }
    if name == settings.queue_name and settings.queue_url:
        merged["endpoint_identifier"] = settings.queue_url

    if isinstance(options, QueueOptions):
        merged.update(options.model_dump(exclude_unset=True))
    elif options:
        try:
            overrides = QueueOptions.model_validate(options)
        except ValidationError as e:
            raise QueueConfigurationError(f"Invalid options for queue {name!r}: {e}") from e
        merged.update(overrides.model_dump(exclude_unset=True))

    return SqsQueue(name, merged, backend=backend or get_backend(settings))
