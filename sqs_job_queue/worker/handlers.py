"""
Job handlers registry and implementations.

Job handlers must be idempotent - a reserved message is delivered again if
the worker crashes or its visibility window runs out before it finishes.
"""

import asyncio
import logging
from typing import Awaitable, Callable

from pydantic import ValidationError

from sqs_job_queue.types.job import JobContext, JobPayload, JobResult

logger = logging.getLogger(__name__)

# Type alias for job handler functions
JobHandler = Callable[[JobContext], Awaitable[JobResult]]

# Handler registry
_handlers: dict[str, JobHandler] = {}


def register_handler(job_type: str) -> Callable[[JobHandler], JobHandler]:
    """
    Decorator to register a job handler.

    Args:
        job_type: The job type this handler processes.

    Returns:
        Decorator function.

    Example:
        @register_handler("resize")
        async def handle_resize(context: JobContext) -> JobResult:
            ...
    """
    def decorator(handler: JobHandler) -> JobHandler:
        _handlers[job_type] = handler
        logger.info(f"Registered handler for job type: {job_type}")
        return handler
    return decorator


def get_handler(job_type: str) -> JobHandler | None:
    """
    Get the handler for a job type.

    Args:
        job_type: The job type.

    Returns:
        The handler function or None if not found.
    """
    return _handlers.get(job_type)


def list_handlers() -> list[str]:
    """List all registered job types."""
    return list(_handlers.keys())


# ============================================================================
# Built-in job handlers
# ============================================================================


@register_handler("echo")
async def handle_echo(context: JobContext) -> JobResult:
    """
    Echo handler for testing.

    Simply returns the input payload as output.
    """
    logger.info(
        "Echo job executing",
        extra={"queue_name": context.queue_name, "attempt": context.attempt}
    )

    return JobResult(
        success=True,
        output={"echo": context.payload},
    )


@register_handler("sleep")
async def handle_sleep(context: JobContext) -> JobResult:
    """
    Sleep handler for testing visibility extension.

    Payload should contain:
    - duration_seconds: How long to sleep
    """
    duration = context.payload.get("data", {}).get("duration_seconds", 1)

    logger.info(
        "Sleep job starting",
        extra={"queue_name": context.queue_name, "duration": duration}
    )

    await asyncio.sleep(duration)

    return JobResult(
        success=True,
        output={"slept_for": duration},
    )


@register_handler("failing_job")
async def handle_failing_job(context: JobContext) -> JobResult:
    """
    Handler that always fails - for testing release and redelivery.
    """
    logger.info(
        "Failing job executing (will fail)",
        extra={"queue_name": context.queue_name, "attempt": context.attempt}
    )

    return JobResult(
        success=False,
        error=f"Intentional failure on attempt {context.attempt}",
    )


async def execute_job(context: JobContext) -> JobResult:
    """
    Execute a job using the appropriate handler.

    Args:
        context: The job context.

    Returns:
        JobResult from the handler.
    """
    try:
        job = JobPayload.model_validate(context.payload)
    except ValidationError as e:
        logger.error(
            "Message payload is not a job",
            extra={"queue_name": context.queue_name, "error": str(e)}
        )
        return JobResult(
            success=False,
            error=f"Invalid job payload: {e.error_count()} validation error(s)",
        )

    handler = get_handler(job.job_type)

    if handler is None:
        logger.error(
            f"No handler for job type: {job.job_type}",
            extra={"queue_name": context.queue_name}
        )
        return JobResult(
            success=False,
            error=f"No handler registered for job type: {job.job_type}",
        )

    try:
        return await handler(context)
    except Exception as e:
        logger.exception(
            "Handler raised exception",
            extra={"queue_name": context.queue_name, "error": str(e)}
        )
        return JobResult(
            success=False,
            error=f"Handler exception: {str(e)}",
        )
