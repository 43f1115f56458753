"""
Worker process for executing jobs.

The worker reserves messages from a queue, executes them, and finishes,
releases or abandons them according to the job outcome.
"""

import asyncio
import logging
import os
import signal
import socket
import time
from datetime import datetime, timezone

from sqs_job_queue.config import get_settings
from sqs_job_queue.constants import SPAN_EXECUTE_JOB
from sqs_job_queue.errors import QueueBackendError
from sqs_job_queue.observability.logging import bind_worker_context, clear_context, setup_logging
from sqs_job_queue.observability.metrics import get_metrics, start_metrics_server
from sqs_job_queue.observability.tracing import create_span, instrument_botocore, setup_tracing
from sqs_job_queue.queue import QueueInterface, create_queue
from sqs_job_queue.types.job import JobContext, JobResult
from sqs_job_queue.types.message import Message
from sqs_job_queue.worker.handlers import execute_job

logger = logging.getLogger(__name__)


class Worker:
    """
    Job worker that reserves and executes messages.

    Features:
    - Long-poll reservation, run off the event loop
    - Heartbeat to extend the visibility window of running jobs
    - Release with a retry delay on failure, abort after max attempts
    - Graceful shutdown on SIGTERM/SIGINT

    Stopping waits for the current long poll to return, at most the
    backend's long-poll ceiling.
    """

    def __init__(
        self,
        queue: QueueInterface,
        worker_id: str | None = None,
        visibility_timeout: int | None = None,
        heartbeat_interval: float | None = None,
        max_attempts: int | None = None,
        retry_delay: int | None = None,
        error_backoff: float | None = None,
    ):
        """
        Initialize the worker.

        Args:
            queue: The queue to consume.
            worker_id: Unique worker identifier. Defaults to hostname + PID.
            visibility_timeout: Seconds a reserved message stays hidden.
            heartbeat_interval: Seconds between visibility extensions.
            max_attempts: Deliveries after which a failing job is abandoned.
            retry_delay: Seconds before a failed job becomes visible again.
            error_backoff: Seconds to wait after a failed poll.
        """
        settings = get_settings()

        self.queue = queue
        self.worker_id = worker_id or settings.worker_id or f"{socket.gethostname()}-{os.getpid()}"
        if visibility_timeout is None:
            visibility_timeout = settings.worker_visibility_timeout_seconds
        if visibility_timeout is None:
            visibility_timeout = settings.queue_default_visibility_timeout
        self.visibility_timeout = visibility_timeout
        self.heartbeat_interval = (
            heartbeat_interval if heartbeat_interval is not None else settings.worker_heartbeat_interval_seconds
        )
        self.max_attempts = max_attempts if max_attempts is not None else settings.worker_max_attempts
        self.retry_delay = retry_delay if retry_delay is not None else settings.worker_retry_delay_seconds
        self.error_backoff = error_backoff if error_backoff is not None else settings.worker_error_backoff_seconds

        self._running = False
        self._in_flight: dict[str, Message] = {}
        # Serializes visibility changes on in-flight handles
        self._visibility_lock = asyncio.Lock()
        self._heartbeat_task: asyncio.Task | None = None
        self._metrics = get_metrics()

    async def start(self) -> None:
        """Start the worker."""
        logger.info(
            "Worker starting",
            extra={"worker_id": self.worker_id, "queue_name": self.queue.name}
        )

        bind_worker_context(self.worker_id, self.queue.name)
        self._running = True

        self._heartbeat_task = asyncio.create_task(self._heartbeat_loop())

        # The long poll itself paces the loop when the queue is empty
        while self._running:
            try:
                await self._poll_and_execute()
            except Exception as e:
                logger.exception(
                    f"Error in worker loop: {e}",
                    extra={"worker_id": self.worker_id}
                )
                await asyncio.sleep(self.error_backoff)

        if self._heartbeat_task:
            self._heartbeat_task.cancel()
            try:
                await self._heartbeat_task
            except asyncio.CancelledError:
                pass

        logger.info("Worker stopped", extra={"worker_id": self.worker_id})
        clear_context()

    async def stop(self) -> None:
        """Stop the worker gracefully."""
        logger.info("Worker stopping", extra={"worker_id": self.worker_id})
        self._running = False

    async def _poll_and_execute(self) -> int:
        """
        Reserve a message and execute it.

        Returns:
            Number of messages processed.
        """
        message = await asyncio.to_thread(self.queue.wait_and_reserve, self.visibility_timeout)
        if message is None:
            return 0

        await self._execute_message(message)
        return 1

    async def _execute_message(self, message: Message) -> None:
        """
        Execute a single reserved message.

        Handles the full lifecycle:
        1. Dispatch to the job handler
        2. Finish on success
        3. Release for a retry, or abort once attempts are used up

        Args:
            message: The reserved message.
        """
        start_time = time.time()
        handle = message.identifier
        status = "error"
        self._in_flight[handle] = message

        try:
            context = JobContext(
                handle=handle,
                queue_name=self.queue.name,
                attempt=message.delivery_count,
                max_attempts=self.max_attempts,
                payload=message.payload,
                worker_id=self.worker_id,
                reserved_at=datetime.now(timezone.utc),
                visibility_timeout=self.visibility_timeout,
            )

            logger.info(
                "Executing job",
                extra={
                    "queue_name": context.queue_name,
                    "handle": handle,
                    "worker_id": self.worker_id,
                    "attempt": context.attempt,
                }
            )

            with create_span(
                SPAN_EXECUTE_JOB,
                queue_name=context.queue_name,
                attempt=context.attempt,
                worker_id=self.worker_id,
            ):
                result = await execute_job(context)

            duration = time.time() - start_time

            # Heartbeats must not touch the handle once the outcome is being applied
            async with self._visibility_lock:
                self._in_flight.pop(handle, None)
                status = await self._settle(context, result, duration)

        except Exception as e:
            # The message reappears once its visibility window ends
            logger.exception(
                "Exception executing job",
                extra={"queue_name": self.queue.name, "handle": handle, "error": str(e)}
            )

        finally:
            self._in_flight.pop(handle, None)
            self._metrics.record_job_completed(
                queue=self.queue.name,
                status=status,
                duration_seconds=time.time() - start_time,
            )

    async def _settle(self, context: JobContext, result: JobResult, duration: float) -> str:
        """Finish, abort or release a message according to its job result."""
        handle = context.handle

        if result.success:
            await asyncio.to_thread(self.queue.finish, handle)

            logger.info(
                "Job completed successfully",
                extra={
                    "queue_name": context.queue_name,
                    "duration": f"{duration:.2f}s",
                }
            )
            return "succeeded"

        if context.is_last_attempt:
            # Redelivered until the backend's redrive policy moves it aside
            await asyncio.to_thread(self.queue.abort, handle)

            logger.error(
                "Job failed on last attempt",
                extra={
                    "queue_name": context.queue_name,
                    "handle": handle,
                    "error": result.error,
                    "attempt": context.attempt,
                }
            )
            return "aborted"

        await asyncio.to_thread(self.queue.release, handle, delay=self.retry_delay)

        logger.warning(
            "Job failed",
            extra={
                "queue_name": context.queue_name,
                "error": result.error,
                "attempt": context.attempt,
                "retry_delay": self.retry_delay,
            }
        )
        return "retrying"

    async def _heartbeat_loop(self) -> None:
        """
        Periodically extend the visibility window of running jobs.

        This keeps long jobs from being handed to another consumer while
        they're still being executed.
        """
        while self._running:
            try:
                await asyncio.sleep(self.heartbeat_interval)

                for handle in list(self._in_flight.keys()):
                    async with self._visibility_lock:
                        if handle not in self._in_flight:
                            continue
                        try:
                            await asyncio.to_thread(
                                self.queue.extend_visibility, handle, self.visibility_timeout
                            )
                        except QueueBackendError as e:
                            logger.warning(
                                "Could not extend visibility",
                                extra={"queue_name": self.queue.name, "handle": handle, "error": str(e)}
                            )

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.exception(f"Error in heartbeat loop: {e}")


async def run_async() -> None:
    """Run the worker asynchronously."""
    settings = get_settings()

    setup_logging()
    setup_tracing()
    instrument_botocore()
    start_metrics_server(settings.prometheus_port)

    queue = create_queue()
    queue.set_up()

    worker = Worker(queue)

    # Handle shutdown signals
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: asyncio.create_task(worker.stop())
        )

    await worker.start()


def run() -> None:
    """Run the worker."""
    asyncio.run(run_async())


if __name__ == "__main__":
    run()
