"""
In-process queue backend.

Emulates the visibility-timeout model of a managed queue service: each
receive hides a message for a window, hands out a fresh delivery handle and
bumps the receive count. Used for local development and tests.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Mapping, Sequence
from uuid import uuid4

from sqs_job_queue.backends.base import QueueBackend
from sqs_job_queue.constants import (
    ATTR_MESSAGES_DELAYED,
    ATTR_MESSAGES_NOT_VISIBLE,
    ATTR_MESSAGES_READY,
    ATTR_RECEIVE_COUNT,
    ATTR_VISIBILITY_TIMEOUT,
)
from sqs_job_queue.errors import QueueBackendError, StaleHandleError
from sqs_job_queue.types.message import ReceivedMessage

logger = logging.getLogger(__name__)

# Visibility timeout of a queue created without one
QUEUE_DEFAULT_VISIBILITY_TIMEOUT = 30

# Upper bound on remembered handles of deleted messages per queue
MAX_DELETED_HANDLES = 10_000


@dataclass
class StoredMessage:
    """A message as held by the in-memory backend."""

    message_id: str
    body: str
    visible_at: float
    receive_count: int = 0
    handle: str | None = None


@dataclass
class MemoryQueue:
    """State of a single in-memory queue."""

    name: str
    attributes: dict[str, str]
    messages: list[StoredMessage] = field(default_factory=list)
    dead_letters: list[StoredMessage] = field(default_factory=list)
    # handle -> time after which a repeated delete is no longer accepted
    deleted_handles: dict[str, float] = field(default_factory=dict)

    @property
    def visibility_timeout(self) -> int:
        return int(self.attributes.get(ATTR_VISIBILITY_TIMEOUT, QUEUE_DEFAULT_VISIBILITY_TIMEOUT))


class InMemoryBackend(QueueBackend):
    """
    Thread-safe in-memory queue backend.

    Features:
    - Idempotent queue creation by name
    - Visibility windows, delivery handles and receive counts per message
    - Long polling until a message becomes visible or the wait expires
    - Optional redrive to a dead-letter list after max_receive_count receives
    """

    ENDPOINT_PREFIX = "memory://"

    def __init__(
        self,
        max_receive_count: int | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        poll_interval: float = 0.05,
    ):
        """
        Initialize the backend.

        Args:
            max_receive_count: Receives after which a message is moved to the
                dead-letter list instead of being delivered again.
            clock: Monotonic time source in seconds.
            sleep: Sleep function used while long polling.
            poll_interval: Seconds between availability checks while long polling.
        """
        self.max_receive_count = max_receive_count
        self._clock = clock
        self._sleep = sleep
        self._poll_interval = poll_interval
        self._queues: dict[str, MemoryQueue] = {}
        self._lock = threading.Lock()

    def _get_queue(self, endpoint: str) -> MemoryQueue:
        queue = self._queues.get(endpoint)
        if queue is None:
            raise QueueBackendError(
                f"Queue does not exist: {endpoint}",
                code="AWS.SimpleQueueService.NonExistentQueue",
            )
        return queue

    @staticmethod
    def _prune_deleted(queue: MemoryQueue, now: float) -> None:
        expired = [handle for handle, expires_at in queue.deleted_handles.items() if expires_at <= now]
        for handle in expired:
            del queue.deleted_handles[handle]

    def _find_by_handle(self, queue: MemoryQueue, handle: str) -> StoredMessage | None:
        for message in queue.messages:
            if message.handle == handle:
                return message
        return None

    def create_queue(self, name: str, attributes: Mapping[str, str] | None = None) -> str:
        endpoint = f"{self.ENDPOINT_PREFIX}{name}"
        with self._lock:
            if endpoint not in self._queues:
                self._queues[endpoint] = MemoryQueue(
                    name=name,
                    attributes={key: str(value) for key, value in (attributes or {}).items()},
                )
                logger.debug("Created in-memory queue", extra={"queue_name": name})
        return endpoint

    def send_message(self, endpoint: str, body: str, delay_seconds: int = 0) -> None:
        with self._lock:
            queue = self._get_queue(endpoint)
            queue.messages.append(
                StoredMessage(
                    message_id=str(uuid4()),
                    body=body,
                    visible_at=self._clock() + delay_seconds,
                )
            )

    def receive_message(
        self,
        endpoint: str,
        max_count: int = 1,
        wait_seconds: int | None = None,
        visibility_timeout: int | None = None,
        attribute_names: Sequence[str] = (),
    ) -> list[ReceivedMessage]:
        deadline = self._clock() + (wait_seconds or 0)

        while True:
            with self._lock:
                batch = self._receive_visible(
                    self._get_queue(endpoint), max_count, visibility_timeout, attribute_names
                )

            remaining = deadline - self._clock()
            if batch or remaining <= 0:
                return batch

            self._sleep(min(self._poll_interval, remaining))

    def _receive_visible(
        self,
        queue: MemoryQueue,
        max_count: int,
        visibility_timeout: int | None,
        attribute_names: Sequence[str],
    ) -> list[ReceivedMessage]:
        now = self._clock()
        window = queue.visibility_timeout if visibility_timeout is None else visibility_timeout
        batch: list[ReceivedMessage] = []

        for message in list(queue.messages):
            if len(batch) >= max_count:
                break
            if message.visible_at > now:
                continue

            if (
                self.max_receive_count is not None
                and message.receive_count >= self.max_receive_count
            ):
                queue.messages.remove(message)
                queue.dead_letters.append(message)
                logger.info(
                    "Moved message to dead-letter list",
                    extra={
                        "queue_name": queue.name,
                        "message_id": message.message_id,
                        "receive_count": message.receive_count,
                    },
                )
                continue

            message.receive_count += 1
            message.handle = f"{message.message_id}:{uuid4().hex}"
            message.visible_at = now + window

            attributes = {}
            if ATTR_RECEIVE_COUNT in attribute_names or "All" in attribute_names:
                attributes[ATTR_RECEIVE_COUNT] = str(message.receive_count)

            batch.append(
                ReceivedMessage(handle=message.handle, body=message.body, attributes=attributes)
            )

        return batch

    def delete_message(self, endpoint: str, handle: str) -> None:
        with self._lock:
            queue = self._get_queue(endpoint)
            now = self._clock()
            self._prune_deleted(queue, now)
            # Deleting twice with the same handle succeeds while the tombstone lasts
            if handle in queue.deleted_handles:
                return

            message = self._find_by_handle(queue, handle)
            if message is None:
                raise StaleHandleError(
                    "Receipt handle is no longer valid", code="ReceiptHandleIsInvalid"
                )

            queue.messages.remove(message)
            queue.deleted_handles[handle] = now + queue.visibility_timeout
            if len(queue.deleted_handles) > MAX_DELETED_HANDLES:
                del queue.deleted_handles[next(iter(queue.deleted_handles))]

    def change_message_visibility(self, endpoint: str, handle: str, timeout: int) -> None:
        with self._lock:
            queue = self._get_queue(endpoint)
            message = self._find_by_handle(queue, handle)
            now = self._clock()
            if message is None or message.visible_at <= now:
                raise StaleHandleError(
                    "Message is not in flight for this receipt handle",
                    code="AWS.SimpleQueueService.MessageNotInflight",
                )
            message.visible_at = now + timeout

    def purge_queue(self, endpoint: str) -> None:
        with self._lock:
            queue = self._get_queue(endpoint)
            purged = len(queue.messages)
            queue.messages.clear()
            queue.deleted_handles.clear()
        logger.debug("Purged in-memory queue", extra={"endpoint": endpoint, "purged": purged})

    def get_queue_attributes(self, endpoint: str, names: Sequence[str]) -> dict[str, str]:
        with self._lock:
            queue = self._get_queue(endpoint)
            now = self._clock()
            ready = not_visible = delayed = 0
            for message in queue.messages:
                if message.visible_at <= now:
                    ready += 1
                elif message.receive_count == 0:
                    delayed += 1
                else:
                    not_visible += 1

            available = {
                ATTR_MESSAGES_READY: str(ready),
                ATTR_MESSAGES_NOT_VISIBLE: str(not_visible),
                ATTR_MESSAGES_DELAYED: str(delayed),
                ATTR_VISIBILITY_TIMEOUT: str(queue.visibility_timeout),
            }

        if "All" in names:
            return available
        return {name: available[name] for name in names if name in available}

    def dead_letters(self, endpoint: str) -> list[str]:
        """Bodies of messages moved aside after exceeding max_receive_count."""
        with self._lock:
            return [message.body for message in self._get_queue(endpoint).dead_letters]
