"""
Queue adapter for visibility-timeout message services.

Maps the uniform queue contract onto a QueueBackend:
- take = receive + immediate delete (at-most-once)
- reserve = receive with a visibility window (at-least-once)
- release = change the remaining visibility window
- finish = delete by delivery handle

The backend is the single source of truth for message existence,
visibility and delivery counts. The adapter holds no state besides the
endpoint and the configured defaults, performs no retries and lets every
backend error reach the caller.
"""

import json
import logging
import re
import time
from typing import Any, Callable, Mapping
from uuid import uuid4

from pydantic import ValidationError

from sqs_job_queue.backends.base import QueueBackend
from sqs_job_queue.constants import (
    ATTR_MESSAGES_READY,
    ATTR_RECEIVE_COUNT,
    ATTR_VISIBILITY_TIMEOUT,
    ENVELOPE_PAYLOAD_KEY,
    LONG_POLL_CEILING_SECONDS,
    MAX_DELAY_SECONDS,
    MAX_QUEUE_NAME_LENGTH,
    MAX_RECEIVE_BATCH,
    MAX_VISIBILITY_TIMEOUT_SECONDS,
    ReceiveMode,
)
from sqs_job_queue.errors import MalformedEnvelopeError, QueueConfigurationError
from sqs_job_queue.observability.metrics import get_metrics
from sqs_job_queue.queue.interface import QueueInterface
from sqs_job_queue.types.message import Message, QueueOptions, ReceivedMessage

logger = logging.getLogger(__name__)

QUEUE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]+(\.fifo)?$")

IdGenerator = Callable[[], str]


def generate_message_id() -> str:
    """Default correlation id generator."""
    return str(uuid4())


def validate_queue_name(name: str) -> str:
    """
    Validate a queue name against the backend naming rules.

    Raises:
        QueueConfigurationError: If the name is empty, too long or has invalid characters.
    """
    if not isinstance(name, str) or not name:
        raise QueueConfigurationError("Queue name must be a non-empty string")
    if len(name) > MAX_QUEUE_NAME_LENGTH:
        raise QueueConfigurationError(
            f"Queue name exceeds {MAX_QUEUE_NAME_LENGTH} characters: {name!r}"
        )
    if not QUEUE_NAME_PATTERN.match(name):
        raise QueueConfigurationError(
            f"Queue name may only contain letters, digits, '-' and '_': {name!r}"
        )
    return name


def _check_seconds(argument: str, value: int, maximum: int | None = None) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{argument} must be an integer number of seconds, got {value!r}")
    if value < 0:
        raise ValueError(f"{argument} must not be negative, got {value}")
    if maximum is not None and value > maximum:
        raise ValueError(f"{argument} must be at most {maximum} seconds, got {value}")
    return value


class SqsQueue(QueueInterface):
    """
    Queue adapter backed by a visibility-timeout message service.

    The endpoint is resolved once at construction: either taken from the
    options or obtained by creating the queue (idempotent by name) with the
    default visibility timeout.
    """

    def __init__(
        self,
        name: str,
        options: QueueOptions | Mapping[str, Any] | None = None,
        *,
        backend: QueueBackend,
        id_generator: IdGenerator = generate_message_id,
    ):
        """
        Initialize the adapter and resolve the queue endpoint.

        Args:
            name: Logical queue name.
            options: QueueOptions or a raw configuration mapping.
            backend: The queue backend to delegate to.
            id_generator: Produces client-side correlation ids for submit.

        Raises:
            QueueConfigurationError: If the name or options are invalid.
        """
        self._name = validate_queue_name(name)

        if isinstance(options, QueueOptions):
            self._options = options
        else:
            try:
                self._options = QueueOptions.model_validate(options or {})
            except ValidationError as e:
                raise QueueConfigurationError(
                    f"Invalid options for queue {name!r}: {e}"
                ) from e

        self._backend = backend
        self._generate_id = id_generator
        self._metrics = get_metrics()

        if self._options.endpoint_identifier is not None:
            self._endpoint = self._options.endpoint_identifier
        else:
            self._endpoint = self._request(
                "create_queue",
                self._name,
                {ATTR_VISIBILITY_TIMEOUT: str(self.default_visibility_timeout)},
            )
            logger.info(
                "Provisioned queue",
                extra={"queue_name": self._name, "endpoint": self._endpoint},
            )

    @property
    def name(self) -> str:
        return self._name

    @property
    def endpoint_identifier(self) -> str:
        return self._endpoint

    @property
    def default_timeout(self) -> int:
        return self._options.default_timeout

    @property
    def default_visibility_timeout(self) -> int:
        return self._options.default_visibility_timeout

    def set_up(self) -> None:
        # TODO: attach a RedrivePolicy (deadLetterTargetArn, maxReceiveCount) once
        # dead-letter queues are provisioned alongside the main queue.
        pass

    def submit(self, payload: Any, *, delay: int | None = None) -> str:
        """
        Submit a payload wrapped in a {"payload": ...} envelope.

        The returned id is generated client-side for logging and correlation.
        It cannot be used to act on the message; only a delivery handle from
        a receive can.
        """
        delay_seconds = _check_seconds("delay", delay or 0, MAX_DELAY_SECONDS)
        message_id = self._generate_id()
        body = json.dumps({ENVELOPE_PAYLOAD_KEY: payload})

        self._request("send_message", self._endpoint, body, delay_seconds)

        self._metrics.record_submitted(self._name)
        logger.debug(
            "Submitted message",
            extra={"queue_name": self._name, "message_id": message_id, "delay": delay_seconds},
        )
        return message_id

    def wait_and_take(self, timeout: int | None = None) -> Message | None:
        """
        Receive one message and delete it before returning it.

        This trades durability for simplicity: if the caller crashes after
        this returns, the message is gone. The wait is clamped to the
        backend's long-poll ceiling.

        Args:
            timeout: Seconds to wait for a message. None uses the queue's
                configured receive wait time.
        """
        wait_seconds = None
        if timeout is not None:
            wait_seconds = min(_check_seconds("timeout", timeout), LONG_POLL_CEILING_SECONDS)

        received = self._receive(
            max_count=1,
            wait_seconds=wait_seconds,
            visibility_timeout=self.default_visibility_timeout,
        )
        if not received:
            return None

        raw = received[0]
        self._request("delete_message", self._endpoint, raw.handle)

        self._metrics.record_received(self._name, ReceiveMode.TAKE)
        return self._to_message(raw)

    def wait_and_reserve(self, timeout: int | None = None) -> Message | None:
        """
        Receive one message and keep it hidden from other consumers.

        The caller must finish or release the message; otherwise it becomes
        visible again once the window expires.

        Args:
            timeout: Visibility window in seconds. The wait for a message is
                always the long-poll ceiling.
        """
        if timeout is None:
            visibility_timeout = self.default_visibility_timeout
        else:
            visibility_timeout = _check_seconds("timeout", timeout, MAX_VISIBILITY_TIMEOUT_SECONDS)

        received = self._receive(
            max_count=1,
            wait_seconds=LONG_POLL_CEILING_SECONDS,
            visibility_timeout=visibility_timeout,
        )
        if not received:
            return None

        self._metrics.record_received(self._name, ReceiveMode.RESERVE)
        return self._to_message(received[0])

    def release(self, handle: str, *, delay: int | None = None) -> None:
        """
        Set the remaining invisibility of a reserved message to delay seconds.

        A short delay makes the message reappear sooner, a long one keeps it
        reserved longer. The delivery count only grows on the next receive.
        """
        if delay is None:
            delay = self.default_timeout
        delay = _check_seconds("delay", delay, MAX_VISIBILITY_TIMEOUT_SECONDS)

        self._request("change_message_visibility", self._endpoint, handle, delay)

        self._metrics.record_released(self._name)
        logger.debug(
            "Released message",
            extra={"queue_name": self._name, "handle": handle, "delay": delay},
        )

    def extend_visibility(self, handle: str, timeout: int) -> None:
        """
        Reset the visibility window of a message that is still being processed.

        Same backend call as release, counted separately so released
        messages only reflect retries.
        """
        timeout = _check_seconds("timeout", timeout, MAX_VISIBILITY_TIMEOUT_SECONDS)

        self._request("change_message_visibility", self._endpoint, handle, timeout)

        self._metrics.record_visibility_extended(self._name)
        logger.debug(
            "Extended visibility",
            extra={"queue_name": self._name, "handle": handle, "timeout": timeout},
        )

    def abort(self, handle: str) -> None:
        """
        Messages cannot be marked as failed on this backend.

        A message that is never finished is redelivered after each visibility
        window. To move it to a dead-letter queue, configure the main queue
        with a redrive policy and a maximum receive count.
        """

    def finish(self, handle: str) -> bool:
        """Delete a reserved message by its delivery handle."""
        self._request("delete_message", self._endpoint, handle)

        self._metrics.record_finished(self._name)
        return True

    def peek(self, limit: int = 1) -> list[Message]:
        """
        Best-effort look at ready messages.

        Messages are received with a zero visibility window, so they stay
        available to other consumers. May return fewer than limit messages,
        including none, even when the queue is not empty.
        """
        if limit < 0:
            raise ValueError(f"limit must not be negative, got {limit}")

        amount = self.count_ready()
        if amount == 0 or limit == 0:
            return []

        received = self._receive(
            max_count=min(limit, amount, MAX_RECEIVE_BATCH),
            wait_seconds=LONG_POLL_CEILING_SECONDS,
            visibility_timeout=0,
        )

        self._metrics.record_received(self._name, ReceiveMode.PEEK, len(received))
        return [self._to_message(raw) for raw in received]

    def count_ready(self) -> int:
        """Approximate number of messages that are not currently invisible."""
        attributes = self._request(
            "get_queue_attributes", self._endpoint, [ATTR_MESSAGES_READY]
        )
        count = int(attributes.get(ATTR_MESSAGES_READY, 0))

        self._metrics.update_queue_depth(self._name, count)
        return count

    def count_reserved(self) -> int:
        """In-flight messages are not tracked separately; always 0."""
        return 0

    def count_failed(self) -> int:
        """Failed messages do not exist on this backend; always 0."""
        return 0

    def flush(self) -> None:
        """Purge every message. The backend may apply this with a delay."""
        self._request("purge_queue", self._endpoint)
        logger.info("Flushed queue", extra={"queue_name": self._name})

    def _receive(
        self,
        max_count: int,
        wait_seconds: int | None,
        visibility_timeout: int,
    ) -> list[ReceivedMessage]:
        return self._request(
            "receive_message",
            self._endpoint,
            max_count=max_count,
            wait_seconds=wait_seconds,
            visibility_timeout=visibility_timeout,
            attribute_names=[ATTR_RECEIVE_COUNT],
        )

    def _request(self, operation: str, *args: Any, **kwargs: Any) -> Any:
        """Dispatch a call to the backend, recording its outcome and latency."""
        start = time.perf_counter()
        outcome = "error"
        try:
            result = getattr(self._backend, operation)(*args, **kwargs)
            outcome = "ok"
            return result
        finally:
            self._metrics.record_backend_request(
                operation, outcome, time.perf_counter() - start
            )

    def _to_message(self, raw: ReceivedMessage) -> Message:
        """Unwrap a backend delivery into a Message."""
        try:
            envelope = json.loads(raw.body)
        except json.JSONDecodeError as e:
            raise MalformedEnvelopeError(
                f"Message body on queue {self._name!r} is not valid JSON",
                handle=raw.handle,
                body=raw.body,
            ) from e

        if not isinstance(envelope, dict) or ENVELOPE_PAYLOAD_KEY not in envelope:
            raise MalformedEnvelopeError(
                f"Message body on queue {self._name!r} has no {ENVELOPE_PAYLOAD_KEY!r} key",
                handle=raw.handle,
                body=raw.body,
            )

        return Message(
            identifier=raw.handle,
            payload=envelope[ENVELOPE_PAYLOAD_KEY],
            delivery_count=int(raw.attributes.get(ATTR_RECEIVE_COUNT, 1)),
        )
