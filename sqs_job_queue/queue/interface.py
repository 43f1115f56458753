import abc
from typing import Any

from sqs_job_queue.types.message import Message


class QueueInterface(abc.ABC):
    """
    Uniform queue contract.

    Consumers either take a message (receive and delete at once, the message
    is lost if the consumer crashes afterwards) or reserve it (receive and
    hold until finish, release or expiry of the reservation).
    """

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Logical queue name"""

    @abc.abstractmethod
    def set_up(self) -> None:
        """One-time provisioning hook"""

    @abc.abstractmethod
    def submit(self, payload: Any, *, delay: int | None = None) -> str:
        """Submit a payload and return a client-side correlation id"""

    @abc.abstractmethod
    def wait_and_take(self, timeout: int | None = None) -> Message | None:
        """Wait for a message, remove it from the queue and return it"""

    @abc.abstractmethod
    def wait_and_reserve(self, timeout: int | None = None) -> Message | None:
        """Wait for a message and hide it from other consumers until finished"""

    @abc.abstractmethod
    def release(self, handle: str, *, delay: int | None = None) -> None:
        """Put a reserved message back after delay seconds"""

    @abc.abstractmethod
    def abort(self, handle: str) -> None:
        """Give up on a reserved message"""

    @abc.abstractmethod
    def finish(self, handle: str) -> bool:
        """Remove a reserved message permanently"""

    @abc.abstractmethod
    def peek(self, limit: int = 1) -> list[Message]:
        """Look at ready messages without reserving them"""

    @abc.abstractmethod
    def count_ready(self) -> int:
        """Number of messages waiting to be received"""

    @abc.abstractmethod
    def count_reserved(self) -> int:
        """Number of messages currently reserved"""

    @abc.abstractmethod
    def count_failed(self) -> int:
        """Number of messages marked as failed"""

    @abc.abstractmethod
    def flush(self) -> None:
        """Remove all messages from the queue"""

    def extend_visibility(self, handle: str, timeout: int) -> None:
        """Keep a reserved message hidden for another timeout seconds while it is processed"""
        self.release(handle, delay=timeout)
