import abc
from typing import Mapping, Sequence

from sqs_job_queue.types.message import ReceivedMessage


class QueueBackend(abc.ABC):
    """
    Abstract base class for queue backends.

    A backend owns storage, visibility windows and delivery counts. Endpoints
    are backend-specific queue locations returned by create_queue.
    """

    @abc.abstractmethod
    def create_queue(self, name: str, attributes: Mapping[str, str] | None = None) -> str:
        """Create the queue if missing (idempotent by name) and return its endpoint"""

    @abc.abstractmethod
    def send_message(self, endpoint: str, body: str, delay_seconds: int = 0) -> None:
        """Append a message body to the queue"""

    @abc.abstractmethod
    def receive_message(
        self,
        endpoint: str,
        max_count: int = 1,
        wait_seconds: int | None = None,
        visibility_timeout: int | None = None,
        attribute_names: Sequence[str] = (),
    ) -> list[ReceivedMessage]:
        """Receive up to max_count messages, hiding them for visibility_timeout seconds"""

    @abc.abstractmethod
    def delete_message(self, endpoint: str, handle: str) -> None:
        """Delete the delivery identified by handle"""

    @abc.abstractmethod
    def change_message_visibility(self, endpoint: str, handle: str, timeout: int) -> None:
        """Set the remaining invisibility of a delivery to timeout seconds"""

    @abc.abstractmethod
    def purge_queue(self, endpoint: str) -> None:
        """Remove every message in the queue"""

    @abc.abstractmethod
    def get_queue_attributes(self, endpoint: str, names: Sequence[str]) -> dict[str, str]:
        """Fetch queue attributes by name"""
