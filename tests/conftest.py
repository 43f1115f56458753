"""
Pytest configuration and shared fixtures.
"""

from collections.abc import Callable
from itertools import count
from typing import Any, Sequence

import pytest

from sqs_job_queue.backends.memory import InMemoryBackend
from sqs_job_queue.config import Settings
from sqs_job_queue.queue.sqs_queue import SqsQueue
from sqs_job_queue.types.message import ReceivedMessage


class FakeClock:
    """Manually advanced clock; sleeping advances it instantly."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds


class SpyBackend(InMemoryBackend):
    """In-memory backend that records every call in order."""

    def __init__(self, **kwargs: Any):
        super().__init__(**kwargs)
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def create_queue(self, name, attributes=None):
        self.calls.append(("create_queue", {"name": name, "attributes": attributes}))
        return super().create_queue(name, attributes)

    def send_message(self, endpoint, body, delay_seconds=0):
        self.calls.append(("send_message", {"body": body, "delay_seconds": delay_seconds}))
        return super().send_message(endpoint, body, delay_seconds)

    def receive_message(
        self,
        endpoint,
        max_count=1,
        wait_seconds=None,
        visibility_timeout=None,
        attribute_names: Sequence[str] = (),
    ) -> list[ReceivedMessage]:
        self.calls.append(
            (
                "receive_message",
                {
                    "max_count": max_count,
                    "wait_seconds": wait_seconds,
                    "visibility_timeout": visibility_timeout,
                    "attribute_names": list(attribute_names),
                },
            )
        )
        return super().receive_message(
            endpoint, max_count, wait_seconds, visibility_timeout, attribute_names
        )

    def delete_message(self, endpoint, handle):
        self.calls.append(("delete_message", {"handle": handle}))
        return super().delete_message(endpoint, handle)

    def change_message_visibility(self, endpoint, handle, timeout):
        self.calls.append(("change_message_visibility", {"handle": handle, "timeout": timeout}))
        return super().change_message_visibility(endpoint, handle, timeout)

    def purge_queue(self, endpoint):
        self.calls.append(("purge_queue", {}))
        return super().purge_queue(endpoint)

    def get_queue_attributes(self, endpoint, names):
        self.calls.append(("get_queue_attributes", {"names": list(names)}))
        return super().get_queue_attributes(endpoint, names)

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def last_call(self, name: str) -> dict[str, Any]:
        return [args for call, args in self.calls if call == name][-1]


@pytest.fixture
def clock() -> FakeClock:
    """Create a fake clock."""
    return FakeClock()


@pytest.fixture
def backend(clock: FakeClock) -> SpyBackend:
    """Create a spying in-memory backend driven by the fake clock."""
    return SpyBackend(clock=clock, sleep=clock.sleep, poll_interval=1.0)


@pytest.fixture
def id_generator() -> Callable[[], str]:
    """Deterministic correlation ids."""
    counter = count(1)
    return lambda: f"msg-{next(counter)}"


@pytest.fixture
def queue(backend: SpyBackend, id_generator) -> SqsQueue:
    """Create a queue adapter on the in-memory backend."""
    return SqsQueue("test-queue", backend=backend, id_generator=id_generator)


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return Settings(
        queue_name="test-queue",
        queue_backend="memory",
        queue_default_timeout=10,
        queue_default_visibility_timeout=30,
        log_level="DEBUG",
        log_format="console",
        worker_id="test-worker",
        worker_heartbeat_interval_seconds=0.01,
        worker_retry_delay_seconds=0,
        worker_error_backoff_seconds=0,
    )


@pytest.fixture
def sample_job_payload() -> dict[str, Any]:
    """Create a sample job payload."""
    return {
        "job_type": "echo",
        "data": {"message": "Hello, World!"},
    }
