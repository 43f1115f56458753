"""
Unit tests for the in-memory backend.
"""

import pytest

from sqs_job_queue.backends.memory import InMemoryBackend
from sqs_job_queue.errors import QueueBackendError, StaleHandleError


class TestInMemoryBackend:
    """Tests for InMemoryBackend."""

    @pytest.fixture
    def memory(self, clock) -> InMemoryBackend:
        """Create a backend with a fake clock."""
        return InMemoryBackend(clock=clock, sleep=clock.sleep, poll_interval=1.0)

    @pytest.fixture
    def endpoint(self, memory: InMemoryBackend) -> str:
        """Create a queue with a 30 second visibility timeout."""
        return memory.create_queue("jobs", {"VisibilityTimeout": "30"})

    def test_unknown_endpoint(self, memory: InMemoryBackend):
        """Test that operations on a missing queue fail."""
        with pytest.raises(QueueBackendError) as exc_info:
            memory.send_message("memory://missing", "{}")

        assert exc_info.value.code == "AWS.SimpleQueueService.NonExistentQueue"

    def test_receive_uses_queue_visibility_when_unset(self, memory, endpoint, clock):
        """Test that the queue attribute applies when no timeout is given."""
        memory.send_message(endpoint, "a")
        memory.receive_message(endpoint)

        clock.advance(29)
        assert memory.receive_message(endpoint) == []

        clock.advance(1)
        assert len(memory.receive_message(endpoint)) == 1

    def test_receive_count_attribute_only_when_requested(self, memory, endpoint):
        """Test that attributes are only returned when asked for."""
        memory.send_message(endpoint, "a")

        received = memory.receive_message(endpoint, visibility_timeout=0)
        assert received[0].attributes == {}

        received = memory.receive_message(
            endpoint, attribute_names=["ApproximateReceiveCount"]
        )
        assert received[0].attributes == {"ApproximateReceiveCount": "2"}

    def test_receive_in_submission_order(self, memory, endpoint):
        """Test that ready messages come back oldest first."""
        for body in ("a", "b", "c"):
            memory.send_message(endpoint, body)

        received = memory.receive_message(endpoint, max_count=3)

        assert [m.body for m in received] == ["a", "b", "c"]

    def test_long_poll_returns_message_sent_during_wait(self, memory, endpoint):
        """Test that a delayed message is returned within the wait window."""
        memory.send_message(endpoint, "late", delay_seconds=5)

        received = memory.receive_message(endpoint, wait_seconds=20)

        assert [m.body for m in received] == ["late"]

    def test_long_poll_gives_up_after_wait(self, memory, endpoint, clock):
        """Test that an empty long poll returns after the wait."""
        start = clock()

        assert memory.receive_message(endpoint, wait_seconds=20) == []
        assert clock() - start == pytest.approx(20)

    def test_delete_twice_is_idempotent(self, memory, endpoint):
        """Test repeated deletion with the same handle."""
        memory.send_message(endpoint, "a")
        handle = memory.receive_message(endpoint)[0].handle

        memory.delete_message(endpoint, handle)
        memory.delete_message(endpoint, handle)

        assert memory.get_queue_attributes(endpoint, ["All"])["ApproximateNumberOfMessages"] == "0"

    def test_deleted_handles_expire_after_visibility_window(self, memory, endpoint, clock):
        """Test that delete tombstones are dropped once the window has passed."""
        for body in ("a", "b", "c"):
            memory.send_message(endpoint, body)
            memory.delete_message(endpoint, memory.receive_message(endpoint)[0].handle)
        assert len(memory._queues[endpoint].deleted_handles) == 3

        clock.advance(31)
        memory.send_message(endpoint, "d")
        handle = memory.receive_message(endpoint)[0].handle
        memory.delete_message(endpoint, handle)

        assert list(memory._queues[endpoint].deleted_handles) == [handle]

    def test_deleted_handles_are_bounded(self, memory, endpoint, monkeypatch):
        """Test that only the most recent delete tombstones are kept."""
        monkeypatch.setattr("sqs_job_queue.backends.memory.MAX_DELETED_HANDLES", 5)
        handles = []
        for i in range(20):
            memory.send_message(endpoint, str(i))
            handles.append(memory.receive_message(endpoint)[0].handle)
            memory.delete_message(endpoint, handles[-1])

        assert list(memory._queues[endpoint].deleted_handles) == handles[-5:]

    def test_purge_forgets_deleted_handles(self, memory, endpoint):
        """Test that purging also drops delete tombstones."""
        for _ in range(50):
            memory.send_message(endpoint, "a")
            memory.delete_message(endpoint, memory.receive_message(endpoint)[0].handle)

        memory.purge_queue(endpoint)

        assert memory._queues[endpoint].deleted_handles == {}

    def test_delete_unknown_handle(self, memory, endpoint):
        """Test that an unknown handle is stale."""
        with pytest.raises(StaleHandleError) as exc_info:
            memory.delete_message(endpoint, "nope")

        assert exc_info.value.code == "ReceiptHandleIsInvalid"

    def test_delete_after_expiry_before_redelivery(self, memory, endpoint, clock):
        """Test that the latest handle still deletes until the next receive."""
        memory.send_message(endpoint, "a")
        handle = memory.receive_message(endpoint)[0].handle
        clock.advance(60)

        memory.delete_message(endpoint, handle)

        assert memory.receive_message(endpoint) == []

    def test_change_visibility_requires_in_flight(self, memory, endpoint):
        """Test that a ready message cannot have its visibility changed."""
        memory.send_message(endpoint, "a")
        handle = memory.receive_message(endpoint, visibility_timeout=0)[0].handle

        with pytest.raises(StaleHandleError):
            memory.change_message_visibility(endpoint, handle, 10)

    def test_attributes(self, memory, endpoint):
        """Test approximate counts."""
        memory.send_message(endpoint, "ready")
        memory.send_message(endpoint, "delayed", delay_seconds=60)
        memory.send_message(endpoint, "in-flight")
        memory.receive_message(endpoint, max_count=1)

        attributes = memory.get_queue_attributes(endpoint, ["All"])

        assert attributes == {
            "ApproximateNumberOfMessages": "1",
            "ApproximateNumberOfMessagesNotVisible": "1",
            "ApproximateNumberOfMessagesDelayed": "1",
            "VisibilityTimeout": "30",
        }
        assert memory.get_queue_attributes(endpoint, ["ApproximateNumberOfMessages"]) == {
            "ApproximateNumberOfMessages": "1"
        }

    def test_purge(self, memory, endpoint):
        """Test that purge drops ready and in-flight messages."""
        memory.send_message(endpoint, "a")
        memory.send_message(endpoint, "b")
        memory.receive_message(endpoint)

        memory.purge_queue(endpoint)

        attributes = memory.get_queue_attributes(endpoint, ["All"])
        assert attributes["ApproximateNumberOfMessages"] == "0"
        assert attributes["ApproximateNumberOfMessagesNotVisible"] == "0"

    def test_redrive_after_max_receive_count(self, clock):
        """Test that over-delivered messages move to the dead-letter list."""
        memory = InMemoryBackend(max_receive_count=2, clock=clock, sleep=clock.sleep)
        endpoint = memory.create_queue("jobs")
        memory.send_message(endpoint, "poison")

        assert len(memory.receive_message(endpoint, visibility_timeout=0)) == 1
        assert len(memory.receive_message(endpoint, visibility_timeout=0)) == 1
        assert memory.receive_message(endpoint, visibility_timeout=0) == []
        assert memory.dead_letters(endpoint) == ["poison"]
