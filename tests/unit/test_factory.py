"""
Unit tests for queue construction from settings.
"""

import pytest

from sqs_job_queue.backends.memory import InMemoryBackend
from sqs_job_queue.backends.sqs import SqsBackend
from sqs_job_queue.config import Settings
from sqs_job_queue.errors import QueueConfigurationError
from sqs_job_queue.queue.factory import create_queue, get_backend
from sqs_job_queue.types.message import QueueOptions


class TestGetBackend:
    """Tests for backend selection."""

    def test_memory_backend_is_shared(self, test_settings: Settings):
        """Test that the in-memory backend is one per process."""
        first = get_backend(test_settings)
        second = get_backend(test_settings)

        assert isinstance(first, InMemoryBackend)
        assert first is second

    def test_sqs_backend(self):
        """Test that the SQS backend is built from settings."""
        settings = Settings(queue_backend="sqs", aws_region="eu-west-1")

        assert isinstance(get_backend(settings), SqsBackend)


class TestCreateQueue:
    """Tests for create_queue."""

    def test_defaults_from_settings(self, test_settings: Settings, backend):
        """Test that settings provide name and timeouts."""
        queue = create_queue(settings=test_settings, backend=backend)

        assert queue.name == "test-queue"
        assert queue.default_timeout == 10
        assert queue.default_visibility_timeout == 30
        assert backend.last_call("create_queue")["attributes"] == {"VisibilityTimeout": "30"}

    def test_queue_url_applies_to_configured_queue(self, test_settings: Settings, backend):
        """Test that QUEUE_URL skips provisioning for the configured queue."""
        settings = test_settings.model_copy(update={"queue_url": "memory://preexisting"})

        queue = create_queue(settings=settings, backend=backend)

        assert queue.endpoint_identifier == "memory://preexisting"
        assert backend.calls == []

    def test_queue_url_ignored_for_other_queues(self, test_settings: Settings, backend):
        """Test that other queues are provisioned by name."""
        settings = test_settings.model_copy(update={"queue_url": "memory://preexisting"})

        queue = create_queue("other", settings=settings, backend=backend)

        assert queue.endpoint_identifier == "memory://other"

    def test_options_override_settings(self, test_settings: Settings, backend):
        """Test that explicit options win over settings."""
        queue = create_queue(
            options={"defaultTimeout": 1},
            settings=test_settings,
            backend=backend,
        )

        assert queue.default_timeout == 1
        assert queue.default_visibility_timeout == 30

    def test_options_model_override(self, test_settings: Settings, backend):
        """Test overriding with a QueueOptions instance."""
        queue = create_queue(
            options=QueueOptions(default_visibility_timeout=90),
            settings=test_settings,
            backend=backend,
        )

        assert queue.default_visibility_timeout == 90
        assert queue.default_timeout == 10

    def test_invalid_options(self, test_settings: Settings, backend):
        """Test that invalid overrides are configuration errors."""
        with pytest.raises(QueueConfigurationError):
            create_queue(
                options={"defaultVisibilityTimeout": -1},
                settings=test_settings,
                backend=backend,
            )
