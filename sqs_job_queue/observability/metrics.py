"""
Prometheus metrics collection.
"""

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
    start_http_server,
)

from sqs_job_queue.constants import (
    METRIC_BACKEND_LATENCY,
    METRIC_BACKEND_REQUESTS,
    METRIC_JOB_DURATION,
    METRIC_JOBS_COMPLETED,
    METRIC_MESSAGES_FINISHED,
    METRIC_MESSAGES_RECEIVED,
    METRIC_MESSAGES_RELEASED,
    METRIC_MESSAGES_SUBMITTED,
    METRIC_QUEUE_DEPTH,
    METRIC_VISIBILITY_EXTENSIONS,
)

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for queues and workers.

    Collects metrics for:
    - Queue depth
    - Message submissions, receives, finishes and releases
    - Visibility extensions of running jobs
    - Backend request counts and latency
    - Job completions and execution duration
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        self.queue_depth = Gauge(
            METRIC_QUEUE_DEPTH,
            "Approximate number of ready messages",
            ["queue"],
            registry=self._registry,
        )

        self.messages_submitted = Counter(
            METRIC_MESSAGES_SUBMITTED,
            "Total number of messages submitted",
            ["queue"],
            registry=self._registry,
        )

        self.messages_received = Counter(
            METRIC_MESSAGES_RECEIVED,
            "Total number of messages received",
            ["queue", "mode"],
            registry=self._registry,
        )

        self.messages_finished = Counter(
            METRIC_MESSAGES_FINISHED,
            "Total number of reserved messages finished",
            ["queue"],
            registry=self._registry,
        )

        self.messages_released = Counter(
            METRIC_MESSAGES_RELEASED,
            "Total number of reserved messages released",
            ["queue"],
            registry=self._registry,
        )

        self.visibility_extensions = Counter(
            METRIC_VISIBILITY_EXTENSIONS,
            "Total number of visibility extensions for messages still being processed",
            ["queue"],
            registry=self._registry,
        )

        self.backend_requests = Counter(
            METRIC_BACKEND_REQUESTS,
            "Total number of queue backend requests",
            ["operation", "outcome"],
            registry=self._registry,
        )

        self.backend_latency = Histogram(
            METRIC_BACKEND_LATENCY,
            "Queue backend request latency in seconds",
            ["operation"],
            buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0),
            registry=self._registry,
        )

        self.jobs_completed = Counter(
            METRIC_JOBS_COMPLETED,
            "Total number of jobs completed",
            ["queue", "status"],
            registry=self._registry,
        )

        self.job_duration = Histogram(
            METRIC_JOB_DURATION,
            "Job execution duration in seconds",
            ["queue", "status"],
            buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
            registry=self._registry,
        )

    def record_submitted(self, queue: str) -> None:
        """Record a message submission."""
        self.messages_submitted.labels(queue=queue).inc()

    def record_received(self, queue: str, mode: str, count: int = 1) -> None:
        """Record received messages."""
        self.messages_received.labels(queue=queue, mode=mode).inc(count)

    def record_finished(self, queue: str) -> None:
        """Record a finished message."""
        self.messages_finished.labels(queue=queue).inc()

    def record_released(self, queue: str) -> None:
        """Record a released message."""
        self.messages_released.labels(queue=queue).inc()

    def record_visibility_extended(self, queue: str) -> None:
        self.visibility_extensions.labels(queue=queue).inc()

    def update_queue_depth(self, queue: str, depth: int) -> None:
        """Update queue depth for a queue."""
        self.queue_depth.labels(queue=queue).set(depth)

    def record_backend_request(
        self,
        operation: str,
        outcome: str,
        duration_seconds: float,
    ) -> None:
        """Record a backend request."""
        self.backend_requests.labels(operation=operation, outcome=outcome).inc()
        self.backend_latency.labels(operation=operation).observe(duration_seconds)

    def record_job_completed(
        self,
        queue: str,
        status: str,
        duration_seconds: float,
    ) -> None:
        """Record a job completion."""
        self.jobs_completed.labels(queue=queue, status=status).inc()
        self.job_duration.labels(queue=queue, status=status).observe(duration_seconds)

    def get_metrics(self) -> bytes:
        """Get all metrics in Prometheus format."""
        return generate_latest(self._registry)


def setup_metrics() -> MetricsCollector:
    """
    Set up and return the metrics collector.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def get_metrics() -> MetricsCollector:
    """
    Get the metrics collector instance, creating it on first use.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    if _metrics is None:
        return setup_metrics()
    return _metrics


def start_metrics_server(port: int) -> None:
    """Expose the default registry over HTTP for Prometheus to scrape."""
    setup_metrics()
    start_http_server(port)
