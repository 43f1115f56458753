"""
Queue error hierarchy.

Every failure that originates at the queue backend is raised as a
QueueBackendError subclass with the underlying exception chained.
"""


class QueueError(Exception):
    """Base class for all queue errors."""


class QueueConfigurationError(QueueError, ValueError):
    """Invalid queue name or timeout settings, raised before any backend call."""


class QueueBackendError(QueueError):
    """
    The queue backend rejected or failed a request.

    Attributes:
        code: Backend error code, if the backend reported one.
        cause: The original exception.
    """

    def __init__(self, message: str, code: str | None = None, cause: Exception | None = None):
        self.code = code
        self.cause = cause
        super().__init__(message)


class BackendUnavailableError(QueueBackendError):
    """The backend could not be reached, timed out or is throttling."""


class StaleHandleError(QueueBackendError):
    """The delivery handle expired or its message was already deleted."""


class MalformedEnvelopeError(QueueError, ValueError):
    """A message body is not a valid {"payload": ...} envelope."""

    def __init__(self, message: str, handle: str | None = None, body: str | None = None):
        self.handle = handle
        self.body = body
        super().__init__(message)
