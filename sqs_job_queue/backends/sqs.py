"""
Amazon SQS backend built on boto3.

Translates botocore failures into the queue error hierarchy. Retries are
left to the botocore client configuration.
"""

import logging
from typing import Any, Mapping, Sequence

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from sqs_job_queue.backends.base import QueueBackend
from sqs_job_queue.config import Settings, get_settings
from sqs_job_queue.errors import (
    BackendUnavailableError,
    QueueBackendError,
    StaleHandleError,
)
from sqs_job_queue.types.message import ReceivedMessage

logger = logging.getLogger(__name__)

STALE_HANDLE_CODES = frozenset(
    {
        "ReceiptHandleIsInvalid",
        "InvalidReceiptHandle",
        "MessageNotInflight",
        "AWS.SimpleQueueService.MessageNotInflight",
    }
)

UNAVAILABLE_CODES = frozenset(
    {
        "Throttling",
        "ThrottlingException",
        "RequestThrottled",
        "ServiceUnavailable",
        "InternalError",
        "InternalFailure",
        "RequestTimeout",
        "KmsThrottled",
    }
)


def create_sqs_client(settings: Settings | None = None) -> Any:
    """
    Create a boto3 SQS client from settings.

    The read timeout must exceed the 20s long-poll ceiling.
    """
    settings = settings or get_settings()
    return boto3.client(
        "sqs",
        region_name=settings.aws_region,
        endpoint_url=settings.aws_endpoint_url,
        config=Config(
            read_timeout=settings.aws_read_timeout_seconds,
            connect_timeout=settings.aws_connect_timeout_seconds,
        ),
    )


def translate_error(operation: str, error: Exception) -> QueueBackendError:
    """Map a botocore exception onto the queue error hierarchy."""
    if isinstance(error, ClientError):
        code = (error.response or {}).get("Error", {}).get("Code", "")
        status = (error.response or {}).get("ResponseMetadata", {}).get("HTTPStatusCode", 0)
        message = f"SQS {operation} failed: {error}"
        if code in STALE_HANDLE_CODES:
            return StaleHandleError(message, code=code, cause=error)
        if code in UNAVAILABLE_CODES or status >= 500:
            return BackendUnavailableError(message, code=code, cause=error)
        return QueueBackendError(message, code=code or None, cause=error)
    return BackendUnavailableError(f"SQS {operation} unreachable: {error}", cause=error)


class SqsBackend(QueueBackend):
    """Queue backend talking to Amazon SQS (or an SQS-compatible endpoint)."""

    def __init__(self, client: Any = None, settings: Settings | None = None):
        """
        Initialize the backend.

        Args:
            client: A boto3 SQS client. Created from settings if not provided.
            settings: Settings used when creating the client.
        """
        self._client = client if client is not None else create_sqs_client(settings)

    def _call(self, operation: str, **kwargs: Any) -> dict[str, Any]:
        try:
            return getattr(self._client, operation)(**kwargs)
        except (ClientError, BotoCoreError) as e:
            error = translate_error(operation, e)
            logger.warning(
                "SQS request failed",
                extra={"operation": operation, "code": error.code, "error": str(e)},
            )
            raise error from e

    def create_queue(self, name: str, attributes: Mapping[str, str] | None = None) -> str:
        response = self._call(
            "create_queue",
            QueueName=name,
            Attributes={key: str(value) for key, value in (attributes or {}).items()},
        )
        return response["QueueUrl"]

    def send_message(self, endpoint: str, body: str, delay_seconds: int = 0) -> None:
        params: dict[str, Any] = {"QueueUrl": endpoint, "MessageBody": body}
        if delay_seconds:
            params["DelaySeconds"] = delay_seconds
        self._call("send_message", **params)

    def receive_message(
        self,
        endpoint: str,
        max_count: int = 1,
        wait_seconds: int | None = None,
        visibility_timeout: int | None = None,
        attribute_names: Sequence[str] = (),
    ) -> list[ReceivedMessage]:
        params: dict[str, Any] = {
            "QueueUrl": endpoint,
            "MaxNumberOfMessages": max_count,
        }
        # Unset values fall back to the queue's own configuration
        if wait_seconds is not None:
            params["WaitTimeSeconds"] = wait_seconds
        if visibility_timeout is not None:
            params["VisibilityTimeout"] = visibility_timeout
        if attribute_names:
            params["AttributeNames"] = list(attribute_names)

        response = self._call("receive_message", **params)
        return [
            ReceivedMessage(
                handle=raw["ReceiptHandle"],
                body=raw["Body"],
                attributes=dict(raw.get("Attributes", {})),
            )
            for raw in response.get("Messages", [])
        ]

    def delete_message(self, endpoint: str, handle: str) -> None:
        self._call("delete_message", QueueUrl=endpoint, ReceiptHandle=handle)

    def change_message_visibility(self, endpoint: str, handle: str, timeout: int) -> None:
        self._call(
            "change_message_visibility",
            QueueUrl=endpoint,
            ReceiptHandle=handle,
            VisibilityTimeout=timeout,
        )

    def purge_queue(self, endpoint: str) -> None:
        self._call("purge_queue", QueueUrl=endpoint)

    def get_queue_attributes(self, endpoint: str, names: Sequence[str]) -> dict[str, str]:
        response = self._call(
            "get_queue_attributes",
            QueueUrl=endpoint,
            AttributeNames=list(names),
        )
        return dict(response.get("Attributes", {}))
