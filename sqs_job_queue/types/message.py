"""
Message and queue option type definitions.
"""

from dataclasses import dataclass, field
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from sqs_job_queue.constants import (
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_VISIBILITY_TIMEOUT_SECONDS,
    MAX_VISIBILITY_TIMEOUT_SECONDS,
)


@dataclass(frozen=True)
class Message:
    """
    A message as handed to queue consumers.

    The identifier is the delivery handle of this receive, not a stable
    message id. It changes every time the message becomes visible again and
    is only usable until the visibility window ends, the message is deleted
    or its visibility is changed.
    """

    identifier: str
    payload: Any
    delivery_count: int = 1

    @property
    def number_of_releases(self) -> int:
        """How often this message was handed out before the current delivery."""
        return max(0, self.delivery_count - 1)


@dataclass(frozen=True)
class ReceivedMessage:
    """A raw delivery as returned by the queue backend."""

    handle: str
    body: str
    attributes: dict[str, str] = field(default_factory=dict)


class QueueOptions(BaseModel):
    """
    Configuration bag for a queue adapter.

    Accepts both snake_case names and the camelCase keys used in queue
    configuration files, so a raw mapping can be validated directly.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    default_timeout: int = Field(
        default=DEFAULT_TIMEOUT_SECONDS,
        ge=0,
        le=MAX_VISIBILITY_TIMEOUT_SECONDS,
        validation_alias=AliasChoices("default_timeout", "defaultTimeout"),
        description="Delay in seconds applied when releasing without an explicit delay",
    )
    default_visibility_timeout: int = Field(
        default=DEFAULT_VISIBILITY_TIMEOUT_SECONDS,
        ge=0,
        le=MAX_VISIBILITY_TIMEOUT_SECONDS,
        validation_alias=AliasChoices("default_visibility_timeout", "defaultVisibilityTimeout"),
        description="Visibility window for reserved messages and for newly created queues",
    )
    endpoint_identifier: str | None = Field(
        default=None,
        min_length=1,
        validation_alias=AliasChoices(
            "endpoint_identifier", "endpointIdentifier", "queue_url", "queueUrl"
        ),
        description="Location of a pre-existing queue; skips provisioning when set",
    )
