"""
Caller-facing wrapper around a single broker delivery.
"""

import json
from typing import TYPE_CHECKING, Any, Union

from amqpstorm import Channel, Message

from rabbitmq_client.exceptions import DecodeError

if TYPE_CHECKING:
    from rabbitmq_client.client import RabbitClient


def decode_body(body: Union[bytes, str]) -> dict[str, Any]:
    """
    Decode a message body that must be a UTF-8 JSON object.

    :raises ValueError: If the body is not UTF-8, not JSON, or not an object.
    """
    if isinstance(body, bytes):
        body = body.decode("utf-8")
    data = json.loads(body)
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return data


class RabbitEnvelope:
    """
    A delivery together with its decoded JSON payload.

    Settle it exactly once with :meth:`success`, :meth:`fail` or :meth:`requeue`.
    """

    def __init__(
        self,
        message: Message,
        channel: Channel,
        queue_name: str,
        data: dict[str, Any],
        client: "RabbitClient",
    ) -> None:
        self._message = message
        self._channel = channel
        self._queue_name = queue_name
        self._data = data
        self._client = client
        self._is_responded = False

    @classmethod
    def from_delivery(
        cls,
        message: Message,
        channel: Channel,
        queue_name: str,
        client: "RabbitClient",
    ) -> "RabbitEnvelope":
        """
        Build an envelope, decoding the raw body.

        :raises DecodeError: If the body is not a UTF-8 JSON object
        """
        try:
            data = decode_body(message.body)
        except ValueError as e:
            # UnicodeDecodeError and JSONDecodeError are both ValueErrors
            raise DecodeError(queue_name, message.delivery_tag) from e
        return cls(message, channel, queue_name, data, client)

    @property
    def queue_name(self) -> str:
        """Name of the queue the delivery was consumed from."""
        return self._queue_name

    @property
    def routing_key(self) -> str:
        return self._message.method.get("routing_key", "")

    @property
    def delivery_tag(self) -> int:
        return self._message.delivery_tag

    @property
    def channel(self) -> Channel:
        """Channel the delivery arrived on; delivery tags are only valid there."""
        return self._channel

    @property
    def data(self) -> dict[str, Any]:
        return self._data

    @property
    def is_responded(self) -> bool:
        return self._is_responded

    def success(self) -> None:
        """Acknowledge the delivery."""
        self._client.success(self)
        self._is_responded = True

    def fail(self) -> None:
        """Reject the delivery without requeue; the broker drops or dead-letters it."""
        self._client.fail(self)
        self._is_responded = True

    def requeue(self) -> None:
        """Reject the delivery and put it back on its queue."""
        self._client.requeue(self)
        self._is_responded = True

    def __repr__(self) -> str:
        return (
            f"RabbitEnvelope(queue_name={self._queue_name!r}, "
            f"delivery_tag={self.delivery_tag!r}, is_responded={self._is_responded})"
        )
