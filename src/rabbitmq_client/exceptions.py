"""
Custom exceptions for the RabbitMQ client.

This module contains all custom exception classes raised by the client.
"""

from typing import Optional


class RabbitClientError(Exception):
    """Base class for every error raised by the client."""


class ConfigError(RabbitClientError):
    """Raised when the client cannot be set up: dial, channel, prefetch or a missing queue."""


class ProtocolError(RabbitClientError):
    """Raised when a broker operation fails: consume, publish, ack/nack or cancel.

    When several operations failed together (e.g. cancelling every consumer tag
    on stop), each underlying error is kept in ``errors``.
    """

    def __init__(self, message: str, errors: Optional[list[Exception]] = None):
        self.errors = list(errors) if errors else []
        super().__init__(message)


class StateError(RabbitClientError):
    """Raised when an operation is not valid for the current client state."""


class AlreadyIteratingError(StateError):
    """Raised when iteration is started while a consumer session is active."""

    def __init__(self, message: str = None):
        if message is None:
            message = "already iterating"
        super().__init__(message)


class ClientClosedError(StateError):
    """Raised when attempting to use a client that has already been closed."""

    def __init__(self, message: str = None):
        if message is None:
            message = "client is closed"
        super().__init__(message)


class DecodeError(RabbitClientError):
    """Raised when a message body is not a UTF-8 JSON object.

    Never surfaced to callers: the offending delivery is nacked without requeue.
    """

    def __init__(self, queue_name: str, delivery_tag: int, message: str = None):
        self.queue_name = queue_name
        self.delivery_tag = delivery_tag
        if message is None:
            message = f"Message {delivery_tag} from queue '{queue_name}' is not a JSON object"
        super().__init__(message)
