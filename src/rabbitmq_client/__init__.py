"""
RabbitMQ JSON client.

Public API:
    - RabbitClient: consumes several queues into one stream, publishes JSON,
      reconnects and resubscribes after broker disconnects
    - RabbitEnvelope: a delivery with its decoded JSON payload
    - EnvelopeStream: the stream returned by ``RabbitClient.iterator()``
    - ClientConfig: reconnection and dispatch tunables
"""

from .client import RabbitClient
from .config import ClientConfig, QueueRegistry
from .exceptions import (
    AlreadyIteratingError,
    ClientClosedError,
    ConfigError,
    DecodeError,
    ProtocolError,
    RabbitClientError,
    StateError,
)
from .message import RabbitEnvelope
from .stream import EnvelopeStream

__version__ = "0.1.0"

__all__ = [
    # Client
    "RabbitClient",
    "RabbitEnvelope",
    "EnvelopeStream",
    # Configuration
    "ClientConfig",
    "QueueRegistry",
    # Errors
    "RabbitClientError",
    "ConfigError",
    "ProtocolError",
    "StateError",
    "AlreadyIteratingError",
    "ClientClosedError",
    "DecodeError",
]
