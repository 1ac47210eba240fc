"""
Configuration types for the RabbitMQ client.
"""

from dataclasses import dataclass, field
from typing import Iterable

# Global name used for the package logger and log prefixes
SERVICE_NAME = "rabbitmq_client"


@dataclass(frozen=True)
class ClientConfig:
    """Tunables for connection supervision and consumer dispatch."""

    # wait between a detected disconnect and each re-dial attempt
    reconnect_delay: float = 5.0
    # how often the supervisor checks the connection when nothing reports a loss
    health_check_interval: float = 1.0
    # unacknowledged deliveries per consumer
    prefetch_count: int = 1
    # wake-up interval for threads blocked on a queue
    poll_interval: float = 0.1


@dataclass(frozen=True)
class QueueRegistry:
    """Deduplicated inbound and outbound queue names, fixed at construction."""

    inbound: frozenset[str] = field(default_factory=frozenset)
    outbound: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_lists(
        cls, inbound: Iterable[str], outbound: Iterable[str]
    ) -> "QueueRegistry":
        return cls(inbound=frozenset(inbound), outbound=frozenset(outbound))

    @property
    def all_queues(self) -> frozenset[str]:
        return self.inbound | self.outbound
