"""
Consumer fan-in for a single iteration session.

A session subscribes one consumer per inbound queue on the client's channel.
A pump thread drives the channel and drops each delivery into the source
queue of the consumer it belongs to; one forwarder thread per source decodes
deliveries and hands envelopes to the shared output stream.
"""

import functools
import logging
import queue
import threading
from typing import TYPE_CHECKING, Callable, Optional

from amqpstorm import AMQPChannelError, AMQPConnectionError, Channel, Message

from rabbitmq_client.exceptions import DecodeError, RabbitClientError
from rabbitmq_client.message import RabbitEnvelope
from rabbitmq_client.stream import EnvelopeStream

if TYPE_CHECKING:
    from rabbitmq_client.client import RabbitClient

logger = logging.getLogger(__name__)

# marks a source that will receive no more deliveries
_EXHAUSTED = object()


class ConsumerSession:
    """
    Consumers, pump and forwarders belonging to one iteration session.

    A session is never restarted: after :meth:`cancel` or a transport loss the
    client builds a new one.
    """

    def __init__(
        self,
        client: "RabbitClient",
        channel: Channel,
        stream: EnvelopeStream,
        on_transport_lost: Callable[[Channel], None],
        poll_interval: float = 0.1,
    ) -> None:
        self._client = client
        self._channel = channel
        self._stream = stream
        self._on_transport_lost = on_transport_lost
        self._poll_interval = poll_interval

        self._cancelled = threading.Event()
        self._sources: dict[str, queue.Queue] = {}
        self._consumer_tags: dict[str, str] = {}
        self._forwarders: list[threading.Thread] = []
        self._pump_thread: Optional[threading.Thread] = None

    @property
    def channel(self) -> Channel:
        return self._channel

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def subscribe(self, queue_name: str, consumer_tag: str) -> None:
        """
        Register a consumer for ``queue_name`` and start its forwarder.

        :raises AMQPError: If the broker refuses the subscription
        """
        source: queue.Queue = queue.Queue()
        self._channel.basic.consume(
            callback=functools.partial(self._on_message, source),
            queue=queue_name,
            consumer_tag=consumer_tag,
            exclusive=False,
            no_ack=False,
            no_local=False,
            arguments=None,
        )
        self._sources[queue_name] = source
        self._consumer_tags[queue_name] = consumer_tag
        logger.debug("Consumer %s subscribed to queue %s", consumer_tag, queue_name)

        forwarder = threading.Thread(
            target=self._forward,
            args=(queue_name, source),
            name=f"rmq-forwarder-{queue_name}",
            daemon=True,
        )
        self._forwarders.append(forwarder)
        forwarder.start()

    def start(self) -> None:
        """Start delivering messages once every consumer is subscribed."""
        self._pump_thread = threading.Thread(
            target=self._pump, name="rmq-consumer-pump", daemon=True
        )
        self._pump_thread.start()

    def cancel(self) -> None:
        """Signal the pump and every forwarder to exit. Does not wait for them."""
        self._cancelled.set()
        for source in self._sources.values():
            source.put(_EXHAUSTED)

    def _on_message(self, source: queue.Queue, message: Message) -> None:
        if self._cancelled.is_set():
            # consumer was cancelled while this delivery was in flight
            self._client._nack_quietly(self._channel, message.delivery_tag, requeue=True)
            return
        source.put(message)

    def _pump(self) -> None:
        """Dispatch deliveries until every consumer is cancelled or the channel dies."""
        try:
            self._channel.start_consuming(to_tuple=False, auto_decode=False)
            logger.debug("Consumer pump finished")
        except (AMQPConnectionError, AMQPChannelError) as e:
            if not self._cancelled.is_set():
                logger.warning("Transport lost while consuming: %s", e)
                self._on_transport_lost(self._channel)
        except Exception as e:
            logger.exception("Unexpected error in consumer pump: %s", e)
            if not self._cancelled.is_set():
                self._on_transport_lost(self._channel)
        finally:
            for source in self._sources.values():
                source.put(_EXHAUSTED)

    def _forward(self, queue_name: str, source: queue.Queue) -> None:
        """
        Move deliveries from one source into the output stream, in order.

        After an undecodable delivery the queue's consumer is cancelled and
        anything still arriving on the source is requeued until the session ends.
        """
        rejecting = False
        while not self._cancelled.is_set():
            try:
                message = source.get(timeout=self._poll_interval)
            except queue.Empty:
                continue

            if message is _EXHAUSTED:
                logger.debug("Source for queue %s exhausted", queue_name)
                break

            if rejecting:
                self._client._nack_quietly(
                    self._channel, message.delivery_tag, requeue=True
                )
                continue

            try:
                envelope = RabbitEnvelope.from_delivery(
                    message, self._channel, queue_name, self._client
                )
            except DecodeError as e:
                logger.warning("Failed to parse message as json: %s", e)
                try:
                    self._client._nack(self._channel, message.delivery_tag, requeue=False)
                except RabbitClientError as nack_error:
                    logger.error("Failed to nack undecodable message: %s", nack_error)
                self._stop_consumer(queue_name)
                rejecting = True
                continue

            if not self._stream.put(envelope, self._cancelled):
                self._client._nack_quietly(
                    self._channel, message.delivery_tag, requeue=True
                )
                break
            logger.debug(
                "Forwarded message %s from queue %s", message.delivery_tag, queue_name
            )

        self._requeue_leftovers(source)

    def _stop_consumer(self, queue_name: str) -> None:
        """Cancel the broker consumer of one queue, leaving the others running."""
        try:
            self._client._cancel_consumer(self._channel, self._consumer_tags[queue_name])
        except RabbitClientError as e:
            logger.error("Failed to cancel consumer for queue %s: %s", queue_name, e)
        logger.warning("Stopped forwarding queue %s for this session", queue_name)

    def _requeue_leftovers(self, source: queue.Queue) -> None:
        """Return deliveries still waiting in a cancelled source to the broker."""
        while True:
            try:
                message = source.get_nowait()
            except queue.Empty:
                return
            if message is not _EXHAUSTED:
                self._client._nack_quietly(
                    self._channel, message.delivery_tag, requeue=True
                )


def drain_undelivered(client: "RabbitClient", envelopes: list[RabbitEnvelope]) -> None:
    """Requeue envelopes that reached a closed stream without being read."""
    for envelope in envelopes:
        client._nack_quietly(envelope.channel, envelope.delivery_tag, requeue=True)
    if envelopes:
        logger.info("Requeued %d unread message(s)", len(envelopes))

