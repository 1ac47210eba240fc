"""
Single-reader stream that hands envelopes from forwarder threads to the caller.

The stream holds at most one envelope at a time, so a forwarder blocks until
the caller has taken the previous one. Together with a prefetch of 1 this
pushes a slow reader's backpressure all the way to the broker.
"""

import collections
import threading
import time
from typing import Iterator, Optional

from rabbitmq_client.message import RabbitEnvelope


class EnvelopeStream:
    """Blocking hand-off of envelopes from many producers to one reader."""

    def __init__(self, poll_interval: float = 0.1) -> None:
        self._poll_interval = poll_interval
        self._slot: collections.deque[RabbitEnvelope] = collections.deque()
        self._cond = threading.Condition()
        self._closed = False

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    def put(self, envelope: RabbitEnvelope, cancelled: threading.Event) -> bool:
        """
        Hand an envelope to the reader, blocking while the slot is taken.

        There is no timeout: the call returns only once the envelope is
        accepted, the stream is closed or ``cancelled`` is set.

        :return: True if the envelope was accepted
        """
        with self._cond:
            while self._slot and not self._closed and not cancelled.is_set():
                self._cond.wait(self._poll_interval)
            if self._closed or cancelled.is_set():
                return False
            self._slot.append(envelope)
            self._cond.notify_all()
            return True

    def get(self, timeout: Optional[float] = None) -> Optional[RabbitEnvelope]:
        """
        Take the next envelope.

        :param timeout: Seconds to wait, or None to wait until one arrives
        :return: The envelope, or None on timeout or once the stream is closed
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            while not self._slot and not self._closed:
                wait = self._poll_interval
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        return None
                    wait = min(wait, remaining)
                self._cond.wait(wait)
            if not self._slot:
                return None
            envelope = self._slot.popleft()
            self._cond.notify_all()
            return envelope

    def close(self) -> list[RabbitEnvelope]:
        """
        Close the stream and wake every blocked producer and reader.

        :return: Envelopes that were handed over but never read
        """
        with self._cond:
            self._closed = True
            undelivered = list(self._slot)
            self._slot.clear()
            self._cond.notify_all()
        return undelivered

    def __iter__(self) -> Iterator[RabbitEnvelope]:
        return self

    def __next__(self) -> RabbitEnvelope:
        envelope = self.get()
        if envelope is None:
            raise StopIteration
        return envelope
