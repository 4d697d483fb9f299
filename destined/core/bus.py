"""In-process message bus — a topic with a bounded queue and subscribers.

Stands in for the real notification topic.  ``publish`` accepts plain string
content; ``deliver`` hands queued messages to every subscriber as one
inbound batch.  Delivery is at-least-once from the subscriber's point of
view: nothing here deduplicates.

Publish errors always carry a message beginning with ``Error`` so the
ingress adapter can classify them.
"""

from __future__ import annotations

import collections
import logging
import threading
from collections.abc import Callable
from typing import Any

from destined.models.messages import BusMessage, InboundEvent

logger = logging.getLogger(__name__)

Subscriber = Callable[[InboundEvent], Any]


class PublishError(RuntimeError):
    """Raised when the bus rejects a publish."""


class MessageBus:
    """A single topic with a bounded FIFO queue.

    Parameters
    ----------
    topic_arn:
        Identifier stamped on every published message.
    max_depth:
        Maximum number of undelivered messages.  Publishing past it fails.
    """

    def __init__(self, topic_arn: str = "", *, max_depth: int = 1024) -> None:
        if max_depth < 1:
            raise ValueError(f"max_depth must be at least 1, got {max_depth}")
        self._topic_arn = topic_arn
        self._max_depth = max_depth
        self._queue: collections.deque[BusMessage] = collections.deque()
        self._subscribers: list[Subscriber] = []
        self._lock = threading.Lock()
        self._closed = False

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def topic_arn(self) -> str:
        return self._topic_arn

    @property
    def depth(self) -> int:
        """Number of messages waiting for delivery."""
        with self._lock:
            return len(self._queue)

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Publish / subscribe
    # ------------------------------------------------------------------

    def subscribe(self, subscriber: Subscriber) -> None:
        """Register a callable that receives each delivered batch."""
        if subscriber not in self._subscribers:
            self._subscribers.append(subscriber)

    def publish(self, content: str) -> str:
        """Queue *content* and return its message id.

        Raises
        ------
        PublishError
            If the bus is closed or the queue is full.
        """
        if not isinstance(content, str):
            raise PublishError(
                f"Error: message content must be a string, got {type(content).__name__}"
            )
        with self._lock:
            if self._closed:
                raise PublishError(f"Error: topic {self._topic_arn or '<local>'} is closed")
            if len(self._queue) >= self._max_depth:
                raise PublishError(
                    f"Error: topic queue full ({self._max_depth} messages)"
                )
            message = BusMessage(topic_arn=self._topic_arn, message=content)
            self._queue.append(message)

        logger.debug("Published %s to %s", message.message_id, self._topic_arn or "<local>")
        return message.message_id

    def close(self) -> None:
        """Reject all further publishes.  Queued messages can still be delivered."""
        with self._lock:
            self._closed = True

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    def take_batch(self, batch_size: int = 10) -> InboundEvent | None:
        """Remove up to *batch_size* messages and wrap them as one event.

        Raises
        ------
        ValueError
            If *batch_size* is less than 1.
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        with self._lock:
            if not self._queue:
                return None
            count = min(batch_size, len(self._queue))
            messages = [self._queue.popleft() for _ in range(count)]
        return InboundEvent.from_messages(messages)

    def deliver(self, batch_size: int = 10) -> list[Any]:
        """Deliver queued messages in batches until the queue is empty.

        Returns every subscriber's return value, in delivery order.
        """
        results: list[Any] = []
        while (event := self.take_batch(batch_size)) is not None:
            if not self._subscribers:
                logger.warning(
                    "No subscribers on %s; %d messages dropped",
                    self._topic_arn or "<local>",
                    len(event.records),
                )
                continue
            for subscriber in self._subscribers:
                results.append(subscriber(event))
        return results
