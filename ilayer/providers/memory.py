"""In-process messaging substrate.

Every ``InMemoryNode`` attached to the same ``InMemoryBus`` sees the others'
messages. Each delivery runs as its own task, so callbacks may overlap just
as they can on a real relay. Messages published on a topic nobody listens to
are dropped.
"""

import asyncio
import logging
import time
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional, Set

from ..core.rfq.errors import SubscribeError, TransportError
from .base import MessageCallback, MessagingProvider, Protocols, Subscription, WakuMessage

logger = logging.getLogger(__name__)


class InMemoryBus:
    def __init__(self) -> None:
        self._subscribers: Dict[str, List[MessageCallback]] = defaultdict(list)
        self._inflight: Set[asyncio.Task] = set()

    def attach(self, topic: str, callback: MessageCallback) -> None:
        self._subscribers[topic].append(callback)

    def detach(self, topic: str, callback: MessageCallback) -> None:
        callbacks = self._subscribers.get(topic, [])
        if callback in callbacks:
            callbacks.remove(callback)

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscribers.get(topic, []))

    def deliver(self, topic: str, payload: bytes) -> int:
        message = WakuMessage(payload=payload, content_topic=topic, timestamp=time.time_ns())
        callbacks = list(self._subscribers.get(topic, []))
        for callback in callbacks:
            task = asyncio.create_task(self._invoke(callback, message))
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)
        return len(callbacks)

    async def _invoke(self, callback: MessageCallback, message: WakuMessage) -> None:
        try:
            await callback(message)
        except Exception:  # noqa: BLE001
            logger.exception("Subscriber callback failed on %s", message.content_topic)

    async def drain(self) -> None:
        """Wait until every delivery, including ones they trigger, has finished."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)


class _MemorySubscription(Subscription):
    def __init__(self, node: "InMemoryNode", topic: str, callback: MessageCallback):
        self.topic = topic
        self._node = node
        self._callback = callback
        self._active = True

    async def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        self._node.bus.detach(self.topic, self._callback)
        self._node._subscriptions.discard(self)


class InMemoryNode(MessagingProvider):
    name = "memory"

    def __init__(self, bus: InMemoryBus):
        self.bus = bus
        self._running = False
        self._subscriptions: Set[_MemorySubscription] = set()

    async def ready(self) -> bool:
        return self._running

    async def health_check(self) -> Dict[str, Any]:
        return {
            "status": "healthy" if self._running else "unavailable",
            "subscriptions": sorted(s.topic for s in self._subscriptions),
        }

    async def start(self) -> None:
        self._running = True

    async def stop(self) -> None:
        for subscription in list(self._subscriptions):
            await subscription.unsubscribe()
        self._running = False

    async def wait_for_peers(self, protocols: Iterable[Protocols], timeout: Optional[float] = None) -> None:
        return None

    async def subscribe(self, topic: str, callback: MessageCallback) -> Subscription:
        if not self._running:
            raise SubscribeError("Node is not started", topic=topic)
        subscription = _MemorySubscription(self, topic, callback)
        self.bus.attach(topic, callback)
        self._subscriptions.add(subscription)
        return subscription

    async def publish(self, topic: str, payload: bytes) -> None:
        if not self._running:
            raise TransportError("Node is not started", topic=topic)
        delivered = self.bus.deliver(topic, payload)
        logger.debug("Published %d bytes on %s to %d subscribers", len(payload), topic, delivered)
