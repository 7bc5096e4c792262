"""
Subscription Manager

Keeps one long-lived listener on a topic. Subscribing is retried forever
on a fixed delay until the substrate accepts it; once subscribed, nothing
a message handler does can tear the subscription down.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from ...providers.base import MessagingProvider, Subscription, WakuMessage
from .errors import MessagingError

logger = logging.getLogger(__name__)

PayloadHandler = Callable[[bytes], Awaitable[None]]

DEFAULT_RETRY_DELAY = 3.0


class SubscriptionState(str, Enum):
    UNSUBSCRIBED = "unsubscribed"
    SUBSCRIBED = "subscribed"


class SubscriptionManager:
    def __init__(
        self,
        node: MessagingProvider,
        topic: str,
        handler: PayloadHandler,
        *,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        name: Optional[str] = None,
    ) -> None:
        self.node = node
        self.topic = topic
        self.retry_delay = retry_delay
        self.name = name or topic
        self._handler = handler
        self._handle: Optional[Subscription] = None
        self._task: Optional[asyncio.Task] = None
        self._subscribed = asyncio.Event()
        self.attempts = 0
        self.delivered = 0
        self.handler_errors = 0

    @property
    def state(self) -> SubscriptionState:
        return SubscriptionState.SUBSCRIBED if self._handle is not None else SubscriptionState.UNSUBSCRIBED

    @property
    def retry_count(self) -> int:
        return max(0, self.attempts - 1) if self._handle is not None else self.attempts

    # ---------------------------
    # Lifecycle
    # ---------------------------
    async def start(self) -> None:
        """Launch the subscribe loop; returns without waiting for success."""
        if self._task is not None or self._handle is not None:
            return
        self._task = asyncio.create_task(self._subscribe_loop(), name=f"subscribe:{self.name}")

    async def wait_until_subscribed(self, timeout: Optional[float] = None) -> None:
        if timeout is None:
            await self._subscribed.wait()
        else:
            await asyncio.wait_for(self._subscribed.wait(), timeout=timeout)

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        if self._handle is not None:
            handle, self._handle = self._handle, None
            self._subscribed.clear()
            try:
                await handle.unsubscribe()
            except MessagingError as exc:
                logger.warning("Unsubscribe from %s failed: %s", self.topic, exc)
            logger.info("Unsubscribed from %s.", self.name)

    async def _subscribe_loop(self) -> None:
        while self._handle is None:
            self.attempts += 1
            try:
                self._handle = await self.node.subscribe(self.topic, self._dispatch)
            except MessagingError as exc:
                logger.warning(
                    "Subscription retry... (%s, attempt %d, %s): %s",
                    self.name, self.attempts, exc.category.value, exc,
                )
                await asyncio.sleep(self.retry_delay)
                continue
            except Exception as exc:  # noqa: BLE001
                logger.error(
                    "Subscription retry... (%s, attempt %d, unexpected): %s",
                    self.name, self.attempts, exc, exc_info=True,
                )
                await asyncio.sleep(self.retry_delay)
                continue
            self._subscribed.set()
            logger.info("Subscribed to %s.", self.name)
        self._task = None

    # ---------------------------
    # Delivery
    # ---------------------------
    async def _dispatch(self, message: WakuMessage) -> None:
        if not message.payload:
            return
        self.delivered += 1
        try:
            await self._handler(message.payload)
        except Exception:  # noqa: BLE001
            self.handler_errors += 1
            logger.exception("Handler for %s failed; message dropped", self.name)

    def status(self) -> Dict[str, Any]:
        return {
            "topic": self.topic,
            "state": self.state.value,
            "attempts": self.attempts,
            "retries": self.retry_count,
            "delivered": self.delivered,
            "handler_errors": self.handler_errors,
        }
