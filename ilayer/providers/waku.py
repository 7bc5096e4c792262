"""
Waku messaging over the REST API of an nwaku node.

The node does peer discovery, relay and transport security; this provider
only drives it: relay subscriptions are registered with the node and
polled for new messages, and publishes go out through light push.
"""

import asyncio
import base64
import binascii
import logging
import time
from typing import Any, Dict, Iterable, List, Optional, Set
from urllib.parse import quote

import httpx

from ..config import settings
from ..core.rfq.errors import PeerWaitTimeout, SubscribeError, TransportError
from .base import MessageCallback, MessagingProvider, Protocols, Subscription, WakuMessage

logger = logging.getLogger(__name__)


class RelaySubscription(Subscription):
    def __init__(self, node: "WakuRestNode", topic: str, callback: MessageCallback):
        self.topic = topic
        self.callback = callback
        self._node = node
        self._task: Optional[asyncio.Task] = None

    def start_polling(self) -> None:
        self._task = asyncio.create_task(self._node._poll(self), name=f"waku-poll:{self.topic}")

    async def unsubscribe(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        await self._node._forget(self)


class WakuRestNode(MessagingProvider):
    """Relay and light-push client for one nwaku node"""

    name = "waku"

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        poll_interval: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.waku_node_url).rstrip("/")
        self.poll_interval = poll_interval or settings.waku_poll_interval_seconds
        self.timeout_s = settings.request_timeout_seconds
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._subscriptions: Set[RelaySubscription] = set()

    async def ready(self) -> bool:
        return self._client is not None

    async def health_check(self) -> Dict[str, Any]:
        if self._client is None:
            return {"status": "unavailable", "reason": "Node not started"}
        try:
            response = await self._client.get("/health")
            response.raise_for_status()
            return {
                "status": "healthy",
                "latency_ms": int(response.elapsed.total_seconds() * 1000),
                "subscriptions": sorted(s.topic for s in self._subscriptions),
            }
        except Exception as e:
            return {"status": "error", "reason": str(e)}

    async def start(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout_s,
                transport=self._transport,
            )

    async def stop(self) -> None:
        for subscription in list(self._subscriptions):
            await subscription.unsubscribe()
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _require_client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("WakuRestNode used before start()")
        return self._client

    # ---------------------------
    # Peers
    # ---------------------------
    async def connected_protocols(self) -> Set[str]:
        client = self._require_client()
        response = await client.get("/admin/v1/peers")
        response.raise_for_status()
        protocols: Set[str] = set()
        for peer in response.json() or []:
            for entry in peer.get("protocols") or []:
                # Older nodes report {"protocol", "connected"} pairs, newer ones plain strings
                if isinstance(entry, dict):
                    if entry.get("connected", True):
                        protocols.add(str(entry.get("protocol")))
                else:
                    protocols.add(str(entry))
        return protocols

    async def wait_for_peers(self, protocols: Iterable[Protocols], timeout: Optional[float] = None) -> None:
        wanted = {p.value for p in protocols}
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout if timeout is not None else None

        while True:
            try:
                if wanted & await self.connected_protocols():
                    return
            except (httpx.HTTPError, ValueError) as e:
                logger.debug(f"Peer query failed: {e}")

            if deadline is not None and loop.time() >= deadline:
                raise PeerWaitTimeout(f"No peer supporting {sorted(wanted)} within {timeout}s")
            await asyncio.sleep(self.poll_interval)

    # ---------------------------
    # Relay
    # ---------------------------
    async def subscribe(self, topic: str, callback: MessageCallback) -> Subscription:
        client = self._require_client()
        try:
            response = await client.post("/relay/v1/auto/subscriptions", json=[topic])
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise SubscribeError(f"Relay subscription to {topic} failed: {e}", topic=topic) from e

        subscription = RelaySubscription(self, topic, callback)
        self._subscriptions.add(subscription)
        subscription.start_polling()
        return subscription

    async def _forget(self, subscription: RelaySubscription) -> None:
        self._subscriptions.discard(subscription)
        if self._client is None:
            return
        try:
            response = await self._client.request(
                "DELETE", "/relay/v1/auto/subscriptions", json=[subscription.topic]
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Failed to remove relay subscription for {subscription.topic}: {e}")

    async def fetch_messages(self, topic: str) -> List[WakuMessage]:
        client = self._require_client()
        response = await client.get(f"/relay/v1/auto/messages/{quote(topic, safe='')}")
        response.raise_for_status()

        messages: List[WakuMessage] = []
        for item in response.json() or []:
            try:
                payload = base64.b64decode(item.get("payload") or "", validate=True)
            except (binascii.Error, ValueError):
                logger.warning(f"Skipping message with invalid base64 payload on {topic}")
                continue
            messages.append(
                WakuMessage(
                    payload=payload,
                    content_topic=item.get("contentTopic") or topic,
                    timestamp=item.get("timestamp"),
                )
            )
        return messages

    async def _poll(self, subscription: RelaySubscription) -> None:
        while True:
            try:
                messages = await self.fetch_messages(subscription.topic)
            except (httpx.HTTPError, ValueError) as e:
                logger.warning(f"Polling {subscription.topic} failed: {e}")
                messages = []

            for message in messages:
                try:
                    await subscription.callback(message)
                except Exception:  # noqa: BLE001
                    logger.exception(f"Subscriber callback failed on {subscription.topic}")

            await asyncio.sleep(self.poll_interval)

    # ---------------------------
    # Light push
    # ---------------------------
    async def publish(self, topic: str, payload: bytes) -> None:
        client = self._require_client()
        body = {
            "message": {
                "payload": base64.b64encode(payload).decode("ascii"),
                "contentTopic": topic,
                "timestamp": time.time_ns(),
                "ephemeral": True,
            }
        }
        try:
            response = await client.post("/lightpush/v1/message", json=body)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise TransportError(f"Light push to {topic} failed: {e}", topic=topic) from e
