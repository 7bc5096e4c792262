from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..config import settings
from ..core.rfq import PeerWaitTimeout, PricingEngine, RfqRequester, RfqSolver, Session
from ..core.rfq.session import NodeFactory
from ..providers.base import MessagingProvider, PriceProvider, Protocols
from ..providers.coingecko import CoingeckoProvider
from ..providers.memory import InMemoryBus, InMemoryNode
from ..providers.static_prices import StaticPriceProvider
from ..providers.waku import WakuRestNode


class RfqNode:
    """Wires settings into a running requester and/or solver."""

    def __init__(
        self,
        *,
        role: Optional[str] = None,
        transport: Optional[str] = None,
        price_feed: Optional[PriceProvider] = None,
        bus: Optional[InMemoryBus] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.logger = logger or logging.getLogger("rfq_node")
        self.role = role or settings.rfq_role
        self.transport = transport or settings.rfq_transport
        self.bus = bus or InMemoryBus()
        self.price_feed = price_feed or self._default_price_feed()
        self.requester: Optional[RfqRequester] = None
        self.solver: Optional[RfqSolver] = None
        self._nodes: List[MessagingProvider] = []
        self._lock = asyncio.Lock()
        self._running = False
        self._started_at: Optional[datetime] = None

    def _default_price_feed(self) -> PriceProvider:
        if settings.enable_coingecko:
            return CoingeckoProvider()
        return StaticPriceProvider()

    @property
    def runs_requester(self) -> bool:
        return self.role in ("requester", "both")

    @property
    def runs_solver(self) -> bool:
        return self.role in ("solver", "both")

    def node_factory(self) -> NodeFactory:
        if self.transport == "memory":
            return lambda: InMemoryNode(self.bus)
        return lambda: WakuRestNode()

    # ---------------------------
    # Lifecycle
    # ---------------------------
    async def start(self) -> None:
        async with self._lock:
            if self._running:
                return
            self._running = True
            self._started_at = datetime.now(timezone.utc)
            self.logger.info("RFQ node starting (role=%s, transport=%s)", self.role, self.transport)

            connect = self.node_factory()
            if self.runs_solver:
                node = await self._open_listener(connect)
                session = Session.for_solver(node, connect, peer_timeout=settings.peer_wait_timeout_seconds)
                self.solver = RfqSolver(
                    session,
                    PricingEngine(self.price_feed),
                    retry_delay=settings.subscribe_retry_seconds,
                )
                await self.solver.start()
            if self.runs_requester:
                node = await self._open_listener(connect)
                session = Session.for_requester(node, connect, peer_timeout=settings.peer_wait_timeout_seconds)
                self.requester = RfqRequester(session, retry_delay=settings.subscribe_retry_seconds)
                await self.requester.start()
                self.logger.info("Requester bucket %s listening on %s", session.bucket, session.listen_topic)

    async def _open_listener(self, connect: NodeFactory) -> MessagingProvider:
        node = connect()
        await node.start()
        self._nodes.append(node)
        try:
            await node.wait_for_peers([Protocols.RELAY], timeout=settings.peer_wait_timeout_seconds)
            self.logger.info("Connected to relay node.")
        except PeerWaitTimeout as exc:
            # The subscription loop keeps retrying until a peer shows up
            self.logger.warning("%s", exc)
        return node

    async def stop(self) -> None:
        async with self._lock:
            if not self._running:
                return
            self._running = False
            self.logger.info("RFQ node stopping")

            for component in (self.requester, self.solver):
                if component is None:
                    continue
                try:
                    await component.stop()
                except Exception as exc:  # noqa: BLE001
                    self.logger.warning("Stopping %s failed: %s", type(component).__name__, exc, exc_info=True)

            for node in self._nodes:
                await node.stop()
            self._nodes.clear()

    @property
    def is_running(self) -> bool:
        return self._running

    # ---------------------------
    # Introspection
    # ---------------------------
    def status(self) -> Dict[str, Any]:
        return {
            "running": self._running,
            "started_at": self._started_at.isoformat() if self._started_at else None,
            "role": self.role,
            "transport": self.transport,
            "price_feed": self.price_feed.name,
            "requester": self.requester.status() if self.requester else None,
            "solver": self.solver.status() if self.solver else None,
        }

    async def health(self) -> Dict[str, Any]:
        substrate = [await node.health_check() for node in self._nodes]
        return {
            "price_feed": await self.price_feed.health_check(),
            "substrate": substrate,
        }
