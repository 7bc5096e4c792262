"""Shared fixtures for the RFQ tests."""

import pytest

from ilayer.core.rfq import PricingEngine, SubscribeError, TransportError
from ilayer.providers.memory import InMemoryBus, InMemoryNode
from ilayer.providers.static_prices import StaticPriceProvider


class FlakyNode(InMemoryNode):
    """Refuses the first ``failures`` subscribe calls, like a node with no peers yet."""

    def __init__(self, bus: InMemoryBus, failures: int = 1):
        super().__init__(bus)
        self.failures = failures
        self.subscribe_calls = 0

    async def subscribe(self, topic, callback):
        self.subscribe_calls += 1
        if self.subscribe_calls <= self.failures:
            raise SubscribeError("no peer reachable", topic=topic)
        return await super().subscribe(topic, callback)


class BrokenPublishNode(InMemoryNode):
    async def publish(self, topic, payload):
        raise TransportError("light push rejected", topic=topic)


@pytest.fixture
def bus() -> InMemoryBus:
    return InMemoryBus()


@pytest.fixture
def flaky_node(bus):
    def _make(failures: int = 1) -> FlakyNode:
        return FlakyNode(bus, failures=failures)
    return _make


@pytest.fixture
def broken_publish_node(bus):
    return lambda: BrokenPublishNode(bus)


@pytest.fixture
def price_feed() -> StaticPriceProvider:
    return StaticPriceProvider({"0xAAA": 1.0, "0xBBB": 2.0, "0xCCC": 5.0})


@pytest.fixture
def engine(price_feed) -> PricingEngine:
    """Pricing engine with the fee pinned to zero."""
    return PricingEngine(price_feed, fee_sampler=lambda: 0.0)
