from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

from ..types import Price


class Provider(ABC):
    """Base provider interface"""

    name: str
    timeout_s: int = 10

    @abstractmethod
    async def ready(self) -> bool:
        """Check if provider is ready to serve requests"""
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Return provider health status"""
        pass


class PriceProvider(Provider):
    """Provider for token spot prices"""

    @abstractmethod
    async def lookup(self, addresses: List[str]) -> List[Price]:
        """Return USD prices for the addresses that could be priced.

        Addresses without a price are left out of the result; a failure for
        one address never aborts the batch.
        """
        pass


class Protocols(str, Enum):
    """Waku protocol capabilities a peer may advertise."""

    RELAY = "/vac/waku/relay/2.0.0"
    LIGHT_PUSH = "/vac/waku/lightpush/2.0.0-beta1"
    FILTER = "/vac/waku/filter-subscribe/2.0.0-beta1"


@dataclass(frozen=True)
class WakuMessage:
    payload: bytes
    content_topic: str
    timestamp: Optional[int] = None


MessageCallback = Callable[[WakuMessage], Awaitable[None]]


class Subscription(ABC):
    """Handle returned by a successful subscribe."""

    topic: str

    @abstractmethod
    async def unsubscribe(self) -> None:
        pass


class MessagingProvider(Provider):
    """Publish/subscribe substrate the RFQ protocol runs on"""

    @abstractmethod
    async def start(self) -> None:
        pass

    @abstractmethod
    async def stop(self) -> None:
        pass

    @abstractmethod
    async def wait_for_peers(self, protocols: Iterable[Protocols], timeout: Optional[float] = None) -> None:
        """Block until a peer supporting one of ``protocols`` is reachable.

        Raises PeerWaitTimeout when ``timeout`` elapses first.
        """
        pass

    @abstractmethod
    async def subscribe(self, topic: str, callback: MessageCallback) -> Subscription:
        """Deliver every message on ``topic`` to ``callback``.

        Raises SubscribeError if the substrate refuses or is unreachable.
        """
        pass

    @abstractmethod
    async def publish(self, topic: str, payload: bytes) -> None:
        """Send one message. Raises TransportError on failure."""
        pass
