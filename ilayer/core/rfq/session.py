"""Per-process RFQ session: identity, topics and connections bundled once."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from ...providers.base import MessagingProvider, Protocols
from .identity import REQUEST_TOPIC, Identity, bucket_of, new_identity, topic_for

logger = logging.getLogger(__name__)

NodeFactory = Callable[[], MessagingProvider]


@dataclass(frozen=True)
class Session:
    """Everything a requester or solver needs, created once at startup.

    ``node`` is the long-lived listening connection. ``connect`` opens a
    fresh, independently owned connection for one-shot publishes.
    """

    identity: Identity
    bucket: str
    listen_topic: str
    node: MessagingProvider
    connect: NodeFactory = field(repr=False)
    request_topic: str = REQUEST_TOPIC
    peer_timeout: Optional[float] = None

    @property
    def response_topic(self) -> str:
        return topic_for(self.bucket)

    @classmethod
    def for_requester(
        cls,
        node: MessagingProvider,
        connect: NodeFactory,
        *,
        identity: Optional[Identity] = None,
        peer_timeout: Optional[float] = None,
    ) -> "Session":
        identity = identity or new_identity()
        bucket = bucket_of(identity.public_key)
        return cls(
            identity=identity,
            bucket=bucket,
            listen_topic=topic_for(bucket),
            node=node,
            connect=connect,
            peer_timeout=peer_timeout,
        )

    @classmethod
    def for_solver(
        cls,
        node: MessagingProvider,
        connect: NodeFactory,
        *,
        identity: Optional[Identity] = None,
        peer_timeout: Optional[float] = None,
    ) -> "Session":
        identity = identity or new_identity()
        return cls(
            identity=identity,
            bucket=bucket_of(identity.public_key),
            listen_topic=REQUEST_TOPIC,
            node=node,
            connect=connect,
            peer_timeout=peer_timeout,
        )


async def publish_once(
    connect: NodeFactory,
    topic: str,
    payload: bytes,
    *,
    peer_timeout: Optional[float] = None,
) -> None:
    """Open a transient connection, push one message, tear it down.

    Raises TransportError (or PeerWaitTimeout) on failure; the connection is
    stopped either way.
    """
    node = connect()
    await node.start()
    try:
        await node.wait_for_peers([Protocols.LIGHT_PUSH], timeout=peer_timeout)
        await node.publish(topic, payload)
        logger.debug("Published %d bytes on %s", len(payload), topic)
    finally:
        await node.stop()
