"""
Tests for the nwaku REST messaging provider, against a mocked node.
"""

import asyncio
import base64
import json
from urllib.parse import unquote

import httpx
import pytest

from ilayer.core.rfq import PeerWaitTimeout, SubscribeError, TransportError
from ilayer.providers.base import Protocols
from ilayer.providers.waku import WakuRestNode

TOPIC = "/iLayer/1/rfq/proto"


class FakeNwaku:
    """Just enough of the nwaku REST API for the provider."""

    def __init__(self):
        self.subscribed = set()
        self.queued = {}
        self.pushed = []
        self.peers = []
        self.fail_subscribe = False
        self.fail_push = False
        self.deletes = []

    def queue(self, topic: str, *payloads: bytes) -> None:
        self.queued.setdefault(topic, []).extend(
            {"payload": base64.b64encode(p).decode("ascii"), "contentTopic": topic} for p in payloads
        )

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/admin/v1/peers":
            return httpx.Response(200, json=self.peers)
        if path == "/relay/v1/auto/subscriptions":
            topics = json.loads(request.content)
            if request.method == "DELETE":
                self.deletes.extend(topics)
                self.subscribed.difference_update(topics)
                return httpx.Response(200, text="OK")
            if self.fail_subscribe:
                return httpx.Response(503, text="no relay peers")
            self.subscribed.update(topics)
            return httpx.Response(200, text="OK")
        if path.startswith("/relay/v1/auto/messages/"):
            topic = unquote(request.url.raw_path.decode("ascii").rsplit("/", 1)[-1])
            messages, self.queued[topic] = self.queued.get(topic, []), []
            return httpx.Response(200, json=messages)
        if path == "/lightpush/v1/message":
            if self.fail_push:
                return httpx.Response(503, text="no suitable peers")
            self.pushed.append(json.loads(request.content))
            return httpx.Response(200, text="OK")
        if path == "/health":
            return httpx.Response(200, json={"nodeHealth": "Ready"})
        return httpx.Response(404)


@pytest.fixture
def nwaku() -> FakeNwaku:
    return FakeNwaku()


def make_node(nwaku: FakeNwaku) -> WakuRestNode:
    return WakuRestNode("http://nwaku:8645/", poll_interval=0.01, transport=httpx.MockTransport(nwaku.handler))


@pytest.mark.asyncio
async def test_subscribe_polls_and_delivers(nwaku):
    node = make_node(nwaku)
    await node.start()
    received = []

    async def on_message(message):
        received.append(message)

    subscription = await node.subscribe(TOPIC, on_message)
    nwaku.queue(TOPIC, b"one", b"two")
    for _ in range(100):
        if len(received) == 2:
            break
        await asyncio.sleep(0.01)

    assert TOPIC in nwaku.subscribed
    assert [m.payload for m in received] == [b"one", b"two"]
    assert received[0].content_topic == TOPIC

    await subscription.unsubscribe()
    assert nwaku.deletes == [TOPIC]
    await node.stop()


@pytest.mark.asyncio
async def test_invalid_base64_is_skipped(nwaku):
    node = make_node(nwaku)
    await node.start()
    nwaku.queued[TOPIC] = [{"payload": "!!not base64!!"}, {"payload": base64.b64encode(b"ok").decode()}]

    messages = await node.fetch_messages(TOPIC)

    assert [m.payload for m in messages] == [b"ok"]
    await node.stop()


@pytest.mark.asyncio
async def test_subscribe_failure_raises(nwaku):
    nwaku.fail_subscribe = True
    node = make_node(nwaku)
    await node.start()

    with pytest.raises(SubscribeError) as exc_info:
        await node.subscribe(TOPIC, lambda message: None)

    assert exc_info.value.topic == TOPIC
    await node.stop()


@pytest.mark.asyncio
async def test_publish_uses_light_push(nwaku):
    node = make_node(nwaku)
    await node.start()

    await node.publish(TOPIC, b"\x0a\x08ab12cd34")

    message = nwaku.pushed[0]["message"]
    assert message["contentTopic"] == TOPIC
    assert base64.b64decode(message["payload"]) == b"\x0a\x08ab12cd34"
    assert isinstance(message["timestamp"], int)
    await node.stop()


@pytest.mark.asyncio
async def test_publish_failure_raises_transport_error(nwaku):
    nwaku.fail_push = True
    node = make_node(nwaku)
    await node.start()

    with pytest.raises(TransportError):
        await node.publish(TOPIC, b"payload")
    await node.stop()


@pytest.mark.asyncio
async def test_wait_for_peers_accepts_both_protocol_formats(nwaku):
    node = make_node(nwaku)
    await node.start()

    nwaku.peers = [{"multiaddr": "/ip4/1.2.3.4", "protocols": [Protocols.LIGHT_PUSH.value]}]
    await node.wait_for_peers([Protocols.LIGHT_PUSH], timeout=0.5)

    nwaku.peers = [{"multiaddr": "/ip4/1.2.3.4", "protocols": [{"protocol": Protocols.RELAY.value, "connected": True}]}]
    await node.wait_for_peers([Protocols.RELAY], timeout=0.5)

    await node.stop()


@pytest.mark.asyncio
async def test_wait_for_peers_times_out(nwaku):
    node = make_node(nwaku)
    await node.start()
    nwaku.peers = [{"multiaddr": "/ip4/1.2.3.4", "protocols": [{"protocol": Protocols.RELAY.value, "connected": False}]}]

    with pytest.raises(PeerWaitTimeout):
        await node.wait_for_peers([Protocols.RELAY], timeout=0.05)

    await node.stop()


@pytest.mark.asyncio
async def test_stop_removes_relay_subscriptions(nwaku):
    node = make_node(nwaku)
    await node.start()

    async def ignore(message):
        return None

    await node.subscribe(TOPIC, ignore)
    await node.stop()

    assert nwaku.deletes == [TOPIC]
    assert not await node.ready()
    assert (await node.health_check())["status"] == "unavailable"
