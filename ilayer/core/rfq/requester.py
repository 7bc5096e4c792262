"""
RFQ Requester

Broadcasts quote requests on the well-known request topic and listens on
its private bucket topic for responses. Sending is best effort and at most
once: if no solver is listening the request is simply lost.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Awaitable, Callable, List, Optional

import structlog

from ...types import QuoteRequest, QuoteResponse, RequestSide, TokenWeight
from .codec import decode_response, encode_request
from .errors import CodecError, ResponseTimeoutError
from .session import Session, publish_once
from .subscription import DEFAULT_RETRY_DELAY, SubscriptionManager

logger = logging.getLogger(__name__)

ResponseListener = Callable[[QuoteResponse], Awaitable[None]]


class RfqRequester:
    def __init__(self, session: Session, *, retry_delay: float = DEFAULT_RETRY_DELAY) -> None:
        self.session = session
        self.listener = SubscriptionManager(
            session.node,
            session.listen_topic,
            self._on_response,
            retry_delay=retry_delay,
            name="quotes response topic",
        )
        self._listeners: List[ResponseListener] = []
        self._pending: Optional[asyncio.Future] = None
        self._outstanding: Optional[QuoteRequest] = None
        self._round_trip = asyncio.Lock()
        self.sent = 0
        self.received = 0
        self.unmatched = 0

    @property
    def bucket(self) -> str:
        return self.session.bucket

    async def start(self) -> None:
        await self.listener.start()

    async def stop(self) -> None:
        await self.listener.stop()
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()

    def add_listener(self, callback: ResponseListener) -> None:
        """Call ``callback`` for every decoded response, once per arrival."""
        self._listeners.append(callback)

    # ---------------------------
    # Requests
    # ---------------------------
    def build_request(self, from_side: RequestSide, to_side: RequestSide) -> QuoteRequest:
        return QuoteRequest(bucket=self.bucket, from_=from_side, to=to_side)

    def sample_request(self) -> QuoteRequest:
        """1 WETH on mainnet for a 30/70 USDC/USDT split on base."""
        return self.build_request(
            RequestSide(
                network="mainnet",
                tokens=[TokenWeight(address="0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2", weight=1)],
            ),
            RequestSide(
                network="base",
                tokens=[
                    TokenWeight(address="0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48", weight=30),
                    TokenWeight(address="0xdac17f958d2ee523a2206206994597c13d831ec7", weight=70),
                ],
            ),
        )

    async def send_request(self, request: QuoteRequest) -> None:
        """Publish ``request`` once on the request topic.

        Waits for the response listener first so an early answer is not
        missed. TransportError propagates; nothing is retried.
        """
        payload = encode_request(request)
        await self.listener.wait_until_subscribed()

        logger.info("Sending request for quotes... %s", json.dumps(request.model_dump(by_alias=True)))
        await publish_once(
            self.session.connect,
            self.session.request_topic,
            payload,
            peer_timeout=self.session.peer_timeout,
        )
        self.sent += 1
        logger.info("Request for quotes sent.")

    async def request_quote(self, request: QuoteRequest, *, timeout: float) -> QuoteResponse:
        """Send ``request`` and wait for the first response.

        Responses carry no request id, so only one round trip per session
        is outstanding at a time. Time spent queued behind another round
        trip counts against ``timeout``; ResponseTimeoutError is raised
        once it elapses.
        """
        try:
            return await asyncio.wait_for(self._round_trip_once(request), timeout=timeout)
        except asyncio.TimeoutError:
            raise ResponseTimeoutError(timeout, bucket=self.bucket) from None

    async def _round_trip_once(self, request: QuoteRequest) -> QuoteResponse:
        async with self._round_trip:
            self._pending = asyncio.get_running_loop().create_future()
            self._outstanding = request
            try:
                await self.send_request(request)
                return await self._pending
            finally:
                self._pending = None
                self._outstanding = None

    @staticmethod
    def _answers(request: QuoteRequest, response: QuoteResponse) -> bool:
        """True when ``response`` echoes the source side of ``request``.

        Weights travel as int32, so the echo is compared after truncation.
        """
        if response.from_.network != request.from_.network:
            return False
        asked = [(t.address.lower(), int(t.weight)) for t in request.from_.tokens]
        echoed = [(t.address.lower(), int(t.amount)) for t in response.from_.tokens]
        return asked == echoed

    # ---------------------------
    # Responses
    # ---------------------------
    async def _on_response(self, payload: bytes) -> None:
        with structlog.contextvars.bound_contextvars(bucket=self.bucket):
            logger.info("New response for quotes received.")
            try:
                response = decode_response(payload)
            except CodecError as exc:
                logger.warning("Dropping undecodable response: %s", exc)
                return

            self.received += 1
            logger.info("Quote response: %s", json.dumps(response.model_dump(by_alias=True)))

            pending, outstanding = self._pending, self._outstanding
            if (
                pending is not None
                and not pending.done()
                and outstanding is not None
                and self._answers(outstanding, response)
            ):
                pending.set_result(response)
            else:
                self.unmatched += 1
                logger.info("Response from %s matches no outstanding round trip", response.solver)

            for callback in list(self._listeners):
                try:
                    await callback(response)
                except Exception:  # noqa: BLE001
                    logger.exception("Response listener failed")

    def status(self) -> dict:
        return {
            "bucket": self.bucket,
            "response_topic": self.session.listen_topic,
            "subscription": self.listener.status(),
            "sent": self.sent,
            "received": self.received,
            "unmatched": self.unmatched,
            "awaiting_response": self._pending is not None,
        }
