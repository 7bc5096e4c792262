"""
RFQ Solver

Listens on the request topic, prices each request and answers on the
requester's bucket topic through a one-shot connection.
"""

from __future__ import annotations

import logging
from typing import Optional

import structlog

from ...types import QuoteRequest, QuoteResponse
from .codec import decode_request, encode_response
from .errors import CodecError, MessagingError, PricingError
from .identity import is_valid_bucket, topic_for
from .pricing import PricingEngine
from .session import Session, publish_once
from .subscription import DEFAULT_RETRY_DELAY, SubscriptionManager

logger = logging.getLogger(__name__)


class RfqSolver:
    def __init__(
        self,
        session: Session,
        engine: PricingEngine,
        *,
        retry_delay: float = DEFAULT_RETRY_DELAY,
    ) -> None:
        self.session = session
        self.engine = engine
        self.listener = SubscriptionManager(
            session.node,
            session.request_topic,
            self._on_request,
            retry_delay=retry_delay,
            name="quotes request topic",
        )
        self.received = 0
        self.answered = 0
        self.dropped = 0

    @property
    def public_key(self) -> str:
        return self.session.identity.public_key

    async def start(self) -> None:
        await self.listener.start()

    async def stop(self) -> None:
        await self.listener.stop()

    async def process_message(self, request: QuoteRequest) -> Optional[QuoteResponse]:
        """Price ``request``; None means the request must go unanswered."""
        try:
            return await self.engine.quote(request, solver=self.public_key)
        except PricingError as exc:
            logger.error("%s", exc)
            return None

    async def _on_request(self, payload: bytes) -> None:
        self.received += 1
        logger.info("New request for quotes received.")

        try:
            request = decode_request(payload)
        except CodecError as exc:
            self.dropped += 1
            logger.warning("Dropping undecodable request: %s", exc)
            return

        with structlog.contextvars.bound_contextvars(bucket=request.bucket):
            if not is_valid_bucket(request.bucket):
                self.dropped += 1
                logger.warning("Dropping request with invalid bucket %r", request.bucket)
                return

            response = await self.process_message(request)
            if response is None:
                self.dropped += 1
                return

            await self.send_response(request.bucket, response)

    async def send_response(self, bucket: str, response: QuoteResponse) -> bool:
        """Publish ``response`` on the bucket topic. Failures are logged, not raised."""
        topic = topic_for(bucket)
        try:
            payload = encode_response(response)
            logger.info("Sending response for quotes...")
            await publish_once(
                self.session.connect,
                topic,
                payload,
                peer_timeout=self.session.peer_timeout,
            )
        except (CodecError, MessagingError) as exc:
            self.dropped += 1
            logger.error("Response for quotes not sent on %s (%s): %s", topic, exc.category.value, exc)
            return False

        self.answered += 1
        logger.info("Response for quotes sent.")
        return True

    def status(self) -> dict:
        return {
            "public_key": self.public_key,
            "request_topic": self.session.request_topic,
            "subscription": self.listener.status(),
            "received": self.received,
            "answered": self.answered,
            "dropped": self.dropped,
        }
