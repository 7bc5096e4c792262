"""
Pricing Engine

Turns a quote request into priced destination amounts.

The ``weight`` field is read two ways. For the (first) source token it is
an absolute quantity; for destination tokens it is a percentage share of
the source value (0-100). Destination weights are not normalized against
each other. Requesters and solvers must agree on this reading.
"""

from __future__ import annotations

import logging
import random
from typing import Callable, List, Optional, Sequence

from ...config import settings
from ...providers.base import PriceProvider
from ...types import Price, QuoteRequest, QuoteResponse, ResponseSide, TokenAmount, TokenWeight
from .errors import EmptySourceError, MissingSourcePriceError

logger = logging.getLogger(__name__)

FeeSampler = Callable[[], float]


def random_fee(low: Optional[float] = None, high: Optional[float] = None) -> float:
    """Uniform fee draw, 0.1% to 1% by default."""
    low = settings.fee_min if low is None else low
    high = settings.fee_max if high is None else high
    return random.uniform(low, high)


def extract_addresses(request: QuoteRequest) -> List[str]:
    """From-token addresses followed by to-token addresses, duplicates kept."""
    return [t.address for t in request.from_.tokens] + [t.address for t in request.to.tokens]


def price_of(prices: Sequence[Price], address: str) -> Optional[float]:
    target = address.lower()
    for price in prices:
        if price.address.lower() == target:
            return price.price
    return None


class PricingEngine:
    def __init__(self, price_feed: PriceProvider, *, fee_sampler: Optional[FeeSampler] = None):
        self.price_feed = price_feed
        self._fee_sampler = fee_sampler or random_fee

    async def lookup_prices(self, addresses: List[str]) -> List[Price]:
        return await self.price_feed.lookup(addresses)

    def compute_to_tokens(
        self,
        to_tokens: Sequence[TokenWeight],
        source_value: float,
        prices: Sequence[Price],
    ) -> List[TokenAmount]:
        amounts: List[TokenAmount] = []
        for token in to_tokens:
            token_price = price_of(prices, token.address)
            # Zero is treated like a missing price: it cannot be divided by
            if not token_price:
                logger.warning("Price not found for destination token %s, quoting 0", token.address)
                amounts.append(TokenAmount(address=token.address, amount=0))
                continue

            value = source_value * token.weight / 100
            quantity = value / token_price
            fee = self._fee_sampler()
            amounts.append(TokenAmount(address=token.address, amount=quantity * (1 - fee)))
        return amounts

    async def quote(self, request: QuoteRequest, solver: str) -> QuoteResponse:
        """Price ``request`` on behalf of ``solver``.

        Raises:
            EmptySourceError: the request lists no source token.
            MissingSourcePriceError: the source token could not be priced.
        """
        if not request.from_.tokens:
            raise EmptySourceError()

        prices = await self.lookup_prices(extract_addresses(request))
        from_token = request.from_.tokens[0]

        from_price = price_of(prices, from_token.address)
        if not from_price:
            raise MissingSourcePriceError(from_token.address)

        source_value = from_token.weight * from_price

        return QuoteResponse(
            solver=solver,
            from_=ResponseSide(
                network=request.from_.network,
                tokens=[TokenAmount(address=t.address, amount=t.weight) for t in request.from_.tokens],
            ),
            to=ResponseSide(
                network=request.to.network,
                tokens=self.compute_to_tokens(request.to.tokens, source_value, prices),
            ),
        )
