from typing import Any, Dict, List, Mapping, Optional

from ..types import Price
from .base import PriceProvider


# Offline USD table keyed by mainnet contract address (WETH, USDC, USDT).
DEFAULT_PRICE_TABLE_USD: Dict[str, float] = {
    "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2": 2500.0,
    "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48": 1.0,
    "0xdac17f958d2ee523a2206206994597c13d831ec7": 1.0,
}


class StaticPriceProvider(PriceProvider):
    """Fixed price table, for offline runs of the in-memory transport."""

    name = "static"

    def __init__(self, table: Optional[Mapping[str, float]] = None):
        source = DEFAULT_PRICE_TABLE_USD if table is None else table
        self._table = {address.lower(): float(price) for address, price in source.items()}

    async def ready(self) -> bool:
        return True

    async def health_check(self) -> Dict[str, Any]:
        return {"status": "healthy", "entries": len(self._table)}

    async def lookup(self, addresses: List[str]) -> List[Price]:
        prices: List[Price] = []
        for address in dict.fromkeys(a.lower() for a in addresses):
            if address in self._table:
                prices.append(Price(address=address, price=self._table[address]))
        return prices
