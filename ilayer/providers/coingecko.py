import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx

from ..config import settings
from ..types import Price
from .base import PriceProvider

logger = logging.getLogger(__name__)


class CoingeckoProvider(PriceProvider):
    """Coingecko API provider for token prices"""

    name = "coingecko"

    def __init__(self, *, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = settings.coingecko_api_key
        self.base_url = settings.coingecko_base_url
        self.platform = settings.coingecko_platform
        self.timeout_s = settings.request_timeout_seconds
        self._transport = transport

    def _build_headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {"Content-Type": "application/json"}
        if self.api_key:
            headers["X-CG-Demo-API-Key"] = self.api_key
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._build_headers(),
            timeout=self.timeout_s,
            transport=self._transport,
        )

    async def ready(self) -> bool:
        return settings.enable_coingecko  # API key is optional for basic tier

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {
                "status": "unavailable",
                "reason": "Provider disabled"
            }

        try:
            async with self._client() as client:
                response = await client.get("/ping")
                response.raise_for_status()
                return {"status": "healthy", "latency_ms": int(response.elapsed.total_seconds() * 1000)}
        except Exception as e:
            return {"status": "error", "reason": str(e)}

    async def lookup(self, addresses: List[str]) -> List[Price]:
        """Price each distinct address with its own request.

        Requests run concurrently up to ``max_concurrent_requests``. A failed
        or empty lookup only drops that address.
        """
        if not addresses or not await self.ready():
            return []

        distinct = list(dict.fromkeys(address.lower() for address in addresses))
        semaphore = asyncio.Semaphore(settings.max_concurrent_requests)

        async with self._client() as client:
            async def _guarded(address: str) -> Optional[Price]:
                async with semaphore:
                    return await self._fetch_price(client, address)

            results = await asyncio.gather(*(_guarded(address) for address in distinct))

        return [price for price in results if price is not None]

    async def _fetch_price(self, client: httpx.AsyncClient, address: str) -> Optional[Price]:
        params = {
            "contract_addresses": address,
            "vs_currencies": "usd",
        }
        try:
            response = await client.get(f"/simple/token_price/{self.platform}", params=params)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error fetching token price for {address}: {e}")
            return None

        entry = data.get(address) if isinstance(data, dict) else None
        if not entry or "usd" not in entry:
            logger.warning(f"Price not found for {address}")
            return None

        return Price(address=address, price=float(entry["usd"]))
