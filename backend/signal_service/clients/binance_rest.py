"""Binance spot REST API client for recent closing prices."""

import asyncio
import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

# Index of the close price in a Binance kline array
CLOSE_INDEX = 4


class RateLimiter:
    """Simple rate limiter for API calls."""

    def __init__(self, calls_per_minute: int = 1200):
        self.calls_per_minute = calls_per_minute
        self.interval = 60.0 / calls_per_minute
        self.last_call = 0.0
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Wait if necessary to respect rate limit."""
        async with self._lock:
            loop = asyncio.get_running_loop()
            wait_time = self.last_call + self.interval - loop.time()
            if wait_time > 0:
                await asyncio.sleep(wait_time)
            self.last_call = loop.time()


class BinanceRestClient:
    """Binance spot REST API client.

    Only public endpoints are used, so no API key is required.
    """

    BASE_URL = "https://api.binance.com"

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float = 30.0,
        calls_per_minute: int = 1200,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or self.BASE_URL
        self.timeout = timeout
        self.rate_limiter = RateLimiter(calls_per_minute)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(
        self, method: str, endpoint: str, params: dict[str, Any] | None = None
    ) -> Any:
        """Make an API request with rate limiting."""
        await self.rate_limiter.acquire()
        client = await self._get_client()
        response = await client.request(method, endpoint, params=params)
        response.raise_for_status()
        return response.json()

    async def get_klines_raw(
        self,
        symbol: str,
        interval: str = "1m",
        limit: int = 200,
    ) -> list[list[Any]]:
        """
        Fetch raw K-line arrays from Binance.

        Args:
            symbol: Trading pair (e.g., "BTCUSDT")
            interval: K-line interval (e.g., "1m")
            limit: Maximum number of K-lines (max 1000)

        Returns:
            List of kline arrays, oldest first

        Raises:
            httpx.HTTPError: On transport or HTTP status errors
            ValueError: If the body is not a JSON list
        """
        params = {
            "symbol": symbol,
            "interval": interval,
            "limit": min(limit, 1000),
        }
        data = await self._request("GET", "/api/v3/klines", params)
        if not isinstance(data, list):
            raise ValueError(f"Unexpected klines payload for {symbol}: {type(data).__name__}")
        return data

    async def fetch_closes(self, symbol: str, interval: str = "1m", limit: int = 200) -> list[float]:
        """
        Fetch closing prices, oldest first.

        Never raises: any transport, status or shape error is logged and
        an empty list is returned.
        """
        try:
            data = await self.get_klines_raw(symbol, interval, limit)
            return [float(item[CLOSE_INDEX]) for item in data]
        except (httpx.HTTPError, ValueError, TypeError, IndexError, KeyError) as e:
            logger.warning(f"Error fetching klines for {symbol}: {e}")
            return []
