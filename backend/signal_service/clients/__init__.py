"""Exchange clients."""

from signal_service.clients.binance_rest import BinanceRestClient, RateLimiter

__all__ = [
    "BinanceRestClient",
    "RateLimiter",
]
