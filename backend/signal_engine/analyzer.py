"""Per-asset analysis: prices -> indicators -> signal -> timestamps.

The analyzer does no I/O of its own. Prices come from an injected
PriceSource and the current instant from an injected clock.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Protocol, Sequence, runtime_checkable

from signal_engine.aggregator import SignalAggregator
from signal_engine.indicators import IndicatorCalculator
from signal_engine.models import AssetResult
from signal_engine.timing import align_signal_times

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def local_now() -> datetime:
    """Current local wall-clock time (tz-aware)."""
    return datetime.now().astimezone()


@runtime_checkable
class PriceSource(Protocol):
    """Anything that can return recent closing prices for a symbol."""

    async def fetch_closes(self, symbol: str, interval: str, limit: int) -> list[float]:
        """Return closing prices, oldest first (empty on failure)."""
        ...


class AssetAnalyzer:
    """Analyze one asset at a time.

    An asset yields no result (None) when its price series is shorter
    than ``min_history``, when fetching it fails, or when the source
    returns data that cannot be read as prices. Errors never escape
    ``analyze``.
    """

    def __init__(
        self,
        source: PriceSource,
        calculator: IndicatorCalculator | None = None,
        aggregator: SignalAggregator | None = None,
        clock: Clock | None = None,
        quote_asset: str = "USDT",
        interval: str = "1m",
        limit: int = 200,
        min_history: int = 20,
    ):
        self.source = source
        self.calculator = calculator or IndicatorCalculator()
        self.aggregator = aggregator or SignalAggregator()
        self.clock = clock or local_now
        self.quote_asset = quote_asset
        self.interval = interval
        self.limit = limit
        self.min_history = min_history

    def market_symbol(self, asset: str) -> str:
        """Exchange symbol for an asset, e.g. BTC -> BTCUSDT."""
        return f"{asset}{self.quote_asset}"

    def analyze_prices(
        self,
        symbol: str,
        prices: Sequence[float],
        now: datetime,
    ) -> AssetResult | None:
        """Build the result for already-fetched prices (synchronous)."""
        if len(prices) < self.min_history:
            logger.info(
                "%s: only %d prices (need %d), no signal this cycle",
                symbol, len(prices), self.min_history,
            )
            return None

        closes = tuple(float(p) for p in prices)
        bundle = self.calculator.calculate(closes)
        last_price = closes[-1]
        signal = self.aggregator.decide(bundle, last_price, bundle.ema)

        return AssetResult(
            symbol=symbol,
            last_price=last_price,
            indicators=bundle,
            signal=signal,
            timestamps=align_signal_times(now),
        )

    async def analyze(self, asset: str) -> AssetResult | None:
        """
        Fetch prices for an asset and analyze them.

        Args:
            asset: Base asset code (e.g. "BTC")

        Returns:
            AssetResult, or None if the asset has no usable data this cycle
        """
        market = self.market_symbol(asset)
        try:
            prices = await self.source.fetch_closes(market, self.interval, self.limit)
        except Exception as e:
            logger.warning(f"Failed to fetch prices for {market}: {e}")
            return None

        try:
            result = self.analyze_prices(asset, prices, self.clock())
        except Exception as e:
            logger.warning(f"Unusable price data for {market}: {e!r}")
            return None

        if result is not None:
            logger.debug(f"{asset}: {result.signal.type.value}")
        return result
