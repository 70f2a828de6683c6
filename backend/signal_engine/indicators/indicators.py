"""Technical indicators for signal generation.

All functions take an ordered sequence of closing prices (oldest first),
copy it into a NumPy array and never modify the caller's sequence.

Floating point errors are silenced rather than raised: NaN or inf in the
input propagates to the output instead of throwing. The only non-numeric
results are the documented "insufficient history" values (None, or the
(0, 0) sentinel for MACD).
"""

from typing import Sequence

import numpy as np

from signal_engine.models import BollingerBands, IndicatorBundle, IndicatorConfig, MacdValue


def _to_array(values: Sequence[float]) -> np.ndarray:
    return np.array(values, dtype=np.float64)


def _ema_array(arr: np.ndarray, period: int) -> np.ndarray:
    """EMA seeded with the first value (no SMA warm-up, no NaN prefix)."""
    result = np.empty_like(arr)
    if arr.size == 0:
        return result

    multiplier = 2.0 / (period + 1)
    result[0] = arr[0]

    with np.errstate(all="ignore"):
        for i in range(1, len(arr)):
            result[i] = arr[i] * multiplier + result[i - 1] * (1 - multiplier)

    return result


def ema(values: Sequence[float], period: int) -> list[float]:
    """
    Calculate Exponential Moving Average.

    Element 0 equals values[0]; element i is
    ``values[i] * k + ema[i-1] * (1 - k)`` with ``k = 2 / (period + 1)``.

    Args:
        values: Sequence of price values
        period: EMA period

    Returns:
        List of EMA values, same length as input (empty for empty input)
    """
    return _ema_array(_to_array(values), period).tolist()


def rsi(values: Sequence[float], period: int = 14) -> float | None:
    """
    Calculate the Relative Strength Index.

    Gains and losses are averaged over the FIRST ``period`` deltas of the
    series, not over the most recent bars. This is the production
    behavior and must not be "corrected" to a trailing-window RSI.

    When there are no losses RS is taken as 100, which gives
    RSI = 100 - 100/101 (about 99.01) instead of 100.

    Args:
        values: Sequence of price values
        period: Number of deltas to average

    Returns:
        RSI in [0, 100], or None when ``len(values) < period + 1``
    """
    arr = _to_array(values)
    if len(arr) < period + 1:
        return None

    deltas = np.diff(arr[: period + 1])
    with np.errstate(all="ignore"):
        gains = np.where(deltas > 0, deltas, 0.0)
        losses = np.where(deltas < 0, -deltas, 0.0)

        avg_gain = gains.sum() / period
        avg_loss = losses.sum() / period

        rs = 100.0 if avg_loss == 0 else avg_gain / avg_loss
        return float(100.0 - 100.0 / (1.0 + rs))


def macd(
    values: Sequence[float],
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> MacdValue:
    """
    Calculate MACD line and signal line (latest values only).

    line series = EMA(fast) - EMA(slow), pointwise over the whole series;
    signal = EMA(line series, signal_period).

    Returns:
        MacdValue for the last bar. With fewer than ``slow_period`` values
        returns MacdValue(0, 0), which callers cannot tell apart from a
        genuine zero crossing.
    """
    arr = _to_array(values)
    if len(arr) < slow_period:
        return MacdValue(line=0.0, signal=0.0)

    with np.errstate(all="ignore"):
        line = _ema_array(arr, fast_period) - _ema_array(arr, slow_period)
    signal_line = _ema_array(line, signal_period)

    return MacdValue(line=float(line[-1]), signal=float(signal_line[-1]))


def momentum(values: Sequence[float], period: int = 10) -> float | None:
    """
    Calculate momentum as a price ratio.

    ``values[-1] / values[-period - 1]``; 1.0 means unchanged.

    Returns:
        The ratio, None when ``len(values) < period``. With exactly
        ``period`` values the reference price does not exist and the
        result is NaN.
    """
    arr = _to_array(values)
    if len(arr) < period:
        return None
    if len(arr) == period:
        return float("nan")

    with np.errstate(all="ignore"):
        return float(arr[-1] / arr[-period - 1])


def bollinger_bands(
    values: Sequence[float],
    period: int = 20,
    std_devs: float = 2.0,
) -> BollingerBands | None:
    """
    Calculate Bollinger Bands over the trailing ``period`` prices.

    Uses the population standard deviation (divides by ``period``).

    Returns:
        BollingerBands with upper/middle/lower and the last price, or None
        when ``len(values) < period``
    """
    arr = _to_array(values)
    if len(arr) < period or period <= 0:
        return None

    window = arr[-period:]
    with np.errstate(all="ignore"):
        mean = window.mean()
        std = window.std()
        upper = mean + std * std_devs
        lower = mean - std * std_devs

    return BollingerBands(
        upper=float(upper),
        middle=float(mean),
        lower=float(lower),
        price=float(arr[-1]),
    )


class IndicatorCalculator:
    """Calculator for all indicators needed by the signal vote."""

    def __init__(self, config: IndicatorConfig | None = None):
        self.config = config or IndicatorConfig()

    def calculate(self, closes: Sequence[float]) -> IndicatorBundle:
        """
        Calculate every indicator for the latest bar.

        Args:
            closes: Closing prices, oldest first

        Returns:
            IndicatorBundle; fields the series is too short for are None
        """
        cfg = self.config
        ema_values = ema(closes, cfg.ema_period)

        return IndicatorBundle(
            rsi=rsi(closes, cfg.rsi_period),
            macd=macd(closes, cfg.macd_fast, cfg.macd_slow, cfg.macd_signal),
            momentum=momentum(closes, cfg.momentum_period),
            ema=ema_values[-1] if ema_values else None,
            bollinger=bollinger_bands(closes, cfg.bollinger_period, cfg.bollinger_std_devs),
        )
