"""Technical indicators (pure math, no I/O)."""

from signal_engine.indicators.indicators import (
    ema,
    rsi,
    macd,
    momentum,
    bollinger_bands,
    IndicatorCalculator,
)

__all__ = [
    "ema",
    "rsi",
    "macd",
    "momentum",
    "bollinger_bands",
    "IndicatorCalculator",
]
