"""Indicator value models."""

from pydantic import BaseModel, ConfigDict


def _round(value: float | None, digits: int = 2) -> float | None:
    """Round for display, keeping None as None."""
    if value is None:
        return None
    return round(value, digits)


class MacdValue(BaseModel):
    """Latest MACD line and signal line values."""

    model_config = ConfigDict(frozen=True)

    line: float
    signal: float

    def to_display(self) -> dict:
        return {"line": _round(self.line), "signal": _round(self.signal)}


class BollingerBands(BaseModel):
    """Bollinger envelope around the trailing window, plus the last price."""

    model_config = ConfigDict(frozen=True)

    upper: float
    middle: float
    lower: float
    price: float

    def to_display(self) -> dict:
        return {
            "upper": _round(self.upper),
            "middle": _round(self.middle),
            "lower": _round(self.lower),
            "price": _round(self.price),
        }


class IndicatorBundle(BaseModel):
    """Snapshot of all indicator values for one asset.

    None means the series was too short for that indicator. MACD has no
    None state: short series produce the (0, 0) sentinel instead.
    """

    model_config = ConfigDict(frozen=True)

    rsi: float | None = None
    macd: MacdValue = MacdValue(line=0.0, signal=0.0)
    momentum: float | None = None
    ema: float | None = None
    bollinger: BollingerBands | None = None

    def to_display(self) -> dict:
        """Values rounded to 2 decimals for presentation."""
        return {
            "rsi": _round(self.rsi),
            "macd": self.macd.to_display(),
            "momentum": _round(self.momentum),
            "ema": _round(self.ema),
            "bollinger": self.bollinger.to_display() if self.bollinger else None,
        }
