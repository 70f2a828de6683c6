"""Signal, timestamp and per-cycle result models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from signal_engine.models.indicators import IndicatorBundle


class SignalType(str, Enum):
    """Categorical trading signal."""

    BUY = "BUY"
    SELL = "SELL"
    NEUTRAL = "NEUTRAL"


SIGNAL_REASONS: dict[SignalType, str] = {
    SignalType.BUY: "Positive signal with strong technical consensus",
    SignalType.SELL: "Negative signal with strong technical consensus",
    SignalType.NEUTRAL: "Indicators are balanced or contradictory",
}


class Signal(BaseModel):
    """Signal category plus its fixed rationale."""

    model_config = ConfigDict(frozen=True)

    type: SignalType
    reason: str

    @classmethod
    def of(cls, signal_type: SignalType) -> "Signal":
        """Build a signal whose reason is selected by the category alone."""
        return cls(type=signal_type, reason=SIGNAL_REASONS[signal_type])


def format_hhmm(value: datetime) -> str:
    """Format as 24-hour HH:MM in the datetime's own wall-clock zone."""
    return value.strftime("%H:%M")


class TimestampSet(BaseModel):
    """Timestamps attached to a signal.

    execute_at sits on a minute boundary; generated_at is 3 minutes
    before it and the two protection entries follow 1 and 2 minutes after.
    """

    model_config = ConfigDict(frozen=True)

    generated_at: datetime
    execute_at: datetime
    protection_1: datetime
    protection_2: datetime

    def to_display(self) -> dict[str, str]:
        return {
            "generated_at": format_hhmm(self.generated_at),
            "execute_at": format_hhmm(self.execute_at),
            "protection_1": format_hhmm(self.protection_1),
            "protection_2": format_hhmm(self.protection_2),
        }


class AssetResult(BaseModel):
    """Output for one asset in one cycle."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    last_price: float
    indicators: IndicatorBundle
    signal: Signal
    timestamps: TimestampSet

    def to_display(self) -> dict:
        """Presentation-ready form: rounded numbers and HH:MM times."""
        return {
            "symbol": self.symbol,
            "last_price": round(self.last_price, 2),
            "indicators": self.indicators.to_display(),
            "signal": {"type": self.signal.type.value, "reason": self.signal.reason},
            "timestamps": self.timestamps.to_display(),
        }


class CycleSnapshot(BaseModel):
    """All asset results of one completed cycle.

    Every configured asset has a key; None marks an asset that produced
    no result this cycle (fetch failure or short history).
    """

    model_config = ConfigDict(frozen=True)

    cycle: int
    started_at: datetime
    completed_at: datetime
    results: dict[str, AssetResult | None] = Field(default_factory=dict)

    def get(self, asset: str) -> AssetResult | None:
        return self.results.get(asset)

    @property
    def available(self) -> dict[str, AssetResult]:
        """Only the assets that produced a result."""
        return {k: v for k, v in self.results.items() if v is not None}

    def to_display(self) -> dict:
        return {
            "cycle": self.cycle,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat(),
            "signals": {
                asset: result.to_display() if result is not None else None
                for asset, result in self.results.items()
            },
        }
