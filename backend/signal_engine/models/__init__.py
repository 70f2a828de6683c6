"""Engine data models."""

from signal_engine.models.indicators import BollingerBands, IndicatorBundle, MacdValue
from signal_engine.models.signal import (
    SIGNAL_REASONS,
    AssetResult,
    CycleSnapshot,
    Signal,
    SignalType,
    TimestampSet,
    format_hhmm,
)
from signal_engine.models.config import IndicatorConfig, VotingConfig

__all__ = [
    "BollingerBands",
    "IndicatorBundle",
    "MacdValue",
    "SIGNAL_REASONS",
    "AssetResult",
    "CycleSnapshot",
    "Signal",
    "SignalType",
    "TimestampSet",
    "format_hhmm",
    "IndicatorConfig",
    "VotingConfig",
]
