"""Weighted-vote signal aggregation.

Each indicator adds weight to an independent buy or sell score:

- RSI < 30 -> buy +2; RSI > 70 -> sell +2; 40 <= RSI <= 60 -> buy +0.5
- MACD line above/below signal by more than 0.001 -> buy/sell +1.5
- Momentum > 1.005 -> buy +1; < 0.995 -> sell +1
- Price below/above the Bollinger lower/upper band -> buy/sell +2
- Price above EMA -> buy +1, otherwise sell +1

BUY when buy > sell + 1, SELL when sell > buy + 1, else NEUTRAL.
Indicators that could not be computed (None) add nothing.

This module is pure business logic with no I/O dependencies.
"""

from dataclasses import dataclass

from signal_engine.models import IndicatorBundle, Signal, SignalType, VotingConfig


@dataclass(slots=True)
class VoteTally:
    """Accumulated buy and sell scores."""

    buy: float = 0.0
    sell: float = 0.0


class SignalAggregator:
    """Turns an IndicatorBundle into a BUY/SELL/NEUTRAL signal."""

    def __init__(self, config: VotingConfig | None = None):
        self.config = config or VotingConfig()

    def tally(
        self,
        bundle: IndicatorBundle,
        last_price: float | None,
        ema: float | None,
    ) -> VoteTally:
        """Score every rule; both sides only ever grow."""
        cfg = self.config
        votes = VoteTally()

        if bundle.rsi is not None:
            if bundle.rsi < cfg.rsi_oversold:
                votes.buy += cfg.rsi_extreme_weight
            elif bundle.rsi > cfg.rsi_overbought:
                votes.sell += cfg.rsi_extreme_weight
            elif cfg.rsi_neutral_low <= bundle.rsi <= cfg.rsi_neutral_high:
                votes.buy += cfg.rsi_neutral_weight

        macd = bundle.macd
        if abs(macd.line - macd.signal) > cfg.macd_min_diff:
            if macd.line > macd.signal:
                votes.buy += cfg.macd_weight
            elif macd.line < macd.signal:
                votes.sell += cfg.macd_weight

        if bundle.momentum is not None:
            if bundle.momentum > cfg.momentum_up:
                votes.buy += cfg.momentum_weight
            elif bundle.momentum < cfg.momentum_down:
                votes.sell += cfg.momentum_weight

        bands = bundle.bollinger
        if bands is not None:
            if bands.price < bands.lower:
                votes.buy += cfg.bollinger_weight
            elif bands.price > bands.upper:
                votes.sell += cfg.bollinger_weight

        if last_price is not None and ema is not None:
            # NaN EMA falls through to the sell branch
            if last_price > ema:
                votes.buy += cfg.trend_weight
            else:
                votes.sell += cfg.trend_weight

        return votes

    def classify(self, votes: VoteTally) -> SignalType:
        margin = self.config.decision_margin
        if votes.buy > votes.sell + margin:
            return SignalType.BUY
        if votes.sell > votes.buy + margin:
            return SignalType.SELL
        return SignalType.NEUTRAL

    def decide(
        self,
        bundle: IndicatorBundle,
        last_price: float | None,
        ema: float | None,
    ) -> Signal:
        """
        Produce the signal for one asset.

        Args:
            bundle: Indicator values for the asset
            last_price: Latest closing price
            ema: Latest EMA(20) value

        Returns:
            Signal with the fixed reason for its category
        """
        return Signal.of(self.classify(self.tally(bundle, last_price, ema)))
