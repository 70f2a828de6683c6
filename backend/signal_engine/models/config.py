"""Engine configuration models."""

from pydantic import BaseModel


class IndicatorConfig(BaseModel):
    """Indicator periods."""

    rsi_period: int = 14
    ema_period: int = 20
    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9
    momentum_period: int = 10
    bollinger_period: int = 20
    bollinger_std_devs: float = 2.0


class VotingConfig(BaseModel):
    """Thresholds and weights for the buy/sell vote.

    The defaults reproduce the production rule table; change them only
    together with the tests that pin the table.
    """

    # RSI
    rsi_oversold: float = 30.0
    rsi_overbought: float = 70.0
    rsi_neutral_low: float = 40.0
    rsi_neutral_high: float = 60.0
    rsi_extreme_weight: float = 2.0
    rsi_neutral_weight: float = 0.5

    # MACD crossover
    macd_min_diff: float = 0.001
    macd_weight: float = 1.5

    # Momentum ratio
    momentum_up: float = 1.005
    momentum_down: float = 0.995
    momentum_weight: float = 1.0

    # Bollinger breakout
    bollinger_weight: float = 2.0

    # Price vs EMA trend
    trend_weight: float = 1.0

    # Required lead of one side over the other
    decision_margin: float = 1.0
