"""Application configuration."""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict

from signal_engine.models import IndicatorConfig


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Binance API (public market data, no key needed)
    binance_base_url: str = "https://api.binance.com"
    request_timeout: float = 30.0
    calls_per_minute: int = 1200

    # Assets, all quoted against quote_asset
    assets: list[str] = ["BTC", "XRP", "BNB", "ADA", "LTC"]
    quote_asset: str = "USDT"

    # Price history
    kline_interval: str = "1m"
    kline_limit: int = 200
    min_history: int = 20

    # Cycle cadence (wall-clock grid, minutes)
    cycle_minutes: int = 5

    # Indicator periods
    rsi_period: int = 14
    ema_period: int = 20
    momentum_period: int = 10
    bollinger_period: int = 20
    bollinger_std_devs: float = 2.0

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    log_level: str = "INFO"

    def indicator_config(self) -> IndicatorConfig:
        return IndicatorConfig(
            rsi_period=self.rsi_period,
            ema_period=self.ema_period,
            momentum_period=self.momentum_period,
            bollinger_period=self.bollinger_period,
            bollinger_std_devs=self.bollinger_std_devs,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
