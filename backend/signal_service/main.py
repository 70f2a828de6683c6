"""Main application entry point."""

import logging
from contextlib import asynccontextmanager

# Configure logging FIRST, before any other imports
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)

# Reduce noise from third-party libraries (must be set before importing them)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("asyncio").setLevel(logging.WARNING)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from signal_engine.analyzer import AssetAnalyzer
from signal_engine.indicators import IndicatorCalculator
from signal_service.api import router, manager, websocket_endpoint
from signal_service.clients import BinanceRestClient
from signal_service.config import Settings, get_settings
from signal_service.services import CycleRunner

logger = logging.getLogger(__name__)

# Global services
rest_client: BinanceRestClient | None = None
cycle_runner: CycleRunner | None = None


def build_runner(settings: Settings, client: BinanceRestClient) -> CycleRunner:
    """Wire client, analyzer and runner from settings."""
    analyzer = AssetAnalyzer(
        source=client,
        calculator=IndicatorCalculator(settings.indicator_config()),
        quote_asset=settings.quote_asset,
        interval=settings.kline_interval,
        limit=settings.kline_limit,
        min_history=settings.min_history,
    )
    return CycleRunner(
        analyzer=analyzer,
        assets=settings.assets,
        cycle_minutes=settings.cycle_minutes,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    global rest_client, cycle_runner

    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())
    logger.info("Starting Daytrade Signals...")
    logger.info(
        f"Assets: {', '.join(settings.assets)} / {settings.quote_asset}, "
        f"every {settings.cycle_minutes}m"
    )

    try:
        rest_client = BinanceRestClient(
            base_url=settings.binance_base_url,
            timeout=settings.request_timeout,
            calls_per_minute=settings.calls_per_minute,
        )
        cycle_runner = build_runner(settings, rest_client)
        cycle_runner.on_snapshot(manager.send_snapshot)

        app.state.cycle_runner = cycle_runner
        await cycle_runner.start()
        logger.info("Cycle runner started")

    except Exception as e:
        logger.error(f"Startup failed: {e}")
        if cycle_runner:
            await cycle_runner.stop()
        if rest_client:
            await rest_client.close()
        raise  # Re-raise to prevent app from starting in broken state

    yield

    # Shutdown
    logger.info("Shutting down...")
    app.state.cycle_runner = None

    if cycle_runner:
        cycle_runner.off_snapshot(manager.send_snapshot)
        await cycle_runner.stop()

    if rest_client:
        await rest_client.close()

    logger.info("Shutdown complete")


# Create FastAPI app with orjson for faster JSON serialization
app = FastAPI(
    title="Daytrade Signals",
    description="5-minute RSI/MACD/Momentum/EMA/Bollinger signals for crypto assets",
    version="0.1.0",
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include REST routes
app.include_router(router, prefix="/api")

# WebSocket endpoint
app.websocket("/ws")(websocket_endpoint)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Daytrade Signals",
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


def main():
    """Run the application."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "signal_service.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
