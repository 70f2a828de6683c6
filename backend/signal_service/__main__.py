"""CLI entry point.

Usage:
    python -m signal_service                 # serve API + WebSocket (uvicorn)
    python -m signal_service --once          # run one cycle and print it
    python -m signal_service --once --assets BTC,ETH --json
"""

import argparse
import asyncio
import logging
import sys

import orjson

from signal_engine.models import CycleSnapshot
from signal_service.clients import BinanceRestClient
from signal_service.config import get_settings


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Daytrade Signals: 5-minute indicator signals for crypto assets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m signal_service
  python -m signal_service --once
  python -m signal_service --once --assets BTC,XRP --json
        """,
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single cycle, print the snapshot and exit",
    )
    parser.add_argument(
        "--assets",
        type=str,
        default=None,
        help="Comma-separated assets (default: from settings)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the snapshot as JSON instead of a table",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser.parse_args(argv)


def format_snapshot(snapshot: CycleSnapshot) -> str:
    """Render a snapshot as a plain-text table."""
    lines = [
        f"Cycle {snapshot.cycle} completed at {snapshot.completed_at:%H:%M:%S}",
        "-" * 72,
        f"{'Asset':<6} {'Signal':<8} {'Price':>12} {'RSI':>7} {'Generated':>10} "
        f"{'Entry':>6} {'P1':>6} {'P2':>6}",
    ]
    for asset, result in snapshot.results.items():
        if result is None:
            lines.append(f"{asset:<6} {'no data':<8}")
            continue
        shown = result.to_display()
        rsi = shown["indicators"]["rsi"]
        times = shown["timestamps"]
        lines.append(
            f"{asset:<6} {shown['signal']['type']:<8} {shown['last_price']:>12} "
            f"{'-' if rsi is None else rsi:>7} {times['generated_at']:>10} "
            f"{times['execute_at']:>6} {times['protection_1']:>6} {times['protection_2']:>6}"
        )
    return "\n".join(lines)


async def run_once(assets: list[str], as_json: bool = False) -> int:
    """Run one cycle against Binance and print the result."""
    from signal_service.main import build_runner

    settings = get_settings()
    client = BinanceRestClient(
        base_url=settings.binance_base_url,
        timeout=settings.request_timeout,
        calls_per_minute=settings.calls_per_minute,
    )
    try:
        runner = build_runner(settings, client)
        runner.assets = assets
        snapshot = await runner.run_cycle()
    finally:
        await client.close()

    if snapshot is None:
        print(f"Cycle failed: {runner.last_error}", file=sys.stderr)
        return 1

    if as_json:
        print(orjson.dumps(snapshot.to_display(), option=orjson.OPT_INDENT_2).decode("utf-8"))
    else:
        print(format_snapshot(snapshot))
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)

    if not args.once:
        from signal_service.main import main as serve

        serve()
        return 0

    settings = get_settings()
    assets = (
        [a.strip().upper() for a in args.assets.split(",") if a.strip()]
        if args.assets
        else settings.assets
    )
    return asyncio.run(run_once(assets, as_json=args.json))


if __name__ == "__main__":
    sys.exit(main())
