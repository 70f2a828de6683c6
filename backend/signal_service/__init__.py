"""Async service around the signal engine: Binance prices, cycles, API."""
