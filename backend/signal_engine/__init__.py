"""Indicator-and-signal engine.

This package contains pure business logic with no I/O dependencies of
its own. Price data reaches it only through the PriceSource protocol,
and the current time only through an injected clock.
"""
