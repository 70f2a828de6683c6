"""Business services."""

from signal_service.services.cycle_runner import CycleRunner, CYCLE_FAILED_MESSAGE

__all__ = [
    "CycleRunner",
    "CYCLE_FAILED_MESSAGE",
]
