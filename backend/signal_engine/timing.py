"""Wall-clock alignment for signal timestamps and cycle scheduling.

Every function takes the reference instant as an argument; nothing here
reads the system clock.
"""

from datetime import datetime, timedelta

from signal_engine.models import TimestampSet

ONE_MINUTE = timedelta(minutes=1)

# Signals are labelled as generated this long before their entry minute
GENERATION_LEAD = timedelta(minutes=3)


def truncate_to_minute(now: datetime) -> datetime:
    return now.replace(second=0, microsecond=0)


def align_signal_times(now: datetime) -> TimestampSet:
    """
    Compute the timestamps for a signal produced at ``now``.

    The entry minute is the next full minute boundary, and it always
    advances: 10:03:00.000 yields 10:04, never 10:03.

    Args:
        now: Reference instant (naive or tz-aware; the zone is kept)

    Returns:
        TimestampSet with generated_at = entry - 3 min, execute_at = entry,
        protections at entry + 1 and + 2 min
    """
    next_minute = truncate_to_minute(now) + ONE_MINUTE

    return TimestampSet(
        generated_at=next_minute - GENERATION_LEAD,
        execute_at=next_minute,
        protection_1=next_minute + ONE_MINUTE,
        protection_2=next_minute + 2 * ONE_MINUTE,
    )


def next_grid_mark(now: datetime, step_minutes: int = 5) -> datetime:
    """
    Next wall-clock mark on the ``step_minutes`` grid strictly after ``now``.

    Computed from ``now`` every time so scheduling errors do not add up.
    """
    base = truncate_to_minute(now)
    base -= timedelta(minutes=base.minute % step_minutes)
    return base + timedelta(minutes=step_minutes)
