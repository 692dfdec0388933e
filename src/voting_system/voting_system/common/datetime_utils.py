from __future__ import annotations

from datetime import datetime


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def epoch_micros(value: datetime) -> int:
    # Whole seconds plus the microsecond field; avoids float rounding on the fraction.
    return int(value.timestamp()) * 1_000_000 + value.microsecond


def hours_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 3600
