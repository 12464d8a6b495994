"""
Display formatting for hours, probabilities and timestamps.

Dates use the compact clinical style ``05MAR2025`` / ``05MAR2025 14:30``.
Timestamps are rendered in UTC.
"""

from __future__ import annotations

import math
from typing import Optional

from laborcurve.utils.numeric import TimeLike, to_utc

MONTHS = ("JAN", "FEB", "MAR", "APR", "MAY", "JUN",
          "JUL", "AUG", "SEP", "OCT", "NOV", "DEC")

EMPTY = "—"


def fmt_hours(hours: Optional[float]) -> str:
    """
    Format a duration in hours.

    Durations under one hour are shown in minutes.

    Example:
        >>> fmt_hours(0.5)
        '30 min'
        >>> fmt_hours(2.25)
        '2.2 hr'
    """
    if hours is None or not math.isfinite(hours):
        return EMPTY
    if hours < 1:
        return f"{round(hours * 60)} min"
    return f"{hours:.1f} hr"


def fmt_prob(p: Optional[float]) -> str:
    """Format a probability as a whole percentage."""
    if p is None:
        return EMPTY
    return f"{round(p * 100)}%"


def fmt_date(value: TimeLike, include_year: bool = False) -> str:
    dt = to_utc(value)
    text = f"{dt.day:02d}{MONTHS[dt.month - 1]}"
    if include_year:
        text += str(dt.year)
    return text


def fmt_datetime(value: TimeLike) -> str:
    dt = to_utc(value)
    return f"{fmt_date(dt, include_year=True)} {dt.hour:02d}:{dt.minute:02d}"


__all__ = ['fmt_hours', 'fmt_prob', 'fmt_date', 'fmt_datetime', 'MONTHS']
