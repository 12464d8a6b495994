"""
Utility functions for LaborCurve.

This package contains reusable helpers organized by domain:
- numeric: Clamping, time deltas, tolerant number parsing
- formatting: Display strings for hours, probabilities and dates

Usage:
    from laborcurve.utils import clamp, hours_between
"""

from laborcurve.utils.numeric import (
    clamp,
    hours_between,
    median,
    safe_num,
    to_utc,
    utc_now,
)
from laborcurve.utils.formatting import (
    fmt_date,
    fmt_datetime,
    fmt_hours,
    fmt_prob,
)

__all__ = [
    'clamp',
    'hours_between',
    'median',
    'safe_num',
    'to_utc',
    'utc_now',
    'fmt_date',
    'fmt_datetime',
    'fmt_hours',
    'fmt_prob',
]
