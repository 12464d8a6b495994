"""
Numeric and time helpers shared by the curve generator and the predictor.

Functions:
    clamp: Bound a value to [lo, hi]
    hours_between: Signed elapsed hours between two instants
    to_utc: Normalize a datetime (naive = UTC) or ISO string to aware UTC
    utc_now: Current instant as an aware UTC datetime
    safe_num: Parse a number, with a fallback for blanks and garbage
    median: Median of a sequence, or None when empty

Example:
    >>> from laborcurve.utils.numeric import clamp, hours_between
    >>> clamp(12.0, 0.0, 10.0)
    10.0
    >>> hours_between("2025-03-05T10:00:00Z", "2025-03-05T12:30:00Z")
    2.5
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Iterable, Optional, Union

import numpy as np
import pandas as pd

TimeLike = Union[datetime, str, pd.Timestamp]


def clamp(value: float, lo: float, hi: float) -> float:
    """
    Bound ``value`` to the closed interval [lo, hi].

    Example:
        >>> clamp(-0.5, 0.0, 1.0)
        0.0
    """
    return max(lo, min(hi, value))


def to_utc(value: TimeLike) -> datetime:
    """
    Convert a timestamp to an aware UTC ``datetime``.

    Accepts datetimes, pandas Timestamps and ISO-8601 strings (including a
    trailing ``Z``). Naive values are taken to be UTC.

    Args:
        value: Timestamp to normalize.

    Returns:
        Timezone-aware datetime in UTC.

    Raises:
        ValueError: If a string cannot be parsed as a timestamp.
    """
    ts = pd.Timestamp(value)
    if ts is pd.NaT:
        raise ValueError(f"Not a timestamp: {value!r}")
    if ts.tzinfo is None:
        ts = ts.tz_localize(timezone.utc)
    return ts.tz_convert(timezone.utc).to_pydatetime()


def utc_now() -> datetime:
    """Return the current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def hours_between(start: TimeLike, end: TimeLike) -> float:
    """
    Elapsed hours from ``start`` to ``end`` (negative if ``end`` is earlier).

    Example:
        >>> hours_between("2025-03-05T10:00:00Z", "2025-03-05T09:45:00Z")
        -0.25
    """
    return (to_utc(end) - to_utc(start)).total_seconds() / 3600.0


def safe_num(value: Any, fallback: Optional[float] = None) -> Optional[float]:
    """
    Parse ``value`` as a finite float.

    Blank strings, None, NaN, infinities and unparsable text return
    ``fallback``.

    Example:
        >>> safe_num("4.5")
        4.5
        >>> safe_num("", fallback=0.0)
        0.0
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return fallback
    if isinstance(value, bool):
        return float(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    return number if math.isfinite(number) else fallback


def median(values: Iterable[float]) -> Optional[float]:
    """
    Median of ``values``; None when the sequence is empty.

    Example:
        >>> median([3.0, 1.0, 2.0, 10.0])
        2.5
    """
    arr = np.asarray(list(values), dtype=float)
    if arr.size == 0:
        return None
    return float(np.median(arr))


__all__ = [
    'TimeLike',
    'clamp',
    'to_utc',
    'utc_now',
    'hours_between',
    'safe_num',
    'median',
]
