"""
Analysis module for LaborCurve.

This module provides:
    - Event labels, headline stats and plain-text encounter summaries
    - Prediction-vs-outcome replay at past exams

Usage:
    >>> from laborcurve.analysis import build_summary, replay_at
    >>> text = build_summary(encounter, events)
    >>> replay = replay_at(encounter, events, at=exam.ts)
"""

from .replay import ReplayResult, ReplayStatus, replay_at, replay_points
from .summary import (
    QuickStat,
    build_summary,
    describe_encounter,
    events_to_frame,
    label_for_event,
    quick_stats,
)

__all__ = [
    # Replay
    'ReplayResult',
    'ReplayStatus',
    'replay_at',
    'replay_points',
    # Summary
    'QuickStat',
    'build_summary',
    'describe_encounter',
    'events_to_frame',
    'label_for_event',
    'quick_stats',
]
