"""
Prediction-vs-Outcome Replay for LaborCurve.

Re-runs the predictor as it would have looked at an earlier cervical exam,
using only the events recorded up to that exam, and compares its delivery
estimate with the recorded outcome.

The replayed prediction uses the exam time as its reference instant, so the
recent-oxytocin flag reflects what was known then rather than today.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum, auto
from typing import Iterable, List, Optional

from laborcurve.config import DEFAULT_SETTINGS, PredictorSettings
from laborcurve.data.records import CervicalExam, Encounter, Event, sort_events
from laborcurve.models.predictor import PredictionResult, predict_eta
from laborcurve.utils.numeric import hours_between, to_utc

# Configure module logger
logger = logging.getLogger(__name__)


class ReplayStatus(Enum):
    """Outcome of a replay request."""

    OK = auto()
    NO_EXAMS = auto()
    OUTCOME_NOT_SET = auto()
    INSUFFICIENT_DATA = auto()


@dataclass
class ReplayResult:
    """
    Result of replaying a prediction at a past exam.

    Attributes:
        status: Whether a comparison could be made.
        at: Exam timestamp the prediction was replayed at.
        prediction: Prediction made with events up to ``at``.
        actual_hr: Hours from ``at`` to the recorded delivery.
        error_hr: Predicted mid minus actual (positive = too slow).
        message: Human-readable explanation.
    """

    status: ReplayStatus
    at: Optional[datetime] = None
    prediction: Optional[PredictionResult] = None
    actual_hr: Optional[float] = None
    error_hr: Optional[float] = None
    message: str = ""

    @property
    def verdict(self) -> str:
        if self.error_hr is None:
            return ""
        if self.error_hr > 0:
            return "Overestimated (too slow)"
        return "Underestimated (too fast)"


def replay_points(events: Iterable[Event]) -> List[CervicalExam]:
    """Cervical exams a replay can be anchored at, oldest first."""
    return [e for e in sort_events(events) if isinstance(e, CervicalExam)]


def replay_at(
    encounter: Encounter,
    events: Iterable[Event],
    at: Optional[datetime] = None,
    settings: PredictorSettings = DEFAULT_SETTINGS,
) -> ReplayResult:
    """
    Replay the prediction at a past exam and compare with the outcome.

    Args:
        encounter: Encounter, ideally with ``outcome_at`` recorded.
        events: All events of the encounter.
        at: Exam timestamp to replay at (default: latest exam).
        settings: Predictor settings.

    Returns:
        ReplayResult; status explains when no comparison is possible.
    """
    ordered = sort_events(events)
    exams = replay_points(ordered)
    if not exams:
        return ReplayResult(ReplayStatus.NO_EXAMS, message="No cervical exams to replay")

    at = to_utc(at) if at is not None else exams[-1].ts
    prefix = [e for e in ordered if e.ts <= at]
    prediction = predict_eta(encounter, prefix, settings, now=at)

    if encounter.outcome_at is None:
        return ReplayResult(
            ReplayStatus.OUTCOME_NOT_SET,
            at=at,
            prediction=prediction,
            message="Outcome not set. Set outcome to see error vs reality.",
        )

    if prediction.eta_delivery is None:
        return ReplayResult(
            ReplayStatus.INSUFFICIENT_DATA,
            at=at,
            prediction=prediction,
            message="Insufficient data. Add more events.",
        )

    actual_hr = hours_between(at, encounter.outcome_at)
    error_hr = prediction.eta_delivery.mid_hr - actual_hr
    logger.info(
        f"Replay at {at.isoformat()}: predicted {prediction.eta_delivery.mid_hr:.2f} h, "
        f"actual {actual_hr:.2f} h, error {error_hr:+.2f} h"
    )
    return ReplayResult(
        ReplayStatus.OK,
        at=at,
        prediction=prediction,
        actual_hr=actual_hr,
        error_hr=error_hr,
    )


__all__ = ['ReplayStatus', 'ReplayResult', 'replay_points', 'replay_at']
