"""
ETA Predictor for LaborCurve.

Converts an encounter's sparse, irregularly sampled event log into a labor
phase, interval estimates for time to full dilation and time to delivery,
and the probability of delivery within 2, 4 and 8 hours.

Pipeline:
    1. Resolve flags (events + encounter) at the reference instant
    2. No cervical exam -> 'no-data' result (the only early return)
    3. Phase from the latest exam
    4. Observed velocity from the last two exams
    5. Adjust the parity rate priors, blend velocity, widen
    6. Time to 10 cm for the phase
    7. Add the second-stage range (parity x epidural)
    8. Horizon probabilities from the delivery interval

The predictor is a pure function of (encounter, events, settings, now).
Only the recent-oxytocin flag uses ``now``; pass it explicitly to make a
call reproducible.

This is a set of hand-set priors for intuition training. It is not a
validated clinical decision tool.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional

from laborcurve.config import DEFAULT_SETTINGS, STRINGS, Parity, PredictorSettings, RateRange
from laborcurve.data.records import CervicalExam, Encounter, Event, sort_events
from laborcurve.rules.flags import LaborFlags, extract_flags
from laborcurve.rules.progress import (
    HorizonProbabilities,
    HourInterval,
    LaborPhase,
    adjust_rates,
    classify_phase,
    horizon_probabilities,
    observed_velocity,
    time_to_full_dilation,
)
from laborcurve.utils.numeric import to_utc, utc_now

# Configure module logger
logger = logging.getLogger(__name__)


@dataclass
class PredictionResult:
    """
    Output of one prediction.

    Attributes:
        phase: 'no-data', 'latent', 'active' or 'second'.
        now: Reference instant the prediction was made for.
        based_on: Timestamp of the latest cervical exam, if any.
        eta_10cm: Hours from the latest exam to full dilation.
        eta_delivery: Hours from the latest exam to delivery.
        probabilities: P(delivery within 2 / 4 / 8 hours).
        rates: Final adjusted dilation rates (cm/hr).
        widen: Accumulated widen factor.
        velocity: Observed dilation slope (cm/hr), if two exams exist.
        explain: Contributor strings, in the order they were applied.
        flags: Conditions used.
    """

    phase: LaborPhase
    now: datetime
    flags: LaborFlags
    explain: List[str] = field(default_factory=list)
    based_on: Optional[datetime] = None
    eta_10cm: Optional[HourInterval] = None
    eta_delivery: Optional[HourInterval] = None
    probabilities: Optional[HorizonProbabilities] = None
    rates: Optional[RateRange] = None
    widen: Optional[float] = None
    velocity: Optional[float] = None

    @property
    def has_estimate(self) -> bool:
        return self.eta_delivery is not None

    def to_dict(self) -> dict:
        return {
            "phase": self.phase.value,
            "now": self.now.isoformat(),
            "basedOnTs": self.based_on.isoformat() if self.based_on else None,
            "eta10": self.eta_10cm.to_dict() if self.eta_10cm else None,
            "etadelivery": self.eta_delivery.to_dict() if self.eta_delivery else None,
            "probs": self.probabilities.to_dict() if self.probabilities else None,
            "rates": self.rates.to_dict() if self.rates else None,
            "widen": self.widen,
            "explain": list(self.explain),
            "flags": self.flags.to_dict(),
        }

    def __repr__(self) -> str:
        if self.eta_delivery is None:
            return f"PredictionResult({self.phase.value})"
        return (
            f"PredictionResult({self.phase.value}, "
            f"delivery mid={self.eta_delivery.mid_hr:.1f}h)"
        )


def _phase_note(phase: LaborPhase, threshold: float) -> str:
    if phase is LaborPhase.LATENT:
        return STRINGS.PHASE_LATENT.format(threshold=threshold)
    if phase is LaborPhase.ACTIVE:
        return STRINGS.PHASE_ACTIVE.format(threshold=threshold)
    return STRINGS.PHASE_SECOND


def predict_eta(
    encounter: Optional[Encounter],
    events: Iterable[Event],
    settings: PredictorSettings = DEFAULT_SETTINGS,
    now: Optional[datetime] = None,
) -> PredictionResult:
    """
    Predict phase, time to 10 cm and time to delivery.

    Args:
        encounter: Encounter metadata (parity, induction, epidural planned).
            None is treated as a nullip encounter without flags.
        events: The encounter's events, in any order. Not modified.
        settings: Predictor settings (default: DEFAULT_SETTINGS).
        now: Reference instant (default: current UTC time).

    Returns:
        PredictionResult. Without a cervical exam the phase is 'no-data' and
        every interval field is None.

    Example:
        >>> result = predict_eta(encounter, events, now=reference_instant)
        >>> result.phase
        <LaborPhase.ACTIVE: 'active'>
        >>> print(f"{result.probabilities.by_8h:.0%} by 8 hr")
    """
    now = to_utc(now) if now is not None else utc_now()
    ordered = sort_events(events)

    flags = extract_flags(ordered, now=now).merged_with(encounter)
    parity = encounter.parity if encounter is not None else Parity.NULLIP
    threshold = settings.active_threshold_cm

    exams = [e for e in ordered if isinstance(e, CervicalExam)]
    if not exams:
        logger.info("No cervical exam recorded; returning no-data")
        return PredictionResult(
            phase=LaborPhase.NO_DATA,
            now=now,
            flags=flags,
            explain=[STRINGS.NO_EXAM],
        )

    latest = exams[-1]
    cm = latest.dilation_cm
    phase = classify_phase(cm, threshold)

    base_rates = settings.rates_for(parity)
    adjustment = adjust_rates(
        base_rates,
        flags,
        settings.adjusters,
        velocity=observed_velocity(exams),
    )
    explain = list(adjustment.contributors)
    explain.append(_phase_note(phase, threshold))

    eta_10cm = time_to_full_dilation(
        phase, cm, parity, adjustment.rates, threshold
    )

    second_stage = settings.second_stage_for(parity, flags.epidural)
    if phase is LaborPhase.SECOND:
        eta_delivery = HourInterval.from_range(second_stage)
    else:
        eta_delivery = eta_10cm.plus(second_stage)

    probabilities = horizon_probabilities(eta_delivery)

    logger.info(
        f"Prediction: {phase.value} at {cm:g} cm, delivery "
        f"{eta_delivery.low_hr:.1f}/{eta_delivery.mid_hr:.1f}/{eta_delivery.high_hr:.1f} h, "
        f"P(8h)={probabilities.by_8h:.2f}"
    )

    return PredictionResult(
        phase=phase,
        now=now,
        flags=flags,
        explain=explain,
        based_on=latest.ts,
        eta_10cm=eta_10cm,
        eta_delivery=eta_delivery,
        probabilities=probabilities,
        rates=adjustment.rates,
        widen=adjustment.widen,
        velocity=adjustment.velocity,
    )


__all__ = ['PredictionResult', 'predict_eta']
