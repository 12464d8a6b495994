"""
Labor Progress Rules.

Deterministic building blocks of the ETA predictor:

    - classify_phase: latent / active / second stage from dilation
    - observed_velocity: dilation slope between the last two exams
    - adjust_rates: condition multipliers, velocity blend and widening
    - time_to_full_dilation: phase-specific hours to 10 cm
    - delivery_cdf / horizon_probabilities: piecewise-linear delivery CDF

Phase Boundaries:
    latent:  cm <  active threshold (default 6 cm)
    active:  active threshold <= cm < 10
    second:  cm >= 10

All rate-to-time divisions floor the rate at 0.15 cm/hr, and all exam
intervals floor at 15 minutes, so no input produces a division blow-up.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from laborcurve.config import ENGINE, STRINGS, AdjusterSet, Parity, RateRange
from laborcurve.data.records import CervicalExam
from laborcurve.rules.flags import LaborFlags
from laborcurve.utils.numeric import clamp, hours_between

# Configure module logger
logger = logging.getLogger(__name__)


class LaborPhase(str, Enum):
    """Labor phase labels."""

    NO_DATA = "no-data"
    LATENT = "latent"
    ACTIVE = "active"
    SECOND = "second"


@dataclass(frozen=True)
class HourInterval:
    """
    Low / mid / high estimate in hours.

    Attributes:
        low_hr: Optimistic bound.
        mid_hr: Central estimate.
        high_hr: Pessimistic bound.
    """

    low_hr: float
    mid_hr: float
    high_hr: float

    def plus(self, other: RateRange) -> "HourInterval":
        """Component-wise sum with a duration range."""
        return HourInterval(
            self.low_hr + other.low,
            self.mid_hr + other.mid,
            self.high_hr + other.high,
        )

    @classmethod
    def from_range(cls, hours: RateRange) -> "HourInterval":
        return cls(hours.low, hours.mid, hours.high)

    def to_dict(self) -> dict:
        return {"lowHr": self.low_hr, "midHr": self.mid_hr, "highHr": self.high_hr}


ZERO_HOURS = HourInterval(0.0, 0.0, 0.0)


@dataclass(frozen=True)
class HorizonProbabilities:
    """Probability of delivery within 2, 4 and 8 hours."""

    by_2h: float
    by_4h: float
    by_8h: float

    def to_dict(self) -> dict:
        return {"by2": self.by_2h, "by4": self.by_4h, "by8": self.by_8h}


@dataclass
class RateAdjustment:
    """
    Result of adjusting the dilation-rate priors.

    Attributes:
        rates: Final (low, mid, high) rates in cm/hr after widening.
        widen: Accumulated widen factor from all active conditions.
        velocity: Observed slope between the last two exams, if any.
        velocity_used: Whether the slope was blended into mid.
        contributors: Human-readable notes, in application order.
    """

    rates: RateRange
    widen: float
    velocity: Optional[float] = None
    velocity_used: bool = False
    contributors: List[str] = field(default_factory=list)

    def __repr__(self) -> str:
        return (
            f"RateAdjustment(low={self.rates.low:.2f}, mid={self.rates.mid:.2f}, "
            f"high={self.rates.high:.2f}, widen={self.widen:.3f})"
        )


def classify_phase(cm: float, active_threshold: float) -> LaborPhase:
    """
    Classify the labor phase from the latest dilation.

    The threshold is inclusive on the active side.

    Example:
        >>> classify_phase(6.0, 6.0)
        <LaborPhase.ACTIVE: 'active'>
    """
    if cm >= ENGINE.FULL_DILATION_CM:
        return LaborPhase.SECOND
    if cm >= active_threshold:
        return LaborPhase.ACTIVE
    return LaborPhase.LATENT


def observed_velocity(exams: Sequence[CervicalExam]) -> Optional[float]:
    """
    Dilation slope (cm/hr) between the last two exams.

    Args:
        exams: Cervical exams in ascending timestamp order.

    Returns:
        Slope in cm/hr, or None with fewer than two exams. The elapsed time
        is floored at 15 minutes.
    """
    if len(exams) < 2:
        return None
    previous, latest = exams[-2], exams[-1]
    delta_cm = latest.dilation_cm - previous.dilation_cm
    delta_hr = max(ENGINE.MIN_EXAM_INTERVAL_HR, hours_between(previous.ts, latest.ts))
    return delta_cm / delta_hr


def adjust_rates(
    base: RateRange,
    flags: LaborFlags,
    adjusters: AdjusterSet,
    velocity: Optional[float] = None,
) -> RateAdjustment:
    """
    Apply condition adjusters, blend observed velocity, then widen.

    Algorithm:
        1. For each active condition, in the order induction, OP, epidural,
           oxytocin: multiply low/mid/high by its rate multiplier and
           accumulate its widen factor
        2. If the observed slope lies strictly inside (0.1, 4.0) cm/hr, blend
           it into mid at weight 0.35, then re-clamp low <= 0.7 * mid and
           high >= 1.3 * mid
        3. Divide low and multiply high by the accumulated widen factor

    Args:
        base: Parity-specific (low, mid, high) rates in cm/hr.
        flags: Resolved conditions.
        adjusters: Multipliers and widen factors per condition.
        velocity: Observed slope, or None.

    Returns:
        RateAdjustment with final rates and contributor notes.
    """
    low, mid, high = base.as_tuple()
    widen = 1.0
    contributors: List[str] = []

    steps: Tuple[Tuple[bool, object, str], ...] = (
        (flags.induction, adjusters.induction, STRINGS.ADJ_INDUCTION),
        (flags.op, adjusters.op, STRINGS.ADJ_OP),
        (flags.epidural, adjusters.epidural, STRINGS.ADJ_EPIDURAL),
        (flags.oxytocin_recent, adjusters.oxytocin, STRINGS.ADJ_OXYTOCIN),
    )
    for active, adjuster, note in steps:
        if not active:
            continue
        low *= adjuster.rate_mult
        mid *= adjuster.rate_mult
        high *= adjuster.rate_mult
        widen *= adjuster.widen
        contributors.append(note)

    velocity_used = False
    if velocity is not None:
        contributors.append(STRINGS.SLOPE.format(value=velocity))
        if ENGINE.VELOCITY_MIN_CM_HR < velocity < ENGINE.VELOCITY_MAX_CM_HR:
            w = ENGINE.VELOCITY_BLEND_WEIGHT
            mid = mid * (1 - w) + velocity * w
            low = min(low, mid * ENGINE.VELOCITY_LOW_FRACTION)
            high = max(high, mid * ENGINE.VELOCITY_HIGH_FRACTION)
            velocity_used = True
        else:
            logger.warning(
                f"Observed slope {velocity:.2f} cm/hr outside "
                f"({ENGINE.VELOCITY_MIN_CM_HR}, {ENGINE.VELOCITY_MAX_CM_HR}); ignored"
            )
    else:
        contributors.append(STRINGS.SLOPE_NONE)

    rates = RateRange(low / widen, mid, high * widen)
    return RateAdjustment(
        rates=rates,
        widen=widen,
        velocity=velocity,
        velocity_used=velocity_used,
        contributors=contributors,
    )


def traversal_hours(span_cm: float, rates: RateRange) -> HourInterval:
    """
    Hours to dilate ``span_cm`` at the given rates.

    The low time bound uses the high rate and vice versa.
    """
    span = max(0.0, span_cm)
    floor = ENGINE.MIN_RATE_CM_HR
    return HourInterval(
        low_hr=span / max(floor, rates.high),
        mid_hr=span / max(floor, rates.mid),
        high_hr=span / max(floor, rates.low),
    )


def latent_hours(cm: float, parity: Parity, active_threshold: float) -> HourInterval:
    """
    Latent-phase duration prior, scaled by closeness to the threshold.

    The scale runs from 0.6 (at the threshold) to 1.2 (at 0 cm).
    """
    prior = ENGINE.LATENT_MULTIP_HR if Parity(parity) is Parity.MULTIP else ENGINE.LATENT_NULLIP_HR
    closeness = clamp((active_threshold - cm) / active_threshold, 0.0, 1.0)
    scale = ENGINE.LATENT_SCALE_BASE + ENGINE.LATENT_SCALE_SPAN * closeness
    return HourInterval(prior[0] * scale, prior[1] * scale, prior[2] * scale)


def time_to_full_dilation(
    phase: LaborPhase,
    cm: float,
    parity: Parity,
    rates: RateRange,
    active_threshold: float,
) -> HourInterval:
    """
    Estimate hours from the latest exam to 10 cm.

    Args:
        phase: Phase of the latest exam.
        cm: Latest dilation.
        parity: 'nullip' or 'multip'.
        rates: Final adjusted rates (cm/hr).
        active_threshold: Active-phase threshold (cm).

    Returns:
        HourInterval; all zeros in the second stage.
    """
    full = ENGINE.FULL_DILATION_CM
    if phase is LaborPhase.LATENT:
        latent = latent_hours(cm, parity, active_threshold)
        active = traversal_hours(full - active_threshold, rates)
        return HourInterval(
            latent.low_hr + active.low_hr,
            latent.mid_hr + active.mid_hr,
            latent.high_hr + active.high_hr,
        )
    if phase is LaborPhase.ACTIVE:
        return traversal_hours(full - cm, rates)
    if phase is LaborPhase.SECOND:
        return ZERO_HOURS
    raise ValueError(f"No dilation estimate for phase {phase.value!r}")


def delivery_cdf(t: float, low: float, mid: float, high: float) -> float:
    """
    Piecewise-linear CDF of hours to delivery.

    Passes through (low, 0.05), (mid, 0.5) and (high, 0.95) and is flat
    outside [low, high].
    """
    if t <= low:
        return ENGINE.CDF_LOW
    if t >= high:
        return ENGINE.CDF_HIGH
    if t <= mid:
        span = max(ENGINE.CDF_MIN_SPAN, mid - low)
        return ENGINE.CDF_LOW + (ENGINE.CDF_MID - ENGINE.CDF_LOW) * (t - low) / span
    span = max(ENGINE.CDF_MIN_SPAN, high - mid)
    return ENGINE.CDF_MID + (ENGINE.CDF_HIGH - ENGINE.CDF_MID) * (t - mid) / span


def horizon_probabilities(delivery: HourInterval) -> HorizonProbabilities:
    """
    Probability of delivery within each fixed horizon (2, 4, 8 hours).

    Example:
        >>> probs = horizon_probabilities(HourInterval(1.0, 3.0, 9.0))
        >>> probs.by_2h
        0.275
    """
    by_2h, by_4h, by_8h = (
        clamp(delivery_cdf(h, delivery.low_hr, delivery.mid_hr, delivery.high_hr), 0.0, 1.0)
        for h in ENGINE.HORIZONS_HR
    )
    return HorizonProbabilities(by_2h=by_2h, by_4h=by_4h, by_8h=by_8h)


__all__ = [
    'LaborPhase',
    'HourInterval',
    'HorizonProbabilities',
    'RateAdjustment',
    'ZERO_HOURS',
    'classify_phase',
    'observed_velocity',
    'adjust_rates',
    'traversal_hours',
    'latent_hours',
    'time_to_full_dilation',
    'delivery_cdf',
    'horizon_probabilities',
]
