"""
Reference Labor Curve Generator.

Produces a smooth, monotonic expected-dilation-vs-time curve for a
population profile. The curve is parameterized, not fitted: a slow early
slope hands over to a steeper late slope through a logistic transition.

Algorithm:
    1. Pick the (early, late) slope pair for the parity
       (nullip 0.30 / 1.05, multip 0.45 / 1.55 cm/hr)
    2. Adjust for conditions and accumulate a widen factor:
       induction  -> both slopes x0.95, widen x1.08
       epidural   -> late slope x0.98,  widen x1.05
       OP/OT      -> late slope x0.88,  widen x1.18
    3. At each 5-minute step t, blend the slopes with
       f = logistic(1.15 * (t - 0.45 * duration))
    4. cm = clamp(0.8 + slope * t, 0, 10)
    5. Force the sequence non-decreasing (running maximum)

Step 4 multiplies the instantaneous blended slope by elapsed time instead of
integrating it. That is the curve's defined shape and overlays depend on it.

The widen factor is reported for uncertainty bands; it is not applied to
the curve.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Tuple, Union

import numpy as np
from scipy.special import expit

from laborcurve.config import CURVE, Parity

# Configure module logger
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurveProfile:
    """
    Population profile for a reference curve.

    Attributes:
        parity: 'nullip' or 'multip'.
        duration_hr: Span of the curve in hours (>= 0).
        active_threshold: Active-labor threshold shown alongside the curve (cm).
        induction: Induced labor.
        epidural: Epidural analgesia.
        op: Occiput-posterior/transverse position.
    """

    parity: Union[Parity, str] = Parity.NULLIP
    duration_hr: float = 12.0
    active_threshold: float = 6.0
    induction: bool = False
    epidural: bool = False
    op: bool = False

    def __post_init__(self):
        object.__setattr__(self, "parity", Parity(self.parity))
        if self.duration_hr < 0:
            raise ValueError(f"duration_hr must be >= 0, got {self.duration_hr}")


@dataclass(frozen=True, eq=False)
class ReferenceCurve:
    """
    Sampled reference curve.

    Attributes:
        hours: Elapsed hours at 5-minute steps, starting at 0.
        cm: Expected dilation at each step (non-decreasing, within [0, 10]).
        widen: Uncertainty widening factor for bands around the curve.
        profile: Profile the curve was generated for.
    """

    hours: np.ndarray
    cm: np.ndarray
    widen: float
    profile: CurveProfile

    @property
    def points(self) -> List[Tuple[float, float]]:
        """Curve samples as (hour, cm) pairs."""
        return list(zip(self.hours.tolist(), self.cm.tolist()))

    def __len__(self) -> int:
        return len(self.hours)

    def __repr__(self) -> str:
        return (
            f"ReferenceCurve({self.profile.parity.value}, "
            f"{len(self)} points, widen={self.widen:.3f})"
        )


def _slopes(profile: CurveProfile) -> Tuple[float, float, float]:
    """Return (early, late, widen) for a profile."""
    if profile.parity is Parity.MULTIP:
        early, late = CURVE.MULTIP_EARLY_SLOPE, CURVE.MULTIP_LATE_SLOPE
    else:
        early, late = CURVE.NULLIP_EARLY_SLOPE, CURVE.NULLIP_LATE_SLOPE

    widen = 1.0
    if profile.induction:
        early *= CURVE.INDUCTION_SLOPE_MULT
        late *= CURVE.INDUCTION_SLOPE_MULT
        widen *= CURVE.INDUCTION_WIDEN
    if profile.epidural:
        late *= CURVE.EPIDURAL_LATE_MULT
        widen *= CURVE.EPIDURAL_WIDEN
    if profile.op:
        late *= CURVE.OP_LATE_MULT
        widen *= CURVE.OP_WIDEN
    return early, late, widen


def reference_curve(profile: CurveProfile) -> ReferenceCurve:
    """
    Generate the reference dilation curve for a profile.

    Pure function: identical profiles yield identical samples.

    Args:
        profile: Population profile.

    Returns:
        ReferenceCurve sampled every 5 minutes over [0, duration_hr].

    Example:
        >>> curve = reference_curve(CurveProfile(parity="multip", duration_hr=8))
        >>> len(curve)
        97
        >>> curve.points[0]
        (0.0, 0.8)
    """
    early, late, widen = _slopes(profile)

    n_steps = int(np.floor(profile.duration_hr * CURVE.STEPS_PER_HOUR))
    hours = np.arange(n_steps + 1) / CURVE.STEPS_PER_HOUR

    center = profile.duration_hr * CURVE.TRANSITION_CENTER_FRACTION
    f = expit(CURVE.TRANSITION_STEEPNESS * (hours - center))
    slope = early * (1.0 - f) + late * f

    cm = np.clip(CURVE.START_CM + slope * hours, CURVE.MIN_CM, CURVE.MAX_CM)
    cm = np.maximum.accumulate(cm)

    logger.debug(
        f"Reference curve {profile.parity.value}: {len(hours)} points, "
        f"slopes {early:.3f}->{late:.3f}, widen {widen:.3f}"
    )
    return ReferenceCurve(hours=hours, cm=cm, widen=widen, profile=profile)


__all__ = ['CurveProfile', 'ReferenceCurve', 'reference_curve']
