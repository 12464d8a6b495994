"""
Rule Engine Module for LaborCurve.

Deterministic, explainable rules that turn an event log into the inputs of
the ETA predictor.

Modules:
    - flags: Epidural / induction / OP-OT / recent-oxytocin conditions
    - progress: Phase, observed velocity, rate adjustment, time to 10 cm,
      delivery CDF

Example:
    >>> from laborcurve.rules import classify_phase, extract_flags
    >>> flags = extract_flags(events, now=reference_instant)
    >>> phase = classify_phase(7.0, active_threshold=6.0)
"""

from .flags import LaborFlags, extract_flags
from .progress import (
    HorizonProbabilities,
    HourInterval,
    LaborPhase,
    RateAdjustment,
    adjust_rates,
    classify_phase,
    delivery_cdf,
    horizon_probabilities,
    latent_hours,
    observed_velocity,
    time_to_full_dilation,
    traversal_hours,
)

__all__ = [
    # Flags
    "LaborFlags",
    "extract_flags",
    # Progress
    "HorizonProbabilities",
    "HourInterval",
    "LaborPhase",
    "RateAdjustment",
    "adjust_rates",
    "classify_phase",
    "delivery_cdf",
    "horizon_probabilities",
    "latent_hours",
    "observed_velocity",
    "time_to_full_dilation",
    "traversal_hours",
]
