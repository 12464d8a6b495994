"""
Centralized configuration for LaborCurve.

This module contains the constants used by the reference curve generator,
the ETA predictor, the plots and the logbook, together with the
user-adjustable predictor settings.

The settings are hand-set priors, not fitted parameters. Every range is
validated when the settings object is built, so the predictor can trust
``low <= mid <= high`` without checking again.

Usage:
    from laborcurve.config import CURVE, ENGINE, DEFAULT_SETTINGS

    steps_per_hour = CURVE.STEPS_PER_HOUR
    threshold = DEFAULT_SETTINGS.active_threshold_cm
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Final, Mapping, Optional, Tuple


class SettingsError(ValueError):
    """Raised when a settings bundle violates its invariants."""
    pass


class Parity(str, Enum):
    """Obstetric parity of the labouring patient."""

    NULLIP = "nullip"
    MULTIP = "multip"


# =============================================================================
# Reference Curve Configuration
# =============================================================================

@dataclass(frozen=True)
class CurveConfig:
    """Reference curve generator constants."""

    # Sampling
    STEPS_PER_HOUR: int = 12          # 5-minute resolution

    # Baseline slope pairs (cm/hr)
    NULLIP_EARLY_SLOPE: float = 0.30
    NULLIP_LATE_SLOPE: float = 1.05
    MULTIP_EARLY_SLOPE: float = 0.45
    MULTIP_LATE_SLOPE: float = 1.55

    # Logistic transition
    TRANSITION_CENTER_FRACTION: float = 0.45
    TRANSITION_STEEPNESS: float = 1.15

    # Shape
    START_CM: float = 0.8
    MIN_CM: float = 0.0
    MAX_CM: float = 10.0

    # Condition adjustments (slope multipliers / widen factors)
    INDUCTION_SLOPE_MULT: float = 0.95
    INDUCTION_WIDEN: float = 1.08
    EPIDURAL_LATE_MULT: float = 0.98
    EPIDURAL_WIDEN: float = 1.05
    OP_LATE_MULT: float = 0.88
    OP_WIDEN: float = 1.18


CURVE: Final[CurveConfig] = CurveConfig()


# =============================================================================
# Prediction Engine Constants
# =============================================================================

@dataclass(frozen=True)
class EngineConfig:
    """Fixed ETA predictor constants (not user-adjustable)."""

    FULL_DILATION_CM: float = 10.0

    # Observed velocity
    MIN_EXAM_INTERVAL_HR: float = 0.25     # 15-minute floor
    VELOCITY_MIN_CM_HR: float = 0.1        # exclusive
    VELOCITY_MAX_CM_HR: float = 4.0        # exclusive
    VELOCITY_BLEND_WEIGHT: float = 0.35
    VELOCITY_LOW_FRACTION: float = 0.7
    VELOCITY_HIGH_FRACTION: float = 1.3

    # Rate-to-time division floor (cm/hr)
    MIN_RATE_CM_HR: float = 0.15

    # Latent phase priors (hr): (low, mid, high)
    LATENT_NULLIP_HR: Tuple[float, float, float] = (2.5, 4.5, 8.0)
    LATENT_MULTIP_HR: Tuple[float, float, float] = (1.5, 3.0, 6.0)
    LATENT_SCALE_BASE: float = 0.6
    LATENT_SCALE_SPAN: float = 0.6

    # Recent oxytocin titration window
    OXYTOCIN_RECENT_MINUTES: float = 90.0

    # Horizon CDF
    HORIZONS_HR: Tuple[float, ...] = (2.0, 4.0, 8.0)
    CDF_LOW: float = 0.05
    CDF_MID: float = 0.5
    CDF_HIGH: float = 0.95
    CDF_MIN_SPAN: float = 1e-6

    # Medication vocabularies (lower-case)
    EPIDURAL_NAMES: Tuple[str, ...] = ("epidural",)
    INDUCTION_NAMES: Tuple[str, ...] = (
        "miso", "misoprostol", "cervidil", "dinoprostone", "cook", "foley",
    )
    OXYTOCIN_NAMES: Tuple[str, ...] = ("oxytocin",)
    OP_POSITIONS: Tuple[str, ...] = ("op", "ot")


ENGINE: Final[EngineConfig] = EngineConfig()


# =============================================================================
# User-Adjustable Predictor Settings
# =============================================================================

@dataclass(frozen=True)
class RateRange:
    """
    A (low, mid, high) triple.

    Used for dilation rates (cm/hr) and stage durations (hr).

    Raises:
        SettingsError: If the triple is not ordered low <= mid <= high.
    """

    low: float
    mid: float
    high: float

    def __post_init__(self):
        if not self.low <= self.mid <= self.high:
            raise SettingsError(
                f"Range must satisfy low <= mid <= high, got "
                f"({self.low}, {self.mid}, {self.high})"
            )

    def scaled(self, factor: float) -> "RateRange":
        """Return the triple with every bound multiplied by ``factor``."""
        return RateRange(self.low * factor, self.mid * factor, self.high * factor)

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.low, self.mid, self.high)

    def to_dict(self) -> Dict[str, float]:
        return {"low": self.low, "mid": self.mid, "high": self.high}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], default: "RateRange") -> "RateRange":
        return cls(
            low=float(data.get("low", default.low)),
            mid=float(data.get("mid", default.mid)),
            high=float(data.get("high", default.high)),
        )


@dataclass(frozen=True)
class Adjuster:
    """
    Multiplicative adjustment applied when a clinical condition is present.

    Attributes:
        rate_mult: Multiplier applied to all three dilation-rate bounds.
        widen: Interval-widening factor (>= 1.0).
    """

    rate_mult: float
    widen: float

    def __post_init__(self):
        if self.widen < 1.0:
            raise SettingsError(f"Widen factor must be >= 1.0, got {self.widen}")
        if self.rate_mult <= 0:
            raise SettingsError(f"Rate multiplier must be positive, got {self.rate_mult}")

    def to_dict(self) -> Dict[str, float]:
        return {"rateMult": self.rate_mult, "widen": self.widen}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], default: "Adjuster") -> "Adjuster":
        return cls(
            rate_mult=float(data.get("rateMult", default.rate_mult)),
            widen=float(data.get("widen", default.widen)),
        )


@dataclass(frozen=True)
class AdjusterSet:
    """Adjusters for each recognised condition."""

    induction: Adjuster = Adjuster(rate_mult=0.9, widen=1.15)
    epidural: Adjuster = Adjuster(rate_mult=0.95, widen=1.10)
    op: Adjuster = Adjuster(rate_mult=0.85, widen=1.25)
    oxytocin: Adjuster = Adjuster(rate_mult=1.05, widen=1.05)


def _default_rates() -> Dict[Parity, RateRange]:
    return {
        Parity.NULLIP: RateRange(0.5, 1.0, 1.5),
        Parity.MULTIP: RateRange(1.0, 1.5, 2.0),
    }


def _default_second_stage() -> Dict[Tuple[Parity, bool], RateRange]:
    return {
        (Parity.NULLIP, False): RateRange(0.5, 1.0, 2.0),
        (Parity.NULLIP, True): RateRange(1.0, 1.5, 3.0),
        (Parity.MULTIP, False): RateRange(0.25, 0.5, 1.5),
        (Parity.MULTIP, True): RateRange(0.5, 1.0, 2.0),
    }


# Keys used by the logbook JSON layout for second-stage ranges
_SECOND_STAGE_KEYS: Dict[Tuple[Parity, bool], str] = {
    (Parity.NULLIP, False): "nullip_noEpi",
    (Parity.NULLIP, True): "nullip_epi",
    (Parity.MULTIP, False): "multip_noEpi",
    (Parity.MULTIP, True): "multip_epi",
}


@dataclass(frozen=True)
class PredictorSettings:
    """
    Parameter bundle for the ETA predictor.

    Attributes:
        active_threshold_cm: Dilation at which active labor begins (inclusive).
        rates: Active dilation rate range per parity (cm/hr).
        second_stage: Second-stage duration range per (parity, epidural) (hr).
        adjusters: Rate multipliers and widen factors per condition.

    Raises:
        SettingsError: If the threshold is outside (0, 10], a parity is
            missing a rate or second-stage range, or a range is negative.

    """

    active_threshold_cm: float = 6.0
    rates: Dict[Parity, RateRange] = field(default_factory=_default_rates)
    second_stage: Dict[Tuple[Parity, bool], RateRange] = field(
        default_factory=_default_second_stage
    )
    adjusters: AdjusterSet = field(default_factory=AdjusterSet)

    def __post_init__(self):
        if not 0 < self.active_threshold_cm <= ENGINE.FULL_DILATION_CM:
            raise SettingsError(
                f"Active threshold must be in (0, 10] cm, got {self.active_threshold_cm}"
            )
        for parity in Parity:
            if parity not in self.rates:
                raise SettingsError(f"Missing dilation rates for {parity.value}")
            if self.rates[parity].low < 0:
                raise SettingsError(
                    f"Dilation rates for {parity.value} must be >= 0, got {self.rates[parity]}"
                )
            for epidural in (False, True):
                key = (parity, epidural)
                if key not in self.second_stage:
                    raise SettingsError(
                        f"Missing second-stage range for {_SECOND_STAGE_KEYS[key]}"
                    )
                if self.second_stage[key].low < 0:
                    raise SettingsError(
                        f"Second-stage range {_SECOND_STAGE_KEYS[key]} must be >= 0, "
                        f"got {self.second_stage[key]}"
                    )

    def rates_for(self, parity: Parity) -> RateRange:
        return self.rates[Parity(parity)]

    def second_stage_for(self, parity: Parity, epidural: bool) -> RateRange:
        return self.second_stage[(Parity(parity), bool(epidural))]

    def with_threshold(self, active_threshold_cm: float) -> "PredictorSettings":
        return replace(self, active_threshold_cm=active_threshold_cm)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the logbook JSON layout."""
        return {
            "activeThresholdCm": self.active_threshold_cm,
            "rates": {p.value: r.to_dict() for p, r in self.rates.items()},
            "secondStage": {
                _SECOND_STAGE_KEYS[key]: r.to_dict()
                for key, r in self.second_stage.items()
            },
            "adjusters": {
                "induction": self.adjusters.induction.to_dict(),
                "epidural": self.adjusters.epidural.to_dict(),
                "op": self.adjusters.op.to_dict(),
                "oxytocin": self.adjusters.oxytocin.to_dict(),
            },
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "PredictorSettings":
        """
        Build settings from the logbook JSON layout.

        Missing keys fall back to the defaults, so a partial dict (as stored
        by older logbooks) merges over ``DEFAULT_SETTINGS``.

        Args:
            data: Settings mapping, or None for the defaults.

        Returns:
            Validated PredictorSettings.

        Raises:
            SettingsError: If any merged range violates its invariants.
        """
        if not data:
            return cls()

        default = cls()
        rates_in = data.get("rates") or {}
        rates = {
            parity: RateRange.from_dict(rates_in.get(parity.value) or {}, default.rates[parity])
            for parity in Parity
        }

        stage_in = data.get("secondStage") or {}
        second_stage = {
            key: RateRange.from_dict(stage_in.get(name) or {}, default.second_stage[key])
            for key, name in _SECOND_STAGE_KEYS.items()
        }

        adj_in = data.get("adjusters") or {}
        adjusters = AdjusterSet(
            induction=Adjuster.from_dict(adj_in.get("induction") or {}, default.adjusters.induction),
            epidural=Adjuster.from_dict(adj_in.get("epidural") or {}, default.adjusters.epidural),
            op=Adjuster.from_dict(adj_in.get("op") or {}, default.adjusters.op),
            oxytocin=Adjuster.from_dict(adj_in.get("oxytocin") or {}, default.adjusters.oxytocin),
        )

        return cls(
            active_threshold_cm=float(data.get("activeThresholdCm", default.active_threshold_cm)),
            rates=rates,
            second_stage=second_stage,
            adjusters=adjusters,
        )


DEFAULT_SETTINGS: Final[PredictorSettings] = PredictorSettings()


# =============================================================================
# UI Colors
# =============================================================================

@dataclass(frozen=True)
class UIColors:
    """Color scheme for plots."""

    PATIENT: str = '#1E90FF'          # Dodger Blue
    STATION: str = '#FF8C00'          # Dark Orange
    REF_NULLIP: str = '#7F8C8D'
    REF_MULTIP: str = '#8E44AD'
    MARKER_ROM: str = '#17A2B8'
    MARKER_EPIDURAL: str = '#28a745'
    MARKER_OXYTOCIN: str = '#dc3545'
    ACTIVE_BAND: str = 'rgba(255, 140, 0, 0.08)'

    GRID: str = '#E5E5E5'
    BACKGROUND: str = '#FAFAFA'

    PHASE_LATENT: str = '#6c757d'
    PHASE_ACTIVE: str = '#fd7e14'
    PHASE_SECOND: str = '#dc3545'
    PHASE_NO_DATA: str = '#adb5bd'

    @property
    def phase_colors(self) -> Dict[str, str]:
        """Get color mapping for labor phases."""
        return {
            'latent': self.PHASE_LATENT,
            'active': self.PHASE_ACTIVE,
            'second': self.PHASE_SECOND,
            'no-data': self.PHASE_NO_DATA,
        }


COLORS: Final[UIColors] = UIColors()


# =============================================================================
# Data Paths
# =============================================================================

@dataclass(frozen=True)
class DataPaths:
    """Default data paths."""

    DATA_DIR: str = 'data'
    LOGBOOK_PATH: str = 'data/logbook.json'
    EXPORT_SUFFIX: str = '.laborlog.json'


PATHS: Final[DataPaths] = DataPaths()


# =============================================================================
# Explanation Strings
# =============================================================================

@dataclass(frozen=True)
class ExplainStrings:
    """Human-readable contributor and summary strings."""

    NO_EXAM: str = "No cervical exam entered yet. Add at least one cervical exam."

    ADJ_INDUCTION: str = "Induction adjustment applied"
    ADJ_OP: str = "OP/OT adjustment applied"
    ADJ_EPIDURAL: str = "Epidural adjustment applied"
    ADJ_OXYTOCIN: str = "Recent oxytocin titration adjustment applied"

    SLOPE: str = "Recent dilation slope: {value:.2f} cm/hr"
    SLOPE_NONE: str = "Recent dilation slope: insufficient data"

    PHASE_LATENT: str = "Phase: latent (<{threshold:g} cm)"
    PHASE_ACTIVE: str = "Phase: active (≥{threshold:g} cm)"
    PHASE_SECOND: str = "Phase: second stage (10 cm)"

    SUMMARY_TITLE: str = "LaborCurve Logbook summary"


STRINGS: Final[ExplainStrings] = ExplainStrings()


# =============================================================================
# Convenience Exports
# =============================================================================

__all__ = [
    'CURVE',
    'ENGINE',
    'COLORS',
    'PATHS',
    'STRINGS',
    'DEFAULT_SETTINGS',
    'CurveConfig',
    'EngineConfig',
    'UIColors',
    'DataPaths',
    'ExplainStrings',
    'Parity',
    'RateRange',
    'Adjuster',
    'AdjusterSet',
    'PredictorSettings',
    'SettingsError',
]
