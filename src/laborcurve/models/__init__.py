"""
Prediction models for LaborCurve.

This package contains the two parameterized (not trained) models:
    - reference_curve: Expected dilation-vs-time curve per population profile
    - predictor: ETA predictor (phase, time to 10 cm, time to delivery,
      horizon probabilities)

Usage:
    >>> from laborcurve.models import predict_eta, reference_curve, CurveProfile
    >>> result = predict_eta(encounter, events, settings, now=reference_instant)
    >>> curve = reference_curve(CurveProfile(parity="nullip", duration_hr=12))
"""

from .predictor import PredictionResult, predict_eta
from .reference_curve import CurveProfile, ReferenceCurve, reference_curve

__all__ = [
    'PredictionResult',
    'predict_eta',
    'CurveProfile',
    'ReferenceCurve',
    'reference_curve',
]
