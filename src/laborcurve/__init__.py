"""
LaborCurve - Labor progress logbook with reference curves and ETA estimates.

Parameterized (not trained) models for intuition training:
    - Reference dilation curves per population profile
    - Phase, time-to-10 cm and time-to-delivery intervals with
      2 / 4 / 8 hour delivery probabilities

Not a clinical decision tool.
"""

__version__ = "0.1.0"

from laborcurve.config import DEFAULT_SETTINGS, Parity, PredictorSettings
from laborcurve.models.predictor import PredictionResult, predict_eta
from laborcurve.models.reference_curve import CurveProfile, ReferenceCurve, reference_curve

__all__ = [
    '__version__',
    'DEFAULT_SETTINGS',
    'Parity',
    'PredictorSettings',
    'PredictionResult',
    'predict_eta',
    'CurveProfile',
    'ReferenceCurve',
    'reference_curve',
]
