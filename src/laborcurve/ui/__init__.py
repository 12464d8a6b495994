"""
UI Package for the LaborCurve Dashboard.

This package contains the Streamlit dashboard and Plotly chart builders.
"""

from pathlib import Path

UI_DIR = Path(__file__).parent
