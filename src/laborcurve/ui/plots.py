"""
Labor Curve Visualization Utilities for LaborCurve.

This module provides Plotly-based visualizations for an encounter:
- Blue line for the patient's dilation curve
- Dashed lines for reference curves (nullip / multip)
- Orange line for station
- Point markers for ROM, epidural and oxytocin timing

Both charts share an x-axis of hours since the first recorded event.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

import plotly.graph_objects as go

from laborcurve.config import COLORS, DEFAULT_SETTINGS, ENGINE, Parity, PredictorSettings
from laborcurve.data.records import CervicalExam, Encounter, Event, Medication, Rupture, sort_events
from laborcurve.models.predictor import PredictionResult
from laborcurve.models.reference_curve import CurveProfile, reference_curve
from laborcurve.utils.numeric import hours_between

# Marker y positions, near the floor of each chart
DILATION_MARKER_Y = 0.2
STATION_MARKER_Y = -4.8

MIN_DURATION_HR = 6.0
MAX_DURATION_HR = 24.0
DURATION_PAD_HR = 6.0
DEFAULT_LAST_EXAM_HR = 8.0


@dataclass(frozen=True)
class OverlayOptions:
    """Which reference curves to draw and which conditions to apply to them."""

    nullip: bool = True
    multip: bool = False
    induction: bool = False
    epidural: bool = False
    op: bool = False


@dataclass(frozen=True)
class Marker:
    """Timing marker for an intervention."""

    t_hr: float
    label: str
    kind: str


def _t0(ordered: List[Event]) -> Optional[datetime]:
    return ordered[0].ts if ordered else None


def event_markers(events: Iterable[Event]) -> List[Marker]:
    """
    Timing markers for ROM, epidural and oxytocin events.

    Hours are measured from the first event. Other medications are ignored.
    """
    ordered = sort_events(events)
    t0 = _t0(ordered)
    markers = []
    for event in ordered:
        t_hr = hours_between(t0, event.ts)
        if isinstance(event, Rupture):
            markers.append(Marker(t_hr, "ROM", "rom"))
        elif isinstance(event, Medication):
            name = event.normalized_name
            if name in ENGINE.EPIDURAL_NAMES:
                markers.append(Marker(t_hr, "Epidural", "epidural"))
            elif name in ENGINE.OXYTOCIN_NAMES:
                markers.append(Marker(t_hr, f"Oxy {event.rate}".strip(), "oxytocin"))
    return markers


def chart_duration(last_exam_hr: Optional[float]) -> float:
    """Span of the reference overlays: last exam + 6 h, within [6, 24]."""
    last = DEFAULT_LAST_EXAM_HR if last_exam_hr is None else last_exam_hr
    return max(MIN_DURATION_HR, min(MAX_DURATION_HR, last + DURATION_PAD_HR))


def _marker_color(kind: str) -> str:
    return {
        'rom': COLORS.MARKER_ROM,
        'epidural': COLORS.MARKER_EPIDURAL,
        'oxytocin': COLORS.MARKER_OXYTOCIN,
    }[kind]


def _add_markers(fig: go.Figure, markers: List[Marker], y: float) -> None:
    if not markers:
        return
    fig.add_trace(go.Scatter(
        x=[m.t_hr for m in markers],
        y=[y] * len(markers),
        mode='markers+text',
        name='Markers',
        text=[m.label for m in markers],
        textposition='top center',
        marker=dict(size=10, color=[_marker_color(m.kind) for m in markers]),
        hovertemplate='%{text} @ +%{x:.2f} hr<extra></extra>'
    ))


def _style(fig: go.Figure, title: str, y_title: str, y_range: List[float], height: int) -> None:
    fig.update_layout(
        title=dict(text=title, font=dict(size=18), x=0.5),
        height=height,
        showlegend=True,
        legend=dict(
            orientation='h',
            yanchor='bottom',
            y=1.02,
            xanchor='right',
            x=1
        ),
        paper_bgcolor=COLORS.BACKGROUND,
        plot_bgcolor='white'
    )
    fig.update_yaxes(title_text=y_title, range=y_range, gridcolor=COLORS.GRID)
    fig.update_xaxes(title_text='Hours since first event', gridcolor=COLORS.GRID)


def create_dilation_plot(
    encounter: Optional[Encounter],
    events: Iterable[Event],
    settings: PredictorSettings = DEFAULT_SETTINGS,
    overlay: OverlayOptions = OverlayOptions(),
    title: str = "Dilation",
    height: int = 450
) -> go.Figure:
    """
    Create the dilation-vs-time chart.

    Args:
        encounter: Encounter (unused fields are fine; may be None).
        events: Encounter events in any order.
        settings: Predictor settings; the active threshold is shaded.
        overlay: Reference curves to draw.
        title: Plot title.
        height: Plot height in pixels.

    Returns:
        Plotly Figure object.

    Example:
        >>> fig = create_dilation_plot(encounter, events, overlay=OverlayOptions(multip=True))
        >>> st.plotly_chart(fig)
    """
    ordered = sort_events(events)
    t0 = _t0(ordered)
    exams = [e for e in ordered if isinstance(e, CervicalExam)]
    exam_hours = [hours_between(t0, e.ts) for e in exams]

    duration = chart_duration(exam_hours[-1] if exam_hours else None)
    threshold = settings.active_threshold_cm

    fig = go.Figure()

    # Active labor band
    fig.add_hrect(
        y0=threshold, y1=ENGINE.FULL_DILATION_CM,
        fillcolor=COLORS.ACTIVE_BAND,
        line_width=0,
        annotation_text=f'Active (≥{threshold:g} cm)',
        annotation_position='top left'
    )

    # === Reference overlays ===
    for parity, enabled, color in (
        (Parity.NULLIP, overlay.nullip, COLORS.REF_NULLIP),
        (Parity.MULTIP, overlay.multip, COLORS.REF_MULTIP),
    ):
        if not enabled:
            continue
        curve = reference_curve(CurveProfile(
            parity=parity,
            duration_hr=duration,
            active_threshold=threshold,
            induction=overlay.induction,
            epidural=overlay.epidural,
            op=overlay.op,
        ))
        fig.add_trace(go.Scatter(
            x=curve.hours,
            y=curve.cm,
            mode='lines',
            name=f'Ref: {parity.value.capitalize()}',
            line=dict(color=color, width=2, dash='dash'),
            hovertemplate='%{y:.1f} cm @ +%{x:.2f} hr<extra></extra>'
        ))

    # === Patient curve ===
    fig.add_trace(go.Scatter(
        x=exam_hours,
        y=[e.dilation_cm for e in exams],
        mode='lines+markers',
        name='Patient',
        line=dict(color=COLORS.PATIENT, width=2.5, shape='spline', smoothing=0.4),
        marker=dict(size=8),
        hovertemplate='%{y:.1f} cm @ +%{x:.2f} hr<extra></extra>'
    ))

    _add_markers(fig, event_markers(ordered), DILATION_MARKER_Y)
    _style(fig, title, 'Dilation (cm)', [0, 10], height)
    return fig


def create_station_plot(
    events: Iterable[Event],
    title: str = "Station",
    height: int = 300
) -> go.Figure:
    """
    Create the station-vs-time chart (-5 to +5).

    Exams without a recorded station are skipped.
    """
    ordered = sort_events(events)
    t0 = _t0(ordered)
    exams = [e for e in ordered if isinstance(e, CervicalExam) and e.station is not None]

    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=[hours_between(t0, e.ts) for e in exams],
        y=[e.station for e in exams],
        mode='lines+markers',
        name='Station',
        line=dict(color=COLORS.STATION, width=2),
        marker=dict(size=8),
        hovertemplate='Station %{y:+g} @ +%{x:.2f} hr<extra></extra>'
    ))

    _add_markers(fig, event_markers(ordered), STATION_MARKER_Y)
    _style(fig, title, 'Station', [-5, 5], height)
    return fig


def create_probability_chart(result: PredictionResult, height: int = 220) -> go.Figure:
    """
    Bar chart of P(delivery within 2 / 4 / 8 hr), colored by phase.

    A no-data prediction yields an empty chart with an annotation.
    """
    fig = go.Figure()
    color = COLORS.phase_colors[result.phase.value]

    if result.probabilities is None:
        fig.add_annotation(
            text='No estimate yet',
            showarrow=False,
            font=dict(size=14),
            x=0.5, y=0.5, xref='paper', yref='paper'
        )
    else:
        probs = result.probabilities
        values = [probs.by_2h, probs.by_4h, probs.by_8h]
        fig.add_trace(go.Bar(
            x=[f'{h:g} hr' for h in ENGINE.HORIZONS_HR],
            y=values,
            marker_color=color,
            text=[f'{p:.0%}' for p in values],
            textposition='outside',
            hoverinfo='text'
        ))

    fig.update_layout(
        title='P(delivery within)',
        showlegend=False,
        height=height,
        yaxis=dict(range=[0, 1.1], tickformat='.0%', gridcolor=COLORS.GRID),
        margin=dict(l=20, r=20, t=50, b=20)
    )
    return fig


__all__ = [
    'OverlayOptions',
    'Marker',
    'event_markers',
    'chart_duration',
    'create_dilation_plot',
    'create_station_plot',
    'create_probability_chart',
]
