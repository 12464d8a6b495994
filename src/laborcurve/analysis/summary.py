"""
Logbook Summary for LaborCurve.

Builds the human-readable views of an encounter:

    - label_for_event: one-line label per event kind
    - quick_stats: headline figures (status, latest exam, ROM, epidural)
    - build_summary: plain-text summary suitable for copying into notes
    - events_to_frame: pandas timeline of the event log
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional

import pandas as pd

from laborcurve.config import ENGINE, STRINGS
from laborcurve.data.records import (
    CervicalExam,
    Encounter,
    Event,
    FetalStatus,
    Medication,
    Rupture,
    Vitals,
    sort_events,
)
from laborcurve.utils.formatting import EMPTY, fmt_datetime


@dataclass(frozen=True)
class QuickStat:
    """A labelled headline value."""

    label: str
    value: str


def _num(value: Optional[float]) -> str:
    return "?" if value is None else f"{value:g}"


def _exam_text(exam: CervicalExam) -> str:
    return f"{exam.dilation_cm:g} cm / {_num(exam.effacement_pct)}% / {_num(exam.station)}"


def label_for_event(event: Event) -> str:
    """
    One-line label for an event.

    Example:
        >>> label_for_event(exam)
        'SVE: 6 cm / 90% / -1 OP'

    Raises:
        TypeError: If the event is not one of the known kinds.
    """
    if isinstance(event, CervicalExam):
        position = f" {event.position.upper()}" if event.position else ""
        return f"SVE: {_exam_text(event)}{position}"
    if isinstance(event, Rupture):
        meconium = " (meconium)" if event.meconium else ""
        return f"ROM: {event.fluid or 'unknown'}{meconium}"
    if isinstance(event, Medication):
        rate = f" • {event.rate}" if event.rate else ""
        return f"{(event.med_name or 'med').upper()}{rate}"
    if isinstance(event, Vitals):
        parts = []
        if event.temp_c is not None:
            parts.append(f"{event.temp_c:g}°C")
        if event.hr is not None:
            parts.append(f"HR {event.hr:g}")
        if event.sbp is not None and event.dbp is not None:
            parts.append(f"BP {event.sbp:g}/{event.dbp:g}")
        return f"Vitals: {' • '.join(parts) or 'entry'}"
    if isinstance(event, FetalStatus):
        category = f"Cat {event.category}" if event.category else "Fetal"
        decels = " • recurrent decels" if event.recurrent_decels else ""
        return f"{category}{decels}"
    raise TypeError(f"Unhandled event type: {type(event).__name__}")


def _latest(events: List[Event], kind: type) -> Optional[Event]:
    matching = [e for e in events if isinstance(e, kind)]
    return matching[-1] if matching else None


def quick_stats(encounter: Encounter, events: Iterable[Event]) -> List[QuickStat]:
    """
    Headline figures for an encounter.

    Args:
        encounter: The encounter.
        events: Its events, in any order.

    Returns:
        Ordered list of QuickStat entries.
    """
    ordered = sort_events(events)
    stats = [QuickStat("Status", encounter.status.value)]

    exam = _latest(ordered, CervicalExam)
    if exam is not None:
        stats.append(QuickStat("Latest SVE", _exam_text(exam)))
        if exam.position:
            stats.append(QuickStat("Position", exam.position.upper()))
    else:
        stats.append(QuickStat("Latest SVE", EMPTY))

    rom = _latest(ordered, Rupture)
    if rom is not None:
        stats.append(QuickStat("ROM", f"{fmt_datetime(rom.ts)} • {rom.fluid or '?'}"))

    epidurals = [
        e for e in ordered
        if isinstance(e, Medication) and e.normalized_name in ENGINE.EPIDURAL_NAMES
    ]
    if epidurals:
        stats.append(QuickStat("Epidural", fmt_datetime(epidurals[-1].ts)))

    return stats


def describe_encounter(encounter: Encounter) -> str:
    """Single-line encounter description (parity, GA, induction, epidural)."""
    ga = f"{encounter.ga_weeks:g}" if encounter.ga_weeks is not None else "?"
    onset = "Induction" if encounter.is_induction else "Spontaneous"
    epidural = " | Epidural planned" if encounter.epidural_planned else ""
    return f"Parity: {encounter.parity.value} | GA: {ga}w | {onset}{epidural}"


def build_summary(encounter: Encounter, events: Iterable[Event]) -> str:
    """
    Plain-text summary of an encounter and its event log.

    Returns:
        Multi-line text: header, one line per event, outcome line.
    """
    lines = [
        STRINGS.SUMMARY_TITLE,
        f"Encounter: {encounter.title}",
        f"Started: {fmt_datetime(encounter.started_at)}",
        describe_encounter(encounter),
    ]
    if encounter.tags:
        lines.append(f"Tags: {encounter.tags}")
    if encounter.notes:
        lines.append(f"Notes: {encounter.notes}")
    lines.append("")

    for event in sort_events(events):
        lines.append(f"{fmt_datetime(event.ts)}  {label_for_event(event)}")

    lines.append("")
    if encounter.outcome_at is not None:
        mode = encounter.outcome_mode.value if encounter.outcome_mode else "unknown"
        note = f" • {encounter.outcome_note}" if encounter.outcome_note else ""
        lines.append(
            f"Outcome: {encounter.status.value} ({mode}) @ "
            f"{fmt_datetime(encounter.outcome_at)}{note}"
        )
    else:
        lines.append("Outcome: not set")

    return "\n".join(lines)


def events_to_frame(events: Iterable[Event]) -> pd.DataFrame:
    """
    Event log as a DataFrame.

    Columns: ts, kind, label, hours (since the first event), dilation_cm,
    station, note. Exam-only columns are NaN for other kinds.
    """
    ordered = sort_events(events)
    columns = ["ts", "kind", "label", "hours", "dilation_cm", "station", "note"]
    if not ordered:
        return pd.DataFrame(columns=columns)

    t0 = ordered[0].ts
    rows = []
    for event in ordered:
        is_exam = isinstance(event, CervicalExam)
        rows.append({
            "ts": pd.Timestamp(event.ts),
            "kind": event.kind.value,
            "label": label_for_event(event),
            "hours": (event.ts - t0).total_seconds() / 3600.0,
            "dilation_cm": event.dilation_cm if is_exam else float("nan"),
            "station": event.station if is_exam and event.station is not None else float("nan"),
            "note": event.note,
        })
    return pd.DataFrame(rows, columns=columns)


__all__ = [
    'QuickStat',
    'label_for_event',
    'quick_stats',
    'describe_encounter',
    'build_summary',
    'events_to_frame',
]
