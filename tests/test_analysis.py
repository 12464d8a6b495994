"""
Tests for the encounter summary and prediction replay.
"""

from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pandas as pd
import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from laborcurve.analysis.replay import ReplayStatus, replay_at, replay_points
from laborcurve.analysis.summary import (
    build_summary,
    events_to_frame,
    label_for_event,
    quick_stats,
)
from laborcurve.config import Parity
from laborcurve.data.records import (
    CervicalExam,
    Encounter,
    FetalStatus,
    Medication,
    Rupture,
    Vitals,
)
from laborcurve.utils.formatting import fmt_date, fmt_datetime, fmt_hours, fmt_prob


T0 = datetime(2025, 3, 5, 8, 0, tzinfo=timezone.utc)


@pytest.fixture
def encounter() -> Encounter:
    return Encounter(
        id="enc_1", title="G1 spontaneous", started_at=T0, updated_at=T0,
        parity=Parity.NULLIP, ga_weeks=39.5,
    )


@pytest.fixture
def events():
    return [
        CervicalExam(id="s1", encounter_id="enc_1", ts=T0, dilation_cm=4.0,
                     effacement_pct=80.0, station=-2.0),
        Rupture(id="r1", encounter_id="enc_1", ts=T0 + timedelta(hours=1), fluid="clear"),
        CervicalExam(id="s2", encounter_id="enc_1", ts=T0 + timedelta(hours=2), dilation_cm=6.0,
                     effacement_pct=90.0, station=-1.0, position="op"),
    ]


# =============================================================================
# Label and Summary Tests
# =============================================================================

class TestLabels:
    """Tests for label_for_event."""

    def test_exam_label(self, events):
        assert label_for_event(events[2]) == "SVE: 6 cm / 90% / -1 OP"

    def test_exam_missing_fields(self):
        event = CervicalExam(id="s", encounter_id="e", ts=T0, dilation_cm=3.5)
        assert label_for_event(event) == "SVE: 3.5 cm / ?% / ?"

    def test_rupture_with_meconium(self):
        event = Rupture(id="r", encounter_id="e", ts=T0, fluid="meconium", meconium=True)
        assert label_for_event(event) == "ROM: meconium (meconium)"

    def test_medication_label(self):
        event = Medication(id="m", encounter_id="e", ts=T0, med_name="oxytocin", rate="4 mU/min")
        assert label_for_event(event) == "OXYTOCIN • 4 mU/min"

    def test_vitals_label(self):
        event = Vitals(id="v", encounter_id="e", ts=T0, temp_c=37.5, hr=90.0, sbp=120.0, dbp=80.0)
        assert label_for_event(event) == "Vitals: 37.5°C • HR 90 • BP 120/80"

    def test_empty_vitals(self):
        assert label_for_event(Vitals(id="v", encounter_id="e", ts=T0)) == "Vitals: entry"

    def test_fetal_label(self):
        event = FetalStatus(id="f", encounter_id="e", ts=T0, category="II", recurrent_decels=True)
        assert label_for_event(event) == "Cat II • recurrent decels"

    def test_unknown_event_raises(self):
        with pytest.raises(TypeError):
            label_for_event(object())


class TestSummary:
    """Tests for quick_stats, build_summary and events_to_frame."""

    def test_quick_stats(self, encounter, events):
        stats = {s.label: s.value for s in quick_stats(encounter, events)}
        assert stats["Status"] == "open"
        assert stats["Latest SVE"] == "6 cm / 90% / -1"
        assert stats["Position"] == "OP"
        assert stats["ROM"] == "05MAR2025 09:00 • clear"
        assert "Epidural" not in stats

    def test_quick_stats_without_exam(self, encounter):
        stats = {s.label: s.value for s in quick_stats(encounter, [])}
        assert stats["Latest SVE"] == "—"

    def test_build_summary(self, encounter, events):
        text = build_summary(encounter, events)
        lines = text.splitlines()
        assert lines[0] == "LaborCurve Logbook summary"
        assert "Encounter: G1 spontaneous" in lines
        assert "Parity: nullip | GA: 39.5w | Spontaneous" in lines
        assert "05MAR2025 10:00  SVE: 6 cm / 90% / -1 OP" in lines
        assert lines[-1] == "Outcome: not set"

    def test_build_summary_with_outcome(self, encounter, events):
        done = encounter.with_outcome(T0 + timedelta(hours=8), "vaginal", "delivered", "NSVD")
        text = build_summary(done, events)
        assert text.splitlines()[-1] == "Outcome: delivered (vaginal) @ 05MAR2025 16:00 • NSVD"

    def test_events_to_frame(self, events):
        frame = events_to_frame(events)
        assert list(frame.columns) == ["ts", "kind", "label", "hours", "dilation_cm", "station", "note"]
        assert frame["hours"].tolist() == [0.0, 1.0, 2.0]
        assert frame["kind"].tolist() == ["sve", "rom", "sve"]
        assert pd.isna(frame.loc[1, "dilation_cm"])

    def test_events_to_frame_empty(self):
        assert events_to_frame([]).empty


class TestFormatting:
    """Tests for display formatting helpers."""

    def test_fmt_hours(self):
        assert fmt_hours(0.5) == "30 min"
        assert fmt_hours(3.0) == "3.0 hr"
        assert fmt_hours(None) == "—"

    def test_fmt_prob(self):
        assert fmt_prob(0.275) == "28%"
        assert fmt_prob(None) == "—"

    def test_fmt_dates(self):
        assert fmt_date(T0) == "05MAR"
        assert fmt_date(T0, include_year=True) == "05MAR2025"
        assert fmt_datetime("2025-03-05T14:30:00Z") == "05MAR2025 14:30"


# =============================================================================
# Replay Tests
# =============================================================================

class TestReplay:
    """Tests for prediction-vs-outcome replay."""

    def test_replay_points_are_exams(self, events):
        assert [e.id for e in replay_points(events)] == ["s1", "s2"]

    def test_no_exams(self, encounter):
        assert replay_at(encounter, []).status is ReplayStatus.NO_EXAMS

    def test_outcome_not_set(self, encounter, events):
        result = replay_at(encounter, events, at=events[2].ts)
        assert result.status is ReplayStatus.OUTCOME_NOT_SET
        assert result.prediction is not None
        assert result.error_hr is None
        assert result.verdict == ""

    def test_underestimate_at_latest_exam(self, encounter, events):
        done = encounter.with_outcome(T0 + timedelta(hours=8), "vaginal", "delivered")
        result = replay_at(done, events, at=events[2].ts)
        # OP slows the nullip mid to 0.85 cm/hr, blended with the 1 cm/hr slope
        mid_rate = 0.85 * 0.65 + 1.0 * 0.35
        assert result.status is ReplayStatus.OK
        assert result.prediction.eta_delivery.mid_hr == pytest.approx(4 / mid_rate + 1.0)
        assert result.actual_hr == pytest.approx(6.0)
        assert result.error_hr == pytest.approx(4 / mid_rate + 1.0 - 6.0)
        assert result.verdict == "Underestimated (too fast)"

    def test_overestimate_at_first_exam(self, encounter, events):
        done = encounter.with_outcome(T0 + timedelta(hours=8), "vaginal", "delivered")
        result = replay_at(done, events, at=events[0].ts)
        # only the 4 cm exam is visible: latent nullip, delivery mid 8.6 h
        assert result.prediction.eta_delivery.mid_hr == pytest.approx(8.6)
        assert result.error_hr == pytest.approx(0.6)
        assert result.verdict == "Overestimated (too slow)"

    def test_default_is_latest_exam(self, encounter, events):
        result = replay_at(encounter, events)
        assert result.at == events[2].ts

    def test_replay_uses_exam_time_for_oxytocin(self, encounter, events):
        oxy = Medication(id="m", encounter_id="enc_1", ts=T0 + timedelta(hours=1, minutes=30),
                         med_name="oxytocin")
        result = replay_at(encounter, events + [oxy], at=events[2].ts)
        assert result.prediction.flags.oxytocin_recent is True
