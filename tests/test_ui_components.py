"""
Tests for UI Components and the command line.

This module tests the Plotly chart builders and the CLI entry point.
"""

from __future__ import annotations

import json
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import plotly.graph_objects as go
import pytest

# Add src to path
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from laborcurve.data.records import CervicalExam, Encounter, Medication, Rupture
from laborcurve.data.store import LogbookStore
from laborcurve.models.predictor import predict_eta
from laborcurve.ui.plots import (
    OverlayOptions,
    chart_duration,
    create_dilation_plot,
    create_probability_chart,
    create_station_plot,
    event_markers,
)


T0 = datetime(2025, 3, 5, 8, 0, tzinfo=timezone.utc)


@pytest.fixture
def encounter() -> Encounter:
    return Encounter(id="enc_1", title="Chart test", started_at=T0, updated_at=T0)


@pytest.fixture
def events():
    return [
        CervicalExam(id="s1", encounter_id="enc_1", ts=T0, dilation_cm=4.0, station=-2.0),
        Rupture(id="r1", encounter_id="enc_1", ts=T0 + timedelta(hours=1), fluid="clear"),
        Medication(id="m1", encounter_id="enc_1", ts=T0 + timedelta(hours=1.5), med_name="Epidural"),
        Medication(id="m2", encounter_id="enc_1", ts=T0 + timedelta(hours=2), med_name="oxytocin", rate="4"),
        Medication(id="m3", encounter_id="enc_1", ts=T0 + timedelta(hours=2), med_name="ondansetron"),
        CervicalExam(id="s2", encounter_id="enc_1", ts=T0 + timedelta(hours=3), dilation_cm=6.0),
    ]


class TestMarkers:
    """Tests for event markers and chart span."""

    def test_markers(self, events):
        markers = event_markers(events)
        assert [(m.t_hr, m.label, m.kind) for m in markers] == [
            (1.0, "ROM", "rom"),
            (1.5, "Epidural", "epidural"),
            (2.0, "Oxy 4", "oxytocin"),
        ]

    def test_no_markers(self):
        assert event_markers([]) == []

    @pytest.mark.parametrize("last_exam,expected", [
        (None, 14.0),
        (0.0, 6.0),
        (3.0, 9.0),
        (30.0, 24.0),
    ])
    def test_chart_duration(self, last_exam, expected):
        assert chart_duration(last_exam) == expected


class TestPlotFunctions:
    """Tests for Plotly figure builders."""

    def test_dilation_plot_returns_figure(self, encounter, events):
        fig = create_dilation_plot(encounter, events)
        assert isinstance(fig, go.Figure)
        names = [trace.name for trace in fig.data]
        assert names == ["Ref: Nullip", "Patient", "Markers"]

    def test_dilation_plot_patient_curve(self, encounter, events):
        fig = create_dilation_plot(encounter, events)
        patient = next(t for t in fig.data if t.name == "Patient")
        assert list(patient.x) == [0.0, 3.0]
        assert list(patient.y) == [4.0, 6.0]

    def test_dilation_plot_overlays(self, encounter, events):
        fig = create_dilation_plot(encounter, events, overlay=OverlayOptions(nullip=True, multip=True, op=True))
        names = [trace.name for trace in fig.data]
        assert "Ref: Nullip" in names
        assert "Ref: Multip" in names
        ref = fig.data[0]
        # last exam at 3 h -> 9 h of curve at 5-minute steps
        assert len(ref.x) == 109

    def test_dilation_plot_without_events(self, encounter):
        fig = create_dilation_plot(encounter, [], overlay=OverlayOptions(nullip=False))
        assert [trace.name for trace in fig.data] == ["Patient"]

    def test_station_plot(self, events):
        fig = create_station_plot(events)
        station = fig.data[0]
        # exams without a station are skipped
        assert list(station.y) == [-2.0]
        assert tuple(fig.layout.yaxis.range) == (-5, 5)

    def test_probability_chart(self, encounter, events):
        result = predict_eta(encounter, events, now=T0 + timedelta(hours=3))
        fig = create_probability_chart(result)
        assert len(fig.data) == 1
        assert list(fig.data[0].x) == ["2 hr", "4 hr", "8 hr"]

    def test_probability_chart_no_data(self, encounter):
        fig = create_probability_chart(predict_eta(encounter, [], now=T0))
        assert len(fig.data) == 0
        assert fig.layout.annotations[0].text == "No estimate yet"


class TestCommandLine:
    """Tests for python -m laborcurve."""

    @pytest.fixture
    def logbook(self, tmp_path, encounter, events) -> Path:
        path = tmp_path / "logbook.json"
        store = LogbookStore(path)
        store.put_encounter(encounter)
        for event in events:
            store.put_event(event)
        return path

    def test_curve_to_csv(self, tmp_path):
        from laborcurve.__main__ import main

        output = tmp_path / "curve.csv"
        code = main(["curve", "--parity", "multip", "--duration", "1", "--output", str(output)])
        assert code == 0
        lines = output.read_text().splitlines()
        assert lines[0] == "hours,cm"
        assert len(lines) == 14

    def test_predict_json(self, logbook, capsys):
        from laborcurve.__main__ import main

        code = main(["--logbook", str(logbook), "predict", "enc_1", "--now", "2025-03-05T11:00:00Z", "--json"])
        assert code == 0
        data = json.loads(capsys.readouterr().out)
        assert data["phase"] == "active"
        assert data["flags"]["oxyRecent"] is True

    def test_summary(self, logbook, capsys):
        from laborcurve.__main__ import main

        assert main(["--logbook", str(logbook), "summary", "enc_1"]) == 0
        assert "Encounter: Chart test" in capsys.readouterr().out

    def test_missing_encounter_exits_1(self, logbook):
        from laborcurve.__main__ import main

        assert main(["--logbook", str(logbook), "summary", "enc_missing"]) == 1

    def test_export_then_import(self, logbook, tmp_path):
        from laborcurve.__main__ import main

        export = tmp_path / "enc.laborlog.json"
        assert main(["--logbook", str(logbook), "export", "--encounter", "enc_1", "--output", str(export)]) == 0

        fresh = tmp_path / "fresh.json"
        assert main(["--logbook", str(fresh), "import", str(export)]) == 0
        assert len(LogbookStore(fresh).list_events("enc_1")) == 6

    def test_import_missing_file_exits_1(self, tmp_path):
        from laborcurve.__main__ import main

        assert main(["--logbook", str(tmp_path / "l.json"), "import", str(tmp_path / "nope.json")]) == 1

    def test_malformed_now_exits_1(self, logbook):
        from laborcurve.__main__ import main

        assert main(["--logbook", str(logbook), "predict", "enc_1", "--now", "not-a-time"]) == 1
