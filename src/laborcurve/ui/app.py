"""
LaborCurve Dashboard - Streamlit Application.

Logbook for labor encounters: record cervical exams and interventions,
compare the patient's dilation curve with reference curves, and see the
ETA prediction with its contributors.

Usage:
    streamlit run src/laborcurve/ui/app.py

For intuition training only. Not a clinical decision tool.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import streamlit as st

# Add src to path
src_path = Path(__file__).parent.parent.parent
sys.path.insert(0, str(src_path))

from laborcurve.analysis.replay import ReplayStatus, replay_at, replay_points
from laborcurve.analysis.summary import build_summary, events_to_frame, label_for_event, quick_stats
from laborcurve.config import COLORS, PATHS, Parity, PredictorSettings, SettingsError
from laborcurve.data.records import (
    CervicalExam,
    Encounter,
    EncounterStatus,
    Event,
    FetalStatus,
    Medication,
    OutcomeMode,
    Rupture,
    Vitals,
    new_id,
)
from laborcurve.data.store import LogbookError, LogbookStore, export_filename
from laborcurve.models.predictor import predict_eta
from laborcurve.ui.plots import (
    OverlayOptions,
    create_dilation_plot,
    create_probability_chart,
    create_station_plot,
)
from laborcurve.utils.formatting import fmt_datetime, fmt_hours, fmt_prob

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


# ============================================================================
# Caching and State Management
# ============================================================================

@st.cache_resource
def load_store() -> Optional[LogbookStore]:
    """Load and cache the logbook store."""
    try:
        return LogbookStore(PATHS.LOGBOOK_PATH)
    except LogbookError as e:
        st.error(f"Could not open logbook: {e}")
        return None


def _combine(label: str, key: str) -> datetime:
    """Date + time inputs as an aware UTC datetime."""
    col_d, col_t = st.columns(2)
    now = datetime.now(timezone.utc)
    day = col_d.date_input(f"{label} date", value=now.date(), key=f"{key}_d")
    tod = col_t.time_input(f"{label} time", value=now.time().replace(second=0, microsecond=0), key=f"{key}_t")
    return datetime.combine(day, tod, tzinfo=timezone.utc)


# ============================================================================
# UI Components
# ============================================================================

def render_sidebar(store: LogbookStore) -> Optional[str]:
    """Render the sidebar with the encounter list."""
    st.sidebar.title("🗂️ Encounters")

    status = st.sidebar.selectbox("Filter", ["open", "delivered", "cs", "all"])
    query = st.sidebar.text_input("Search tags, notes, title")
    encounters = store.list_encounters(status=status, query=query)

    with st.sidebar.expander("➕ New encounter"):
        with st.form("new_encounter", clear_on_submit=True):
            title = st.text_input("Title (no identifiers)")
            parity = st.radio("Parity", [p.value for p in Parity], horizontal=True)
            ga = st.number_input("GA (weeks)", min_value=20.0, max_value=44.0, value=39.0, step=0.1)
            induction = st.checkbox("Induction")
            epidural = st.checkbox("Epidural planned")
            tags = st.text_input("Tags")
            if st.form_submit_button("Create"):
                enc = Encounter.create(
                    title=title, parity=parity, ga_weeks=ga,
                    is_induction=induction, epidural_planned=epidural, tags=tags,
                )
                store.put_encounter(enc)
                st.session_state['encounter_id'] = enc.id
                st.rerun()

    st.sidebar.markdown("---")
    if not encounters:
        st.sidebar.info("No encounters match")
        return st.session_state.get('encounter_id')

    ids = [e.id for e in encounters]
    current = st.session_state.get('encounter_id')
    index = ids.index(current) if current in ids else 0
    labels = {e.id: f"{e.title} • {fmt_datetime(e.started_at)} • {e.status.value}" for e in encounters}
    selected = st.sidebar.radio("Select", ids, index=index, format_func=labels.get)
    st.session_state['encounter_id'] = selected

    st.sidebar.markdown("---")
    st.sidebar.caption("LaborCurve Logbook")
    st.sidebar.caption("Intuition training only. Not a clinical decision tool.")
    return selected


def render_event_forms(store: LogbookStore, encounter: Encounter) -> None:
    """Forms for logging each event kind."""
    tabs = st.tabs(["SVE", "ROM", "Medication", "Vitals", "Fetal"])

    def _save(event: Event) -> None:
        store.put_event(event)
        st.rerun()

    with tabs[0], st.form("sve", clear_on_submit=True):
        ts = _combine("Exam", "sve")
        c1, c2, c3 = st.columns(3)
        cm = c1.number_input("Dilation (cm)", 0.0, 10.0, 4.0, 0.5)
        eff = c2.number_input("Effacement (%)", 0.0, 100.0, 80.0, 10.0)
        station = c3.number_input("Station", -5.0, 5.0, -2.0, 1.0)
        position = st.selectbox("Position", ["", "OA", "OP", "OT"])
        note = st.text_input("Note", key="sve_note")
        if st.form_submit_button("Add exam"):
            _save(CervicalExam(
                id=new_id("evt"), encounter_id=encounter.id, ts=ts, note=note,
                dilation_cm=cm, effacement_pct=eff, station=station,
                position=position.lower(),
            ))

    with tabs[1], st.form("rom", clear_on_submit=True):
        ts = _combine("ROM", "rom")
        fluid = st.selectbox("Fluid", ["clear", "blood-tinged", "meconium", "unknown"])
        note = st.text_input("Note", key="rom_note")
        if st.form_submit_button("Add ROM"):
            _save(Rupture(
                id=new_id("evt"), encounter_id=encounter.id, ts=ts, note=note,
                fluid=fluid, meconium=fluid == "meconium",
            ))

    with tabs[2], st.form("med", clear_on_submit=True):
        ts = _combine("Given", "med")
        name = st.selectbox("Medication", ["oxytocin", "epidural", "miso", "cervidil", "foley", "other"])
        rate = st.text_input("Rate / dose")
        note = st.text_input("Note", key="med_note")
        if st.form_submit_button("Add medication"):
            _save(Medication(
                id=new_id("evt"), encounter_id=encounter.id, ts=ts, note=note,
                med_name=name, rate=rate,
            ))

    with tabs[3], st.form("vitals", clear_on_submit=True):
        ts = _combine("Vitals", "vitals")
        c1, c2, c3, c4 = st.columns(4)
        temp = c1.number_input("Temp (°C)", 34.0, 42.0, 37.0, 0.1)
        hr = c2.number_input("HR", 30.0, 200.0, 80.0, 1.0)
        sbp = c3.number_input("SBP", 60.0, 220.0, 120.0, 1.0)
        dbp = c4.number_input("DBP", 30.0, 140.0, 75.0, 1.0)
        note = st.text_input("Note", key="vitals_note")
        if st.form_submit_button("Add vitals"):
            _save(Vitals(
                id=new_id("evt"), encounter_id=encounter.id, ts=ts, note=note,
                temp_c=temp, hr=hr, sbp=sbp, dbp=dbp,
            ))

    with tabs[4], st.form("fetal", clear_on_submit=True):
        ts = _combine("Fetal", "fetal")
        category = st.selectbox("Category", ["I", "II", "III"])
        decels = st.checkbox("Recurrent decels")
        note = st.text_input("Note", key="fetal_note")
        if st.form_submit_button("Add fetal status"):
            _save(FetalStatus(
                id=new_id("evt"), encounter_id=encounter.id, ts=ts, note=note,
                category=category, recurrent_decels=decels,
            ))


def render_prediction(encounter: Encounter, events: List[Event], settings) -> None:
    """ETA panel with contributors and flags."""
    result = predict_eta(encounter, events, settings)
    color = COLORS.phase_colors[result.phase.value]

    st.markdown(
        f"""
        <div style="background-color: {color}; padding: 12px; border-radius: 10px; margin-bottom: 12px;">
            <h3 style="color: white; margin: 0;">Phase: {result.phase.value}</h3>
        </div>
        """,
        unsafe_allow_html=True
    )

    if result.has_estimate:
        col_a, col_b = st.columns(2)
        eta10, delivery = result.eta_10cm, result.eta_delivery
        col_a.metric("To 10 cm (mid)", fmt_hours(eta10.mid_hr),
                     help=f"{fmt_hours(eta10.low_hr)} – {fmt_hours(eta10.high_hr)}")
        col_b.metric("To delivery (mid)", fmt_hours(delivery.mid_hr),
                     help=f"{fmt_hours(delivery.low_hr)} – {fmt_hours(delivery.high_hr)}")
        probs = result.probabilities
        st.caption(
            f"P(≤2h) {fmt_prob(probs.by_2h)} • P(≤4h) {fmt_prob(probs.by_4h)} • "
            f"P(≤8h) {fmt_prob(probs.by_8h)}"
        )
        st.plotly_chart(create_probability_chart(result), use_container_width=True)

    st.subheader("Contributors")
    for line in result.explain:
        st.write(f"• {line}")

    flags = result.flags
    st.caption(
        f"Flags: epidural={flags.epidural} induction={flags.induction} "
        f"op={flags.op} oxytocin_recent={flags.oxytocin_recent}"
    )


def render_replay(encounter: Encounter, events: List[Event], settings) -> None:
    """Prediction as of a past exam vs the recorded outcome."""
    exams = replay_points(events)
    if not exams:
        st.info("No cervical exams to replay")
        return

    at = st.selectbox(
        "Replay at exam",
        [e.ts for e in exams],
        index=len(exams) - 1,
        format_func=fmt_datetime,
    )
    replay = replay_at(encounter, events, at, settings)
    if replay.status is not ReplayStatus.OK:
        st.info(replay.message)
        return

    col_a, col_b, col_c = st.columns(3)
    col_a.metric("Predicted (mid)", fmt_hours(replay.prediction.eta_delivery.mid_hr))
    col_b.metric("Actual", fmt_hours(replay.actual_hr))
    col_c.metric("Error", f"{replay.error_hr:+.1f} hr")
    st.write(replay.verdict)


def render_outcome(store: LogbookStore, encounter: Encounter) -> None:
    with st.form("outcome"):
        ts = _combine("Delivery", "outcome")
        mode = st.selectbox("Mode", [m.value for m in OutcomeMode])
        status = st.selectbox("Status", [s.value for s in EncounterStatus], index=1)
        note = st.text_input("Outcome note", value=encounter.outcome_note)
        if st.form_submit_button("Save outcome"):
            store.put_encounter(encounter.with_outcome(ts, mode, status, note))
            st.rerun()


def render_settings(store: LogbookStore) -> None:
    """Active threshold and raw settings editor."""
    settings = store.get_settings()
    threshold = st.number_input(
        "Active threshold (cm)", 1.0, 10.0, float(settings.active_threshold_cm), 0.5
    )
    raw = st.text_area("Settings JSON", json.dumps(settings.to_dict(), indent=2), height=240)
    if st.button("Save settings"):
        try:
            updated = PredictorSettings.from_dict(json.loads(raw)).with_threshold(threshold)
        except (json.JSONDecodeError, SettingsError) as e:
            st.error(f"Invalid settings: {e}")
            return
        store.put_settings(updated)
        st.success("Settings saved")


def render_export_import(store: LogbookStore, encounter: Optional[Encounter]) -> None:
    col_a, col_b = st.columns(2)
    col_a.download_button(
        "Export all",
        json.dumps(store.dump_all(), indent=2),
        file_name=export_filename(),
        mime="application/json",
    )
    if encounter is not None:
        col_b.download_button(
            "Export encounter",
            json.dumps(store.export_encounter(encounter.id), indent=2),
            file_name=export_filename(encounter),
            mime="application/json",
        )

    upload = st.file_uploader("Import", type=["json"])
    mode = st.radio("Mode", ["merge", "replace"], horizontal=True)
    if upload is not None and st.button("Import file"):
        try:
            report = store.import_all(json.loads(upload.getvalue()), mode=mode)
        except (ValueError, LogbookError) as e:
            st.error(f"Import failed: {e}")
            return
        st.success(
            f"Imported {report.encounters} encounters, {report.events} events "
            f"({report.skipped} skipped)"
        )


def render_encounter(store: LogbookStore, encounter: Encounter) -> None:
    """Render the selected encounter."""
    events = store.list_events(encounter.id)
    settings = store.get_settings()

    st.header(encounter.title)
    stats = quick_stats(encounter, events)
    for col, stat in zip(st.columns(len(stats)), stats):
        col.metric(stat.label, stat.value)

    col1, col2 = st.columns([2, 1])

    with col1:
        st.subheader("📈 Curves")
        c1, c2, c3, c4, c5 = st.columns(5)
        overlay = OverlayOptions(
            nullip=c1.checkbox("Nullip", value=True),
            multip=c2.checkbox("Multip"),
            induction=c3.checkbox("Induction"),
            epidural=c4.checkbox("Epidural"),
            op=c5.checkbox("OP/OT"),
        )
        st.plotly_chart(
            create_dilation_plot(encounter, events, settings, overlay),
            use_container_width=True
        )
        st.plotly_chart(create_station_plot(events), use_container_width=True)

        st.subheader("📝 Log event")
        render_event_forms(store, encounter)

    with col2:
        st.subheader("⏱️ Prediction")
        render_prediction(encounter, events, settings)
        st.markdown("---")
        st.subheader("🔁 Replay")
        render_replay(encounter, events, settings)

    with st.expander("📋 Timeline"):
        frame = events_to_frame(events)
        st.dataframe(frame, use_container_width=True)
        if events:
            labels = {e.id: f"{fmt_datetime(e.ts)}  {label_for_event(e)}" for e in events}
            doomed = st.selectbox("Delete event", list(labels), format_func=labels.get)
            if st.button("Delete"):
                store.delete_event(doomed)
                st.rerun()

    with st.expander("🏁 Outcome"):
        render_outcome(store, encounter)

    with st.expander("🗒️ Notes & summary"):
        with st.form("notes"):
            notes = st.text_area("Notes", encounter.notes)
            tags = st.text_input("Tags", encounter.tags)
            if st.form_submit_button("Save notes"):
                store.put_encounter(encounter.with_notes(notes, tags))
                st.rerun()
        st.code(build_summary(encounter, events), language=None)
        if st.button("Delete encounter"):
            store.delete_encounter(encounter.id)
            st.session_state.pop('encounter_id', None)
            st.rerun()


# ============================================================================
# Main Application
# ============================================================================

def main():
    """Main Streamlit application."""
    st.set_page_config(
        page_title="LaborCurve Logbook",
        page_icon="📈",
        layout="wide",
        initial_sidebar_state="expanded"
    )

    st.title("📈 LaborCurve Logbook")
    st.markdown("Dilation curves and ETA estimates for intuition training")
    st.markdown("---")

    store = load_store()
    if store is None:
        st.stop()

    selected = render_sidebar(store)

    with st.sidebar.expander("⚙️ Settings"):
        render_settings(store)

    encounter = None
    if selected:
        try:
            encounter = store.get_encounter(selected)
        except LogbookError as e:
            st.error(f"Could not load encounter: {e}")
            logger.exception("Encounter load error")

    if encounter is not None:
        render_encounter(store, encounter)
    else:
        st.info("Create or select an encounter in the sidebar")

    with st.expander("💾 Export / Import"):
        render_export_import(store, encounter)


if __name__ == "__main__":
    main()
