"""
Unit Tests for the Labor Progress Rules.

Tests flag extraction, phase classification, velocity, rate adjustment and
the delivery CDF using small hand-built event logs.

Test Strategy:
    - Build event logs with known conditions
    - Verify each building block against hand-computed values
    - Use boundary conditions (thresholds, window edges) for edge cases
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from laborcurve.config import DEFAULT_SETTINGS, STRINGS, Parity, RateRange
from laborcurve.data.records import (
    CervicalExam,
    Encounter,
    FetalStatus,
    Medication,
    Rupture,
    Vitals,
)
from laborcurve.rules.flags import LaborFlags, extract_flags
from laborcurve.rules.progress import (
    HourInterval,
    LaborPhase,
    adjust_rates,
    classify_phase,
    delivery_cdf,
    horizon_probabilities,
    latent_hours,
    observed_velocity,
    time_to_full_dilation,
    traversal_hours,
)


T0 = datetime(2025, 3, 5, 8, 0, tzinfo=timezone.utc)


# =============================================================================
# Test Fixtures
# =============================================================================

def exam(hours: float, cm: float, position: str = "") -> CervicalExam:
    return CervicalExam(
        id=f"sve_{hours}", encounter_id="enc_1",
        ts=T0 + timedelta(hours=hours), dilation_cm=cm, position=position,
    )


def med(hours: float, name: str, rate: str = "") -> Medication:
    return Medication(
        id=f"med_{name}_{hours}", encounter_id="enc_1",
        ts=T0 + timedelta(hours=hours), med_name=name, rate=rate,
    )


@pytest.fixture
def adjusters():
    return DEFAULT_SETTINGS.adjusters


@pytest.fixture
def nullip_rates() -> RateRange:
    return DEFAULT_SETTINGS.rates_for(Parity.NULLIP)


# =============================================================================
# Flag Extraction Tests
# =============================================================================

class TestExtractFlags:
    """Tests for extract_flags."""

    def test_empty_log_has_no_flags(self):
        assert extract_flags([], now=T0) == LaborFlags()

    def test_epidural_medication(self):
        flags = extract_flags([med(1, "Epidural")], now=T0)
        assert flags.epidural is True
        assert flags.induction is False

    @pytest.mark.parametrize("name", ["miso", "Misoprostol", "cervidil", "dinoprostone", "cook", "foley"])
    def test_induction_agents(self, name):
        assert extract_flags([med(0, name)], now=T0).induction is True

    @pytest.mark.parametrize("position", ["op", "OP", "ot", " OT "])
    def test_op_positions(self, position):
        assert extract_flags([exam(0, 5, position)], now=T0).op is True

    def test_oa_is_not_op(self):
        assert extract_flags([exam(0, 5, "oa")], now=T0).op is False

    def test_oxytocin_within_window(self):
        flags = extract_flags([med(0, "oxytocin", "2")], now=T0 + timedelta(minutes=60))
        assert flags.oxytocin_recent is True

    def test_oxytocin_window_edge_is_inclusive(self):
        flags = extract_flags([med(0, "oxytocin")], now=T0 + timedelta(minutes=90))
        assert flags.oxytocin_recent is True

    def test_oxytocin_outside_window(self):
        flags = extract_flags([med(0, "oxytocin")], now=T0 + timedelta(minutes=120))
        assert flags.oxytocin_recent is False

    def test_naive_reference_instant_is_utc(self):
        flags = extract_flags([med(0, "oxytocin")], now=datetime(2025, 3, 5, 9, 0))
        assert flags.oxytocin_recent is True

    def test_latest_oxytocin_entry_counts(self):
        events = [med(3, "oxytocin", "6"), med(0, "oxytocin", "2")]
        flags = extract_flags(events, now=T0 + timedelta(hours=4))
        assert flags.oxytocin_recent is True

    def test_other_kinds_are_ignored(self):
        events = [
            Rupture(id="r", encounter_id="enc_1", ts=T0, fluid="clear"),
            Vitals(id="v", encounter_id="enc_1", ts=T0, temp_c=37.0),
            FetalStatus(id="f", encounter_id="enc_1", ts=T0, category="I"),
        ]
        assert extract_flags(events, now=T0) == LaborFlags()

    def test_unknown_event_type_raises(self):
        with pytest.raises(TypeError):
            extract_flags([object()], now=T0)

    def test_merge_with_encounter_flags(self):
        enc = Encounter(
            id="enc_1", title="t", started_at=T0, updated_at=T0,
            is_induction=True, epidural_planned=True,
        )
        flags = LaborFlags(op=True).merged_with(enc)
        assert flags == LaborFlags(epidural=True, induction=True, op=True)

    def test_merge_with_none(self):
        flags = LaborFlags(op=True)
        assert flags.merged_with(None) is flags

    def test_to_dict_keys(self):
        assert LaborFlags(oxytocin_recent=True).to_dict() == {
            "epidural": False, "induction": False, "op": False, "oxyRecent": True,
        }


# =============================================================================
# Phase and Velocity Tests
# =============================================================================

class TestClassifyPhase:
    """Tests for classify_phase."""

    def test_below_threshold_is_latent(self):
        assert classify_phase(5.9, 6.0) is LaborPhase.LATENT

    def test_threshold_is_active(self):
        assert classify_phase(6.0, 6.0) is LaborPhase.ACTIVE

    def test_ten_cm_is_second_stage(self):
        assert classify_phase(10.0, 6.0) is LaborPhase.SECOND

    def test_custom_threshold(self):
        assert classify_phase(4.0, 4.0) is LaborPhase.ACTIVE


class TestObservedVelocity:
    """Tests for observed_velocity."""

    def test_single_exam(self):
        assert observed_velocity([exam(0, 4)]) is None

    def test_last_two_exams(self):
        assert observed_velocity([exam(0, 2), exam(1, 5), exam(3, 7)]) == pytest.approx(1.0)

    def test_interval_floor(self):
        # 1 cm in 5 minutes is treated as 1 cm in 15 minutes
        velocity = observed_velocity([exam(0, 5), exam(5 / 60, 6)])
        assert velocity == pytest.approx(4.0)

    def test_regression_is_negative(self):
        assert observed_velocity([exam(0, 6), exam(1, 5)]) == pytest.approx(-1.0)


# =============================================================================
# Rate Adjustment Tests
# =============================================================================

class TestAdjustRates:
    """Tests for adjust_rates."""

    def test_no_conditions_no_velocity(self, nullip_rates, adjusters):
        result = adjust_rates(nullip_rates, LaborFlags(), adjusters)
        assert result.rates == nullip_rates
        assert result.widen == 1.0
        assert result.contributors == [STRINGS.SLOPE_NONE]

    def test_contributor_order(self, nullip_rates, adjusters):
        flags = LaborFlags(epidural=True, induction=True, op=True, oxytocin_recent=True)
        result = adjust_rates(nullip_rates, flags, adjusters)
        assert result.contributors == [
            STRINGS.ADJ_INDUCTION,
            STRINGS.ADJ_OP,
            STRINGS.ADJ_EPIDURAL,
            STRINGS.ADJ_OXYTOCIN,
            STRINGS.SLOPE_NONE,
        ]

    def test_epidural_and_op_multiply(self, nullip_rates, adjusters):
        result = adjust_rates(nullip_rates, LaborFlags(epidural=True, op=True), adjusters)
        mult = 0.85 * 0.95
        widen = 1.25 * 1.10
        assert result.widen == pytest.approx(widen)
        assert result.rates.low == pytest.approx(0.5 * mult / widen)
        assert result.rates.mid == pytest.approx(1.0 * mult)
        assert result.rates.high == pytest.approx(1.5 * mult * widen)

    def test_velocity_blend(self, nullip_rates, adjusters):
        result = adjust_rates(nullip_rates, LaborFlags(), adjusters, velocity=3.0)
        # mid = 1.0 * 0.65 + 3.0 * 0.35
        assert result.rates.mid == pytest.approx(1.7)
        assert result.rates.low == pytest.approx(0.5)
        assert result.rates.high == pytest.approx(1.7 * 1.3)
        assert result.velocity_used is True
        assert result.contributors == [STRINGS.SLOPE.format(value=3.0)]

    def test_velocity_outside_band_is_ignored(self, nullip_rates, adjusters):
        result = adjust_rates(nullip_rates, LaborFlags(), adjusters, velocity=4.0)
        assert result.rates == nullip_rates
        assert result.velocity_used is False
        assert result.contributors == ["Recent dilation slope: 4.00 cm/hr"]

    def test_zero_velocity_is_ignored(self, nullip_rates, adjusters):
        result = adjust_rates(nullip_rates, LaborFlags(), adjusters, velocity=0.0)
        assert result.velocity_used is False

    def test_widening_keeps_order(self, nullip_rates, adjusters):
        flags = LaborFlags(epidural=True, induction=True, op=True, oxytocin_recent=True)
        result = adjust_rates(nullip_rates, flags, adjusters, velocity=0.2)
        assert result.rates.low <= result.rates.mid <= result.rates.high


# =============================================================================
# Time Estimate Tests
# =============================================================================

class TestTimeToFullDilation:
    """Tests for traversal, latent prior and phase dispatch."""

    def test_traversal_uses_inverted_bounds(self):
        hours = traversal_hours(4.0, RateRange(0.5, 1.0, 2.0))
        assert hours == HourInterval(2.0, 4.0, 8.0)

    def test_traversal_rate_floor(self):
        hours = traversal_hours(3.0, RateRange(0.01, 0.05, 0.1))
        assert hours.high_hr == pytest.approx(3.0 / 0.15)

    def test_latent_scale_at_zero_cm(self):
        hours = latent_hours(0.0, Parity.NULLIP, 6.0)
        assert hours.mid_hr == pytest.approx(4.5 * 1.2)

    def test_latent_scale_near_threshold(self):
        hours = latent_hours(6.0, Parity.MULTIP, 6.0)
        assert hours.low_hr == pytest.approx(1.5 * 0.6)

    def test_latent_adds_active_traversal(self, nullip_rates):
        hours = time_to_full_dilation(LaborPhase.LATENT, 4.0, Parity.NULLIP, nullip_rates, 6.0)
        # latent (2.0, 3.6, 6.4) + traversal of 4 cm (2.667, 4.0, 8.0)
        assert hours.low_hr == pytest.approx(2.0 + 4 / 1.5)
        assert hours.mid_hr == pytest.approx(7.6)
        assert hours.high_hr == pytest.approx(14.4)

    def test_active(self, nullip_rates):
        hours = time_to_full_dilation(LaborPhase.ACTIVE, 8.0, Parity.NULLIP, nullip_rates, 6.0)
        assert hours.mid_hr == pytest.approx(2.0)

    def test_second_stage_is_zero(self, nullip_rates):
        hours = time_to_full_dilation(LaborPhase.SECOND, 10.0, Parity.NULLIP, nullip_rates, 6.0)
        assert hours == HourInterval(0.0, 0.0, 0.0)

    def test_no_data_raises(self, nullip_rates):
        with pytest.raises(ValueError):
            time_to_full_dilation(LaborPhase.NO_DATA, 0.0, Parity.NULLIP, nullip_rates, 6.0)


# =============================================================================
# Delivery CDF Tests
# =============================================================================

class TestDeliveryCdf:
    """Tests for the piecewise-linear delivery CDF."""

    def test_anchor_points(self):
        assert delivery_cdf(1.0, 1.0, 3.0, 9.0) == pytest.approx(0.05)
        assert delivery_cdf(3.0, 1.0, 3.0, 9.0) == pytest.approx(0.5)
        assert delivery_cdf(9.0, 1.0, 3.0, 9.0) == pytest.approx(0.95)

    def test_flat_outside_range(self):
        assert delivery_cdf(0.0, 1.0, 3.0, 9.0) == pytest.approx(0.05)
        assert delivery_cdf(50.0, 1.0, 3.0, 9.0) == pytest.approx(0.95)

    def test_degenerate_interval(self):
        assert delivery_cdf(2.0, 2.0, 2.0, 2.0) == pytest.approx(0.05)

    def test_monotonic(self):
        values = [delivery_cdf(t / 4, 1.0, 3.0, 9.0) for t in range(0, 48)]
        assert all(a <= b for a, b in zip(values, values[1:]))

    def test_horizon_probabilities(self):
        probs = horizon_probabilities(HourInterval(1.0, 3.0, 9.0))
        assert probs.by_2h == pytest.approx(0.275)
        assert probs.by_4h == pytest.approx(0.5 + 0.45 / 6)
        assert probs.by_8h == pytest.approx(0.5 + 0.45 * 5 / 6)
        assert probs.by_2h <= probs.by_4h <= probs.by_8h
