"""Tests for the rule-based recommendation engine and driver ranking."""

from __future__ import annotations

import itertools

import pytest

from mindsense.domains.wellbeing.domain_logic import recommendation_engine as engine
from mindsense.domains.wellbeing.domain_logic.metric_models import Scenario
from mindsense.domains.wellbeing.domain_logic.recommendation_models import (
    DriverImpact,
    PresetID,
    RecommendationRule,
)


def _recommend(catalog, context, **kwargs):
    content = catalog.get(context.scenario)
    return engine.primary_recommendation(
        context, content.presets, content.default_recommendation, **kwargs
    )


class TestPrimaryRecommendation:
    def test_high_stress_shape_selects_calm_now(self, catalog, make_context):
        ctx = make_context(Scenario.HIGH_STRESS_DAY, load=84, readiness=54, consistency=62)
        rec = _recommend(catalog, ctx)
        assert rec.preset is PresetID.CALM_NOW
        assert rec.rule_id == "downshift_high_load"
        assert "84" in rec.why

    def test_strong_spread_selects_focus_prep(self, catalog, make_context):
        ctx = make_context(Scenario.BALANCED_DAY, load=46, readiness=79, consistency=74)
        rec = _recommend(catalog, ctx)
        assert rec.preset is PresetID.FOCUS_PREP
        assert rec.rule_id == "focus_readiness_spread"
        assert "33" in rec.why

    def test_low_readiness_triggers_downshift(self, catalog, make_context):
        rec = _recommend(catalog, make_context(load=40, readiness=44, consistency=80))
        assert rec.preset is PresetID.CALM_NOW

    def test_stacked_stress_signals_trigger_downshift(self, catalog, make_context):
        rec = _recommend(catalog, make_context(load=46, readiness=79, consistency=74, stress=3))
        assert rec.preset is PresetID.CALM_NOW

    def test_downshift_outranks_focus(self, catalog, make_context):
        # Both rules hold; the lower priority number wins.
        ctx = make_context(load=20, readiness=90, consistency=90, stress=4)
        assert _recommend(catalog, ctx).rule_id == "downshift_high_load"

    def test_no_match_uses_scenario_default(self, catalog, make_context):
        ctx = make_context(Scenario.RECOVERY_WEEK, load=60, readiness=70, consistency=50)
        rec = _recommend(catalog, ctx)
        assert rec == catalog.get(Scenario.RECOVERY_WEEK).default_recommendation
        assert rec.preset is PresetID.SLEEP_DOWNSHIFT
        assert rec.rule_id == "fallback"

    def test_missing_preset_returns_fallback(self, catalog, make_context):
        content = catalog.get(Scenario.HIGH_STRESS_DAY)
        presets = [p for p in content.presets if p.id is not PresetID.CALM_NOW]
        ctx = make_context(Scenario.HIGH_STRESS_DAY, load=90, readiness=40)
        rec = engine.primary_recommendation(ctx, presets, content.default_recommendation)
        assert rec is content.default_recommendation

    def test_out_of_range_metrics_are_clamped(self, catalog, make_context):
        rec = _recommend(catalog, make_context(load=150, readiness=-20, consistency=300))
        assert rec.preset is PresetID.CALM_NOW
        assert "(100)" in rec.why

    def test_fractional_spread_below_threshold_falls_back(self, catalog, make_context):
        # 76.0 - 60.9 = 15.1, just under the focus spread of 16
        ctx = make_context(load=60.9, readiness=76.0, consistency=80.0)
        rec = _recommend(catalog, ctx)
        assert rec.rule_id != "focus_readiness_spread"
        assert rec == catalog.get(Scenario.BALANCED_DAY).default_recommendation

    def test_fractional_spread_above_threshold_shown_unrounded(self, catalog, make_context):
        rec = _recommend(catalog, make_context(load=57.9, readiness=74.0, consistency=80.0))
        assert rec.rule_id == "focus_readiness_spread"
        assert "(16.1)" in rec.why

    def test_fractional_load_just_below_high_load(self, catalog, make_context):
        ctx = make_context(load=79.6, readiness=70, consistency=70)
        assert _recommend(catalog, ctx).rule_id != "downshift_high_load"

    def test_idempotent(self, catalog, make_context):
        ctx = make_context(Scenario.HIGH_STRESS_DAY, load=84, readiness=54)
        assert _recommend(catalog, ctx) == _recommend(catalog, ctx)

    def test_expected_effect_includes_projection(self, catalog, make_context):
        rec = _recommend(catalog, make_context(Scenario.HIGH_STRESS_DAY, load=84, readiness=54, confidence=0.76))
        assert rec.expected_effect.endswith("2h projected load shift: -7.")
        assert rec.time_minutes == 3
        assert rec.summary_line.startswith("What: ")

    def test_custom_rule_with_higher_priority(self, catalog, make_context):
        evening = RecommendationRule(
            id="evening_wind_down",
            priority=5,
            preset=PresetID.SLEEP_DOWNSHIFT,
            predicate=lambda ctx: True,
            what="Wind down now.",
            why="Consistency is {consistency}.",
        )
        rules = engine.DEFAULT_RULES + (evening,)
        rec = _recommend(catalog, make_context(load=90), rules=rules)
        assert rec.preset is PresetID.SLEEP_DOWNSHIFT
        assert rec.why == "Consistency is 78."

    def test_default_rules_sorted_by_priority(self):
        priorities = [rule.priority for rule in engine.DEFAULT_RULES]
        assert priorities == sorted(priorities)


class TestProjection:
    @pytest.mark.parametrize("scenario", list(Scenario))
    @pytest.mark.parametrize("preset", list(PresetID))
    def test_non_decreasing_in_stress(self, scenario, preset, make_context):
        values = [
            engine.projected_load_delta_in_two_hours(preset, make_context(scenario, stress=s))
            for s in range(20)
        ]
        assert values == sorted(values)
        assert all(engine.PROJECTION_MIN <= v <= engine.PROJECTION_MAX for v in values)

    def test_recovery_signals_offset_stress(self, make_context):
        stressed = engine.projected_load_delta_in_two_hours(PresetID.CALM_NOW, make_context(stress=4))
        offset = engine.projected_load_delta_in_two_hours(
            PresetID.CALM_NOW, make_context(stress=4, recovery=4)
        )
        assert offset < stressed

    def test_higher_confidence_deepens_downshift(self, make_context):
        low = engine.projected_load_delta_in_two_hours(PresetID.CALM_NOW, make_context(confidence=0.5))
        high = engine.projected_load_delta_in_two_hours(PresetID.CALM_NOW, make_context(confidence=0.98))
        assert high < low

    def test_high_stress_calm_now_value(self, make_context):
        ctx = make_context(Scenario.HIGH_STRESS_DAY, confidence=0.76)
        assert engine.projected_load_delta_in_two_hours(PresetID.CALM_NOW, ctx) == -7

    def test_absolute_projection_rounds_fractional_load(self, make_context):
        ctx = make_context(load=60.6, confidence=0.65)
        delta = engine.projected_load_delta_in_two_hours(PresetID.CALM_NOW, ctx)
        assert engine.projected_load_in_two_hours(PresetID.CALM_NOW, ctx) == 61 + delta

    def test_absolute_projection_bounds(self, make_context):
        assert engine.projected_load_in_two_hours(PresetID.CALM_NOW, make_context(load=0)) == 8
        high = make_context(load=100, stress=30)
        assert engine.projected_load_in_two_hours(PresetID.CALM_NOW, high) <= 96


class TestRankDrivers:
    def _drivers(self, catalog, scenario):
        return list(catalog.get(scenario).drivers)

    @pytest.mark.parametrize("scenario", list(Scenario))
    def test_sorted_and_same_membership(self, catalog, scenario, make_context):
        drivers = self._drivers(catalog, scenario)
        ctx = make_context(scenario, load=70, readiness=60, stress=2, caffeine=1)
        for ordering in itertools.islice(itertools.permutations(drivers), 24):
            ranked = engine.rank_drivers(list(ordering), ctx)
            impacts = [d.impact for d in ranked]
            assert impacts == sorted(impacts, reverse=True)
            assert sorted(d.id for d in ranked) == sorted(d.id for d in drivers)
            assert len(ranked) == len(drivers)

    def test_ties_keep_input_order(self, make_context):
        drivers = [
            DriverImpact("a", "A", "first", 0.2),
            DriverImpact("b", "B", "second", 0.2),
            DriverImpact("c", "C", "third", 0.3),
        ]
        ranked = engine.rank_drivers(drivers, make_context())
        assert [d.id for d in ranked] == ["c", "a", "b"]
        assert ranked[1].detail == "first · stable influence"

    def test_impact_clamped(self, make_context):
        drivers = [
            DriverImpact("x", "X", "", 0.9),
            DriverImpact("y", "Y", "", -0.4),
        ]
        ranked = engine.rank_drivers(drivers, make_context())
        assert ranked[0].impact == engine.DRIVER_IMPACT_MAX
        assert ranked[1].impact == engine.DRIVER_IMPACT_MIN

    def test_caffeine_signals_raise_caffeine_driver(self, catalog, make_context):
        drivers = self._drivers(catalog, Scenario.BALANCED_DAY)
        ranked = engine.rank_drivers(drivers, make_context(caffeine=4))
        caffeine = next(d for d in ranked if d.id == "caffeine_timing")
        assert caffeine.impact > 0.11
        assert caffeine.detail.endswith("rising influence")

    def test_fractional_metrics_shift_workload_drivers(self, make_context):
        drivers = [DriverImpact("meeting_stack", "Meetings", "", 0.3)]
        whole = engine.rank_drivers(drivers, make_context(load=50))
        fractional = engine.rank_drivers(drivers, make_context(load=50.9))
        assert fractional[0].impact > whole[0].impact

    def test_empty_input(self, make_context):
        assert engine.rank_drivers([], make_context()) == []
