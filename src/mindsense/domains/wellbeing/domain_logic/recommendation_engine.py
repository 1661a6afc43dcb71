"""Rule-based next-action recommendation and driver ranking.

The primary recommendation is an explicit ordered decision list: rules are
sorted by priority and the first predicate that holds picks the preset.
Nothing matches → the scenario's declared default recommendation.

All functions are pure. Metrics outside [0, 100] are clamped (not rounded)
before any rule runs; signal counters are floored at zero.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, Sequence

from mindsense.domains.wellbeing.domain_logic.metric_models import (
    Scenario,
    clamp,
    clamp_int,
    round_half_away,
)
from mindsense.domains.wellbeing.domain_logic.recommendation_models import (
    DriverImpact,
    Preset,
    PresetID,
    Recommendation,
    RecommendationContext,
    RecommendationRule,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Thresholds
# ---------------------------------------------------------------------------

HIGH_LOAD = 80
LOW_READINESS = 45
STACKED_STRESS_SIGNALS = 3
STRONG_SPREAD = 16                  # readiness minus load
COMFORT_FLOOR = 60                  # readiness and consistency for focus work

PROJECTION_MIN = -12
PROJECTION_MAX = 2
PROJECTED_LOAD_MIN = 8
PROJECTED_LOAD_MAX = 96

DRIVER_IMPACT_MIN = 0.05
DRIVER_IMPACT_MAX = 0.62
INFLUENCE_TOLERANCE = 0.03

# Two-hour load shift for each preset before confidence and stress adjustment
BASE_PROJECTION: dict[tuple[Scenario, PresetID], int] = {
    (Scenario.HIGH_STRESS_DAY, PresetID.CALM_NOW): -6,
    (Scenario.HIGH_STRESS_DAY, PresetID.FOCUS_PREP): -4,
    (Scenario.HIGH_STRESS_DAY, PresetID.SLEEP_DOWNSHIFT): -3,
    (Scenario.BALANCED_DAY, PresetID.CALM_NOW): -4,
    (Scenario.BALANCED_DAY, PresetID.FOCUS_PREP): -3,
    (Scenario.BALANCED_DAY, PresetID.SLEEP_DOWNSHIFT): -2,
    (Scenario.RECOVERY_WEEK, PresetID.CALM_NOW): -3,
    (Scenario.RECOVERY_WEEK, PresetID.FOCUS_PREP): -2,
    (Scenario.RECOVERY_WEEK, PresetID.SLEEP_DOWNSHIFT): -2,
}


# ---------------------------------------------------------------------------
# Decision list
# ---------------------------------------------------------------------------

def _needs_downshift(ctx: RecommendationContext) -> bool:
    m = ctx.metrics
    return (
        m.load >= HIGH_LOAD
        or m.readiness < LOW_READINESS
        or ctx.stress_signals >= STACKED_STRESS_SIGNALS
    )


def _has_focus_window(ctx: RecommendationContext) -> bool:
    m = ctx.metrics
    return (
        m.readiness - m.load >= STRONG_SPREAD
        and m.readiness >= COMFORT_FLOOR
        and m.consistency >= COMFORT_FLOOR
    )


DEFAULT_RULES: tuple[RecommendationRule, ...] = (
    RecommendationRule(
        id="downshift_high_load",
        priority=10,
        preset=PresetID.CALM_NOW,
        predicate=_needs_downshift,
        what="Run Calm now before your next pressure block.",
        why="Load is elevated ({load}) against readiness {readiness} and stress markers are stacking.",
    ),
    RecommendationRule(
        id="focus_readiness_spread",
        priority=20,
        preset=PresetID.FOCUS_PREP,
        predicate=_has_focus_window,
        what="Run Focus prep before your deepest work block.",
        why=(
            "Readiness is stronger than load right now ({spread}), "
            "creating a good window for focused work."
        ),
    ),
)


def primary_recommendation(
    context: RecommendationContext,
    presets: Sequence[Preset],
    fallback: Recommendation,
    rules: Iterable[RecommendationRule] = DEFAULT_RULES,
) -> Recommendation:
    """Select the next action; the first matching rule wins.

    If the matched preset is absent from ``presets`` the fallback is
    returned unchanged.
    """
    ctx = _normalized(context)
    for rule in sorted(rules, key=lambda r: r.priority):
        if not rule.predicate(ctx):
            continue
        preset = next((p for p in presets if p.id is rule.preset), None)
        if preset is None:
            logger.warning("Rule %s selected %s but no such preset is loaded", rule.id, rule.preset.value)
            return fallback
        logger.debug("Recommendation rule matched: %s -> %s", rule.id, rule.preset.value)
        return _build(rule, preset, ctx)

    logger.debug("No recommendation rule matched; using %s fallback", ctx.scenario.value)
    return fallback


def projected_load_delta_in_two_hours(preset: PresetID, context: RecommendationContext) -> int:
    """Estimated load change two hours after running ``preset``.

    Higher confidence deepens the projected downshift. Stress signals in
    excess of recovery signals pull it back toward zero, so the value never
    decreases as ``stress_signals`` grows.
    """
    ctx = _normalized(context)
    base = BASE_PROJECTION[(ctx.scenario, preset)]
    confidence_boost = round_half_away((ctx.confidence_score - 0.65) * 10)
    stress_penalty = max(0, ctx.stress_signals - ctx.recovery_signals)
    return clamp_int(base - confidence_boost + stress_penalty, PROJECTION_MIN, PROJECTION_MAX)


def projected_load_in_two_hours(preset: PresetID, context: RecommendationContext) -> int:
    """Absolute load two hours out, kept inside the displayable band."""
    ctx = _normalized(context)
    projected = ctx.metrics.load + projected_load_delta_in_two_hours(preset, ctx)
    return clamp_int(round_half_away(projected), PROJECTED_LOAD_MIN, PROJECTED_LOAD_MAX)


# ---------------------------------------------------------------------------
# Driver ranking
# ---------------------------------------------------------------------------

def rank_drivers(
    base_drivers: Sequence[DriverImpact],
    context: RecommendationContext,
) -> list[DriverImpact]:
    """Re-weight drivers for the current context and sort by impact.

    Output holds exactly the input drivers (same ids, same count). The sort
    is stable, so equal impacts keep their input order.
    """
    ctx = _normalized(context)
    adjusted = [_adjust_driver(driver, ctx) for driver in base_drivers]
    return sorted(adjusted, key=lambda d: d.impact, reverse=True)


def _adjust_driver(driver: DriverImpact, ctx: RecommendationContext) -> DriverImpact:
    load_delta = (ctx.metrics.load - ctx.base_metrics.load) / 100
    readiness_delta = (ctx.metrics.readiness - ctx.base_metrics.readiness) / 100
    consistency_delta = (ctx.metrics.consistency - ctx.base_metrics.consistency) / 100
    stress = ctx.stress_signals
    recovery = ctx.recovery_signals
    caffeine = ctx.caffeine_signals

    family = _DRIVER_FAMILIES.get(driver.id)
    if family == "sleep":
        shift = stress * 0.015 - readiness_delta * 0.18
    elif family == "workload":
        shift = stress * 0.024 + load_delta * 0.22
    elif family == "caffeine":
        shift = caffeine * 0.04 - recovery * 0.012
    elif family == "movement":
        shift = recovery * 0.028 - stress * 0.01
    elif family == "hydration":
        shift = stress * 0.018 + load_delta * 0.16
    elif family == "screen":
        shift = stress * 0.012 - consistency_delta * 0.1
    elif family == "taper":
        shift = recovery * 0.016 - stress * 0.016
    elif family == "routine":
        shift = consistency_delta * 0.2 + recovery * 0.01
    else:
        shift = (stress - recovery) * 0.01

    impact = clamp(driver.impact + shift, DRIVER_IMPACT_MIN, DRIVER_IMPACT_MAX)
    change = impact - driver.impact
    if change > INFLUENCE_TOLERANCE:
        influence = "rising influence"
    elif change < -INFLUENCE_TOLERANCE:
        influence = "falling influence"
    else:
        influence = "stable influence"

    return replace(driver, detail=f"{driver.detail} · {influence}", impact=round(impact, 4))


_DRIVER_FAMILIES = {
    "sleep_fragmentation": "sleep",
    "stable_sleep": "sleep",
    "sleep_rebound": "sleep",
    "deadline_density": "workload",
    "meeting_stack": "workload",
    "moderate_meeting_load": "workload",
    "late_caffeine": "caffeine",
    "caffeine_timing": "caffeine",
    "reduced_stimulus": "caffeine",
    "training_response": "movement",
    "movement_consistency": "movement",
    "hydration_drag": "hydration",
    "screen_exposure": "screen",
    "load_taper": "taper",
    "evening_routine": "routine",
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _normalized(context: RecommendationContext) -> RecommendationContext:
    return replace(
        context,
        metrics=context.metrics.bounded(),
        base_metrics=context.base_metrics.bounded(),
        confidence_score=clamp(context.confidence_score, 0.0, 1.0),
        stress_signals=max(0, int(context.stress_signals)),
        recovery_signals=max(0, int(context.recovery_signals)),
        caffeine_signals=max(0, int(context.caffeine_signals)),
    )


def _build(rule: RecommendationRule, preset: Preset, ctx: RecommendationContext) -> Recommendation:
    m = ctx.metrics
    values = {
        "load": _display(m.load),
        "readiness": _display(m.readiness),
        "consistency": _display(m.consistency),
        "spread": _display(m.readiness - m.load),
    }
    effect = preset.expected_effect.replace("Expected effect:", "").strip()
    projection = projected_load_delta_in_two_hours(preset.id, ctx)
    signed = f"+{projection}" if projection > 0 else str(projection)
    return Recommendation(
        preset=preset.id,
        what=rule.what.format(**values),
        why=rule.why.format(**values),
        expected_effect=f"{effect} 2h projected load shift: {signed}.",
        time_minutes=preset.duration_minutes,
        rule_id=rule.id,
    )


def _display(value: float) -> str:
    return format(round(value, 1), "g")
