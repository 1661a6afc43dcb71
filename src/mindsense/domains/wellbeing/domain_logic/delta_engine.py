"""Deterministic metric deltas for user events.

Each function maps one event (a finished session, an experiment check-in,
a fast-forwarded demo clock) to a ``MetricDelta``. The caller applies the
delta with ``Metrics.apply``, which re-clamps to [0, 100].

All formulas are deterministic: no randomness, no I/O, no hidden state.
Out-of-range inputs are clamped, never rejected.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum

from mindsense.domains.wellbeing.domain_logic.metric_models import (
    MetricDelta,
    Scenario,
    SessionDirection,
    SignalFocus,
    clamp_int,
    round_half_away,
)
from mindsense.domains.wellbeing.domain_logic.recommendation_models import PresetID


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

INTENSITY_MIN = 1
INTENSITY_MAX = 5
INTENSITY_FACTOR = 2            # load/readiness points per intensity step
ADHERENCE_STEP = 1              # consistency credit for showing up

CHECK_IN_FOCUS_STEP = 2
CHECK_IN_OTHER_STEP = 1

PERCEIVED_CHANGE_LIMIT = 5

# Per-day drift (load, readiness, consistency). The characteristic
# dimension of each scenario moves by at least one point per day.
FAST_FORWARD_RATES: dict[Scenario, tuple[float, float, float]] = {
    Scenario.HIGH_STRESS_DAY: (1.5, -1.0, -0.5),
    Scenario.BALANCED_DAY: (0.5, 1.0, 0.5),
    Scenario.RECOVERY_WEEK: (-1.0, 1.0, 1.0),
}


# ---------------------------------------------------------------------------
# Session outcome
# ---------------------------------------------------------------------------

def session_outcome(direction: SessionDirection, intensity: int) -> MetricDelta:
    """Delta for a finished regulation session.

    Load and readiness move by ``2 * intensity`` in the reported direction;
    consistency always gains the adherence step.
    """
    bounded = clamp_int(intensity, INTENSITY_MIN, INTENSITY_MAX)
    step = bounded * INTENSITY_FACTOR

    if direction is SessionDirection.BETTER:
        return MetricDelta(load=-step, readiness=step, consistency=ADHERENCE_STEP)
    if direction is SessionDirection.WORSE:
        return MetricDelta(load=step, readiness=-step, consistency=ADHERENCE_STEP)
    return MetricDelta(load=-1, readiness=1, consistency=ADHERENCE_STEP)


# ---------------------------------------------------------------------------
# Experiments
# ---------------------------------------------------------------------------

def experiment_check_in(focus: SignalFocus) -> MetricDelta:
    """Daily check-in: the focused dimension moves most."""
    load = CHECK_IN_FOCUS_STEP if focus is SignalFocus.LOAD else CHECK_IN_OTHER_STEP
    readiness = CHECK_IN_FOCUS_STEP if focus is SignalFocus.READINESS else CHECK_IN_OTHER_STEP
    consistency = CHECK_IN_FOCUS_STEP if focus is SignalFocus.CONSISTENCY else CHECK_IN_OTHER_STEP
    return MetricDelta(load=-load, readiness=readiness, consistency=consistency)


def completed_experiment(focus: SignalFocus, perceived_change: float) -> MetricDelta:
    """Delta for a finished experiment.

    ``perceived_change`` is rounded half away from zero, then saturated to
    [-5, 5]. Positive change lowers load and raises readiness/consistency on
    the focused dimension.
    """
    scaled = clamp_int(
        round_half_away(perceived_change), -PERCEIVED_CHANGE_LIMIT, PERCEIVED_CHANGE_LIMIT
    )

    if focus is SignalFocus.LOAD:
        return MetricDelta(load=-scaled, readiness=max(0, scaled // 2), consistency=ADHERENCE_STEP)
    if focus is SignalFocus.READINESS:
        return MetricDelta(load=-CHECK_IN_OTHER_STEP, readiness=scaled, consistency=ADHERENCE_STEP)
    return MetricDelta(load=-CHECK_IN_OTHER_STEP, readiness=CHECK_IN_OTHER_STEP, consistency=scaled)


def experiment_completion_summary(
    scenario_title: str,
    focus_title: str,
    adherence: int,
    perceived_change: float,
) -> str:
    """One-line summary of a finished experiment.

    ``perceived_change`` is rounded the same way as in ``completed_experiment``
    so the reported trend matches the applied delta.
    """
    change = round_half_away(perceived_change)
    if change > 0:
        trend = "improvement"
    elif change < 0:
        trend = "decline"
    else:
        trend = "no clear change"

    pct = clamp_int(adherence, 0, 100)
    return (
        f"{scenario_title}: {focus_title} experiment finished with "
        f"{pct}% adherence and {trend} ({_signed(change)})."
    )


# ---------------------------------------------------------------------------
# Demo clock
# ---------------------------------------------------------------------------

def fast_forwarded_days(days: int, scenario: Scenario) -> MetricDelta:
    """Scenario trend accumulated over ``days`` simulated days."""
    elapsed = max(0, int(days))
    load_rate, readiness_rate, consistency_rate = FAST_FORWARD_RATES[scenario]
    return MetricDelta(
        load=int(load_rate * elapsed),
        readiness=int(readiness_rate * elapsed),
        consistency=int(consistency_rate * elapsed),
    )


# ---------------------------------------------------------------------------
# Session effect estimate
# ---------------------------------------------------------------------------

class RecoverySlope(str, Enum):
    SLOW = "slow"
    MODERATE = "moderate"
    STRONG = "strong"


class MeasurementQuality(str, Enum):
    ESTIMATED = "estimated"
    LIVE = "live"


@dataclass(frozen=True)
class SessionEffectMetrics:
    """Physiological effect shown after a session."""

    heart_rate_downshift_bpm: int
    hrv_shift_ms: int
    recovery_slope: RecoverySlope
    quality: MeasurementQuality

    def to_dict(self) -> dict:
        data = asdict(self)
        data["recovery_slope"] = self.recovery_slope.value
        data["quality"] = self.quality.value
        return data


_PRESET_BOOST = {
    PresetID.CALM_NOW: 2,
    PresetID.FOCUS_PREP: 1,
    PresetID.SLEEP_DOWNSHIFT: 3,
}

_SCENARIO_BOOST = {
    Scenario.HIGH_STRESS_DAY: 2,
    Scenario.BALANCED_DAY: 1,
    Scenario.RECOVERY_WEEK: 1,
}


def session_effect_metrics(
    direction: SessionDirection,
    intensity: int,
    preset: PresetID,
    scenario: Scenario,
    quality: MeasurementQuality,
) -> SessionEffectMetrics:
    """Estimate heart-rate and HRV shift for a finished session.

    Only a "better" outcome keeps the caller's measurement quality; the other
    directions are always reported as estimates.
    """
    bounded = clamp_int(intensity, INTENSITY_MIN, INTENSITY_MAX)
    base = bounded + _PRESET_BOOST[preset] + _SCENARIO_BOOST[scenario]

    if direction is SessionDirection.BETTER:
        return SessionEffectMetrics(
            heart_rate_downshift_bpm=min(14, base + 1),
            hrv_shift_ms=min(18, base + 3),
            recovery_slope=RecoverySlope.STRONG if base >= 8 else RecoverySlope.MODERATE,
            quality=quality,
        )
    if direction is SessionDirection.NEUTRAL:
        return SessionEffectMetrics(
            heart_rate_downshift_bpm=max(1, bounded // 2),
            hrv_shift_ms=max(1, bounded // 2),
            recovery_slope=RecoverySlope.MODERATE,
            quality=MeasurementQuality.ESTIMATED,
        )
    return SessionEffectMetrics(
        heart_rate_downshift_bpm=-max(2, bounded + 1),
        hrv_shift_ms=-max(1, bounded // 2),
        recovery_slope=RecoverySlope.SLOW,
        quality=MeasurementQuality.ESTIMATED,
    )


def _signed(value: int) -> str:
    return f"+{value}" if value > 0 else f"{value}"
