"""Composite metric models and scenario constants.

Load, readiness and consistency live in [0, 100]. Stored metrics are integers
but callers may pass floats; rules compare them unrounded. Engines only ever
return deltas; callers apply them with ``Metrics.apply`` which re-clamps.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from enum import Enum


METRIC_MIN = 0
METRIC_MAX = 100


def clamp(value: float, lo: float, hi: float) -> float:
    """Clamp a value to [lo, hi]."""
    return max(lo, min(hi, value))


def clamp_int(value: float, lo: int, hi: int) -> int:
    """Clamp and truncate to an int in [lo, hi]."""
    return int(max(lo, min(hi, value)))


def round_half_away(value: float) -> int:
    """Round to the nearest int, halves away from zero (2.5 -> 3, -2.5 -> -3)."""
    magnitude = math.floor(abs(value) + 0.5)
    return magnitude if value >= 0 else -magnitude


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class SignalFocus(str, Enum):
    """The metric an experiment is training."""

    LOAD = "load"
    READINESS = "readiness"
    CONSISTENCY = "consistency"

    @property
    def title(self) -> str:
        return self.value.title()


class SessionDirection(str, Enum):
    """Self-reported outcome of a regulation session."""

    BETTER = "better"
    NEUTRAL = "neutral"
    WORSE = "worse"


class Scenario(str, Enum):
    """Simulated daily signal archetypes used for demo and test data."""

    HIGH_STRESS_DAY = "high_stress_day"
    BALANCED_DAY = "balanced_day"
    RECOVERY_WEEK = "recovery_week"

    @property
    def title(self) -> str:
        return _SCENARIO_TITLES[self][0]

    @property
    def subtitle(self) -> str:
        return _SCENARIO_TITLES[self][1]

    @property
    def default_day(self) -> int:
        return _SCENARIO_DEFAULT_DAY[self]

    @property
    def confidence_base(self) -> float:
        return _SCENARIO_CONFIDENCE[self]

    @property
    def base_metrics(self) -> Metrics:
        return _SCENARIO_BASE_METRICS[self]


# ---------------------------------------------------------------------------
# Metric records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MetricDelta:
    """Signed change on each composite metric."""

    load: int
    readiness: int
    consistency: int

    @classmethod
    def zero(cls) -> MetricDelta:
        return cls(load=0, readiness=0, consistency=0)

    @property
    def is_zero(self) -> bool:
        return self.load == 0 and self.readiness == 0 and self.consistency == 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class Metrics:
    """Snapshot of the three composite metrics."""

    load: float
    readiness: float
    consistency: float

    def bounded(self) -> Metrics:
        """Return a copy clamped to [0, 100] with fractional values kept."""
        return Metrics(
            load=clamp(self.load, METRIC_MIN, METRIC_MAX),
            readiness=clamp(self.readiness, METRIC_MIN, METRIC_MAX),
            consistency=clamp(self.consistency, METRIC_MIN, METRIC_MAX),
        )

    def clamped(self) -> Metrics:
        """Return an integer copy with every metric inside [0, 100]."""
        return Metrics(
            load=clamp_int(self.load, METRIC_MIN, METRIC_MAX),
            readiness=clamp_int(self.readiness, METRIC_MIN, METRIC_MAX),
            consistency=clamp_int(self.consistency, METRIC_MIN, METRIC_MAX),
        )

    def apply(self, delta: MetricDelta) -> Metrics:
        """Apply a delta and re-clamp to [0, 100]."""
        return Metrics(
            load=self.load + delta.load,
            readiness=self.readiness + delta.readiness,
            consistency=self.consistency + delta.consistency,
        ).clamped()

    def value_for(self, focus: SignalFocus) -> float:
        return getattr(self, focus.value)

    def to_dict(self) -> dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> Metrics:
        return cls(
            load=int(data.get("load", 0)),
            readiness=int(data.get("readiness", 0)),
            consistency=int(data.get("consistency", 0)),
        )


# ---------------------------------------------------------------------------
# Scenario tables
# ---------------------------------------------------------------------------

_SCENARIO_TITLES = {
    Scenario.HIGH_STRESS_DAY: ("High Stress Day", "Higher volatility, tighter recovery windows."),
    Scenario.BALANCED_DAY: ("Balanced Day", "Steady rhythm with manageable load."),
    Scenario.RECOVERY_WEEK: ("Recovery Week", "Recovery-first rhythm with lower daily strain."),
}

_SCENARIO_DEFAULT_DAY = {
    Scenario.HIGH_STRESS_DAY: 11,
    Scenario.BALANCED_DAY: 7,
    Scenario.RECOVERY_WEEK: 5,
}

_SCENARIO_CONFIDENCE = {
    Scenario.HIGH_STRESS_DAY: 0.76,
    Scenario.BALANCED_DAY: 0.84,
    Scenario.RECOVERY_WEEK: 0.89,
}

_SCENARIO_BASE_METRICS = {
    Scenario.HIGH_STRESS_DAY: Metrics(load=82, readiness=56, consistency=62),
    Scenario.BALANCED_DAY: Metrics(load=50, readiness=74, consistency=78),
    Scenario.RECOVERY_WEEK: Metrics(load=40, readiness=83, consistency=87),
}
