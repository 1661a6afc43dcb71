"""Recommendation, preset and driver models."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Callable

from mindsense.domains.wellbeing.domain_logic.metric_models import Metrics, Scenario


class PresetID(str, Enum):
    """Guided regulation protocols the engine can recommend."""

    CALM_NOW = "calm_now"
    FOCUS_PREP = "focus_prep"
    SLEEP_DOWNSHIFT = "sleep_downshift"

    @property
    def title(self) -> str:
        return self.value.replace("_", " ").capitalize()


@dataclass(frozen=True)
class Preset:
    """One entry of the per-scenario preset catalog."""

    id: PresetID
    title: str
    subtitle: str
    duration_minutes: int
    expected_effect: str
    why_now: str
    protocol_steps: tuple[str, ...] = ()

    @property
    def duration_label(self) -> str:
        return f"{self.duration_minutes} min"

    @property
    def duration_seconds(self) -> int:
        return self.duration_minutes * 60


@dataclass(frozen=True)
class Recommendation:
    """A single next action with its rationale."""

    preset: PresetID
    what: str
    why: str
    expected_effect: str
    time_minutes: int
    rule_id: str = "fallback"

    @property
    def summary_line(self) -> str:
        return (
            f"What: {self.what} Why: {self.why} "
            f"Expected effect: {self.expected_effect} Time: {self.time_minutes} min."
        )

    def to_dict(self) -> dict:
        data = asdict(self)
        data["preset"] = self.preset.value
        return data


@dataclass(frozen=True)
class DriverImpact:
    """A named contributing factor; higher impact sorts first."""

    id: str
    name: str
    detail: str
    impact: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class RecommendationContext:
    """Inputs for one recommendation request."""

    scenario: Scenario
    metrics: Metrics
    base_metrics: Metrics
    confidence_score: float
    stress_signals: int = 0
    recovery_signals: int = 0
    caffeine_signals: int = 0


@dataclass(frozen=True)
class RecommendationRule:
    """One entry of the ordered decision list; lower priority is checked first.

    ``what`` and ``why`` are ``str.format`` templates receiving ``load``,
    ``readiness``, ``consistency`` and ``spread`` (readiness minus load).
    """

    id: str
    priority: int
    preset: PresetID
    predicate: Callable[[RecommendationContext], bool] = field(compare=False)
    what: str
    why: str
