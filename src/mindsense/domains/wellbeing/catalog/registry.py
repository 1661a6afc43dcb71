"""Scenario catalog: in-memory index of loaded scenario content."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from mindsense.domains.wellbeing.domain_logic.metric_models import Scenario, SignalFocus
from mindsense.domains.wellbeing.domain_logic.recommendation_models import (
    DriverImpact,
    Preset,
    Recommendation,
)

logger = logging.getLogger(__name__)


class CatalogError(Exception):
    """Raised when catalog content is missing or malformed."""


@dataclass(frozen=True)
class ScenarioProfile:
    """User-facing content for one scenario: presets, drivers, default advice."""

    scenario: Scenario
    version: str
    default_recommendation: Recommendation
    presets: tuple[Preset, ...]
    primary_drivers: tuple[DriverImpact, ...] = ()
    secondary_drivers: tuple[DriverImpact, ...] = ()
    signal_narratives: dict[SignalFocus, str] = field(default_factory=dict, compare=False)
    insight_line: str = ""
    narrative: str = ""

    @property
    def drivers(self) -> tuple[DriverImpact, ...]:
        return self.primary_drivers + self.secondary_drivers


class ScenarioCatalog:
    """In-memory registry of scenario profiles, one per ``Scenario``."""

    def __init__(self) -> None:
        self._profiles: dict[Scenario, ScenarioProfile] = {}

    def register(self, profile: ScenarioProfile) -> None:
        """Add a scenario profile; each scenario may be registered once."""
        if profile.scenario in self._profiles:
            raise CatalogError(f"Duplicate scenario registered: {profile.scenario.value!r}")
        ids = [p.id for p in profile.presets]
        if len(ids) != len(set(ids)):
            raise CatalogError(f"Duplicate preset id in scenario {profile.scenario.value!r}")
        self._profiles[profile.scenario] = profile

    def get(self, scenario: Scenario) -> ScenarioProfile:
        """Look up a scenario profile.

        Raises:
            CatalogError: If the scenario was never loaded.
        """
        try:
            return self._profiles[scenario]
        except KeyError:
            raise CatalogError(f"Scenario not in catalog: {scenario.value!r}") from None

    def __contains__(self, scenario: Scenario) -> bool:
        return scenario in self._profiles

    def __len__(self) -> int:
        return len(self._profiles)
