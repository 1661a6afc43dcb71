"""Bootstrap service: seed demo state and resolve what the app shows at launch.

Stored keys (all JSON values in the ``KeyValueStore``):

- ``demo.scenario.v1``: scenario value
- ``demo.day.v1``: demo day (int >= 1)
- ``demo.metrics.v1``: current ``Metrics``
- ``demo.health_profile.v1``: ``SignalProfile.to_dict()``
- ``demo.last_updated.v1``: ISO-8601 timestamp
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable

from mindsense.core.storage.kv_store import KeyValueStore
from mindsense.domains.wellbeing.catalog.registry import ScenarioCatalog
from mindsense.domains.wellbeing.domain_logic import (
    recommendation_engine,
    signal_profile_engine,
)
from mindsense.domains.wellbeing.domain_logic.app_state import (
    AppState,
    LaunchDataLoaded,
    OnboardingProgress,
    RootRoute,
    reduce,
    root_route,
)
from mindsense.domains.wellbeing.domain_logic.metric_models import (
    Metrics,
    Scenario,
    clamp,
)
from mindsense.domains.wellbeing.domain_logic.recommendation_models import (
    DriverImpact,
    Recommendation,
    RecommendationContext,
)
from mindsense.domains.wellbeing.domain_logic.signal_profile_models import (
    SignalProfile,
    TimelineState,
)
from mindsense.domains.wellbeing.services.account_store import AccountStore

logger = logging.getLogger(__name__)

SCENARIO_KEY = "demo.scenario.v1"
DAY_KEY = "demo.day.v1"
METRICS_KEY = "demo.metrics.v1"
PROFILE_KEY = "demo.health_profile.v1"
LAST_UPDATED_KEY = "demo.last_updated.v1"

DEMO_KEYS = (SCENARIO_KEY, DAY_KEY, METRICS_KEY, PROFILE_KEY, LAST_UPDATED_KEY)

# Window of recent activity counted as stress / recovery / caffeine signals
SIGNAL_WINDOW = timedelta(hours=6)
STRESS_SIGNAL_INTENSITY = 60

CONFIDENCE_MIN = 0.42
CONFIDENCE_MAX = 0.98
TOP_DRIVER_COUNT = 3


@dataclass(frozen=True)
class LaunchSnapshot:
    """Everything the root screen needs on launch."""

    app_state: AppState
    route: RootRoute
    scenario: Scenario
    day: int
    metrics: Metrics
    quality_score: float
    recommendation: Recommendation | None = None
    drivers: tuple[DriverImpact, ...] = field(default=())
    insight_line: str = ""
    narrative: str = ""

    def to_dict(self) -> dict:
        return {
            "app_state": self.app_state.value,
            "route": self.route.value,
            "scenario": self.scenario.value,
            "scenario_title": self.scenario.title,
            "scenario_subtitle": self.scenario.subtitle,
            "day": self.day,
            "metrics": self.metrics.to_dict(),
            "quality_score": self.quality_score,
            "recommendation": self.recommendation.to_dict() if self.recommendation else None,
            "drivers": [d.to_dict() for d in self.drivers],
            "insight_line": self.insight_line,
            "narrative": self.narrative,
        }


class BootstrapService:
    """Seeds demo defaults and resolves the launch snapshot.

    Usage::

        service = BootstrapService(store, load_default_catalog())
        service.seed_defaults_if_needed(now)
        snapshot = service.launch_snapshot(now)
    """

    def __init__(
        self,
        store: KeyValueStore,
        catalog: ScenarioCatalog,
        default_scenario: Scenario = Scenario.BALANCED_DAY,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._default_scenario = default_scenario
        self.accounts = AccountStore(store)

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    def seed_defaults_if_needed(self, now: datetime) -> list[str]:
        """Write each missing demo key; existing values are left alone.

        Returns the keys that were written.
        """
        scenario = self._stored_scenario()
        day = self._stored_day(scenario)
        defaults = {
            SCENARIO_KEY: lambda: scenario.value,
            DAY_KEY: lambda: day,
            METRICS_KEY: lambda: scenario.base_metrics.to_dict(),
            PROFILE_KEY: lambda: signal_profile_engine.seed(scenario, day, now).to_dict(),
            LAST_UPDATED_KEY: lambda: now.isoformat(),
        }

        written = []
        for key, value in defaults.items():
            if self._store.contains(key):
                continue
            self._store.save(key, value())
            written.append(key)

        if written:
            logger.info("Seeded demo defaults for %s: %s", scenario.value, ", ".join(written))
        return written

    def reset(self) -> None:
        """Remove all seeded demo state. Account records are kept."""
        for key in DEMO_KEYS:
            self._store.remove(key)
        logger.info("Demo state reset")

    def annotate_episode(
        self,
        episode_id: str,
        tags: Iterable[str],
        now: datetime,
        note: str | None = None,
    ) -> SignalProfile:
        """Tag a stored episode with user context and persist the profile.

        Tagged ``Caffeine`` episodes feed the caffeine signal count used by
        the recommendation drivers.
        """
        scenario = self._stored_scenario()
        profile = self._stored_profile(scenario, self._stored_day(scenario), now)
        updated = signal_profile_engine.annotate_episode(profile, episode_id, tags, note)
        self._store.save(PROFILE_KEY, updated.to_dict())
        self._store.save(LAST_UPDATED_KEY, now.isoformat())
        logger.info("Annotated episode %s", episode_id)
        return updated

    # ------------------------------------------------------------------
    # Launch
    # ------------------------------------------------------------------

    def launch_snapshot(self, now: datetime) -> LaunchSnapshot:
        """Resolve the launch state and, when ready, today's recommendation."""
        session = self.accounts.load_session()
        onboarding = (
            self.accounts.load_onboarding(session.email) if session else OnboardingProgress()
        )
        state = reduce(AppState.LAUNCHING, LaunchDataLoaded(session, onboarding))
        route = root_route(state, self.accounts.has_seen_intro())

        scenario = self._stored_scenario()
        day = self._stored_day(scenario)
        metrics = self._stored_metrics(scenario)
        profile = self._stored_profile(scenario, day, now)
        logger.info("Launch resolved to %s (%s)", state.value, route.value)

        snapshot = LaunchSnapshot(
            app_state=state,
            route=route,
            scenario=scenario,
            day=day,
            metrics=metrics,
            quality_score=profile.quality.score,
        )
        if state is not AppState.READY:
            return snapshot

        content = self._catalog.get(scenario)
        context = self.recommendation_context(scenario, metrics, profile, now)
        recommendation = recommendation_engine.primary_recommendation(
            context, content.presets, content.default_recommendation
        )
        drivers = recommendation_engine.rank_drivers(content.drivers, context)
        return LaunchSnapshot(
            app_state=state,
            route=route,
            scenario=scenario,
            day=day,
            metrics=metrics,
            quality_score=profile.quality.score,
            recommendation=recommendation,
            drivers=tuple(drivers[:TOP_DRIVER_COUNT]),
            insight_line=content.insight_line,
            narrative=content.narrative,
        )

    @staticmethod
    def recommendation_context(
        scenario: Scenario,
        metrics: Metrics,
        profile: SignalProfile,
        now: datetime,
    ) -> RecommendationContext:
        """Build the recommendation inputs from stored metrics and recent signals.

        Stress signals are intense episodes that ended inside the signal
        window, recovery signals are recovery timeline segments inside it,
        and caffeine signals are episodes tagged ``Caffeine``.
        """
        window_start = now - SIGNAL_WINDOW
        recent = [e for e in profile.episodes if e.end >= window_start]
        confidence = clamp(
            scenario.confidence_base + (profile.quality.score - 0.5) * 0.22,
            CONFIDENCE_MIN,
            CONFIDENCE_MAX,
        )
        return RecommendationContext(
            scenario=scenario,
            metrics=metrics,
            base_metrics=scenario.base_metrics,
            confidence_score=confidence,
            stress_signals=sum(1 for e in recent if e.intensity >= STRESS_SIGNAL_INTENSITY),
            recovery_signals=sum(
                1
                for s in profile.timeline
                if s.state is TimelineState.RECOVERY and s.end >= window_start
            ),
            caffeine_signals=sum(1 for e in recent if "Caffeine" in e.user_tags),
        )

    # ------------------------------------------------------------------
    # Stored values
    # ------------------------------------------------------------------

    def _stored_scenario(self) -> Scenario:
        raw = self._store.load(SCENARIO_KEY)
        if raw is None:
            return self._default_scenario
        try:
            return Scenario(raw)
        except ValueError:
            logger.warning("Unknown stored scenario %r; using %s", raw, self._default_scenario.value)
            return self._default_scenario

    def _stored_day(self, scenario: Scenario) -> int:
        raw = self._store.load(DAY_KEY)
        if raw is None:
            return scenario.default_day
        return max(1, int(raw))

    def _stored_metrics(self, scenario: Scenario) -> Metrics:
        raw = self._store.load(METRICS_KEY)
        if raw is None:
            return scenario.base_metrics
        return Metrics.from_dict(raw)

    def _stored_profile(self, scenario: Scenario, day: int, now: datetime) -> SignalProfile:
        raw = self._store.load(PROFILE_KEY)
        if raw is None:
            return signal_profile_engine.seed(scenario, day, now)
        return SignalProfile.from_dict(raw)
