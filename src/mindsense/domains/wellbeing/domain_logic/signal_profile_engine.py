"""Deterministic synthesis of demo signal profiles.

Scenario-specific generation parameters live in the lookup tables below;
the functions only read them. ``now`` is always passed in by the caller and
only moves timestamps: for a fixed (scenario, day) the episode ids,
intensities, timeline labels and quality components are identical.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Iterable

from mindsense.domains.wellbeing.domain_logic.metric_models import (
    Metrics,
    Scenario,
    clamp_int,
)
from mindsense.domains.wellbeing.domain_logic.recommendation_models import PresetID
from mindsense.domains.wellbeing.domain_logic.signal_profile_models import (
    EpisodeDriver,
    PermissionState,
    PermissionStatus,
    QualityBreakdown,
    SignalProfile,
    SignalType,
    StressEpisode,
    SyncSnapshot,
    TimelineSegment,
    TimelineState,
)

logger = logging.getLogger(__name__)

_EPISODE_NAMESPACE = uuid.UUID("7b1c4c7e-3f0a-4d55-9a8e-5d2f1b6e9c01")

SOURCE_LABEL = "Apple Watch (Demo)"
TIMELINE_WINDOW_HOURS = 12
RECOVERY_TAIL = timedelta(minutes=90)
EPISODE_STALE_AFTER = timedelta(hours=3)
MAX_EPISODES = 12

CLEARED_HINT = "Derived metrics cleared. Run Resync now to rebuild your state model."

# Vocabulary for user-supplied episode context
CONTEXT_TAGS = (
    "Meeting",
    "Caffeine",
    "Workout",
    "Commute",
    "Conflict",
    "Noise",
    "Screen overload",
    "Unknown",
)


# ---------------------------------------------------------------------------
# Generation tables
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EpisodeTemplate:
    """Episode placement relative to ``now`` (hours ago) plus its labels."""

    start_hours_ago: float
    end_hours_ago: float
    intensity: int
    confidence: int
    driver: EpisodeDriver
    preset: PresetID
    tags: tuple[str, ...] = ()
    note: str | None = None
    from_day: int = 0              # template only applies once the demo reaches this day


EPISODE_TEMPLATES: dict[Scenario, tuple[EpisodeTemplate, ...]] = {
    Scenario.HIGH_STRESS_DAY: (
        EpisodeTemplate(7.5, 6.9, 68, 66, EpisodeDriver.ENVIRONMENTAL, PresetID.CALM_NOW,
                        ("Commute",), from_day=14),
        EpisodeTemplate(4.8, 4.2, 79, 78, EpisodeDriver.COGNITIVE, PresetID.CALM_NOW,
                        ("Meeting",), "Stacked deadline handoff."),
        EpisodeTemplate(2.4, 1.9, 73, 70, EpisodeDriver.SOCIAL, PresetID.CALM_NOW),
        EpisodeTemplate(0.9, 0.2, 84, 76, EpisodeDriver.COGNITIVE, PresetID.FOCUS_PREP),
    ),
    Scenario.BALANCED_DAY: (
        EpisodeTemplate(4.1, 3.6, 56, 69, EpisodeDriver.PHYSICAL, PresetID.CALM_NOW,
                        ("Workout",), "Lunch run."),
        EpisodeTemplate(1.6, 0.9, 63, 71, EpisodeDriver.COGNITIVE, PresetID.FOCUS_PREP),
    ),
    Scenario.RECOVERY_WEEK: (
        EpisodeTemplate(3.5, 2.8, 44, 74, EpisodeDriver.ENVIRONMENTAL, PresetID.CALM_NOW,
                        ("Commute",)),
        EpisodeTemplate(1.2, 0.5, 51, 68, EpisodeDriver.SOCIAL, PresetID.CALM_NOW),
    ),
}

# Episode added by ``refresh`` when nothing recent is on record:
# (driver, intensity, confidence, preset)
GENERATED_EPISODE: dict[Scenario, tuple[EpisodeDriver, int, int, PresetID]] = {
    Scenario.HIGH_STRESS_DAY: (EpisodeDriver.COGNITIVE, 78, 74, PresetID.CALM_NOW),
    Scenario.BALANCED_DAY: (EpisodeDriver.SOCIAL, 62, 72, PresetID.FOCUS_PREP),
    Scenario.RECOVERY_WEEK: (EpisodeDriver.ENVIRONMENTAL, 49, 70, PresetID.FOCUS_PREP),
}

# Quality baselines: (sleep coverage, heart-rate density, HRV availability, watch wear)
BASE_QUALITY: dict[Scenario, tuple[int, int, int, int]] = {
    Scenario.HIGH_STRESS_DAY: (72, 84, 48, 68),
    Scenario.BALANCED_DAY: (86, 82, 78, 80),
    Scenario.RECOVERY_WEEK: (90, 79, 86, 88),
}

# Lower floor for each component after seeding / refreshing
_SEED_FLOORS = (36, 36, 24, 30)
_REFRESH_FLOORS = (42, 48, 28, 38)
_REFRESH_CEILINGS = (99, 99, 97, 99)
_CLEARED_CEILINGS = (35, 30, 22, 28)


# ---------------------------------------------------------------------------
# Public operations
# ---------------------------------------------------------------------------

def seed(scenario: Scenario, day: int, now: datetime) -> SignalProfile:
    """Build the initial profile for a scenario on a given demo day."""
    permissions = default_permissions()
    episodes = _seeded_episodes(scenario, day, now)
    quality = _day_adjusted_quality(scenario, day)
    quality = replace(quality, action_hint=action_hint(quality, permissions))

    hrv_sample = now - timedelta(seconds=2_800) if _granted(permissions, SignalType.HRV) else None
    logger.debug("Seeded %s profile for day %d with %d episodes", scenario.value, day, len(episodes))

    return SignalProfile(
        is_connected=True,
        sync=SyncSnapshot(
            source_label=SOURCE_LABEL,
            last_sync_at=now - timedelta(seconds=480),
            last_sleep_import_at=now - timedelta(seconds=4_500),
            last_hrv_sample_at=hrv_sample,
        ),
        quality=quality,
        permissions=permissions,
        timeline=_timeline(episodes, now),
        episodes=episodes,
    )


def refresh(
    existing: SignalProfile,
    scenario: Scenario,
    metrics: Metrics,
    day: int,
    completed_session_count: int,
    active_experiment_adherence: int,
    now: datetime,
    update_sync_timestamp: bool,
) -> SignalProfile:
    """Fold the latest metrics and engagement into a profile.

    Quality components are recomputed from the day-adjusted baseline:
    completed sessions raise heart-rate density, experiment adherence raises
    sleep coverage, and high load or low consistency pull them down.
    """
    current = metrics.clamped()
    baseline = _day_adjusted_quality(scenario, day)

    session_boost = min(max(0, completed_session_count) * 2, 10)
    adherence_boost = min(clamp_int(active_experiment_adherence, 0, 100) // 12, 8)
    load_penalty = max(0, (current.load - 72) // 4)

    sleep_floor, hr_floor, hrv_floor, wear_floor = _REFRESH_FLOORS
    sleep_cap, hr_cap, hrv_cap, wear_cap = _REFRESH_CEILINGS

    quality = QualityBreakdown(
        sleep_coverage=clamp_int(
            baseline.sleep_coverage + adherence_boost - load_penalty, sleep_floor, sleep_cap
        ),
        heart_rate_density=clamp_int(
            baseline.heart_rate_density + session_boost - (4 if current.load > 86 else 0),
            hr_floor,
            hr_cap,
        ),
        hrv_availability=clamp_int(
            baseline.hrv_availability + (2 if current.readiness > 74 else -1), hrv_floor, hrv_cap
        ),
        watch_wear=clamp_int(
            baseline.watch_wear + (2 if day > 10 else 0) - (3 if current.consistency < 58 else 0),
            wear_floor,
            wear_cap,
        ),
        action_hint="",
    )
    quality = replace(quality, action_hint=action_hint(quality, existing.permissions))

    sync = existing.sync
    if update_sync_timestamp:
        hrv_granted = _granted(existing.permissions, SignalType.HRV)
        sync = replace(
            sync,
            last_sync_at=now,
            last_sleep_import_at=now - timedelta(seconds=2_400),
            last_hrv_sample_at=now - timedelta(seconds=1_900) if hrv_granted else None,
        )

    episodes = list(existing.episodes)
    if all(now - episode.end > EPISODE_STALE_AFTER for episode in episodes):
        episodes.append(_generated_episode(scenario, now))
    episodes.sort(key=lambda e: e.start)
    episodes = episodes[-MAX_EPISODES:]

    return replace(
        existing,
        sync=sync,
        quality=quality,
        episodes=tuple(episodes),
        timeline=_timeline(episodes, now),
    )


def clear_derived(existing: SignalProfile, now: datetime) -> SignalProfile:
    """Drop episodes and timeline and apply the confidence penalty.

    Each quality component drops to ``min(ceiling, component // 2)``, so the
    score is strictly lower than before unless it was already zero.
    Permissions and the connection flag are untouched.
    """
    q = existing.quality
    sleep_cap, hr_cap, hrv_cap, wear_cap = _CLEARED_CEILINGS
    quality = QualityBreakdown(
        sleep_coverage=min(sleep_cap, q.sleep_coverage // 2),
        heart_rate_density=min(hr_cap, q.heart_rate_density // 2),
        hrv_availability=min(hrv_cap, q.hrv_availability // 2),
        watch_wear=min(wear_cap, q.watch_wear // 2),
        action_hint=CLEARED_HINT,
    )
    logger.info("Cleared derived signal data (quality %.2f -> %.2f)", q.score, quality.score)
    return replace(
        existing,
        episodes=(),
        timeline=(),
        quality=quality,
        sync=replace(existing.sync, last_sync_at=now),
    )


def rebuild_derived(
    existing: SignalProfile,
    scenario: Scenario,
    day: int,
    now: datetime,
) -> SignalProfile:
    """Re-seed derived data while keeping the user's permission choices."""
    rebuilt = seed(scenario, day, now)
    hint = action_hint(rebuilt.quality, existing.permissions)
    return replace(
        rebuilt,
        permissions=existing.permissions,
        quality=replace(rebuilt.quality, action_hint=hint),
    )


def annotate_episode(
    existing: SignalProfile,
    episode_id: str,
    tags: Iterable[str],
    note: str | None = None,
) -> SignalProfile:
    """Replace the context tags and note on one episode.

    Tags must come from ``CONTEXT_TAGS``; they are de-duplicated and kept in
    vocabulary order. A blank note clears it. Timestamps, ordering and the
    timeline are unchanged.

    Raises:
        ValueError: If the episode is unknown or a tag is not recognised.
    """
    chosen = set(tags)
    unknown = chosen - set(CONTEXT_TAGS)
    if unknown:
        raise ValueError(f"Unknown context tags: {sorted(unknown)}")
    if not any(e.id == episode_id for e in existing.episodes):
        raise ValueError(f"No episode with id {episode_id!r}")

    ordered = tuple(tag for tag in CONTEXT_TAGS if tag in chosen)
    cleaned = note.strip() if note else None
    episodes = tuple(
        replace(e, user_tags=ordered, user_note=cleaned or None) if e.id == episode_id else e
        for e in existing.episodes
    )
    return replace(existing, episodes=episodes)


def default_permissions() -> tuple[PermissionStatus, ...]:
    """One granted permission per known signal type."""
    return tuple(PermissionStatus(signal=s, state=PermissionState.GRANTED) for s in SignalType)


def action_hint(quality: QualityBreakdown, permissions: tuple[PermissionStatus, ...]) -> str:
    """Pick the single most useful data-quality fix."""
    if not _granted(permissions, SignalType.HRV):
        return "Grant HRV permission to improve stress episode confidence."
    if not _granted(permissions, SignalType.SLEEP):
        return "Grant Sleep permission so readiness can be calibrated."
    if quality.sleep_coverage < 68:
        return "Wear your watch overnight for the next 3 nights."
    if quality.heart_rate_density < 68:
        return "Enable Background App Refresh to increase heart-rate coverage."
    if quality.hrv_availability < 60:
        return "Keep your watch snug overnight to raise HRV sample availability."
    if quality.watch_wear < 68:
        return "Keep your watch on during the day to improve state updates."
    return "Data quality is strong."


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _granted(permissions: tuple[PermissionStatus, ...], signal: SignalType) -> bool:
    return any(p.signal is signal and p.state is PermissionState.GRANTED for p in permissions)


def _day_adjusted_quality(scenario: Scenario, day: int) -> QualityBreakdown:
    sleep, heart_rate, hrv, wear = BASE_QUALITY[scenario]
    lift = clamp_int(day - 6, -4, 8)
    half_lift = int(lift / 2)
    sleep_floor, hr_floor, hrv_floor, wear_floor = _SEED_FLOORS
    return QualityBreakdown(
        sleep_coverage=clamp_int(sleep + lift, sleep_floor, 99),
        heart_rate_density=clamp_int(heart_rate + half_lift, hr_floor, 99),
        hrv_availability=clamp_int(hrv + half_lift, hrv_floor, 98),
        watch_wear=clamp_int(wear + lift, wear_floor, 99),
        action_hint="",
    )


def _seeded_episodes(scenario: Scenario, day: int, now: datetime) -> tuple[StressEpisode, ...]:
    episodes = [
        StressEpisode(
            id=str(uuid.uuid5(_EPISODE_NAMESPACE, f"{scenario.value}:{day}:{index}")),
            start=now - timedelta(hours=t.start_hours_ago),
            end=now - timedelta(hours=t.end_hours_ago),
            intensity=t.intensity,
            confidence=t.confidence,
            likely_driver=t.driver,
            recommended_preset=t.preset,
            user_tags=t.tags,
            user_note=t.note,
        )
        for index, t in enumerate(EPISODE_TEMPLATES[scenario])
        if day >= t.from_day
    ]
    return tuple(sorted(episodes, key=lambda e: e.start))


def _generated_episode(scenario: Scenario, now: datetime) -> StressEpisode:
    driver, intensity, confidence, preset = GENERATED_EPISODE[scenario]
    start = now - timedelta(seconds=3_200)
    logger.debug("Generated %s episode for %s", driver.value, scenario.value)
    return StressEpisode(
        id=str(uuid.uuid5(_EPISODE_NAMESPACE, f"{scenario.value}:generated:{start.isoformat()}")),
        start=start,
        end=now - timedelta(seconds=900),
        intensity=intensity,
        confidence=confidence,
        likely_driver=driver,
        recommended_preset=preset,
    )


def _timeline(episodes, now: datetime) -> tuple[TimelineSegment, ...]:
    """Hourly segments covering the trailing window, oldest first.

    A segment is ``activated`` when it overlaps an episode, ``recovery`` when
    it overlaps the 90 minutes after one, otherwise ``stable``.
    """
    hour = timedelta(hours=1)
    window_start = now - TIMELINE_WINDOW_HOURS * hour
    segments = []
    for index in range(TIMELINE_WINDOW_HOURS):
        seg_start = window_start + index * hour
        seg_end = seg_start + hour
        if any(_overlaps(seg_start, seg_end, e.start, e.end) for e in episodes):
            state = TimelineState.ACTIVATED
        elif any(_overlaps(seg_start, seg_end, e.end, e.end + RECOVERY_TAIL) for e in episodes):
            state = TimelineState.RECOVERY
        else:
            state = TimelineState.STABLE
        segments.append(TimelineSegment(start=seg_start, end=seg_end, state=state))
    return tuple(segments)


def _overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    return start_a < end_b and start_b < end_a
