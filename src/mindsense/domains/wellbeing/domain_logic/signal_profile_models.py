"""Synthetic signal profile models.

A ``SignalProfile`` is the bundle of permissions, stress episodes, timeline
and data-quality metadata that stands in for a day of wearable data.
Profiles are frozen; the engine returns new instances via ``replace``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from mindsense.domains.wellbeing.domain_logic.recommendation_models import PresetID


class SignalType(str, Enum):
    SLEEP = "sleep"
    HEART_RATE = "heart_rate"
    HRV = "hrv"
    RESTING_HEART_RATE = "resting_heart_rate"
    WORKOUTS = "workouts"
    ACTIVITY = "activity"
    RESPIRATORY_RATE = "respiratory_rate"
    MINDFUL_MINUTES = "mindful_minutes"
    ENVIRONMENTAL_AUDIO = "environmental_audio"


class PermissionState(str, Enum):
    GRANTED = "granted"
    MISSING = "missing"
    UNSUPPORTED = "unsupported"


class TimelineState(str, Enum):
    STABLE = "stable"
    ACTIVATED = "activated"
    RECOVERY = "recovery"


class EpisodeDriver(str, Enum):
    COGNITIVE = "cognitive"
    PHYSICAL = "physical"
    SOCIAL = "social"
    ENVIRONMENTAL = "environmental"


# Quality component weights: sleep coverage, heart-rate density,
# HRV availability, watch wear.
QUALITY_WEIGHTS = (0.34, 0.27, 0.22, 0.17)


@dataclass(frozen=True)
class PermissionStatus:
    signal: SignalType
    state: PermissionState


@dataclass(frozen=True)
class StressEpisode:
    """A detected stress activation window."""

    id: str
    start: datetime
    end: datetime
    intensity: int                 # 0-100
    confidence: int                # 0-100
    likely_driver: EpisodeDriver
    recommended_preset: PresetID
    user_tags: tuple[str, ...] = ()
    user_note: str | None = None

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)


@dataclass(frozen=True)
class TimelineSegment:
    start: datetime
    end: datetime
    state: TimelineState


@dataclass(frozen=True)
class QualityBreakdown:
    """Data-quality components (each 0-100) and the user-facing hint."""

    sleep_coverage: int
    heart_rate_density: int
    hrv_availability: int
    watch_wear: int
    action_hint: str

    @property
    def score(self) -> float:
        """Weighted quality in [0, 1]."""
        components = (
            self.sleep_coverage,
            self.heart_rate_density,
            self.hrv_availability,
            self.watch_wear,
        )
        weighted = sum(w * c for w, c in zip(QUALITY_WEIGHTS, components))
        return round(max(0.0, min(100.0, weighted)) / 100, 4)


@dataclass(frozen=True)
class SyncSnapshot:
    source_label: str
    last_sync_at: datetime
    last_sleep_import_at: datetime
    last_hrv_sample_at: datetime | None = None


@dataclass(frozen=True)
class SignalProfile:
    is_connected: bool
    sync: SyncSnapshot
    quality: QualityBreakdown
    permissions: tuple[PermissionStatus, ...]
    timeline: tuple[TimelineSegment, ...] = ()
    episodes: tuple[StressEpisode, ...] = ()

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        """Flat, JSON-ready representation for the presentation layer."""
        return {
            "is_connected": self.is_connected,
            "sync": {
                "source_label": self.sync.source_label,
                "last_sync_at": self.sync.last_sync_at.isoformat(),
                "last_sleep_import_at": self.sync.last_sleep_import_at.isoformat(),
                "last_hrv_sample_at": (
                    self.sync.last_hrv_sample_at.isoformat()
                    if self.sync.last_hrv_sample_at
                    else None
                ),
            },
            "quality": {
                "sleep_coverage": self.quality.sleep_coverage,
                "heart_rate_density": self.quality.heart_rate_density,
                "hrv_availability": self.quality.hrv_availability,
                "watch_wear": self.quality.watch_wear,
                "action_hint": self.quality.action_hint,
                "score": self.quality.score,
            },
            "permissions": {p.signal.value: p.state.value for p in self.permissions},
            "timeline": [
                {"start": s.start.isoformat(), "end": s.end.isoformat(), "state": s.state.value}
                for s in self.timeline
            ],
            "episodes": [
                {
                    "id": e.id,
                    "start": e.start.isoformat(),
                    "end": e.end.isoformat(),
                    "intensity": e.intensity,
                    "confidence": e.confidence,
                    "likely_driver": e.likely_driver.value,
                    "recommended_preset": e.recommended_preset.value,
                    "user_tags": list(e.user_tags),
                    "user_note": e.user_note,
                }
                for e in self.episodes
            ],
        }

    @classmethod
    def from_dict(cls, data: dict) -> SignalProfile:
        """Rebuild a profile from ``to_dict`` output."""
        sync = data["sync"]
        quality = data["quality"]
        hrv_sample = sync.get("last_hrv_sample_at")
        return cls(
            is_connected=bool(data.get("is_connected", False)),
            sync=SyncSnapshot(
                source_label=sync.get("source_label", ""),
                last_sync_at=datetime.fromisoformat(sync["last_sync_at"]),
                last_sleep_import_at=datetime.fromisoformat(sync["last_sleep_import_at"]),
                last_hrv_sample_at=datetime.fromisoformat(hrv_sample) if hrv_sample else None,
            ),
            quality=QualityBreakdown(
                sleep_coverage=int(quality["sleep_coverage"]),
                heart_rate_density=int(quality["heart_rate_density"]),
                hrv_availability=int(quality["hrv_availability"]),
                watch_wear=int(quality["watch_wear"]),
                action_hint=quality.get("action_hint", ""),
            ),
            permissions=tuple(
                PermissionStatus(signal=SignalType(k), state=PermissionState(v))
                for k, v in data.get("permissions", {}).items()
            ),
            timeline=tuple(
                TimelineSegment(
                    start=datetime.fromisoformat(s["start"]),
                    end=datetime.fromisoformat(s["end"]),
                    state=TimelineState(s["state"]),
                )
                for s in data.get("timeline", [])
            ),
            episodes=tuple(
                StressEpisode(
                    id=e["id"],
                    start=datetime.fromisoformat(e["start"]),
                    end=datetime.fromisoformat(e["end"]),
                    intensity=int(e["intensity"]),
                    confidence=int(e["confidence"]),
                    likely_driver=EpisodeDriver(e["likely_driver"]),
                    recommended_preset=PresetID(e["recommended_preset"]),
                    user_tags=tuple(e.get("user_tags", [])),
                    user_note=e.get("user_note"),
                )
                for e in data.get("episodes", [])
            ),
        )
