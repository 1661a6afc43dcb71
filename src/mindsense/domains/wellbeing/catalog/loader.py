"""Catalog loader: reads scenario YAML definitions from disk."""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

from mindsense.domains.wellbeing.catalog.registry import (
    CatalogError,
    ScenarioCatalog,
    ScenarioProfile,
)
from mindsense.domains.wellbeing.domain_logic.metric_models import Scenario, SignalFocus
from mindsense.domains.wellbeing.domain_logic.recommendation_models import (
    DriverImpact,
    Preset,
    PresetID,
    Recommendation,
)

logger = logging.getLogger(__name__)

PACKAGED_SCENARIO_DIR = Path(__file__).resolve().parent / "scenarios"


def load_catalog_directory(directory: str | Path, catalog: ScenarioCatalog) -> int:
    """Load all YAML scenario definitions from a directory.

    Returns the number of scenarios loaded.
    Skips files starting with underscore.

    Raises:
        CatalogError: If a file is malformed or a scenario is registered twice.
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise CatalogError(f"Catalog directory does not exist: {directory}")

    count = 0
    for path in sorted(directory.glob("*.yaml")):
        if path.name.startswith("_"):
            continue
        profile = load_scenario_file(path)
        catalog.register(profile)
        count += 1
        logger.info("Loaded scenario: %s (v%s)", profile.scenario.value, profile.version)
    return count


def load_scenario_file(path: Path) -> ScenarioProfile:
    """Parse a YAML file into a ScenarioProfile."""
    with open(path, encoding="utf-8") as f:
        data: dict[str, Any] = yaml.safe_load(f) or {}

    try:
        scenario = Scenario(data["scenario"])
        rec = data["default_recommendation"]
        return ScenarioProfile(
            scenario=scenario,
            version=str(data.get("version", "1.0.0")),
            default_recommendation=Recommendation(
                preset=PresetID(rec["preset"]),
                what=rec["what"],
                why=rec["why"],
                expected_effect=rec["expected_effect"],
                time_minutes=int(rec["time_minutes"]),
            ),
            presets=tuple(_preset(p) for p in data.get("presets", [])),
            primary_drivers=tuple(_driver(d) for d in data.get("primary_drivers", [])),
            secondary_drivers=tuple(_driver(d) for d in data.get("secondary_drivers", [])),
            signal_narratives={
                SignalFocus(k): v for k, v in data.get("signal_narratives", {}).items()
            },
            insight_line=data.get("insight_line", ""),
            narrative=data.get("narrative", "").strip(),
        )
    except (KeyError, ValueError, TypeError) as exc:
        raise CatalogError(f"Malformed scenario file {path.name}: {exc}") from exc


@lru_cache(maxsize=None)
def load_default_catalog() -> ScenarioCatalog:
    """Load the packaged catalog once per process."""
    catalog = ScenarioCatalog()
    load_catalog_directory(PACKAGED_SCENARIO_DIR, catalog)
    missing = [s.value for s in Scenario if s not in catalog]
    if missing:
        raise CatalogError(f"Packaged catalog is missing scenarios: {missing}")
    return catalog


def _preset(data: dict[str, Any]) -> Preset:
    return Preset(
        id=PresetID(data["id"]),
        title=data["title"],
        subtitle=data.get("subtitle", ""),
        duration_minutes=int(data["duration_minutes"]),
        expected_effect=data.get("expected_effect", ""),
        why_now=data.get("why_now", ""),
        protocol_steps=tuple(data.get("protocol_steps", [])),
    )


def _driver(data: dict[str, Any]) -> DriverImpact:
    return DriverImpact(
        id=data["id"],
        name=data["name"],
        detail=data.get("detail", ""),
        impact=float(data["impact"]),
    )
