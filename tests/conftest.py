"""Shared test fixtures for MindSense tests."""

from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENCRYPTION_KEY", "")
    monkeypatch.setenv("CATALOG_PATH", "")
    monkeypatch.setenv("DB_PATH", ":memory:")

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from mindsense.domains.wellbeing.domain_logic.metric_models import Metrics, Scenario  # noqa: E402
from mindsense.domains.wellbeing.domain_logic.recommendation_models import (  # noqa: E402
    RecommendationContext,
)

FIXED_NOW = datetime(2026, 3, 4, 15, 30, tzinfo=timezone.utc)


def _build_context(
    scenario: Scenario = Scenario.BALANCED_DAY,
    load: float = 50,
    readiness: float = 74,
    consistency: float = 78,
    confidence: float = 0.84,
    stress: int = 0,
    recovery: int = 0,
    caffeine: int = 0,
) -> RecommendationContext:
    """Create a recommendation context with balanced-day defaults."""
    return RecommendationContext(
        scenario=scenario,
        metrics=Metrics(load=load, readiness=readiness, consistency=consistency),
        base_metrics=scenario.base_metrics,
        confidence_score=confidence,
        stress_signals=stress,
        recovery_signals=recovery,
        caffeine_signals=caffeine,
    )


@pytest.fixture
def make_context():
    """Factory for recommendation contexts with balanced-day defaults."""
    return _build_context


@pytest.fixture
def now() -> datetime:
    """Fixed clock shared by engine and service tests."""
    return FIXED_NOW


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

@pytest.fixture
def catalog():
    """The packaged scenario catalog."""
    from mindsense.domains.wellbeing.catalog.loader import load_default_catalog

    return load_default_catalog()


# ---------------------------------------------------------------------------
# In-memory storage fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def state_db():
    """Create an in-memory StateDatabase for testing."""
    from mindsense.core.storage.database import StateDatabase

    db = StateDatabase(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def field_encryptor():
    """Create a FieldEncryptor with a test key."""
    from cryptography.fernet import Fernet

    from mindsense.core.storage.encryption import FieldEncryptor

    return FieldEncryptor(Fernet.generate_key().decode())


@pytest.fixture
def kv_store(state_db, field_encryptor):
    """Encrypted SQLite key-value store backed by in-memory SQLite."""
    from mindsense.core.storage.kv_store import SQLiteKeyValueStore

    return SQLiteKeyValueStore(state_db, field_encryptor)


@pytest.fixture
def memory_store():
    """Dict-backed key-value store."""
    from mindsense.core.storage.kv_store import InMemoryKeyValueStore

    return InMemoryKeyValueStore()
