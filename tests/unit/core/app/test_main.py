"""Tests for the demo entry point."""

from __future__ import annotations

import json
import shutil

import pytest
from cryptography.fernet import Fernet

from mindsense.core.app.main import load_catalog, run
from mindsense.core.config.settings import Settings
from mindsense.domains.wellbeing.catalog.loader import PACKAGED_SCENARIO_DIR
from mindsense.domains.wellbeing.catalog.registry import CatalogError
from mindsense.domains.wellbeing.domain_logic.metric_models import Scenario


class TestLoadCatalog:
    def test_packaged_catalog_by_default(self):
        catalog = load_catalog(Settings(_env_file=None))
        assert len(catalog) == len(Scenario)

    def test_custom_catalog_directory(self, tmp_path):
        shutil.copy(PACKAGED_SCENARIO_DIR / "recovery_week.yaml", tmp_path)
        catalog = load_catalog(Settings(_env_file=None, catalog_path=str(tmp_path)))
        assert Scenario.RECOVERY_WEEK in catalog
        assert len(catalog) == 1

    def test_missing_catalog_directory_raises(self, tmp_path):
        with pytest.raises(CatalogError):
            load_catalog(Settings(_env_file=None, catalog_path=str(tmp_path / "nope")))


class TestRun:
    def test_prints_signed_out_snapshot(self, monkeypatch, tmp_path, capsys):
        monkeypatch.setenv("DB_PATH", str(tmp_path / "state.db"))
        monkeypatch.setenv("DEFAULT_SCENARIO", "high_stress_day")
        run()
        snapshot = json.loads(capsys.readouterr().out)
        assert snapshot["app_state"] == "signed_out"
        assert snapshot["route"] == "intro"
        assert snapshot["scenario"] == "high_stress_day"
        assert snapshot["recommendation"] is None

    def test_runs_with_encryption(self, monkeypatch, tmp_path, capsys):
        monkeypatch.setenv("DB_PATH", str(tmp_path / "state.db"))
        monkeypatch.setenv("ENCRYPTION_KEY", Fernet.generate_key().decode())
        run()
        first = json.loads(capsys.readouterr().out)
        run()
        second = json.loads(capsys.readouterr().out)
        assert first["scenario"] == second["scenario"] == "balanced_day"
        assert second["metrics"] == first["metrics"]
