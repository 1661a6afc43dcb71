"""MindSense demo entry point: ``python -m mindsense.core.app.main``.

Opens the state store, seeds demo defaults on first run and prints the
launch snapshot as JSON.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

from mindsense.core.config.settings import Settings, get_settings
from mindsense.core.storage.database import StateDatabase
from mindsense.core.storage.encryption import FieldEncryptor
from mindsense.core.storage.kv_store import SQLiteKeyValueStore
from mindsense.domains.wellbeing.catalog.loader import (
    load_catalog_directory,
    load_default_catalog,
)
from mindsense.domains.wellbeing.catalog.registry import ScenarioCatalog
from mindsense.domains.wellbeing.domain_logic.metric_models import Scenario
from mindsense.domains.wellbeing.services.bootstrap import BootstrapService


def load_catalog(settings: Settings) -> ScenarioCatalog:
    """Packaged catalog, or the directory named by ``catalog_path``."""
    if not settings.catalog_path:
        return load_default_catalog()
    catalog = ScenarioCatalog()
    load_catalog_directory(settings.catalog_path, catalog)
    return catalog


def run() -> None:
    """Bootstrap the demo state and print the launch snapshot."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.mindsense_log_level.upper(), logging.INFO)
    )
    logger = logging.getLogger(__name__)

    encryptor = FieldEncryptor(settings.encryption_key) if settings.encryption_key else None
    if encryptor is None:
        logger.warning("No encryption key configured; state is stored as plain JSON")

    now = datetime.now(timezone.utc)
    with StateDatabase(settings.db_path) as db:
        store = SQLiteKeyValueStore(db, encryptor)
        service = BootstrapService(
            store,
            load_catalog(settings),
            default_scenario=Scenario(settings.default_scenario),
        )
        service.seed_defaults_if_needed(now)
        snapshot = service.launch_snapshot(now)

    print(json.dumps(snapshot.to_dict(), indent=2))


if __name__ == "__main__":
    run()
