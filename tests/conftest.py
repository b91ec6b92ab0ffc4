from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Mapping, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from extcatalog.catalog.seed import seed_catalog  # noqa: E402
from extcatalog.catalog.service import CatalogService  # noqa: E402
from extcatalog.catalog.sql_store import SqlCatalogStore  # noqa: E402
from extcatalog.catalog.store import InMemoryCatalogStore  # noqa: E402
from extcatalog.config import feature_flags, load_settings  # noqa: E402
from extcatalog.config.settings import ENV_OVERRIDES  # noqa: E402


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path, monkeypatch):
    """Point config lookups at an empty per-test file."""
    monkeypatch.setenv("EXTCATALOG_CONFIG", str(tmp_path / "extcatalog.json"))
    for names in ENV_OVERRIDES.values():
        for name in names:
            monkeypatch.delenv(name, raising=False)
    feature_flags.refresh_cache()
    load_settings(refresh=True)
    yield
    feature_flags.refresh_cache()
    load_settings(refresh=True)


@pytest.fixture
def write_config(tmp_path) -> Callable[..., Path]:
    def _write(
        *,
        features: Optional[Mapping[str, bool]] = None,
        settings: Optional[Mapping[str, Any]] = None,
    ) -> Path:
        path = tmp_path / "extcatalog.json"
        payload: dict[str, Any] = {}
        if features is not None:
            payload["features"] = dict(features)
        if settings is not None:
            payload["settings"] = dict(settings)
        path.write_text(json.dumps(payload), encoding="utf-8")
        feature_flags.refresh_cache()
        load_settings(refresh=True)
        return path

    return _write


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        yield InMemoryCatalogStore()
        return
    sql_store = SqlCatalogStore(f"sqlite:///{tmp_path / 'catalog.db'}")
    try:
        yield sql_store
    finally:
        sql_store.dispose()


@pytest.fixture
def seeded_store(store):
    seed_catalog(store)
    return store


@pytest.fixture
def service(seeded_store) -> CatalogService:
    return CatalogService(seeded_store)


@pytest.fixture(autouse=True)
def restore_root_logging():
    """Drop handlers installed by ``init_logging`` during a test."""
    root = logging.getLogger()
    level = root.level
    handlers = list(root.handlers)
    yield root
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
