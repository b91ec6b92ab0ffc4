"""
Runtime settings for the catalog server.

Values come from the ``"settings"`` object of ``config/extcatalog.json`` (or
the file named by ``EXTCATALOG_CONFIG``) and are then overridden by
environment variables, so containers can configure everything from the
environment while local setups keep a JSON file.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, fields, replace
from functools import lru_cache
from typing import Any, Mapping

from extcatalog.config.feature_flags import config_paths

LOGGER = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///./data/catalog.db"
_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class CatalogSettings:
    database_url: str = DEFAULT_DATABASE_URL
    log_level: str = "INFO"
    log_dir: str = "./logs"
    host: str = "127.0.0.1"
    port: int = 8000
    seed_on_start: bool = False
    cors_origins: tuple[str, ...] = field(
        default_factory=lambda: ("http://127.0.0.1:8000", "http://localhost:8000")
    )
    default_page_size: int = 12


# env var(s) per field; the first one set wins.
ENV_OVERRIDES: Mapping[str, tuple[str, ...]] = {
    "database_url": ("EXTCATALOG_DB_URL", "DB_URL"),
    "log_level": ("EXTCATALOG_LOG_LEVEL", "LOG_LEVEL"),
    "log_dir": ("EXTCATALOG_LOG_DIR", "LOG_DIR"),
    "host": ("EXTCATALOG_HOST",),
    "port": ("EXTCATALOG_PORT",),
    "seed_on_start": ("EXTCATALOG_SEED",),
    "cors_origins": ("EXTCATALOG_CORS_ORIGINS",),
    "default_page_size": ("EXTCATALOG_PAGE_SIZE",),
}


def _coerce(name: str, value: Any) -> Any:
    if name in {"port", "default_page_size"}:
        return int(value)
    if name == "seed_on_start":
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in _TRUTHY
    if name == "cors_origins":
        if isinstance(value, str):
            items = value.split(",")
        else:
            items = list(value)
        cleaned = (str(item).strip() for item in items)
        return tuple(dict.fromkeys(item for item in cleaned if item))
    return str(value)


def _read_file_settings() -> dict[str, Any]:
    for path in config_paths():
        if not path.exists():
            continue
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            LOGGER.warning("Failed to read settings from %s: %s", path, exc)
            continue
        data = raw.get("settings") if isinstance(raw, dict) else None
        if isinstance(data, dict):
            return data
    return {}


def _apply(settings: CatalogSettings, values: Mapping[str, Any], source: str) -> CatalogSettings:
    known = {f.name for f in fields(CatalogSettings)}
    updates: dict[str, Any] = {}
    for key, value in values.items():
        if key not in known or value is None:
            continue
        try:
            updates[key] = _coerce(key, value)
        except (TypeError, ValueError):
            LOGGER.warning("Ignoring invalid %s setting %s=%r", source, key, value)
    return replace(settings, **updates) if updates else settings


def _env_values() -> dict[str, Any]:
    values: dict[str, Any] = {}
    for key, names in ENV_OVERRIDES.items():
        for env_name in names:
            raw = os.getenv(env_name)
            if raw is not None and raw.strip():
                values[key] = raw.strip()
                break
    return values


@lru_cache(maxsize=1)
def _cached_settings() -> CatalogSettings:
    settings = _apply(CatalogSettings(), _read_file_settings(), "file")
    return _apply(settings, _env_values(), "environment")


def load_settings(*, refresh: bool = False) -> CatalogSettings:
    if refresh:
        _cached_settings.cache_clear()
    return _cached_settings()


__all__ = ["CatalogSettings", "DEFAULT_DATABASE_URL", "load_settings"]
