from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Dict

FEATURE_DEFAULTS: Dict[str, bool] = {
    "enable_catalog_writes": False,
    "enable_manifest_api": True,
}

_CACHE: Dict[str, bool] | None = None
_CACHE_SIGNATURE: tuple[tuple[str, float], ...] | None = None


def config_paths() -> tuple[Path, ...]:
    override = os.getenv("EXTCATALOG_CONFIG")
    if override:
        return (Path(override).expanduser(),)
    return (Path("extcatalog.json"), Path("config/extcatalog.json"))


def _signature() -> tuple[tuple[str, float], ...]:
    values: list[tuple[str, float]] = []
    for path in config_paths():
        try:
            values.append((str(path), path.stat().st_mtime))
        except FileNotFoundError:
            values.append((str(path), 0.0))
    return tuple(values)


def _read_features(path: Path) -> Dict[str, bool]:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    data = raw.get("features") if isinstance(raw, dict) else None
    if not isinstance(data, dict):
        return {}
    result: Dict[str, bool] = {}
    for key, value in data.items():
        if isinstance(value, bool):
            result[key] = value
    return result


def load_feature_flags(*, refresh: bool = False) -> Dict[str, bool]:
    global _CACHE, _CACHE_SIGNATURE
    signature = _signature()
    if not refresh and _CACHE is not None and signature == _CACHE_SIGNATURE:
        return dict(_CACHE)

    flags: Dict[str, bool] = dict(FEATURE_DEFAULTS)
    for path in config_paths():
        if not path.exists():
            continue
        flags.update(_read_features(path))

    _CACHE = flags
    _CACHE_SIGNATURE = signature
    return dict(flags)


def is_enabled(
    name: str, *, default: bool | None = None, refresh: bool = False
) -> bool:
    flags = load_feature_flags(refresh=refresh)
    if name in flags:
        return bool(flags[name])
    if default is not None:
        return bool(default)
    return False


def refresh_cache() -> Dict[str, bool]:
    return load_feature_flags(refresh=True)


__all__ = [
    "FEATURE_DEFAULTS",
    "config_paths",
    "is_enabled",
    "load_feature_flags",
    "refresh_cache",
]
