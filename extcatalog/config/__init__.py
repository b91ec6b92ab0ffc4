"""Runtime configuration: settings and feature flags."""

from __future__ import annotations

from . import feature_flags
from .settings import CatalogSettings, load_settings

__all__ = ["CatalogSettings", "feature_flags", "load_settings"]
