"""
Manifest validation and security summaries for catalog extensions.

Nothing here touches disk or network: payloads come in as JSON-like data,
are checked against the version 8 schema and summarised in memory.
"""

from __future__ import annotations

from .schema import (
    MANIFEST_VERSION,
    ExtensionManifest,
    ManifestError,
    ManifestResult,
    ManifestViolation,
    parse_manifest,
    validate_manifest,
)
from .security import CRITICAL_PERMISSIONS, SecuritySummary, is_wildcard_subdomain, summarize

__all__ = [
    "CRITICAL_PERMISSIONS",
    "ExtensionManifest",
    "MANIFEST_VERSION",
    "ManifestError",
    "ManifestResult",
    "ManifestViolation",
    "SecuritySummary",
    "is_wildcard_subdomain",
    "parse_manifest",
    "summarize",
    "validate_manifest",
]
