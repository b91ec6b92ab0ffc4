from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from extcatalog.manifest.schema import ExtensionManifest

CRITICAL_PERMISSIONS: frozenset[str] = frozenset(
    {
        "tabs",
        "activeTab",
        "scripting",
        "declarativeNetRequest",
        "storage",
    }
)


@dataclass(frozen=True)
class SecuritySummary:
    """Permission-risk digest derived from a validated manifest."""

    critical_permissions: list[str] = field(default_factory=list)
    host_permissions: list[str] = field(default_factory=list)
    has_service_worker: bool = False

    def to_payload(self) -> dict[str, Any]:
        return {
            "critical_permissions": list(self.critical_permissions),
            "host_permissions": list(self.host_permissions),
            "has_service_worker": self.has_service_worker,
        }


def is_wildcard_subdomain(pattern: str) -> bool:
    """
    Return ``True`` when a host match pattern wildcards a subdomain segment.

    ``https://*.example.com/*`` qualifies, ``https://example.com/*`` and the
    bare ``https://*/*`` do not.
    """
    scheme, sep, rest = pattern.partition("://")
    if not sep or not scheme:
        return False
    host = rest.split("/", 1)[0]
    labels = host.split(".")
    if len(labels) < 2:
        return False
    return "*" in labels[:-1]


def critical_permissions(permissions: Iterable[str] | None) -> list[str]:
    # Manifest order and duplicates are kept.
    return [perm for perm in permissions or () if perm in CRITICAL_PERMISSIONS]


def sensitive_hosts(host_permissions: Iterable[str] | None) -> list[str]:
    return [host for host in host_permissions or () if is_wildcard_subdomain(host)]


def summarize(manifest: ExtensionManifest) -> SecuritySummary:
    background = manifest.background
    return SecuritySummary(
        critical_permissions=critical_permissions(manifest.permissions),
        host_permissions=sensitive_hosts(manifest.host_permissions),
        has_service_worker=bool(background and background.service_worker),
    )
