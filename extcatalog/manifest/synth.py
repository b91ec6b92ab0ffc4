"""
Build manifest payloads for catalog records.

Catalog rows do not store manifests. A raw manifest mapping is synthesized
per request from the extension record and a capability profile keyed by
the owning category's name, then validated like any untrusted payload.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from extcatalog.catalog.models import Category, Extension
from extcatalog.manifest.schema import MANIFEST_VERSION

ICON_SIZES: tuple[str, ...] = ("16", "48", "128")


@dataclass(frozen=True)
class CapabilityProfile:
    permissions: tuple[str, ...] = ("storage",)
    host_permissions: tuple[str, ...] = ()
    service_worker: str | None = None
    worker_type: str | None = None
    content_matches: tuple[str, ...] = ()
    content_run_at: str = "document_idle"
    rule_resources: tuple[Mapping[str, Any], ...] = field(default_factory=tuple)


DEFAULT_PROFILE = CapabilityProfile()

CATEGORY_PROFILES: Mapping[str, CapabilityProfile] = {
    "security": CapabilityProfile(
        permissions=("storage", "declarativeNetRequest", "tabs", "notifications"),
        host_permissions=(
            "*://*.doubleclick.net/*",
            "https://*.googlesyndication.com/*",
            "https://trackers.example/*",
        ),
        service_worker="background.js",
        worker_type="module",
        rule_resources=(
            {"id": "tracker_rules", "enabled": True, "path": "rules/trackers.json"},
        ),
    ),
    "productivity": CapabilityProfile(
        permissions=("tabs", "storage", "activeTab"),
        service_worker="background.js",
    ),
    "development": CapabilityProfile(
        permissions=("scripting", "activeTab", "storage", "debugger"),
        host_permissions=("https://*.github.com/*", "https://localhost/*"),
        service_worker="service_worker.js",
        worker_type="module",
        content_matches=("https://*.github.com/*",),
        content_run_at="document_end",
    ),
}


def profile_for(category: Category | None) -> CapabilityProfile:
    if category is None:
        return DEFAULT_PROFILE
    return CATEGORY_PROFILES.get(category.name.strip().lower(), DEFAULT_PROFILE)


def _icon_set(icon: str) -> dict[str, str]:
    return {size: f"icons/{icon}-{size}.png" for size in ICON_SIZES}


def synthesize_manifest(
    extension: Extension, category: Category | None = None
) -> dict[str, Any]:
    """Return a raw (unvalidated) manifest mapping for ``extension``."""
    profile = profile_for(category)
    payload: dict[str, Any] = {
        "manifest_version": MANIFEST_VERSION,
        "name": extension.name,
        "version": f"1.0.{extension.id}",
        "description": extension.description,
        "icons": _icon_set(extension.icon),
        "action": {
            "default_popup": "popup.html",
            "default_icon": _icon_set(extension.icon),
            "default_title": extension.name,
        },
        "permissions": list(profile.permissions),
    }
    if profile.host_permissions:
        payload["host_permissions"] = list(profile.host_permissions)
    if profile.service_worker:
        background: dict[str, Any] = {"service_worker": profile.service_worker}
        if profile.worker_type:
            background["type"] = profile.worker_type
        payload["background"] = background
    if profile.content_matches:
        payload["content_scripts"] = [
            {
                "matches": list(profile.content_matches),
                "js": ["content.js"],
                "run_at": profile.content_run_at,
            }
        ]
        payload["web_accessible_resources"] = [
            {
                "resources": [f"icons/{extension.icon}-48.png"],
                "matches": list(profile.content_matches),
                "use_dynamic_url": True,
            }
        ]
    if profile.rule_resources:
        payload["declarative_net_request"] = {
            "rule_resources": [dict(rule) for rule in profile.rule_resources]
        }
    return payload
