"""
Structural contract for browser-extension manifests (version 8).

Callers hand :func:`validate_manifest` arbitrary JSON-like data and receive a
:class:`ManifestResult` instead of an exception: malformed manifests are an
expected outcome, not a programming error. :func:`parse_manifest` offers the
raising flavour for code paths where a bad manifest is a bug.

Only the first violation is reported. pydantic evaluates the whole payload,
but the result carries the earliest error in field declaration order so that
messages stay short and deterministic.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Literal, Mapping

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictStr,
    ValidationError,
    field_validator,
)

MANIFEST_VERSION = 8
BACKGROUND_TYPES: tuple[str, ...] = ("module",)
RUN_AT_VALUES: tuple[str, ...] = ("document_idle", "document_start", "document_end")


class ManifestError(ValueError):
    """Raised when a manifest cannot be parsed or validated."""

    def __init__(self, message: str, violation: "ManifestViolation | None" = None):
        super().__init__(message)
        self.violation = violation


class _ManifestPart(BaseModel):
    # Unknown keys are dropped so newer manifests keep validating.
    model_config = ConfigDict(extra="ignore")


class ActionSpec(_ManifestPart):
    """Toolbar action: popup entry point, icon set and tooltip."""

    default_popup: StrictStr | None = None
    default_icon: dict[StrictStr, StrictStr] | None = None
    default_title: StrictStr | None = None


class BackgroundSpec(_ManifestPart):
    service_worker: StrictStr
    type: Literal["module"] | None = None


class WebAccessibleResource(_ManifestPart):
    resources: list[StrictStr]
    matches: list[StrictStr]
    use_dynamic_url: StrictBool | None = None


class ContentScript(_ManifestPart):
    matches: list[StrictStr]
    js: list[StrictStr] | None = None
    css: list[StrictStr] | None = None
    run_at: Literal["document_idle", "document_start", "document_end"] | None = None


class RuleResource(_ManifestPart):
    id: StrictStr
    enabled: StrictBool
    path: StrictStr


class DeclarativeNetRequest(_ManifestPart):
    rule_resources: list[RuleResource]


class ExtensionManifest(_ManifestPart):
    """
    Typed representation of a version 8 extension manifest.

    Every optional section stays ``None`` when absent so that serialising
    with ``exclude_none`` reproduces the original shape.
    """

    manifest_version: Literal[8]
    name: StrictStr = Field(min_length=1)
    version: StrictStr = Field(min_length=1)
    description: StrictStr | None = None
    icons: dict[StrictStr, StrictStr] | None = None
    action: ActionSpec | None = None
    background: BackgroundSpec | None = None
    permissions: list[StrictStr] | None = None
    host_permissions: list[StrictStr] | None = None
    web_accessible_resources: list[WebAccessibleResource] | None = None
    content_scripts: list[ContentScript] | None = None
    declarative_net_request: DeclarativeNetRequest | None = None

    @field_validator("manifest_version", mode="before")
    @classmethod
    def _exact_integer(cls, value: Any) -> Any:
        # bool is an int subclass; "8" would slip through lax coercion.
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"manifest_version must be the integer {MANIFEST_VERSION}")
        return value

    @field_validator("name", "version")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    def to_payload(self) -> dict[str, Any]:
        """Return a JSON-compatible dict without unset optional sections."""
        return self.model_dump(mode="json", exclude_none=True)

    def canonical_json(self) -> str:
        return json.dumps(self.to_payload(), sort_keys=True, separators=(",", ":"))


@dataclass(frozen=True)
class ManifestViolation:
    """The first structural problem found in a manifest payload."""

    location: tuple[str | int, ...]
    message: str
    kind: str

    @property
    def path(self) -> str:
        return ".".join(str(part) for part in self.location) or "<root>"

    def describe(self) -> str:
        return f"{self.path}: {self.message}"

    def to_payload(self) -> dict[str, Any]:
        return {"path": self.path, "message": self.message, "kind": self.kind}


@dataclass(frozen=True)
class ManifestResult:
    manifest: ExtensionManifest | None = None
    violation: ManifestViolation | None = None

    @property
    def ok(self) -> bool:
        return self.manifest is not None and self.violation is None

    def unwrap(self) -> ExtensionManifest:
        if self.manifest is None:
            violation = self.violation or ManifestViolation((), "no manifest", "missing")
            raise ManifestError(f"Invalid manifest: {violation.describe()}", violation)
        return self.manifest


def _first_violation(exc: ValidationError) -> ManifestViolation:
    errors = exc.errors(include_url=False)
    if not errors:  # pragma: no cover - pydantic always reports at least one
        return ManifestViolation((), str(exc), "invalid")
    first = errors[0]
    return ManifestViolation(
        location=tuple(first.get("loc", ())),
        message=str(first.get("msg", "invalid value")),
        kind=str(first.get("type", "invalid")),
    )


def validate_manifest(raw: Any) -> ManifestResult:
    """Validate an untyped manifest payload. Never raises."""
    if not isinstance(raw, Mapping):
        return ManifestResult(
            violation=ManifestViolation(
                (), f"manifest must be an object, not {type(raw).__name__}", "model_type"
            )
        )
    try:
        manifest = ExtensionManifest.model_validate(dict(raw))
    except ValidationError as exc:
        return ManifestResult(violation=_first_violation(exc))
    return ManifestResult(manifest=manifest)


def parse_manifest(raw: Any) -> ExtensionManifest:
    """
    Parse a manifest from a mapping or its JSON text, raising on failure.

    ``parse_manifest(m.canonical_json()) == m`` and
    ``parse_manifest(m.to_payload()) == m`` hold for every valid manifest.
    """
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ManifestError(f"Invalid manifest: not valid JSON: {exc}") from exc
    return validate_manifest(raw).unwrap()
