"""
Catalog service: the composition root behind the HTTP routes and the CLI.

The service owns request-level concerns. It parses identifiers, applies
paging defaults, rejects empty searches before they reach the store and
turns store or manifest failures into :mod:`extcatalog.errors` categories.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, TypeVar

from extcatalog.catalog.models import Category, CategoryDraft, Extension, ExtensionDraft
from extcatalog.catalog.store import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    CatalogIntegrityError,
    CatalogStore,
    CatalogStoreError,
)
from extcatalog.errors import BadRequest, InternalError, NotFound
from extcatalog.manifest.schema import ExtensionManifest, validate_manifest
from extcatalog.manifest.security import SecuritySummary, summarize
from extcatalog.manifest.synth import synthesize_manifest

LOGGER = logging.getLogger(__name__)
_DIGITS = re.compile(r"^[0-9]+$")
# Largest id a 64-bit INTEGER column can hold; larger ids cannot match a row.
MAX_IDENTIFIER = 2**63 - 1

T = TypeVar("T")
ManifestFactory = Callable[[Extension, Optional[Category]], Mapping[str, Any]]


def _is_int_at_least(value: Any, minimum: int) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= minimum


def parse_identifier(value: Any, *, label: str = "id") -> int:
    """Accept an int or a string of ASCII digits; anything else is a bad request."""
    if isinstance(value, bool):
        raise BadRequest(f"Invalid {label}")
    if isinstance(value, int):
        if value < 0:
            raise BadRequest(f"Invalid {label}")
        return value
    if isinstance(value, str) and _DIGITS.match(value.strip()):
        return int(value.strip())
    raise BadRequest(f"Invalid {label}")


@dataclass(frozen=True)
class ExtensionPage:
    items: list[Extension]
    page: int | None = None
    limit: int | None = None

    @property
    def paged(self) -> bool:
        return self.limit is not None

    @property
    def has_more(self) -> bool:
        # A short page is the last one; a full page may or may not be.
        return self.limit is not None and len(self.items) >= self.limit

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "ok": True,
            "items": [item.to_payload() for item in self.items],
        }
        if self.paged:
            payload.update(page=self.page, limit=self.limit, has_more=self.has_more)
        return payload


@dataclass(frozen=True)
class ManifestReport:
    extension_id: int
    manifest: ExtensionManifest
    security: SecuritySummary

    def to_payload(self) -> dict[str, Any]:
        return {
            "ok": True,
            "id": self.extension_id,
            "manifest": self.manifest.to_payload(),
            "security": self.security.to_payload(),
        }


class CatalogService:
    """Answer catalog requests against a :class:`CatalogStore`."""

    def __init__(
        self,
        store: CatalogStore,
        *,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        manifest_factory: ManifestFactory = synthesize_manifest,
    ) -> None:
        self.store = store
        self.default_page_size = max(1, min(default_page_size, MAX_PAGE_SIZE))
        self.manifest_factory = manifest_factory

    # ------------------------------------------------------------------ Helpers
    def _guard(self, operation: str, call: Callable[[], T], **context: Any) -> T:
        try:
            return call()
        except CatalogIntegrityError as exc:
            raise BadRequest(str(exc)) from exc
        except CatalogStoreError as exc:
            LOGGER.error(
                "Catalog store failure during %s",
                operation,
                exc_info=True,
                extra={"operation": operation, **context},
            )
            raise InternalError("Catalog storage failure") from exc

    def _paging(
        self, page: Optional[int], limit: Optional[int]
    ) -> tuple[int, int] | None:
        if page is None and limit is None:
            return None
        page_value = 0 if page is None else page
        limit_value = self.default_page_size if limit is None else limit
        if not _is_int_at_least(page_value, 0):
            raise BadRequest("page must be a non-negative integer")
        if not _is_int_at_least(limit_value, 1):
            raise BadRequest("limit must be a positive integer")
        return page_value, min(limit_value, MAX_PAGE_SIZE)

    # ------------------------------------------------------------------ Reads
    def list_extensions(
        self, page: Optional[int] = None, limit: Optional[int] = None
    ) -> ExtensionPage:
        window = self._paging(page, limit)
        if window is None:
            items = self._guard("list_extensions", self.store.list_extensions)
            return ExtensionPage(items)
        page_value, limit_value = window
        items = self._guard(
            "list_extensions_paged",
            lambda: self.store.list_extensions_paged(page_value, limit_value),
            page=page_value,
            limit=limit_value,
        )
        return ExtensionPage(items, page_value, limit_value)

    def list_by_category(
        self,
        category_id: Any,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> ExtensionPage:
        cid = parse_identifier(category_id, label="category ID")
        window = self._paging(page, limit)
        if cid > MAX_IDENTIFIER:
            return ExtensionPage([]) if window is None else ExtensionPage([], *window)
        if window is None:
            items = self._guard(
                "list_by_category",
                lambda: self.store.list_by_category(cid),
                category_id=cid,
            )
            return ExtensionPage(items)
        page_value, limit_value = window
        items = self._guard(
            "list_by_category_paged",
            lambda: self.store.list_by_category_paged(cid, page_value, limit_value),
            category_id=cid,
            page=page_value,
            limit=limit_value,
        )
        return ExtensionPage(items, page_value, limit_value)

    def search(self, query: Any) -> list[Extension]:
        if not isinstance(query, str) or not query.strip():
            raise BadRequest("Search query is required")
        return self._guard("search", lambda: self.store.search(query), query=query)

    def list_categories(self) -> list[Category]:
        return self._guard("list_categories", self.store.list_categories)

    def get_extension(self, extension_id: Any) -> Optional[Extension]:
        eid = parse_identifier(extension_id, label="extension ID")
        if eid > MAX_IDENTIFIER:
            return None
        return self._guard(
            "get_extension",
            lambda: self.store.get_extension(eid),
            extension_id=eid,
        )

    def require_extension(self, extension_id: Any) -> Extension:
        extension = self.get_extension(extension_id)
        if extension is None:
            raise NotFound(f"Extension {extension_id} not found")
        return extension

    def get_manifest(self, extension_id: Any) -> ManifestReport:
        extension = self.require_extension(extension_id)
        category = None
        if extension.category_id is not None:
            category = self._guard(
                "get_category",
                lambda: self.store.get_category(extension.category_id),
                category_id=extension.category_id,
            )
        raw = self.manifest_factory(extension, category)
        result = validate_manifest(raw)
        if not result.ok:
            violation = result.violation
            LOGGER.error(
                "Synthesized manifest failed validation",
                extra={
                    "extension_id": extension.id,
                    "category_id": extension.category_id,
                    "violation": violation.to_payload() if violation else None,
                },
            )
            raise InternalError("Manifest generation failed")
        manifest = result.unwrap()
        security = summarize(manifest)
        LOGGER.debug(
            "Manifest summarised",
            extra={"extension_id": extension.id, **security.to_payload()},
        )
        return ManifestReport(extension.id, manifest, security)

    # ----------------------------------------------------------------- Writes
    def create_category(self, draft: CategoryDraft | Mapping[str, Any]) -> Category:
        try:
            if not isinstance(draft, CategoryDraft):
                draft = CategoryDraft(name=draft.get("name"))  # type: ignore[arg-type]
        except ValueError as exc:
            raise BadRequest(str(exc)) from exc
        category = self._guard(
            "create_category",
            lambda: self.store.create_category(draft),
            draft_name=draft.name,
        )
        LOGGER.info(
            "catalog.category.created",
            extra={"category_id": category.id, "category_name": category.name},
        )
        return category

    def create_extension(self, draft: ExtensionDraft | Mapping[str, Any]) -> Extension:
        try:
            if not isinstance(draft, ExtensionDraft):
                draft = ExtensionDraft.from_payload(draft)
        except ValueError as exc:
            raise BadRequest(str(exc)) from exc
        if draft.category_id is not None and draft.category_id > MAX_IDENTIFIER:
            raise BadRequest(f"category {draft.category_id} does not exist")
        extension = self._guard(
            "create_extension",
            lambda: self.store.create_extension(draft),
            draft_name=draft.name,
            category_id=draft.category_id,
        )
        LOGGER.info(
            "catalog.extension.created",
            extra={
                "extension_id": extension.id,
                "extension_name": extension.name,
                "category_id": extension.category_id,
            },
        )
        return extension


__all__ = [
    "CatalogService",
    "ExtensionPage",
    "ManifestReport",
    "parse_identifier",
]
