"""
Catalog storage port.

:class:`CatalogStore` lists the capabilities the service needs from
persistence. :class:`InMemoryCatalogStore` implements it over plain lists
and backs the tests; :mod:`extcatalog.catalog.sql_store` binds it to a
relational database.

Paging and search rules are shared by every implementation:

* pages are ordered by ascending id, ``offset = page * limit``;
* ``limit`` above :data:`MAX_PAGE_SIZE` is clamped, search results are capped
  at the same size;
* a short page (fewer than ``limit`` items) means there is nothing after it.
"""

from __future__ import annotations

import itertools
import threading
from typing import Iterable, Optional, Protocol, Sequence, runtime_checkable

from extcatalog.catalog.models import (
    Category,
    CategoryDraft,
    Extension,
    ExtensionDraft,
    utcnow,
)

MAX_PAGE_SIZE = 50
DEFAULT_PAGE_SIZE = 12


class CatalogStoreError(RuntimeError):
    """Raised when the storage backend fails to answer a query."""


class CatalogIntegrityError(CatalogStoreError):
    """A draft violates a persisted constraint (unknown category, duplicate name)."""


def page_window(page: int, limit: int, *, cap: int = MAX_PAGE_SIZE) -> tuple[int, int]:
    """
    Return ``(offset, size)`` for a page request.

    ``limit`` above ``cap`` is clamped, so callers deciding whether another
    page exists must compare the result length with ``size``, not with the
    limit they asked for.
    """
    if isinstance(page, bool) or not isinstance(page, int) or page < 0:
        raise ValueError(f"page must be a non-negative integer, got {page!r}")
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise ValueError(f"limit must be a positive integer, got {limit!r}")
    size = min(limit, cap)
    return page * size, size


def normalise_query(query: str) -> str:
    if not isinstance(query, str):
        raise ValueError("search query must be a string")
    needle = query.strip().lower()
    if not needle:
        raise ValueError("search query must not be empty")
    return needle


def matches_query(extension: Extension, needle: str) -> bool:
    return needle in extension.name.lower() or needle in extension.description.lower()


@runtime_checkable
class CatalogStore(Protocol):
    """Capabilities the catalog service expects from persistence."""

    def list_extensions(self) -> list[Extension]:
        ...

    def list_extensions_paged(self, page: int, limit: int) -> list[Extension]:
        ...

    def list_by_category(self, category_id: int) -> list[Extension]:
        ...

    def list_by_category_paged(
        self, category_id: int, page: int, limit: int
    ) -> list[Extension]:
        ...

    def search(self, query: str) -> list[Extension]:
        ...

    def list_categories(self) -> list[Category]:
        ...

    def get_category(self, category_id: int) -> Optional[Category]:
        ...

    def get_extension(self, extension_id: int) -> Optional[Extension]:
        ...

    def create_category(self, draft: CategoryDraft) -> Category:
        ...

    def create_extension(self, draft: ExtensionDraft) -> Extension:
        ...


class InMemoryCatalogStore:
    """Dict-backed store for tests and for services built without a database."""

    def __init__(
        self,
        categories: Iterable[Category] = (),
        extensions: Iterable[Extension] = (),
    ) -> None:
        self._lock = threading.RLock()
        self._categories: dict[int, Category] = {c.id: c for c in categories}
        self._extensions: dict[int, Extension] = {e.id: e for e in extensions}
        self._category_ids = itertools.count(max(self._categories, default=0) + 1)
        self._extension_ids = itertools.count(max(self._extensions, default=0) + 1)

    def _ordered(self) -> list[Extension]:
        with self._lock:
            return [self._extensions[key] for key in sorted(self._extensions)]

    @staticmethod
    def _slice(items: Sequence[Extension], page: int, limit: int) -> list[Extension]:
        offset, size = page_window(page, limit)
        return list(items[offset : offset + size])

    # ------------------------------------------------------------------ Reads
    def list_extensions(self) -> list[Extension]:
        return self._ordered()

    def list_extensions_paged(self, page: int, limit: int) -> list[Extension]:
        return self._slice(self._ordered(), page, limit)

    def list_by_category(self, category_id: int) -> list[Extension]:
        return [ext for ext in self._ordered() if ext.category_id == category_id]

    def list_by_category_paged(
        self, category_id: int, page: int, limit: int
    ) -> list[Extension]:
        return self._slice(self.list_by_category(category_id), page, limit)

    def search(self, query: str) -> list[Extension]:
        needle = normalise_query(query)
        hits = (ext for ext in self._ordered() if matches_query(ext, needle))
        return list(itertools.islice(hits, MAX_PAGE_SIZE))

    def list_categories(self) -> list[Category]:
        with self._lock:
            return [self._categories[key] for key in sorted(self._categories)]

    def get_category(self, category_id: int) -> Optional[Category]:
        with self._lock:
            return self._categories.get(category_id)

    def get_extension(self, extension_id: int) -> Optional[Extension]:
        with self._lock:
            return self._extensions.get(extension_id)

    # ----------------------------------------------------------------- Writes
    def create_category(self, draft: CategoryDraft) -> Category:
        with self._lock:
            if any(c.name == draft.name for c in self._categories.values()):
                raise CatalogIntegrityError(f"category '{draft.name}' already exists")
            category = Category(
                id=next(self._category_ids), name=draft.name, created_at=utcnow()
            )
            self._categories[category.id] = category
            return category

    def create_extension(self, draft: ExtensionDraft) -> Extension:
        with self._lock:
            if (
                draft.category_id is not None
                and draft.category_id not in self._categories
            ):
                raise CatalogIntegrityError(
                    f"category {draft.category_id} does not exist"
                )
            extension = Extension(
                id=next(self._extension_ids),
                name=draft.name,
                description=draft.description,
                category_id=draft.category_id,
                icon=draft.icon,
                rating=draft.rating,
                users=draft.users,
                created_at=utcnow(),
            )
            self._extensions[extension.id] = extension
            return extension


__all__ = [
    "CatalogIntegrityError",
    "CatalogStore",
    "CatalogStoreError",
    "DEFAULT_PAGE_SIZE",
    "InMemoryCatalogStore",
    "MAX_PAGE_SIZE",
    "matches_query",
    "normalise_query",
    "page_window",
]
