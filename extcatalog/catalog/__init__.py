"""
Catalog records and storage.

The service lives in :mod:`extcatalog.catalog.service` and is imported from
there; this package only re-exports the storage-facing pieces so that the
manifest layer can depend on the records without a cycle.
"""

from __future__ import annotations

from .models import Category, CategoryDraft, Extension, ExtensionDraft
from .store import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    CatalogIntegrityError,
    CatalogStore,
    CatalogStoreError,
    InMemoryCatalogStore,
)

__all__ = [
    "CatalogIntegrityError",
    "CatalogStore",
    "CatalogStoreError",
    "Category",
    "CategoryDraft",
    "DEFAULT_PAGE_SIZE",
    "Extension",
    "ExtensionDraft",
    "InMemoryCatalogStore",
    "MAX_PAGE_SIZE",
]
