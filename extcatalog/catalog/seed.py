from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Mapping, Sequence

from extcatalog.catalog.models import CategoryDraft, ExtensionDraft
from extcatalog.catalog.store import CatalogStore

LOGGER = logging.getLogger(__name__)

SAMPLE_CATEGORIES: tuple[str, ...] = ("Security", "Productivity", "Development")

SAMPLE_EXTENSIONS: tuple[Mapping[str, Any], ...] = (
    {
        "name": "Privacy Guardian",
        "description": "Enhanced privacy protection and tracker blocking",
        "category": "Security",
        "icon": "shield",
        "rating": Decimal("4.5"),
        "users": "100K+",
    },
    {
        "name": "Tab Manager Pro",
        "description": "Efficient tab organization and management",
        "category": "Productivity",
        "icon": "layers",
        "rating": Decimal("4.8"),
        "users": "50K+",
    },
    {
        "name": "Dev Tools Plus",
        "description": "Advanced developer tools and debugging features",
        "category": "Development",
        "icon": "code",
        "rating": Decimal("4.7"),
        "users": "75K+",
    },
)


def seed_catalog(
    store: CatalogStore,
    *,
    categories: Sequence[str] = SAMPLE_CATEGORIES,
    extensions: Sequence[Mapping[str, Any]] = SAMPLE_EXTENSIONS,
) -> dict[str, int]:
    """
    Insert the sample catalog, skipping records that already exist.

    Categories match by name, extensions by ``(name, category)``. Returns the
    number of records created per kind.
    """
    by_name = {category.name: category for category in store.list_categories()}
    created = {"categories": 0, "extensions": 0}
    for name in categories:
        if name in by_name:
            continue
        by_name[name] = store.create_category(CategoryDraft(name=name))
        created["categories"] += 1

    existing = {(ext.name, ext.category_id) for ext in store.list_extensions()}
    for raw in extensions:
        category = by_name.get(str(raw.get("category") or ""))
        category_id = category.id if category else None
        if (raw["name"], category_id) in existing:
            continue
        draft = ExtensionDraft(
            name=raw["name"],
            description=raw.get("description", ""),
            icon=raw["icon"],
            users=raw["users"],
            category_id=category_id,
            rating=raw.get("rating", Decimal("0.00")),
        )
        store.create_extension(draft)
        existing.add((draft.name, category_id))
        created["extensions"] += 1

    LOGGER.info("Catalog seeded", extra={"seeded": created})
    return created
