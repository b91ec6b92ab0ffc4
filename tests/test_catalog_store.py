from __future__ import annotations

import logging
from decimal import Decimal

import pytest

from extcatalog.catalog.models import CategoryDraft, ExtensionDraft
from extcatalog.catalog.seed import SAMPLE_CATEGORIES, seed_catalog
from extcatalog.catalog.store import (
    MAX_PAGE_SIZE,
    CatalogIntegrityError,
    CatalogStore,
    page_window,
)


def _fill(store, count: int, *, category_id=None, prefix="Ext"):
    created = []
    for index in range(count):
        created.append(
            store.create_extension(
                ExtensionDraft(
                    name=f"{prefix} {index:03d}",
                    description=f"Generated extension number {index}",
                    icon="box",
                    users="1K+",
                    category_id=category_id,
                )
            )
        )
    return created


def test_store_implements_port(store):
    assert isinstance(store, CatalogStore)


def test_seeded_scenario(seeded_store):
    categories = {c.name: c for c in seeded_store.list_categories()}
    security = categories["Security"]
    by_category = seeded_store.list_by_category(security.id)
    assert [e.name for e in by_category] == ["Privacy Guardian"]
    assert [e.name for e in seeded_store.search("tab")] == ["Tab Manager Pro"]


def test_create_returns_persisted_records(store):
    category = store.create_category(CategoryDraft(name="  Security  "))
    assert category.id > 0
    assert category.name == "Security"
    assert category.created_at.tzinfo is not None

    extension = store.create_extension(
        ExtensionDraft(
            name="Privacy Guardian",
            description="Tracker blocking",
            icon="shield",
            users="100K+",
            category_id=category.id,
            rating=Decimal("4.5"),
        )
    )
    assert extension.id > 0
    assert extension.rating == Decimal("4.50")
    assert store.get_extension(extension.id) == extension
    assert store.get_category(category.id) == category


def test_default_rating_and_null_category(store):
    extension = store.create_extension(
        ExtensionDraft(name="Loose", description="", icon="x", users="10+")
    )
    assert extension.category_id is None
    assert extension.rating == Decimal("0.00")
    assert extension.to_payload()["rating"] == "0.00"


def test_unknown_category_reference_is_rejected(store):
    with pytest.raises(CatalogIntegrityError):
        store.create_extension(
            ExtensionDraft(
                name="Orphan", description="", icon="x", users="1+", category_id=999
            )
        )
    assert store.list_extensions() == []


def test_duplicate_category_name_is_rejected(store):
    store.create_category(CategoryDraft(name="Security"))
    with pytest.raises(CatalogIntegrityError, match="category 'Security' already exists"):
        store.create_category(CategoryDraft(name="Security"))
    assert len(store.list_categories()) == 1


def test_get_missing_records_returns_none(store):
    assert store.get_extension(12345) is None
    assert store.get_category(12345) is None


def test_pages_are_ordered_without_overlap(store):
    created = _fill(store, 23)
    limit = 5
    seen: list[int] = []
    page = 0
    while True:
        items = store.list_extensions_paged(page, limit)
        ids = [item.id for item in items]
        assert ids == sorted(ids)
        assert len(set(ids)) == len(ids)
        if seen and ids:
            assert min(ids) > max(seen)
        seen.extend(ids)
        if len(items) < limit:
            break
        page += 1
    assert seen == [extension.id for extension in created]
    assert page == 4


def test_exact_multiple_ends_with_empty_page(store):
    _fill(store, 10)
    assert len(store.list_extensions_paged(1, 5)) == 5
    assert store.list_extensions_paged(2, 5) == []


def test_limit_is_capped(store):
    _fill(store, MAX_PAGE_SIZE + 7)
    first = store.list_extensions_paged(0, 500)
    second = store.list_extensions_paged(1, 500)
    assert len(first) == MAX_PAGE_SIZE
    assert len(second) == 7
    assert first[-1].id < second[0].id


@pytest.mark.parametrize("page, limit", [(-1, 5), (0, 0), (0, -3), (True, 5)])
def test_invalid_page_window_raises(store, page, limit):
    with pytest.raises(ValueError):
        store.list_extensions_paged(page, limit)


def test_category_pages(store):
    alpha = store.create_category(CategoryDraft(name="Alpha"))
    beta = store.create_category(CategoryDraft(name="Beta"))
    alpha_items = _fill(store, 4, category_id=alpha.id, prefix="A")
    _fill(store, 3, category_id=beta.id, prefix="B")

    assert store.list_by_category_paged(alpha.id, 0, 3) == alpha_items[:3]
    assert store.list_by_category_paged(alpha.id, 1, 3) == alpha_items[3:]
    assert store.list_by_category(alpha.id) == alpha_items


def test_empty_category_lists_nothing(store):
    empty = store.create_category(CategoryDraft(name="Empty"))
    _fill(store, 2)
    assert store.list_by_category(empty.id) == []
    assert store.list_by_category_paged(empty.id, 0, 10) == []


def test_search_is_case_insensitive_on_name_and_description(seeded_store):
    assert [e.name for e in seeded_store.search("PRIVACY")] == ["Privacy Guardian"]
    assert [e.name for e in seeded_store.search("debugging")] == ["Dev Tools Plus"]
    assert seeded_store.search("nothing-matches-this") == []


def test_search_folds_non_ascii_case(store):
    store.create_extension(
        ExtensionDraft(name="Éclair Notes", description="", icon="x", users="1+")
    )
    store.create_extension(
        ExtensionDraft(name="Plain", description="ÜBER fast tabs", icon="x", users="1+")
    )
    assert [e.name for e in store.search("éclair")] == ["Éclair Notes"]
    assert [e.name for e in store.search("ÉCLAIR")] == ["Éclair Notes"]
    assert [e.name for e in store.search("über")] == ["Plain"]


def test_search_treats_like_wildcards_literally(store):
    store.create_extension(
        ExtensionDraft(name="100% Focus", description="", icon="x", users="1+")
    )
    store.create_extension(
        ExtensionDraft(name="Plain", description="under_score", icon="x", users="1+")
    )
    assert [e.name for e in store.search("%")] == ["100% Focus"]
    assert [e.name for e in store.search("_")] == ["Plain"]


def test_search_is_capped_and_stable(store):
    _fill(store, MAX_PAGE_SIZE + 10, prefix="Privacy")
    first = store.search("privacy")
    second = store.search("privacy")
    assert len(first) == MAX_PAGE_SIZE
    assert first == second
    assert [e.id for e in first] == sorted(e.id for e in first)


@pytest.mark.parametrize("query", ["", "   "])
def test_search_rejects_blank_query(store, query):
    with pytest.raises(ValueError):
        store.search(query)


def test_page_window_arithmetic():
    assert page_window(0, 10) == (0, 10)
    assert page_window(3, 7) == (21, 7)
    assert page_window(2, 80) == (100, MAX_PAGE_SIZE)


def test_seed_is_idempotent(store):
    assert seed_catalog(store) == {"categories": 3, "extensions": 3}
    assert seed_catalog(store) == {"categories": 0, "extensions": 0}
    assert [e.id for e in store.list_extensions()] == [1, 2, 3]
    assert [c.name for c in store.list_categories()] == list(SAMPLE_CATEGORIES)


def test_seed_logs_created_counts(store, caplog):
    caplog.set_level(logging.INFO, logger="extcatalog.catalog.seed")
    seed_catalog(store)
    record = next(r for r in caplog.records if r.getMessage() == "Catalog seeded")
    assert record.seeded == {"categories": 3, "extensions": 3}
    assert len(store.list_extensions()) == 3
