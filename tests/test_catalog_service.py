from __future__ import annotations

import logging

import pytest

from extcatalog.catalog.service import CatalogService, parse_identifier
from extcatalog.catalog.store import CatalogStoreError, InMemoryCatalogStore
from extcatalog.errors import BadRequest, InternalError, NotFound


class _BrokenStore(InMemoryCatalogStore):
    def get_extension(self, extension_id):
        raise CatalogStoreError("database is locked")

    def list_extensions(self):
        raise CatalogStoreError("database is locked")


def _ids(page):
    return [item.id for item in page.items]


@pytest.mark.parametrize("value, expected", [(3, 3), ("3", 3), (" 42 ", 42), ("0", 0)])
def test_parse_identifier_accepts_integers_and_digit_strings(value, expected):
    assert parse_identifier(value) == expected


@pytest.mark.parametrize("value", ["12abc", "-1", -1, "", "1.5", 1.0, True, None, "１２"])
def test_parse_identifier_rejects_everything_else(value):
    with pytest.raises(BadRequest):
        parse_identifier(value, label="extension ID")


def test_unpaged_listing_returns_everything(service):
    page = service.list_extensions()
    assert _ids(page) == [1, 2, 3]
    assert page.paged is False
    assert set(page.to_payload()) == {"ok", "items"}


def test_paged_listing_reports_position(service):
    first = service.list_extensions(page=0, limit=2)
    second = service.list_extensions(page=1, limit=2)
    assert _ids(first) == [1, 2]
    assert _ids(second) == [3]
    assert first.has_more is True
    assert second.has_more is False
    assert second.to_payload()["page"] == 1
    assert second.to_payload()["limit"] == 2


def test_page_only_uses_default_limit(seeded_store):
    service = CatalogService(seeded_store, default_page_size=2)
    page = service.list_extensions(page=0)
    assert page.limit == 2
    assert _ids(page) == [1, 2]


def test_oversized_limit_is_clamped(service):
    page = service.list_extensions(page=0, limit=1000)
    assert page.limit == 50
    assert _ids(page) == [1, 2, 3]


@pytest.mark.parametrize("page, limit", [(-1, 5), (0, 0), (0, -5)])
def test_invalid_paging_is_bad_request(service, page, limit):
    with pytest.raises(BadRequest):
        service.list_extensions(page=page, limit=limit)


def test_list_by_category(service):
    assert [e.name for e in service.list_by_category("1").items] == ["Privacy Guardian"]
    assert service.list_by_category(999).items == []
    with pytest.raises(BadRequest):
        service.list_by_category("security")


@pytest.mark.parametrize("query", ["", "   ", None, 5])
def test_search_requires_query_text(service, query):
    with pytest.raises(BadRequest, match="Search query is required"):
        service.search(query)


def test_search_scenarios(service):
    assert [e.id for e in service.search("tab")] == [2]
    assert [e.id for e in service.search("privacy")] == [1]
    assert service.search("privacy") == service.search("privacy")


def test_get_and_require_extension(service):
    assert service.get_extension("2").name == "Tab Manager Pro"
    assert service.get_extension(99) is None
    with pytest.raises(NotFound):
        service.require_extension(99)
    with pytest.raises(BadRequest):
        service.get_extension("12abc")


def test_manifest_for_security_extension(service):
    report = service.get_manifest(1)
    assert report.manifest.manifest_version == 8
    assert report.manifest.name == "Privacy Guardian"
    assert report.manifest.version == "1.0.1"
    assert report.security.critical_permissions == [
        "storage",
        "declarativeNetRequest",
        "tabs",
    ]
    assert report.security.host_permissions == [
        "*://*.doubleclick.net/*",
        "https://*.googlesyndication.com/*",
    ]
    assert report.security.has_service_worker is True
    payload = report.to_payload()
    assert payload["ok"] is True
    assert payload["id"] == 1
    assert payload["manifest"]["declarative_net_request"]["rule_resources"][0]["enabled"]


def test_manifest_for_productivity_extension(service):
    report = service.get_manifest("2")
    assert report.security.critical_permissions == ["tabs", "storage", "activeTab"]
    assert report.security.host_permissions == []


def test_manifest_for_development_extension(service):
    report = service.get_manifest(3)
    assert report.security.critical_permissions == ["scripting", "activeTab", "storage"]
    assert report.security.host_permissions == ["https://*.github.com/*"]
    assert report.manifest.content_scripts[0].run_at == "document_end"


def test_manifest_for_uncategorised_extension(service):
    extension = service.create_extension(
        {"name": "Loose", "description": "", "icon": "box", "users": "1+"}
    )
    report = service.get_manifest(extension.id)
    assert report.security.critical_permissions == ["storage"]
    assert report.security.has_service_worker is False


def test_manifest_for_unknown_extension_is_not_found(service):
    with pytest.raises(NotFound):
        service.get_manifest(404)


def test_invalid_synthesized_manifest_is_internal_error(seeded_store, caplog):
    def _broken_factory(extension, category):
        return {"manifest_version": 3, "name": extension.name, "version": "1"}

    service = CatalogService(seeded_store, manifest_factory=_broken_factory)
    with caplog.at_level(logging.ERROR, logger="extcatalog.catalog.service"):
        with pytest.raises(InternalError, match="Manifest generation failed"):
            service.get_manifest(1)
    record = next(r for r in caplog.records if "failed validation" in r.getMessage())
    assert record.violation["path"] == "manifest_version"


def test_store_failure_becomes_internal_error(caplog):
    store = _BrokenStore()
    service = CatalogService(store)
    with caplog.at_level(logging.ERROR, logger="extcatalog.catalog.service"):
        with pytest.raises(InternalError):
            service.get_extension(1)
        with pytest.raises(InternalError):
            service.list_extensions()
    assert any(r.operation == "get_extension" for r in caplog.records)


def test_create_category_and_extension(service):
    category = service.create_category({"name": "  Themes "})
    assert category.name == "Themes"
    extension = service.create_extension(
        {
            "name": "Dark Mode",
            "description": "Night theme",
            "icon": "moon",
            "users": "5K+",
            "category_id": category.id,
            "rating": "4.25",
        }
    )
    assert extension.category_id == category.id
    assert extension.to_payload()["rating"] == "4.25"
    assert [e.id for e in service.list_by_category(category.id).items] == [extension.id]


@pytest.mark.parametrize(
    "payload",
    [
        {"name": "", "icon": "x", "users": "1+"},
        {"name": "x" * 101, "icon": "x", "users": "1+"},
        {"name": "ok", "icon": "x", "users": "1+", "rating": "12"},
        {"name": "ok", "icon": "x", "users": "1+", "rating": "abc"},
        {"name": "ok", "icon": "x", "users": "1+", "category_id": 999},
    ],
)
def test_invalid_extension_drafts_are_bad_requests(service, payload):
    with pytest.raises(BadRequest):
        service.create_extension(payload)


def test_duplicate_category_is_bad_request(service):
    with pytest.raises(BadRequest):
        service.create_category({"name": "Security"})


def test_identifiers_beyond_integer_range_match_nothing(service):
    huge = "99999999999999999999"
    assert service.get_extension(huge) is None
    with pytest.raises(NotFound):
        service.get_manifest(huge)
    assert service.list_by_category(huge).items == []
    paged = service.list_by_category(huge, page=0, limit=5)
    assert paged.items == []
    assert paged.limit == 5
    with pytest.raises(BadRequest, match="does not exist"):
        service.create_extension(
            {"name": "Big", "icon": "x", "users": "1+", "category_id": 2**70}
        )
