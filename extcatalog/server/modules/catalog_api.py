from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field

from extcatalog.catalog.service import CatalogService
from extcatalog.config import feature_flags
from extcatalog.errors import Forbidden, InternalError, NotFound

router = APIRouter(prefix="/api", tags=["Catalog"])


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=50)


class ExtensionCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str = ""
    icon: str = Field(min_length=1, max_length=50)
    users: str = Field(min_length=1, max_length=20)
    category_id: Optional[int] = None
    rating: Decimal = Decimal("0.00")


def get_service(request: Request) -> CatalogService:
    service = getattr(request.app.state, "catalog", None)
    if service is None:
        raise InternalError("catalog service is not configured")
    return service


def _ensure_enabled(flag: str) -> None:
    if not feature_flags.is_enabled(flag):
        raise Forbidden(f"{flag} is disabled")


@router.get("/extensions")
def list_extensions(
    page: Optional[int] = Query(None, description="Zero-based page index"),
    limit: Optional[int] = Query(None, description="Page size (max 50)"),
    service: CatalogService = Depends(get_service),
) -> Dict[str, Any]:
    return service.list_extensions(page, limit).to_payload()


@router.get("/extensions/search")
def search_extensions(
    q: Optional[str] = Query(None, description="Case-insensitive text"),
    service: CatalogService = Depends(get_service),
) -> Dict[str, Any]:
    items = service.search(q)
    return {"ok": True, "items": [item.to_payload() for item in items]}


@router.get("/extensions/{extension_id}")
def get_extension(
    extension_id: str, service: CatalogService = Depends(get_service)
) -> Dict[str, Any]:
    extension = service.get_extension(extension_id)
    if extension is None:
        raise NotFound(f"Extension {extension_id} not found")
    return {"ok": True, "item": extension.to_payload()}


@router.get("/extensions/{extension_id}/manifest")
def get_extension_manifest(
    extension_id: str, service: CatalogService = Depends(get_service)
) -> Dict[str, Any]:
    _ensure_enabled("enable_manifest_api")
    return service.get_manifest(extension_id).to_payload()


@router.get("/categories")
def list_categories(service: CatalogService = Depends(get_service)) -> Dict[str, Any]:
    items = service.list_categories()
    return {"ok": True, "items": [item.to_payload() for item in items]}


@router.get("/categories/{category_id}/extensions")
def list_category_extensions(
    category_id: str,
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    service: CatalogService = Depends(get_service),
) -> Dict[str, Any]:
    return service.list_by_category(category_id, page, limit).to_payload()


@router.post("/categories", status_code=201)
def create_category(
    payload: CategoryCreate, service: CatalogService = Depends(get_service)
) -> Dict[str, Any]:
    _ensure_enabled("enable_catalog_writes")
    category = service.create_category(payload.model_dump())
    return {"ok": True, "item": category.to_payload()}


@router.post("/extensions", status_code=201)
def create_extension(
    payload: ExtensionCreate, service: CatalogService = Depends(get_service)
) -> Dict[str, Any]:
    _ensure_enabled("enable_catalog_writes")
    extension = service.create_extension(payload.model_dump())
    return {"ok": True, "item": extension.to_payload()}
