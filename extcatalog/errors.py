"""
Error taxonomy shared by the catalog service and the HTTP layer.

Store and manifest components raise their own typed failures; the service
translates them into one of the categories below so the server can map
them onto status codes without knowing about storage internals.
"""

from __future__ import annotations

from typing import Any


class CatalogError(Exception):
    """Base class for errors surfaced to catalog callers."""

    status_code: int = 500
    code: str = "catalog_error"

    def __init__(self, message: str, *, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class BadRequest(CatalogError):
    """Caller supplied an unusable identifier, query or paging value."""

    status_code = 400
    code = "bad_request"


class NotFound(CatalogError):
    """A well-formed identifier did not match any record."""

    status_code = 404
    code = "not_found"


class Forbidden(CatalogError):
    """The requested operation is disabled by a feature flag."""

    status_code = 403
    code = "forbidden"


class InternalError(CatalogError):
    """Storage failure or a synthesized manifest failing validation."""

    status_code = 500
    code = "internal_error"


__all__ = ["BadRequest", "CatalogError", "Forbidden", "InternalError", "NotFound"]
