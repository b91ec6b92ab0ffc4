"""
Catalog records.

``Category`` and ``Extension`` are what stores return; the ``*Draft`` types
are what callers hand to ``create_*``. Drafts check the column constraints
up front so every store implementation rejects the same inputs.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Mapping

MAX_CATEGORY_NAME = 50
MAX_EXTENSION_NAME = 100
MAX_ICON_NAME = 50
MAX_USERS_LABEL = 20
RATING_STEP = Decimal("0.01")
MAX_RATING = Decimal("9.99")
DEFAULT_RATING = Decimal("0.00")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def normalise_rating(value: Any) -> Decimal:
    if value is None:
        return DEFAULT_RATING
    if isinstance(value, bool):
        raise ValueError("rating must be a number")
    try:
        rating = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"rating {value!r} is not a decimal") from exc
    if not rating.is_finite():
        raise ValueError("rating must be finite")
    rating = rating.quantize(RATING_STEP, rounding=ROUND_HALF_UP)
    if rating < 0 or rating > MAX_RATING:
        raise ValueError(f"rating must be between 0.00 and {MAX_RATING}")
    return rating


def _require_text(field_name: str, value: Any, max_length: int | None) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{field_name} must be a string")
    cleaned = value.strip()
    if not cleaned:
        raise ValueError(f"{field_name} is required")
    if max_length is not None and len(cleaned) > max_length:
        raise ValueError(f"{field_name} exceeds {max_length} characters")
    return cleaned


@dataclass(frozen=True)
class Category:
    id: int
    name: str
    created_at: datetime

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "created_at": as_utc(self.created_at).isoformat(),
        }


@dataclass(frozen=True)
class Extension:
    id: int
    name: str
    description: str
    category_id: int | None
    icon: str
    rating: Decimal
    users: str
    created_at: datetime

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category_id": self.category_id,
            "icon": self.icon,
            "rating": f"{self.rating:.2f}",
            "users": self.users,
            "created_at": as_utc(self.created_at).isoformat(),
        }


@dataclass(frozen=True)
class CategoryDraft:
    name: str

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "name", _require_text("name", self.name, MAX_CATEGORY_NAME)
        )


@dataclass(frozen=True)
class ExtensionDraft:
    name: str
    description: str
    icon: str
    users: str
    category_id: int | None = None
    rating: Decimal = DEFAULT_RATING

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "name", _require_text("name", self.name, MAX_EXTENSION_NAME)
        )
        if not isinstance(self.description, str):
            raise ValueError("description must be a string")
        object.__setattr__(
            self, "icon", _require_text("icon", self.icon, MAX_ICON_NAME)
        )
        object.__setattr__(
            self, "users", _require_text("users", self.users, MAX_USERS_LABEL)
        )
        if self.category_id is not None and (
            isinstance(self.category_id, bool) or not isinstance(self.category_id, int)
        ):
            raise ValueError("category_id must be an integer")
        object.__setattr__(self, "rating", normalise_rating(self.rating))

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ExtensionDraft":
        return cls(
            name=payload.get("name"),  # type: ignore[arg-type]
            description=payload.get("description", ""),
            icon=payload.get("icon"),  # type: ignore[arg-type]
            users=payload.get("users"),  # type: ignore[arg-type]
            category_id=payload.get("category_id"),
            rating=payload.get("rating", DEFAULT_RATING),
        )


__all__ = [
    "Category",
    "CategoryDraft",
    "Extension",
    "ExtensionDraft",
    "MAX_CATEGORY_NAME",
    "MAX_EXTENSION_NAME",
    "normalise_rating",
    "utcnow",
]
