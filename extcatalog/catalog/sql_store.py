"""
SQLAlchemy binding of the catalog storage port.

Two tables back the catalog::

    categories(id, name UNIQUE, created_at)
    extensions(id, name, description, category_id -> categories.id,
               icon, rating, users, created_at)

Any database URL SQLAlchemy understands works. SQLite connections get
foreign keys switched on and a Unicode-aware ``lower()``; ``:memory:`` URLs
share one connection.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Iterator, Optional

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    create_engine,
    event,
    or_,
    select,
)
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from extcatalog.catalog.models import (
    DEFAULT_RATING,
    Category,
    CategoryDraft,
    Extension,
    ExtensionDraft,
    as_utc,
    normalise_rating,
    utcnow,
)
from extcatalog.catalog.store import (
    MAX_PAGE_SIZE,
    CatalogIntegrityError,
    CatalogStoreError,
    normalise_query,
    page_window,
)

LOGGER = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class CategoryRow(Base):
    __tablename__ = "categories"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class ExtensionRow(Base):
    __tablename__ = "extensions"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("categories.id"), nullable=True, index=True
    )
    icon: Mapped[str] = mapped_column(String(50), nullable=False)
    rating: Mapped[Decimal] = mapped_column(Numeric(3, 2), default=DEFAULT_RATING)
    users: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


def _category(row: CategoryRow) -> Category:
    return Category(id=row.id, name=row.name, created_at=as_utc(row.created_at))


def _extension(row: ExtensionRow) -> Extension:
    return Extension(
        id=row.id,
        name=row.name,
        description=row.description,
        category_id=row.category_id,
        icon=row.icon,
        rating=normalise_rating(row.rating),
        users=row.users,
        created_at=as_utc(row.created_at),
    )


def _unicode_lower(value: Optional[str]) -> Optional[str]:
    return value.lower() if isinstance(value, str) else value


def _configure_sqlite_connection(dbapi_connection, _record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
    # The built-in lower() folds ASCII only; search compares lower(column)
    # against a needle lower-cased by Python.
    dbapi_connection.create_function("lower", 1, _unicode_lower, deterministic=True)


def create_catalog_engine(url: str, *, echo: bool = False) -> Engine:
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return create_engine(url, echo=echo, future=True, pool_pre_ping=True)
    database = parsed.database or ""
    if database in ("", ":memory:"):
        engine = create_engine(
            url,
            echo=echo,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        Path(database).expanduser().parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(
            url, echo=echo, future=True, connect_args={"check_same_thread": False}
        )
    event.listen(engine, "connect", _configure_sqlite_connection)
    return engine


class SqlCatalogStore:
    """Catalog store backed by a SQLAlchemy engine."""

    def __init__(self, engine: Engine | str, *, create_schema: bool = True) -> None:
        self.engine = (
            create_catalog_engine(engine) if isinstance(engine, str) else engine
        )
        self._sessions = sessionmaker(
            bind=self.engine, autoflush=False, expire_on_commit=False, future=True
        )
        if create_schema:
            self.ensure_schema()

    def ensure_schema(self) -> None:
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise CatalogStoreError(f"failed to create catalog schema: {exc}") from exc

    def dispose(self) -> None:
        self.engine.dispose()

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self._sessions()
        try:
            yield session
        except CatalogStoreError:
            session.rollback()
            raise
        except IntegrityError as exc:
            session.rollback()
            LOGGER.debug("Integrity failure: %s", exc.orig)
            raise CatalogIntegrityError("catalog constraint violated") from exc
        except SQLAlchemyError as exc:
            session.rollback()
            raise CatalogStoreError(f"catalog query failed: {exc}") from exc
        finally:
            session.close()

    def _extensions(self, stmt) -> list[Extension]:
        with self._session() as session:
            return [_extension(row) for row in session.scalars(stmt)]

    # ------------------------------------------------------------------ Reads
    def list_extensions(self) -> list[Extension]:
        return self._extensions(select(ExtensionRow).order_by(ExtensionRow.id))

    def list_extensions_paged(self, page: int, limit: int) -> list[Extension]:
        offset, size = page_window(page, limit)
        stmt = select(ExtensionRow).order_by(ExtensionRow.id).offset(offset).limit(size)
        return self._extensions(stmt)

    def list_by_category(self, category_id: int) -> list[Extension]:
        stmt = (
            select(ExtensionRow)
            .where(ExtensionRow.category_id == category_id)
            .order_by(ExtensionRow.id)
        )
        return self._extensions(stmt)

    def list_by_category_paged(
        self, category_id: int, page: int, limit: int
    ) -> list[Extension]:
        offset, size = page_window(page, limit)
        stmt = (
            select(ExtensionRow)
            .where(ExtensionRow.category_id == category_id)
            .order_by(ExtensionRow.id)
            .offset(offset)
            .limit(size)
        )
        return self._extensions(stmt)

    def search(self, query: str) -> list[Extension]:
        needle = normalise_query(query)
        stmt = (
            select(ExtensionRow)
            .where(
                or_(
                    ExtensionRow.name.icontains(needle, autoescape=True),
                    ExtensionRow.description.icontains(needle, autoescape=True),
                )
            )
            .order_by(ExtensionRow.id)
            .limit(MAX_PAGE_SIZE)
        )
        return self._extensions(stmt)

    def list_categories(self) -> list[Category]:
        with self._session() as session:
            rows = session.scalars(select(CategoryRow).order_by(CategoryRow.id))
            return [_category(row) for row in rows]

    def get_category(self, category_id: int) -> Optional[Category]:
        with self._session() as session:
            row = session.get(CategoryRow, category_id)
            return _category(row) if row is not None else None

    def get_extension(self, extension_id: int) -> Optional[Extension]:
        with self._session() as session:
            row = session.get(ExtensionRow, extension_id)
            return _extension(row) if row is not None else None

    # ----------------------------------------------------------------- Writes
    def create_category(self, draft: CategoryDraft) -> Category:
        with self._session() as session:
            row = CategoryRow(name=draft.name, created_at=utcnow())
            session.add(row)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise CatalogIntegrityError(
                    f"category '{draft.name}' already exists"
                ) from exc
            LOGGER.debug("Created category %s (%s)", row.id, row.name)
            return _category(row)

    def create_extension(self, draft: ExtensionDraft) -> Extension:
        with self._session() as session:
            if (
                draft.category_id is not None
                and session.get(CategoryRow, draft.category_id) is None
            ):
                raise CatalogIntegrityError(
                    f"category {draft.category_id} does not exist"
                )
            row = ExtensionRow(
                name=draft.name,
                description=draft.description,
                category_id=draft.category_id,
                icon=draft.icon,
                rating=draft.rating,
                users=draft.users,
                created_at=utcnow(),
            )
            session.add(row)
            session.commit()
            LOGGER.debug("Created extension %s (%s)", row.id, row.name)
            return _extension(row)


__all__ = [
    "Base",
    "CategoryRow",
    "ExtensionRow",
    "SqlCatalogStore",
    "create_catalog_engine",
]
