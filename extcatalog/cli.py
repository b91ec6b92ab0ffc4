from __future__ import annotations

import json
import logging
from typing import Optional

import typer

from extcatalog.catalog.seed import seed_catalog
from extcatalog.catalog.service import CatalogService
from extcatalog.catalog.sql_store import SqlCatalogStore
from extcatalog.config import load_settings
from extcatalog.errors import CatalogError
from extcatalog.logging_config import init_logging

app = typer.Typer(add_completion=False, help="Extension catalog command line utilities.")
logger = logging.getLogger(__name__)

DB_OPTION = typer.Option(None, "--db", help="Database URL (defaults to settings).")
LOG_LEVEL_OPTION = typer.Option("WARNING", "--log-level", help="Logging level.")


def _service(database_url: Optional[str]) -> CatalogService:
    settings = load_settings()
    store = SqlCatalogStore(database_url or settings.database_url)
    return CatalogService(store, default_page_size=settings.default_page_size)


def _fail(exc: CatalogError) -> None:
    print(json.dumps({"ok": False, "code": exc.code, "message": exc.message}, indent=2))
    raise typer.Exit(code=1)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Bind host."),
    port: Optional[int] = typer.Option(None, help="Bind port."),
    reload: bool = typer.Option(False, help="Reload on code changes."),
) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    settings = load_settings()
    uvicorn.run(
        "extcatalog.server.app:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_config=None,
    )


@app.command()
def seed(database_url: Optional[str] = DB_OPTION, log_level: str = LOG_LEVEL_OPTION) -> None:
    """Insert the sample categories and extensions (idempotent)."""
    init_logging(level=log_level, to_file=False)
    service = _service(database_url)
    created = seed_catalog(service.store)
    logger.info("Seed finished: %s", created)
    print(json.dumps({"ok": True, "created": created}, indent=2))


@app.command()
def categories(
    database_url: Optional[str] = DB_OPTION, log_level: str = LOG_LEVEL_OPTION
) -> None:
    """Print all categories as JSON."""
    init_logging(level=log_level, to_file=False)
    try:
        items = _service(database_url).list_categories()
    except CatalogError as exc:
        _fail(exc)
        return
    print(json.dumps({"ok": True, "items": [c.to_payload() for c in items]}, indent=2))


@app.command()
def manifest(
    extension_id: str = typer.Argument(..., help="Extension id."),
    database_url: Optional[str] = DB_OPTION,
    log_level: str = LOG_LEVEL_OPTION,
) -> None:
    """Print the validated manifest and security summary for an extension."""
    init_logging(level=log_level, to_file=False)
    try:
        report = _service(database_url).get_manifest(extension_id)
    except CatalogError as exc:
        _fail(exc)
        return
    print(json.dumps(report.to_payload(), indent=2))


def main() -> None:  # pragma: no cover - console script shim
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
