from __future__ import annotations

import json
import logging
import os
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict

DEFAULT_LOG_FILE = "catalog.log"
_REQUEST_ID_VAR: ContextVar[str | None] = ContextVar(
    "extcatalog_request_id", default=None
)
_HANDLER_MARK = "_extcatalog_handler"

# Attributes every LogRecord carries; anything else arrived through ``extra``.
_RESERVED_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None)).keys()
) | {"message", "asctime", "request_id", "taskName"}


class StructuredJsonFormatter(logging.Formatter):
    """Render log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        request_id = getattr(record, "request_id", None)
        if request_id:
            payload["request_id"] = request_id
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = record.stack_info

        extras = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS
        }
        if extras:
            payload["extra"] = extras
        return json.dumps(payload, ensure_ascii=True, default=repr)


class RequestContextFilter(logging.Filter):
    """Stamp the active request id onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        rid = get_request_id()
        if rid:
            record.request_id = rid
        elif not hasattr(record, "request_id"):
            record.request_id = None
        return True


def set_request_id(value: str | None) -> Token:
    return _REQUEST_ID_VAR.set(value)


def get_request_id() -> str | None:
    return _REQUEST_ID_VAR.get()


def reset_request_id(token: Token) -> None:
    try:
        _REQUEST_ID_VAR.reset(token)
    except ValueError:
        # Token created in another context (e.g. a worker thread).
        pass


def _coerce_level(level: str) -> int:
    value = logging.getLevelName(str(level).upper())
    return value if isinstance(value, int) else logging.INFO


def init_logging(
    log_dir: str | os.PathLike[str] | None = None,
    *,
    level: str = "INFO",
    filename: str = DEFAULT_LOG_FILE,
    to_file: bool = True,
) -> Path | None:
    """
    Route root logging through the JSON formatter.

    Handlers installed by an earlier call are replaced, others are left
    alone so pytest's capture handlers keep working. Returns the log file
    path, or ``None`` when ``to_file`` is false.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(_coerce_level(level))

    for handler in list(root_logger.handlers):
        if getattr(handler, _HANDLER_MARK, False):
            root_logger.removeHandler(handler)
            handler.close()

    formatter = StructuredJsonFormatter()
    context_filter = RequestContextFilter()
    handlers: list[logging.Handler] = [logging.StreamHandler()]

    log_path: Path | None = None
    if to_file:
        base = Path(log_dir or "logs").expanduser().resolve()
        base.mkdir(parents=True, exist_ok=True)
        log_path = base / filename
        handlers.append(
            RotatingFileHandler(
                str(log_path),
                maxBytes=5 * 1024 * 1024,
                backupCount=5,
                encoding="utf-8",
            )
        )

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(context_filter)
        setattr(handler, _HANDLER_MARK, True)
        root_logger.addHandler(handler)

    for noisy in ("uvicorn.access", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
    return log_path


__all__ = [
    "RequestContextFilter",
    "StructuredJsonFormatter",
    "get_request_id",
    "init_logging",
    "reset_request_id",
    "set_request_id",
]
