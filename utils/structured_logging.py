"""
Structured JSON logging for the document-store API and the client persistence layer.

Every line is one ``LogEntry`` serialized to JSON. Lines emitted while serving an
HTTP request carry that request's correlation id, taken from the incoming
``X-Correlation-ID`` header when the caller supplied one.
"""

import json
import logging
import sys
import time
import traceback
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import Request
from pydantic import BaseModel, Field

correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


class LogCategory(str, Enum):
    """Which part of the system a line is about"""

    REQUEST = "request"
    DATABASE = "database"
    AUTHENTICATION = "authentication"
    STORAGE = "storage"
    SYNC = "sync"
    ERROR = "error"
    SYSTEM = "system"


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class LogEntry(BaseModel):
    timestamp: str = Field(default_factory=_utcnow_iso)
    level: str
    component: str = Field(..., description="Logger name, e.g. data_service or routes.progress")
    category: str
    message: str
    correlation_id: Optional[str] = None
    user_id: Optional[str] = None

    request_id: Optional[str] = None
    request_method: Optional[str] = None
    request_path: Optional[str] = None
    response_status: Optional[int] = None
    response_time_ms: Optional[float] = None

    error_type: Optional[str] = None
    error_message: Optional[str] = None
    error_stack: Optional[str] = None

    extra: Dict[str, Any] = Field(default_factory=dict)


class StructuredLogger:
    """Thin wrapper over a stdlib logger that writes ``LogEntry`` JSON to stdout."""

    def __init__(self, name: str, level: str = "INFO"):
        self.name = name
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level))
        self.logger.handlers = [_stdout_handler()]
        self.logger.propagate = False

    def _emit(self, level: int, category: str, message: str, exception: Optional[BaseException] = None, **fields):
        if not self.logger.isEnabledFor(level):
            return
        if exception is not None:
            fields.setdefault("error_type", type(exception).__name__)
            fields.setdefault("error_message", str(exception))
            fields["error_stack"] = "".join(
                traceback.format_exception(type(exception), exception, exception.__traceback__)
            )
        entry = LogEntry(
            level=logging.getLevelName(level),
            component=self.name,
            category=category,
            message=message,
            correlation_id=correlation_id_var.get(),
            **fields,
        )
        self.logger.log(level, entry.model_dump_json(exclude_none=True))

    def debug(self, message: str, category: str = LogCategory.SYSTEM, **fields):
        self._emit(logging.DEBUG, category, message, **fields)

    def info(self, message: str, category: str = LogCategory.SYSTEM, **fields):
        self._emit(logging.INFO, category, message, **fields)

    def warning(self, message: str, category: str = LogCategory.SYSTEM, **fields):
        self._emit(logging.WARNING, category, message, **fields)

    def error(self, message: str, category: str = LogCategory.ERROR, exception: Optional[BaseException] = None, **fields):
        self._emit(logging.ERROR, category, message, exception=exception, **fields)

    def critical(
        self, message: str, category: str = LogCategory.ERROR, exception: Optional[BaseException] = None, **fields
    ):
        self._emit(logging.CRITICAL, category, message, exception=exception, **fields)

    def database(self, operation: str, table: str, **fields):
        extra = {"operation": operation, "table": table, **fields.pop("extra", {})}
        self._emit(logging.DEBUG, LogCategory.DATABASE, f"Database {operation} on {table}", extra=extra, **fields)


class JsonLineFormatter(logging.Formatter):
    """Passes ``LogEntry`` lines through; wraps plain records (uvicorn, SQLAlchemy) as JSON."""

    def format(self, record: logging.LogRecord) -> str:
        if isinstance(record.msg, str) and record.msg.startswith("{"):
            return record.msg

        line = {
            "timestamp": _utcnow_iso(),
            "level": record.levelname,
            "component": record.name,
            "message": record.getMessage(),
            "correlation_id": correlation_id_var.get(),
        }
        if record.exc_info:
            line["error_stack"] = self.formatException(record.exc_info)
        return json.dumps(line)


def _stdout_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonLineFormatter())
    return handler


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """Bind ``correlation_id`` (or a fresh one) to the current context and return it."""
    if not correlation_id:
        correlation_id = f"corr_{uuid.uuid4().hex[:16]}"
    correlation_id_var.set(correlation_id)
    return correlation_id


async def log_request_middleware(request: Request, call_next):
    correlation_id = set_correlation_id(request.headers.get("X-Correlation-ID"))
    request.state.correlation_id = correlation_id
    request.state.request_id = f"req_{uuid.uuid4().hex[:8]}"

    logger = get_logger("api.request")
    context = {
        "request_id": request.state.request_id,
        "request_method": request.method,
        "request_path": request.url.path,
    }
    started = time.perf_counter()

    try:
        response = await call_next(request)
    except Exception as e:
        elapsed = (time.perf_counter() - started) * 1000
        logger.error("Request failed", exception=e, response_time_ms=elapsed, **context)
        raise

    elapsed = (time.perf_counter() - started) * 1000
    response.headers["X-Correlation-ID"] = correlation_id
    response.headers["X-Request-ID"] = request.state.request_id

    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code}",
        category=LogCategory.REQUEST,
        response_status=response.status_code,
        response_time_ms=round(elapsed, 2),
        **context,
    )
    return response


_loggers: Dict[str, StructuredLogger] = {}


def get_logger(name: str, level: str = "INFO") -> StructuredLogger:
    if name not in _loggers:
        _loggers[name] = StructuredLogger(name, level)
    return _loggers[name]


def log_authentication_event(
    event_type: str,
    user_id: Optional[str] = None,
    success: bool = True,
    details: Optional[Dict] = None,
):
    """Record a login attempt; failures are warnings so they stand out in the stream."""
    logger = get_logger("auth")
    outcome = "succeeded" if success else "failed"
    log = logger.info if success else logger.warning
    log(
        f"Authentication {outcome}: {event_type}",
        category=LogCategory.AUTHENTICATION,
        user_id=user_id,
        extra={"success": success, **(details or {})},
    )


def configure_logging(level: str = "INFO"):
    """Apply ``level`` to the root logger and every structured logger, and JSON-format root handlers."""
    numeric = getattr(logging, level.upper())
    root = logging.getLogger()
    root.setLevel(numeric)
    for handler in root.handlers:
        handler.setFormatter(JsonLineFormatter())
    for structured in _loggers.values():
        structured.logger.setLevel(numeric)

    get_logger("system").debug("Logging configured", extra={"level": level})
