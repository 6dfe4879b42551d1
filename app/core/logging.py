from __future__ import annotations
import json
import logging
import logging.config
import os
import re
import time
import uuid
from contextvars import ContextVar
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional

from fastapi import Request, Response
from app.core.config import Settings, settings as default_settings

ACCESS_LOGGER_NAME = "app.access"

# === Context ===
_request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

def get_request_id() -> str | None:
    return _request_id_ctx.get()

def set_request_id(value: str | None) -> None:
    _request_id_ctx.set(value)

# === Filters ===
class ContextFilter(logging.Filter):
    """
    Injecte request_id et service dans chaque record.
    """
    def __init__(self, service_name: str):
        super().__init__()
        self.service_name = service_name

    def filter(self, record: logging.LogRecord) -> bool:
        rid = get_request_id()
        record.request_id = rid or "-"
        record.service = self.service_name
        return True

class SecretsFilter(logging.Filter):
    """
    Masque les mots de passe des URLs de connexion (DSN) et des payloads JSON.
    """
    # \S+ glouton: va jusqu'au dernier @, le mot de passe peut en contenir
    DSN_RE = re.compile(r"(\w+://[^:/@\s]+:)\S+@")
    PWD_RE = re.compile(r'("password"\s*:\s*)"(.*?)"', re.IGNORECASE)

    def _redact(self, value: str) -> str:
        value = self.DSN_RE.sub(r"\1[REDACTED]@", value)
        return self.PWD_RE.sub(r'\1"[REDACTED]"', value)

    def filter(self, record: logging.LogRecord) -> bool:
        if not isinstance(record.msg, str):
            return True

        # les args sont fusionnés avant masquage: le DSN arrive souvent via %s
        try:
            original_msg = record.getMessage()
        except (TypeError, ValueError):
            return True
        msg = self._redact(original_msg)

        if msg != original_msg:
            record.msg = msg
            record.args = ()

        return True

# === Formatters ===
class JsonFormatter(logging.Formatter):
    EXTRA_ATTRS = (
        "method", "path", "status", "latency_ms", "client_ip", "user_agent",
        "id", "email", "operation", "count", "limit", "offset",
    )

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S%z"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "service": getattr(record, "service", None),
            "request_id": getattr(record, "request_id", None),
        }
        for attr in self.EXTRA_ATTRS:
            val = getattr(record, attr, None)
            if val is not None:
                payload[attr] = val
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)

class PlainFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        rid = getattr(record, "request_id", "-")
        svc = getattr(record, "service", "-")
        return f"{base} [service={svc} rid={rid}]"

# === Handlers ===
def _decorate(handler: logging.Handler, formatter: logging.Formatter, service_name: str) -> logging.Handler:
    handler.setFormatter(formatter)
    handler.addFilter(SecretsFilter())
    handler.addFilter(ContextFilter(service_name=service_name))
    return handler

def _build_handler(cfg: Settings, filename: str, formatter: logging.Formatter) -> RotatingFileHandler:
    os.makedirs(cfg.LOG_DIR, exist_ok=True)
    path = os.path.join(cfg.LOG_DIR, filename)
    h = RotatingFileHandler(
        path,
        maxBytes=cfg.LOG_MAX_BYTES,
        backupCount=cfg.LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    _decorate(h, formatter, cfg.APP_NAME)
    return h

def setup_logging(cfg: Optional[Settings] = None) -> None:
    """
    Configure logging racine + access + uvicorn.
    Idempotent: ne s'exécute qu'une fois.
    """
    cfg = cfg or default_settings
    logger = logging.getLogger()
    if getattr(logger, "_configured", False):
        return

    level = getattr(logging, cfg.LOG_LEVEL.upper(), logging.INFO)
    is_json = cfg.LOG_FORMAT.lower() == "json"

    def make_formatter() -> logging.Formatter:
        return JsonFormatter() if is_json else PlainFormatter(
            fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    app_handlers: list[logging.Handler] = []
    access_handlers: list[logging.Handler] = []
    if cfg.LOG_ENABLE_FILE:
        app_handlers.append(_build_handler(cfg, cfg.LOG_FILE, make_formatter()))
        access_handlers.append(_build_handler(cfg, cfg.LOG_ACCESS_FILE, make_formatter()))
    if cfg.LOG_ENABLE_CONSOLE:
        console = _decorate(logging.StreamHandler(), make_formatter(), cfg.APP_NAME)
        console.setLevel(level)
        app_handlers.append(console)
        access_handlers.append(console)

    logger.setLevel(level)
    logger.handlers.clear()
    for h in app_handlers:
        logger.addHandler(h)

    access_logger = logging.getLogger(ACCESS_LOGGER_NAME)
    access_logger.setLevel(level)
    access_logger.handlers.clear()
    for h in access_handlers:
        access_logger.addHandler(h)
    access_logger.propagate = False

    for logger_name in ("uvicorn", "uvicorn.error"):
        logger_uvicorn = logging.getLogger(logger_name)
        logger_uvicorn.setLevel(level)
        logger_uvicorn.handlers.clear()
        for h in app_handlers:
            logger_uvicorn.addHandler(h)
        logger_uvicorn.propagate = False

    # l'access log uvicorn est remplacé par access_log_middleware
    logging.getLogger("uvicorn.access").handlers.clear()
    logging.getLogger("uvicorn.access").propagate = False

    logger._configured = True  # type: ignore[attr-defined]

# === Middleware Access Log ===
async def access_log_middleware(request: Request, call_next):
    rid = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    set_request_id(rid)

    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
    except Exception:
        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        logging.getLogger(ACCESS_LOGGER_NAME).exception(
            "unhandled exception",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status": 500,
                "latency_ms": duration_ms,
                "client_ip": request.client.host if request.client else None,
                "user_agent": request.headers.get("user-agent"),
            },
        )
        set_request_id(None)
        raise
    else:
        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        logging.getLogger(ACCESS_LOGGER_NAME).info(
            "request",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "latency_ms": duration_ms,
                "client_ip": request.client.host if request.client else None,
                "user_agent": request.headers.get("user-agent"),
            },
        )
        response.headers["X-Request-ID"] = rid
        set_request_id(None)
        return response
