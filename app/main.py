from __future__ import annotations

import logging
import os
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Callable, Awaitable, Optional

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from sqlalchemy import text
from sqlalchemy.engine import make_url

from app.core.config import Settings, settings as default_settings
from app.core.database import build_engine, build_session_factory, init_db
from app.core.logging import access_log_middleware
from app.api.routes import router as client_router

logger = logging.getLogger("client-api")

HEALTH_MSG = "Service is healthy"
INVALID_BODY_MSG = "Invalid request body"

# Prometheus
REQUEST_COUNT = Counter("http_requests_total", "Total HTTP requests", ["method", "path", "status"])
REQUEST_LATENCY = Histogram("http_request_duration_seconds", "HTTP request latency", ["method", "path"])


class StartupError(RuntimeError):
    """Configuration absente ou base injoignable au démarrage: le process doit s'arrêter."""


def _metrics_path(path: str) -> str:
    parts = [p for p in path.split("/") if p]
    if "clients" in parts:
        idx = parts.index("clients")
        return "/clients/{id}" if len(parts) > idx + 1 else "/clients"
    return path


def _split(value: str) -> list[str]:
    return ["*"] if value == "*" else [v.strip() for v in value.split(",") if v.strip()]


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Compose l'application. Le pool (engine) n'est créé que dans le lifespan
    et vit dans app.state: aucune référence globale.
    """
    cfg = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        if not cfg.DATABASE_URL:
            logger.critical("DATABASE_URL environment variable is not set")
            raise StartupError("DATABASE_URL environment variable is not set")

        logger.info(
            "connecting to database using DSN: %s",
            make_url(cfg.DATABASE_URL).render_as_string(hide_password=True),
        )
        engine = build_engine(cfg)
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception as e:
            engine.dispose()
            logger.critical("unable to connect to database", exc_info=e)
            raise StartupError("unable to connect to database") from e
        logger.info("database connection OK")

        if cfg.DB_CREATE_TABLES:
            init_db(engine)

        app.state.engine = engine
        app.state.session_factory = build_session_factory(engine)
        try:
            yield
        finally:
            engine.dispose()
            logger.info("database pool closed")

    app = FastAPI(
        title=cfg.APP_TITLE,
        description=cfg.APP_DESCRIPTION,
        version=cfg.APP_VERSION,
        lifespan=lifespan,
        root_path=os.getenv("ROOT_PATH", ""),
        docs_url="/docs" if cfg.ENV != "prod" else None,
        redoc_url="/redoc" if cfg.ENV != "prod" else None,
        openapi_url="/openapi.json" if cfg.ENV != "prod" else None,
    )

    # Access log
    app.middleware("http")(access_log_middleware)

    # Metrics middleware
    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        start = time.time()
        response: Response = await call_next(request)
        duration = time.time() - start

        path = _metrics_path(request.url.path)
        REQUEST_COUNT.labels(request.method, path, str(response.status_code)).inc()
        REQUEST_LATENCY.labels(request.method, path).observe(duration)
        return response

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.CORS_ALLOW_ORIGINS,
        allow_credentials=cfg.CORS_ALLOW_CREDENTIALS,
        allow_methods=_split(cfg.CORS_ALLOW_METHODS),
        allow_headers=_split(cfg.CORS_ALLOW_HEADERS),
    )

    # Corps illisible ou de mauvaise forme -> 400, rien n'est persisté
    @app.exception_handler(RequestValidationError)
    async def invalid_body_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning("error decoding request body on %s %s: %s", request.method, request.url.path, exc.errors())
        return JSONResponse(status_code=400, content={"detail": INVALID_BODY_MSG})

    @app.get("/", response_class=PlainTextResponse, tags=["health"])
    def health() -> str:
        return HEALTH_MSG

    @app.get("/metrics", include_in_schema=False)
    def metrics() -> Response:
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(client_router)
    return app


app = create_app()
