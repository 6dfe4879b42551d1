from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker, DeclarativeBase, Session

from app.core.config import Settings

logger = logging.getLogger(__name__)


# --- Base déclarative ---
class Base(DeclarativeBase):
    """Base pour tous les modèles SQLAlchemy."""


def _engine_options(url: str, settings: Settings) -> dict[str, Any]:
    """
    Applique le délai par appel (DB_TIMEOUT_SECONDS) côté pool et côté driver.
    Le pool est borné (pool_size + max_overflow): c'est le seul mécanisme de
    backpressure, l'attente d'une connexion est limitée par pool_timeout.
    """
    timeout = settings.DB_TIMEOUT_SECONDS
    backend = make_url(url).get_backend_name()

    if backend == "sqlite":
        # SQLite: pas de QueuePool garanti, seul le verrou fichier est borné
        return {"connect_args": {"timeout": timeout, "check_same_thread": False}}

    options: dict[str, Any] = {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": timeout,
    }
    if backend == "postgresql":
        options["connect_args"] = {
            "connect_timeout": timeout,
            "options": f"-c statement_timeout={timeout * 1000}",
        }
    return options


# --- Engine SQLAlchemy ---
def build_engine(settings: Settings) -> Engine:
    url = settings.DATABASE_URL
    if not url:
        raise ValueError("DATABASE_URL is not configured")
    return create_engine(
        url,
        future=True,
        pool_pre_ping=True,
        echo=settings.DB_ECHO,
        **_engine_options(url, settings),
    )


# --- Session factory ---
def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        future=True,
    )


def init_db(engine: Engine) -> None:
    """
    Enregistre le modèle Client et crée la table si elle manque.
    Pas de migration: create_all ne modifie jamais une table existante.
    """
    from app.models import client  # noqa: F401
    Base.metadata.create_all(bind=engine)
    logger.info("DB init: tables ensured")


# --- Dépendance FastAPI pour obtenir une session ---
def get_db(request: Request):
    factory: sessionmaker[Session] = request.app.state.session_factory
    db = factory()
    logger.debug("db session opened")
    try:
        yield db
    except Exception:
        try:
            db.rollback()
            logger.exception("db session rolled back due to exception")
        except Exception:
            logger.exception("db rollback failed")
        raise
    finally:
        try:
            db.close()
            logger.debug("db session closed")
        except Exception:
            logger.exception("db session close failed")
