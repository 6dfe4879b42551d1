# app/repositories/client.py
from __future__ import annotations
import logging
from typing import Any
from sqlalchemy import select, update, delete
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from app.models.client import Client

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "phone", "email", "comment")


class StoreUnavailableError(Exception):
    """Connexion, timeout (pool ou requête) ou erreur SQL."""

class ConstraintError(StoreUnavailableError):
    """Violation de contrainte (collision d'id)."""


def _fail(db: Session, operation: str, key: Any, exc: SQLAlchemyError) -> StoreUnavailableError:
    try:
        db.rollback()
    except SQLAlchemyError:
        logger.exception("rollback failed", extra={"operation": operation})
    logger.error("store error during %s (key=%s)", operation, key, exc_info=exc)
    if isinstance(exc, IntegrityError):
        return ConstraintError(f"{operation} violated a constraint")
    return StoreUnavailableError(f"{operation} failed")


def insert_client(db: Session, client: Client) -> Client:
    try:
        db.add(client)
        db.commit()
        logger.info("client created", extra={"id": client.id, "email": client.email})
        return client
    except SQLAlchemyError as e:
        raise _fail(db, "insert", client.id, e) from e

def find_client_by_id(db: Session, client_id: str) -> Client | None:
    try:
        client = db.execute(select(Client).where(Client.id == client_id)).scalar_one_or_none()
    except SQLAlchemyError as e:
        raise _fail(db, "find_by_id", client_id, e) from e
    if client:
        logger.debug("client retrieved", extra={"id": client_id})
    else:
        logger.debug("client not found", extra={"id": client_id})
    return client

def list_clients(db: Session, limit: int = 10, offset: int = 0) -> list[Client]:
    # Pas d'ORDER BY: l'ordre est celui du moteur
    try:
        rows = list(db.execute(select(Client).limit(limit).offset(offset)).scalars())
    except SQLAlchemyError as e:
        raise _fail(db, "list", f"limit={limit} offset={offset}", e) from e
    logger.debug("clients listed", extra={"count": len(rows), "offset": offset, "limit": limit})
    return rows

def update_client(db: Session, client_id: str, fields: dict[str, Any]) -> int:
    values = {k: fields.get(k) for k in UPDATABLE_FIELDS}
    try:
        result = db.execute(update(Client).where(Client.id == client_id).values(**values))
        db.commit()
    except SQLAlchemyError as e:
        raise _fail(db, "update", client_id, e) from e
    if result.rowcount:
        logger.info("client updated", extra={"id": client_id})
    else:
        logger.debug("client not found for update", extra={"id": client_id})
    return result.rowcount

def delete_client(db: Session, client_id: str) -> int:
    try:
        result = db.execute(delete(Client).where(Client.id == client_id))
        db.commit()
    except SQLAlchemyError as e:
        raise _fail(db, "delete", client_id, e) from e
    if result.rowcount:
        logger.info("client deleted", extra={"id": client_id})
    else:
        logger.debug("client not found for delete", extra={"id": client_id})
    return result.rowcount
