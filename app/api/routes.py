from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.schemas.client import ClientIn, ClientOut
from app.services.client_service import (
    ClientService,
    NotFoundError,
    InvalidFormatError,
    CommentTooLongError,
)
from app.services.validators import parse_page_param
from app.repositories.client import StoreUnavailableError

router = APIRouter(prefix="/clients", tags=["Clients"])
logger = logging.getLogger(__name__)

# ---------- Messages ----------
CLIENT_NOT_FOUND_MSG = "Client not found"
INTERNAL_ERROR_MSG = "Internal server error"
CLIENT_DELETED_MSG = "Client deleted"

DEFAULT_LIMIT = 10
DEFAULT_OFFSET = 0

# ---------- Dépendances ----------
def get_client_service(db: Session = Depends(get_db)) -> ClientService:
    return ClientService(db)


def get_pagination(
    limit: Optional[str] = Query(None, description="Nombre max de clients (entier >= 0, défaut 10)"),
    offset: Optional[str] = Query(None, description="Décalage (entier >= 0, défaut 0)"),
) -> Tuple[int, int]:
    """Parse limit/offset à la main pour renvoyer 400 en nommant le paramètre."""
    parsed = {}
    for name, raw, default in (("limit", limit, DEFAULT_LIMIT), ("offset", offset, DEFAULT_OFFSET)):
        try:
            parsed[name] = parse_page_param(raw, default)
        except ValueError:
            logger.warning("invalid %s value: %s", name, raw)
            raise HTTPException(status_code=400, detail=f"Invalid {name} value")
    return parsed["limit"], parsed["offset"]


def _bad_request(exc: Exception) -> HTTPException:
    return HTTPException(status_code=400, detail=str(exc))


def _internal_error() -> HTTPException:
    # le détail de l'erreur du store est déjà loggé par le repository
    return HTTPException(status_code=500, detail=INTERNAL_ERROR_MSG)

# ===================== CRUD =====================

@router.post(
    "",
    response_model=ClientOut,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
def create_client(client: ClientIn, svc: ClientService = Depends(get_client_service)):
    """Crée un client; l'id est toujours généré par le serveur."""
    try:
        created = svc.create(client)
    except (InvalidFormatError, CommentTooLongError) as e:
        raise _bad_request(e)
    except StoreUnavailableError:
        raise _internal_error()
    return created


@router.get(
    "",
    response_model=List[ClientOut],
    response_model_exclude_none=True,
)
def list_clients(
    page: Tuple[int, int] = Depends(get_pagination),
    svc: ClientService = Depends(get_client_service),
):
    """Liste paginée (limit/offset), sans tri ni plafond sur limit."""
    limit, offset = page
    logger.info("fetching clients with limit=%d offset=%d", limit, offset)
    try:
        rows = svc.list(limit=limit, offset=offset)
    except StoreUnavailableError:
        raise _internal_error()
    logger.info("fetched %d clients", len(rows))
    return rows


@router.get(
    "/{client_id}",
    response_model=ClientOut,
    response_model_exclude_none=True,
)
def read_client(client_id: str, svc: ClientService = Depends(get_client_service)):
    try:
        return svc.get(client_id)
    except NotFoundError:
        logger.debug("client not found", extra={"id": client_id})
        raise HTTPException(status_code=404, detail=CLIENT_NOT_FOUND_MSG)
    except StoreUnavailableError:
        raise _internal_error()


@router.put(
    "/{client_id}",
    response_model=ClientOut,
    response_model_exclude_none=True,
)
def update_client(
    client_id: str,
    client: ClientIn,
    svc: ClientService = Depends(get_client_service),
):
    """Remplace name/phone/email/comment; l'id vient du chemin, jamais du corps."""
    logger.info("updating client %s", client_id)
    try:
        updated = svc.update(client_id, client)
    except (InvalidFormatError, CommentTooLongError) as e:
        raise _bad_request(e)
    except NotFoundError:
        raise HTTPException(status_code=404, detail=CLIENT_NOT_FOUND_MSG)
    except StoreUnavailableError:
        raise _internal_error()
    return updated


@router.delete("/{client_id}", response_class=PlainTextResponse)
def delete_client(client_id: str, svc: ClientService = Depends(get_client_service)):
    logger.info("deleting client %s", client_id)
    try:
        svc.delete(client_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail=CLIENT_NOT_FOUND_MSG)
    except StoreUnavailableError:
        raise _internal_error()
    return CLIENT_DELETED_MSG
