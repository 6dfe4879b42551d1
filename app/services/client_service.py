from __future__ import annotations

import logging
import uuid
from sqlalchemy.orm import Session

from app.models.client import Client
from app.schemas.client import ClientIn
from app.repositories import client as repo
from app.services.validators import validate_comment, validate_email, validate_phone

logger = logging.getLogger(__name__)


class NotFoundError(Exception): ...
class InvalidFormatError(Exception): ...
class CommentTooLongError(Exception): ...


def _fields(data: ClientIn) -> dict[str, str | None]:
    # commentaire vide == absent
    return {
        "name": data.name,
        "phone": data.phone,
        "email": data.email,
        "comment": data.comment or None,
    }


class ClientService:
    """
    Une méthode par opération CRUD. Les validations sont faites avant tout
    appel au store; les erreurs du store (repo.StoreUnavailableError)
    remontent telles quelles, sans nouvelle tentative.
    """
    def __init__(self, db: Session):
        self.db = db

    def get(self, client_id: str) -> Client:
        c = repo.find_client_by_id(self.db, client_id)
        if not c:
            raise NotFoundError("Client not found")
        return c

    def list(self, limit: int = 10, offset: int = 0) -> list[Client]:
        return repo.list_clients(self.db, limit=limit, offset=offset)

    def create(self, data: ClientIn) -> Client:
        if not validate_phone(data.phone) or not validate_email(data.email):
            logger.warning("validation failed for phone=%s or email=%s", data.phone, data.email)
            raise InvalidFormatError("Invalid phone or email format")
        if not validate_comment(data.comment):
            logger.warning("comment is too long: %d characters", len(data.comment or ""))
            raise CommentTooLongError("Comment is too long")

        client = Client(id=str(uuid.uuid4()), **_fields(data))
        return repo.insert_client(self.db, client)

    def update(self, client_id: str, data: ClientIn) -> Client:
        # ordre: email, téléphone, commentaire
        if not validate_email(data.email):
            raise InvalidFormatError("Invalid email format")
        if not validate_phone(data.phone):
            raise InvalidFormatError("Invalid phone format")
        if not validate_comment(data.comment):
            raise CommentTooLongError("Comment is too long")

        fields = _fields(data)
        if repo.update_client(self.db, client_id, fields) == 0:
            logger.warning("client %s not found", client_id)
            raise NotFoundError("Client not found")
        return Client(id=client_id, **fields)

    def delete(self, client_id: str) -> None:
        if repo.delete_client(self.db, client_id) == 0:
            logger.warning("client %s not found", client_id)
            raise NotFoundError("Client not found")
