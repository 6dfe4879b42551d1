from __future__ import annotations
from typing import Optional
from pydantic import BaseModel, ConfigDict

class ClientIn(BaseModel):
    """
    Corps de requête pour POST et PUT.
    Les formats (téléphone, email, commentaire) sont contrôlés par le service,
    ici on ne vérifie que la forme. Un éventuel 'id' est ignoré.
    """
    model_config = ConfigDict(extra="ignore")

    name:    str
    phone:   str
    email:   str
    comment: Optional[str] = None

class ClientOut(BaseModel):
    id:      str
    name:    str
    phone:   str
    email:   str
    comment: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
