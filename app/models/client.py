from __future__ import annotations
from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column
from app.core.database import Base

class Client(Base):
    __tablename__ = "clients"

    # UUID textuel généré côté service, jamais réassigné
    id: Mapped[str] = mapped_column(String(36), primary_key=True)

    name:  Mapped[str] = mapped_column(Text, nullable=False)
    phone: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(Text, nullable=False)

    # <= 255 caractères, contrôlé par le service et non par le schéma
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Client id={self.id} email={self.email}>"
