# tests/conftest.py
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.core.database import Base, get_db
from app.models import client as _client_model  # noqa: F401


# --------------------------------------------------------------------
# DB SQLite en mémoire, une base neuve par test
# --------------------------------------------------------------------
# StaticPool: une seule connexion partagée, sinon chaque thread du
# threadpool FastAPI verrait sa propre base :memory: vide
@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture
def session(engine):
    """Fournit une session DB propre pour chaque test."""
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, future=True)
    db = factory()
    try:
        yield db
    finally:
        db.close()


# --------------------------------------------------------------------
# Fournir un client FastAPI avec la DB de test
# --------------------------------------------------------------------
@pytest.fixture
def client(session):
    """Client API pour les tests d'intégration (sans lifespan)."""
    def override_get_db():
        yield session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def valid_payload():
    return {
        "name": "John Doe",
        "phone": "+33612345678",
        "email": "john.doe@example.com",
        "comment": "VIP",
    }
