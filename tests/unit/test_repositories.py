import uuid

import pytest
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from app.models.client import Client
from app.repositories import client as repo


def make_client(**overrides):
    data = {
        "id": str(uuid.uuid4()),
        "name": "Test Client",
        "phone": "1234567890",
        "email": "test@client.com",
        "comment": None,
    }
    data.update(overrides)
    return Client(**data)


def test_insert_and_find_and_delete(session):
    c = repo.insert_client(session, make_client(comment="hello"))

    found = repo.find_client_by_id(session, c.id)
    assert found.email == "test@client.com"
    assert found.comment == "hello"

    assert repo.delete_client(session, c.id) == 1
    assert repo.find_client_by_id(session, c.id) is None


def test_find_unknown_returns_none(session):
    assert repo.find_client_by_id(session, "does-not-exist") is None


def test_list_clients_limit_offset(session):
    for i in range(5):
        repo.insert_client(session, make_client(name=f"C{i}"))

    assert len(repo.list_clients(session, limit=2, offset=0)) == 2
    assert len(repo.list_clients(session, limit=10, offset=3)) == 2
    assert repo.list_clients(session, limit=10, offset=5) == []
    assert repo.list_clients(session, limit=0, offset=0) == []


def test_update_client_rowcount(session):
    c = repo.insert_client(session, make_client())
    fields = {"name": "New", "phone": "0987654321", "email": "new@test.com", "comment": None}

    assert repo.update_client(session, c.id, fields) == 1
    session.expire_all()
    updated = repo.find_client_by_id(session, c.id)
    assert updated.name == "New"
    assert updated.email == "new@test.com"


def test_update_client_clears_comment(session):
    c = repo.insert_client(session, make_client(comment="old"))
    # champ absent du dict == NULL: remplacement complet
    assert repo.update_client(session, c.id, {"name": "X", "phone": "1234567890", "email": "x@test.com"}) == 1
    session.expire_all()
    assert repo.find_client_by_id(session, c.id).comment is None


def test_update_client_not_found(session):
    fields = {"name": "X", "phone": "1234567890", "email": "x@test.com", "comment": None}
    assert repo.update_client(session, "missing", fields) == 0
    assert repo.list_clients(session) == []


def test_delete_client_not_found(session):
    assert repo.delete_client(session, "missing") == 0


def test_insert_duplicate_id_raises_constraint_error(session, engine):
    c = repo.insert_client(session, make_client())
    # session séparée pour que l'identity map ne masque pas la collision
    from sqlalchemy.orm import Session
    with Session(engine) as other:
        with pytest.raises(repo.ConstraintError):
            repo.insert_client(other, make_client(id=c.id))


def test_constraint_error_is_store_unavailable():
    assert issubclass(repo.ConstraintError, repo.StoreUnavailableError)


def test_insert_sqlalchemy_error(monkeypatch, session):
    monkeypatch.setattr(session, "commit", lambda: (_ for _ in ()).throw(SQLAlchemyError("boom")))
    with pytest.raises(repo.StoreUnavailableError):
        repo.insert_client(session, make_client())


def test_find_timeout_is_store_unavailable(monkeypatch, session):
    def timeout(*a, **kw):
        raise OperationalError("SELECT", {}, Exception("canceling statement due to statement timeout"))

    monkeypatch.setattr(session, "execute", timeout)
    with pytest.raises(repo.StoreUnavailableError):
        repo.find_client_by_id(session, "any")


def test_list_sqlalchemy_error(monkeypatch, session):
    monkeypatch.setattr(session, "execute", lambda *a, **kw: (_ for _ in ()).throw(SQLAlchemyError("fail")))
    with pytest.raises(repo.StoreUnavailableError):
        repo.list_clients(session, limit=1, offset=0)


def test_update_sqlalchemy_error(monkeypatch, session):
    c = repo.insert_client(session, make_client())

    def bad_commit():
        raise SQLAlchemyError("fail")

    monkeypatch.setattr(session, "commit", bad_commit)
    with pytest.raises(repo.StoreUnavailableError):
        repo.update_client(session, c.id, {"name": "oops", "phone": "1234567890", "email": "a@b.cd"})


def test_delete_sqlalchemy_error(monkeypatch, session):
    c = repo.insert_client(session, make_client())

    def bad_commit():
        raise SQLAlchemyError("fail")

    monkeypatch.setattr(session, "commit", bad_commit)
    with pytest.raises(repo.StoreUnavailableError):
        repo.delete_client(session, c.id)


def test_store_error_is_logged_with_context(monkeypatch, session, caplog):
    monkeypatch.setattr(session, "execute", lambda *a, **kw: (_ for _ in ()).throw(SQLAlchemyError("fail")))
    caplog.set_level("ERROR")
    with pytest.raises(repo.StoreUnavailableError):
        repo.delete_client(session, "abc-123")
    assert "delete" in caplog.text
    assert "abc-123" in caplog.text
