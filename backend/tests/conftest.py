"""
Configuration partagée pour tous les tests.
Base SQLite en mémoire (StaticPool) à la place de PostgreSQL, envoi d'emails simulé,
limiteur 2FA et quotas de requêtes réinitialisés entre chaque test.
"""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.database import Base, get_db
from app.main import app
from app.middleware import request_limit_storage
from app.services.rate_limiter import InMemoryRateLimitStore, otp_rate_limiter


@pytest.fixture
def db():
    """Session sur une base SQLite en mémoire, tables créées à neuf pour chaque test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def client(db):
    """Client HTTP de test branché sur la base en mémoire."""
    app.dependency_overrides[get_db] = lambda: db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    otp_rate_limiter.store = InMemoryRateLimitStore()
    yield
    otp_rate_limiter.store = InMemoryRateLimitStore()


@pytest.fixture(autouse=True)
def sent_emails():
    """Remplace l'envoi SMTP : chaque email 'envoyé' est enregistré (to, code, name)."""
    outbox = []

    def _fake_send(to_email, code, display_name=None):
        outbox.append({"to": to_email, "code": code, "name": display_name})
        return True

    with patch("app.services.two_factor_service.send_otp_email", side_effect=_fake_send) as mock:
        mock.outbox = outbox
        yield outbox


@pytest.fixture(autouse=True)
def reset_request_limits():
    """Quotas par IP remis à zéro : tous les tests partagent l'adresse "testclient"."""
    request_limit_storage.reset()
    yield
    request_limit_storage.reset()
