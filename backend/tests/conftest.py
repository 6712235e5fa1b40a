from __future__ import annotations

import os
import pathlib
import sys

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# The application engine is built at import time; keep it off the filesystem.
os.environ.setdefault("KAKEIBO_DATABASE_URL", "sqlite://")

import backend.models  # noqa: E402,F401  # Ensure models are registered with metadata
from backend import database, identity  # noqa: E402
from backend.database import Base, enable_sqlite_foreign_keys  # noqa: E402
from backend.server import app  # noqa: E402


@pytest.fixture(scope="session")
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    enable_sqlite_foreign_keys(test_engine)
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture()
def db_session(engine):
    connection = engine.connect()
    transaction = connection.begin()
    TestingSessionLocal = sessionmaker(bind=connection, autoflush=False, autocommit=False, future=True)
    session: Session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


@pytest.fixture()
def user(db_session):
    return identity.create_user(db_session, "owner@example.com")


@pytest.fixture()
def other_user(db_session):
    return identity.create_user(db_session, "intruder@example.com")


@pytest.fixture()
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[database.get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def auth_headers(user):
    return {"Authorization": f"Bearer {user.api_token}"}
