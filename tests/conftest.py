import os

# settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret-for-dashboard-tests")
os.environ.setdefault("SEED_ON_STARTUP", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from dashboard.db import create_db_engine, get_db
from dashboard.main import app
from dashboard.models import Base, User
from dashboard.security.auth import get_password_hash
from dashboard.security.tokens import get_token_service

PASSWORD = "secret123"

@pytest.fixture
def engine():
    engine = create_db_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()

@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)

@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()

@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()

@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(role: str = "viewer", status: str = "active", email: str | None = None, password: str = PASSWORD) -> User:
        counter["n"] += 1
        user = User(
            name=f"{role.title()} User {counter['n']}",
            email=email or f"{role}{counter['n']}@acme.io",
            password_hash=get_password_hash(password),
            role=role,
            status=status,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make

@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {get_token_service().issue(user)}"}

    return _headers
