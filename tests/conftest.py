from __future__ import annotations

import itertools
import os
import tempfile
from datetime import timedelta

_TMP_DIR = tempfile.mkdtemp(prefix="sample_app_tests_")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("DATA_DIR", _TMP_DIR)
os.environ.setdefault("LOGS_DIR", _TMP_DIR)
os.environ.setdefault("SECRET_KEY", "test-secret")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from sample_app.core.database import Base, get_db
from sample_app.core.models import Micropost, User, utcnow
from sample_app.core.security import pwd_context
from sample_app.main import app
from sample_app.services.identity_service import IdentityService
from sample_app.services.micropost_service import MicropostService

# Минимальная стоимость bcrypt, чтобы тесты шли быстро
pwd_context.update(bcrypt__default_rounds=4)

_emails = itertools.count(1)


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def make_user(db):
    def _make_user(name: str = "Example User", email: str | None = None, password: str = "foobar",
                   admin: bool = False) -> User:
        service = IdentityService(db)
        email = email or f"person-{next(_emails)}@example.com"
        user = service.create(name, email, password, password)
        if admin:
            user = service.set_admin(user.id, True)
        return user

    return _make_user


@pytest.fixture
def make_post(db):
    def _make_post(user: User, content: str = "Lorem ipsum", ago: timedelta | None = None) -> Micropost:
        created_at = utcnow() - ago if ago is not None else None
        return MicropostService(db).create(user.id, content, created_at=created_at)

    return _make_post


@pytest.fixture
def client(db) -> TestClient:
    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
