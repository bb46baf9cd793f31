import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AUTO_CREATE_DB", "false")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from gearguard.auth.security import create_access_token, get_password_hash
from gearguard.db import Base, get_db
from gearguard.main import app
from gearguard.models.models import User


API = "/api"
PASSWORD = "Secret123!"


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(session_factory):
    def get_test_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = get_test_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_user(db, name: str, email: str, role: str = "user") -> User:
    user = User(name=name, email=email, password_hash=get_password_hash(PASSWORD), role=role, is_active=True)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def headers_for(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id, role=user.role)}"}


@pytest.fixture()
def admin(db):
    return make_user(db, "Ada Admin", "admin@example.com", "admin")


@pytest.fixture()
def manager(db):
    return make_user(db, "Morgan Manager", "manager@example.com", "manager")


@pytest.fixture()
def technician(db):
    return make_user(db, "Terry Tech", "tech@example.com", "technician")


@pytest.fixture()
def other_technician(db):
    return make_user(db, "Olive Other", "olive@example.com", "technician")


@pytest.fixture()
def plain_user(db):
    return make_user(db, "Uma User", "user@example.com", "user")
