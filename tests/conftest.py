"""
GAuth Web - Test Configuration

Pytest fixtures for API testing.
Provides an in-memory database, a test client, and user fixtures.
"""

import os

# Must be set before gauth_web is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SEED_DEFAULTS"] = "false"
os.environ["RATE_LIMIT"] = "1000/minute"
os.environ["RATE_LIMIT_STORAGE_URI"] = "memory://"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import Generator, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, select

from gauth_web.app import app
from gauth_web.auth.models import Role, User
from gauth_web.auth.password import hash_password
from gauth_web.auth.seed import seed_roles
from gauth_web.gateway.limiter import limiter


@pytest.fixture(scope="function")
def client() -> Generator[TestClient, None, None]:
    """
    Test client with a fresh in-memory database.

    Each client runs the app lifespan, which builds a new engine and tables.
    """
    limiter.reset()
    with TestClient(app) as c:
        yield c
    limiter.reset()


@pytest.fixture(scope="function")
def db_session(client) -> Generator[Session, None, None]:
    """Database session bound to the running app's engine."""
    with Session(app.state.db_engine) as session:
        yield session


@pytest.fixture(scope="function")
def default_roles(db_session) -> dict:
    """Seed the admin and user roles, keyed by name."""
    seed_roles(db_session)
    roles = db_session.exec(select(Role)).all()
    return {role.name: role for role in roles}


def make_user(
    db: Session,
    username: str,
    password: str = "Password123",
    roles: Optional[List[Role]] = None,
    is_active: bool = True,
    email: Optional[str] = None,
) -> User:
    """Insert a user directly into the database."""
    user = User(
        username=username,
        email=email or f"{username}@test.com",
        password_hash=hash_password(password),
        is_active=is_active,
        roles=roles or [],
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture(scope="function")
def test_admin(db_session, default_roles) -> User:
    """Create a test admin user."""
    return make_user(db_session, "admin_user", "AdminPass123", roles=[default_roles["admin"]])


@pytest.fixture(scope="function")
def test_member(db_session, default_roles) -> User:
    """Create a regular user holding the user role."""
    return make_user(db_session, "member", "MemberPass123", roles=[default_roles["user"]])


@pytest.fixture(scope="function")
def inactive_user(db_session, default_roles) -> User:
    """Create an inactive test user."""
    return make_user(
        db_session, "inactive", "InactivePass123", roles=[default_roles["user"]], is_active=False
    )


def login_user(client: TestClient, username: str, password: str) -> Optional[dict]:
    """Helper function to login and return the token response."""
    response = client.post(
        "/api/auth/login",
        json={"username": username, "password": password},
    )
    return response.json() if response.status_code == 200 else None


def auth_headers(access_token: str) -> dict:
    """Create authorization headers for authenticated requests."""
    return {"Authorization": f"Bearer {access_token}"}


@pytest.fixture(scope="function")
def admin_headers(client, test_admin) -> dict:
    tokens = login_user(client, "admin_user", "AdminPass123")
    return auth_headers(tokens["access_token"])


@pytest.fixture(scope="function")
def member_headers(client, test_member) -> dict:
    tokens = login_user(client, "member", "MemberPass123")
    return auth_headers(tokens["access_token"])
