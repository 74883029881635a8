"""Pytest configuration and fixtures for integration tests."""
import os

# Must be set before app.config is imported anywhere
os.environ["DATABASE_URL"] = os.getenv("TEST_DATABASE_URL", "sqlite://")

import uuid
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.orm import sessionmaker
from app.db.base_class import Base
from app.db.session import engine

# --- Constants ---
SUPERUSER_EMAIL = "superuser@test.com"
SUPERUSER_USERNAME = "superuser"
SUPERUSER_PASSWORD = "Super123!"

API = "/api/v1"


# --- Per-test fixtures ---

@pytest.fixture(scope="function")
async def client():
    """
    Create async HTTP client with proper DB dependency override.
    Each test gets:
      - Fresh tables (create_all / drop_all)
      - get_db overridden to use the test database
      - A pre-seeded superuser
    """
    from app.main import app as fastapi_app
    from app.api.deps import get_db
    from app.core.security import get_password_hash
    # Import all models so Base.metadata knows every table
    import app.models  # noqa: F401

    TestSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    # Create all tables
    Base.metadata.create_all(bind=engine)

    # Override get_db
    def _override_get_db():
        db = TestSession()
        try:
            yield db
        finally:
            db.close()

    fastapi_app.dependency_overrides[get_db] = _override_get_db

    # Seed a superuser
    db = TestSession()
    try:
        from app.models.user import User

        superuser = User(
            id=uuid.uuid4(),
            email=SUPERUSER_EMAIL,
            username=SUPERUSER_USERNAME,
            hashed_password=get_password_hash(SUPERUSER_PASSWORD),
            first_name="System",
            last_name="Admin",
            is_superuser=True,
            status="active",
        )
        db.add(superuser)
        db.commit()
    finally:
        db.close()

    transport = ASGITransport(app=fastapi_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    # Teardown
    fastapi_app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
async def superuser_headers(client: AsyncClient):
    """Get Authorization headers for the pre-seeded superuser."""
    return await login_user(client, SUPERUSER_EMAIL, SUPERUSER_PASSWORD)


@pytest.fixture
async def user_headers(client: AsyncClient):
    """Register a regular (non-superuser) account and return its headers."""
    return await register_user(client, "member@test.com", "member", "Member123!")


@pytest.fixture
async def project(client: AsyncClient, superuser_headers: dict) -> dict:
    """A project owned by the superuser, with its default environments."""
    return await create_project(client, superuser_headers, {"name": "Web App", "key": "web-app"})


# --- Helpers ---

async def login_user(client: AsyncClient, login: str, password: str) -> dict:
    """Helper: login and return auth headers."""
    resp = await client.post(
        f"{API}/auth/login/access-token",
        data={"username": login, "password": password},
    )
    assert resp.status_code == 200, f"Login failed for {login}: {resp.text}"
    token = resp.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


async def register_user(client: AsyncClient, email: str, username: str, password: str) -> dict:
    """Helper: register a user via API and return auth headers."""
    resp = await client.post(
        f"{API}/auth/register",
        json={"email": email, "username": username, "password": password},
    )
    assert resp.status_code == 201, f"Register failed for {email}: {resp.text}"
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


async def create_project(client: AsyncClient, headers: dict, data: dict) -> dict:
    """Helper: create a project via API and return its JSON."""
    resp = await client.post(f"{API}/projects/", json=data, headers=headers)
    assert resp.status_code == 201, f"Create project failed: {resp.text}"
    return resp.json()


async def create_flag(client: AsyncClient, headers: dict, project_id: str, data: dict) -> dict:
    """Helper: create a flag via API and return its JSON."""
    resp = await client.post(f"{API}/projects/{project_id}/flags", json=data, headers=headers)
    assert resp.status_code == 201, f"Create flag failed: {resp.text}"
    return resp.json()


async def create_segment(client: AsyncClient, headers: dict, project_id: str, data: dict) -> dict:
    """Helper: create a segment via API and return its JSON."""
    resp = await client.post(f"{API}/projects/{project_id}/segments", json=data, headers=headers)
    assert resp.status_code == 201, f"Create segment failed: {resp.text}"
    return resp.json()


def environment_id(project: dict, key: str) -> str:
    return next(e["id"] for e in project["environments"] if e["key"] == key)


def variation_id(flag: dict, name: str) -> str:
    return next(v["id"] for v in flag["variations"] if v["name"] == name)
