"""
DevDoc Backend — Test Configuration (conftest.py)
===================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Every test gets its own SQLite database file (aiosqlite) with the full
       schema, its own uploads directory, and, for API tests, an httpx
       AsyncClient talking to the FastAPI app through ASGITransport.

Fixture Hierarchy (all function-scoped):
    db_engine ── session_factory ─┬─ db_session ── user, other_user
                                  └─ test_client ── auth_headers, other_auth_headers
    upload_dir (patches file_service.upload_root)
"""

import os
import tempfile

# Settings are read at import time, so the environment must be in place
# before anything under app/ is imported
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///" + os.path.join(
    tempfile.mkdtemp(prefix="devdoc_test_"), "health.db"
)
os.environ["ENVIRONMENT"] = "test"
os.environ["JWT_SECRET"] = "test-secret-not-real"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="devdoc_uploads_")
os.environ["RATE_LIMIT_REQUESTS"] = "100000"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.database import Base, dispose_engine, enable_sqlite_foreign_keys, get_db_session
from app.models.project import Project  # noqa: F401
from app.models.user import User
from app.services.file_service import file_service

DEFAULT_PASSWORD = "secret123"


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """A fresh SQLite database with every table created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'devdoc_test.db'}")
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    """A session for service-level tests; nothing is committed."""
    async with session_factory() as session:
        yield session


async def _make_user(session: AsyncSession, email: str) -> User:
    user = User(email=email, password_hash="not-a-real-hash")
    session.add(user)
    await session.flush()
    return user


@pytest_asyncio.fixture
async def user(db_session):
    return await _make_user(db_session, "owner@example.com")


@pytest_asyncio.fixture
async def other_user(db_session):
    return await _make_user(db_session, "intruder@example.com")


# ══════════════════════════════════════════════════════════════════════════
# File storage
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    """Point the file service at a per-test uploads directory."""
    directory = (tmp_path / "uploads").resolve()
    directory.mkdir()
    monkeypatch.setattr(file_service, "upload_root", directory)
    return directory


@pytest.fixture
def sample_png_bytes():
    """PNG signature plus an IHDR chunk: enough to look like an image."""
    return (
        b"\x89PNG\r\n\x1a\n"
        b"\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00"
        b"\x1f\x15\xc4\x89"
    )


# ══════════════════════════════════════════════════════════════════════════
# HTTP
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(session_factory, upload_dir):
    """
    HTTPX AsyncClient wired to the FastAPI app and the per-test database.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/api/health")
            assert response.status_code == 200
    """
    from app.main import app

    async def override_get_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_get_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
    # The health check uses the module-level engine; drop its connections
    # so they are not reused from another test's event loop
    await dispose_engine()


async def _register(client: AsyncClient, email: str, password: str = DEFAULT_PASSWORD) -> dict:
    response = await client.post("/api/auth/register", json={"email": email, "password": password})
    assert response.status_code == 201, response.text
    return response.json()


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def auth_headers(test_client):
    """Authorization header of a freshly registered owner."""
    body = await _register(test_client, "owner@example.com")
    return bearer(body["token"])


@pytest_asyncio.fixture
async def other_auth_headers(test_client):
    """Authorization header of a second, unrelated user."""
    body = await _register(test_client, "intruder@example.com")
    return bearer(body["token"])


@pytest.fixture
def register_user(test_client):
    """Coroutine registering an account through the API; returns {token, user}."""

    async def _do(email: str, password: str = DEFAULT_PASSWORD) -> dict:
        return await _register(test_client, email, password)

    return _do
