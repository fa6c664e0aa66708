"""
Shared fixtures: an in-memory database per test, a temporary upload root
and an HTTP client bound to the application.
"""
import io

import pytest
from httpx import ASGITransport, AsyncClient
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clinic_cms import models  # noqa: F401
from clinic_cms.config import settings
from clinic_cms.database import IN_MEMORY_URL, Base, build_engine, get_db
from clinic_cms.main import app
from clinic_cms.services.file_storage import LocalFileStorage, configure_storage, reset_storage
from clinic_cms.services.ordering import OrderedCollection
from clinic_cms.utils.rate_limit import limiter
from clinic_cms.utils.security import create_access_token, hash_password
from clinic_cms.utils.uploads import IncomingFile

ADMIN_PASSWORD = "clinic-admin"


@pytest.fixture
async def engine():
    """
    In-memory SQLite engine with all tables created.
    StaticPool keeps every session on the same connection.
    """
    test_engine = build_engine(IN_MEMORY_URL)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def storage(tmp_path):
    """Route every upload of the test into a temporary directory."""
    test_storage = configure_storage(LocalFileStorage(tmp_path / "uploads", "/uploads"))
    yield test_storage
    reset_storage()


@pytest.fixture(autouse=True)
def fresh_state():
    """Scope locks and rate limit counters must not leak between event loops."""
    OrderedCollection._locks.clear()
    limiter.reset()
    yield
    OrderedCollection._locks.clear()


@pytest.fixture
def admin_password(monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_PASSWORD_HASH", hash_password(ADMIN_PASSWORD, rounds=4))
    return ADMIN_PASSWORD


@pytest.fixture
def auth_headers():
    token = create_access_token({"role": "admin", "sub": "cms_admin"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http_client:
        yield http_client
    app.dependency_overrides.clear()


@pytest.fixture
def png_bytes():
    """Factory for small valid PNG images."""
    def make(color=(200, 30, 30), size=(8, 6)) -> bytes:
        buffer = io.BytesIO()
        Image.new("RGB", size, color).save(buffer, format="PNG")
        return buffer.getvalue()
    return make


@pytest.fixture
def upload(png_bytes):
    """Factory for validated uploads as the routes hand them to services."""
    def make(filename="photo.png", **kwargs) -> IncomingFile:
        return IncomingFile(content=png_bytes(**kwargs), filename=filename, content_type="image/png")
    return make
