"""Pytest configuration and fixtures."""

import os

# Settings are read at import time; provide test values before importing the app.
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("GOOGLE_CLIENT_ID", "test-client-id.apps.googleusercontent.com")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "test-access-key")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "test-secret-access-key")
os.environ.setdefault("AWS_S3_BUCKET", "studpal-test")

from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from studpal.api.deps import create_access_token, get_broker, get_storage
from studpal.db.base import Base
from studpal.db.models import User
from studpal.db.session import get_db, get_session_factory
from studpal.main import app
from studpal.services.pubsub import ChannelBroker
from studpal.services.s3 import StorageError


class FakeStorage:
    """In-memory stand-in for S3Service."""

    def __init__(self):
        self.objects: dict[str, int] = {}
        self.deleted: list[str] = []
        self.fail_deletes = False

    async def generate_presigned_upload_url(self, file_key: str, content_type: str, expiration: int = 300) -> dict:
        return {
            "url": "https://storage.test/upload",
            "fields": {"key": file_key, "Content-Type": content_type},
        }

    async def generate_presigned_download_url(self, file_key: str, expiration: int = 300) -> str:
        return f"https://storage.test/{file_key}?expires={expiration}"

    async def delete_object(self, file_key: str) -> None:
        if self.fail_deletes:
            raise StorageError("storage unavailable")
        self.deleted.append(file_key)
        self.objects.pop(file_key, None)

    async def get_object_size(self, file_key: str) -> int:
        if file_key not in self.objects:
            raise StorageError(f"no such object: {file_key}")
        return self.objects[file_key]


def headers_for(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh SQLite database per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'studpal.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)

    await engine.dispose()


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def broker() -> ChannelBroker:
    return ChannelBroker(queue_size=10)


@pytest.fixture
async def client(session_factory, storage, broker) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing FastAPI endpoints."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_broker] = lambda: broker

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


async def _create_user(session_factory, name: str, email: str) -> User:
    async with session_factory() as session:
        user = User(name=name, email=email)
        session.add(user)
        await session.commit()
        return user


@pytest.fixture
async def user(session_factory) -> User:
    return await _create_user(session_factory, "Ada Lovelace", "ada@example.com")


@pytest.fixture
async def other_user(session_factory) -> User:
    return await _create_user(session_factory, "Grace Hopper", "grace@example.com")


@pytest.fixture
def auth_headers(user) -> dict[str, str]:
    return headers_for(user)


@pytest.fixture
def other_headers(other_user) -> dict[str, str]:
    return headers_for(other_user)
