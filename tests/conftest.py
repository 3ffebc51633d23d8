"""
Pytest configuration and fixtures for voice journal tests.

Every test gets its own in-memory SQLite database, storage bucket and
settings file.
"""
import os
import uuid
from pathlib import Path
from typing import AsyncGenerator

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

# Set required environment variables before importing Settings to avoid validation error
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-testing-only-not-for-production")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ.pop("ELEVENLABS_API_KEY", None)

from voice_journal.config import settings
from voice_journal.database import Base, get_db
from voice_journal.main import app
from voice_journal.models.entry import Entry
from voice_journal.models.user import User
from voice_journal.schemas.auth import UserCreate
from voice_journal.schemas.entry import EntryCreate
from voice_journal.services.database import db_service
from voice_journal.services.recording import RecordingRegistry
from voice_journal.services.storage import storage_service
from voice_journal.services.user_settings import settings_store
from voice_journal.utils.audio import pcm_to_wav

TEST_DATABASE_URL = "sqlite+aiosqlite://"

TEST_EMAIL = "testuser@example.com"
TEST_PASSWORD = "TestPassword123!"


@pytest.fixture(autouse=True)
def transcription_settings(monkeypatch):
    """Placeholder transcription unless a test configures a key."""
    monkeypatch.setattr(settings, "ENABLE_TRANSCRIPTION", True)
    monkeypatch.setattr(settings, "TRANSCRIPTION_PROVIDER", "elevenlabs")
    monkeypatch.setattr(settings, "ELEVENLABS_API_KEY", None)


@pytest.fixture(autouse=True)
def test_storage_path(tmp_path, monkeypatch) -> Path:
    """Temporary storage root for the bucket."""
    storage_path = tmp_path / "storage"
    storage_path.mkdir(parents=True, exist_ok=True)
    monkeypatch.setattr(storage_service, "base_path", storage_path)
    return storage_path


@pytest.fixture(autouse=True)
def settings_dir(tmp_path, monkeypatch) -> Path:
    """Temporary directory for per-user settings files (empty until saved)."""
    path = tmp_path / "settings"
    monkeypatch.setattr(settings_store, "_directory", path)
    return path


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh database with all tables for each test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False}
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    Session = async_sessionmaker(bind=engine, expire_on_commit=False)
    async with Session() as session:
        yield session

    await engine.dispose()


@pytest.fixture
async def registry() -> AsyncGenerator[RecordingRegistry, None]:
    """Fresh recording registry installed on the app."""
    registry = RecordingRegistry()
    app.state.recordings = registry
    yield registry
    registry.close_all()


@pytest.fixture
async def client(db_session: AsyncSession, registry: RecordingRegistry) -> AsyncGenerator[AsyncClient, None]:
    """
    Async test client for the FastAPI application.
    Overrides the database dependency to use the test database.
    """
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


async def _create_user(db_session: AsyncSession, email: str, password: str) -> User:
    user = await db_service.create_user(db_session, UserCreate(email=email, password=password))
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
async def test_user(db_session: AsyncSession) -> User:
    """
    Test user.
    Email: testuser@example.com
    Password: TestPassword123!
    """
    return await _create_user(db_session, TEST_EMAIL, TEST_PASSWORD)


@pytest.fixture
async def second_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "seconduser@example.com", "SecondPassword123!")


async def _login(client: AsyncClient, email: str, password: str) -> str:
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": email, "password": password}
    )
    assert response.status_code == 200
    return response.json()["access_token"]


@pytest.fixture
async def authenticated_client(
    client: AsyncClient,
    test_user: User
) -> AsyncGenerator[AsyncClient, None]:
    """
    Test client that sends a valid access token for test_user.
    """
    access_token = await _login(client, TEST_EMAIL, TEST_PASSWORD)
    client.headers["Authorization"] = f"Bearer {access_token}"

    yield client

    client.headers.pop("Authorization", None)


@pytest.fixture
async def second_client(client: AsyncClient, second_user: User) -> AsyncGenerator[AsyncClient, None]:
    """Separate client authenticated as second_user."""
    access_token = await _login(client, "seconduser@example.com", "SecondPassword123!")

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"Authorization": f"Bearer {access_token}"}
    ) as other:
        yield other


@pytest.fixture
def webm_blob() -> bytes:
    """
    Bytes shaped like a browser WebM recording.
    Carries no readable duration, like real MediaRecorder output.
    """
    return bytes([0x1A, 0x45, 0xDF, 0xA3]) + b"\x00" * 12_284


@pytest.fixture
def wav_blob() -> bytes:
    """Two seconds of 16kHz mono silence in a WAV container."""
    return pcm_to_wav([b"\x00\x00" * 16_000 * 2], sample_rate=16_000)


@pytest.fixture
async def sample_entry(db_session: AsyncSession, test_user: User, webm_blob: bytes) -> Entry:
    """Entry for test_user backed by a stored 12 second recording."""
    path = await storage_service.upload(
        test_user.id,
        webm_blob,
        f"recording_{uuid.uuid4().int % 10**13}.webm",
        "audio/webm"
    )
    return await db_service.create_entry(
        db_session,
        EntryCreate(
            user_id=test_user.id,
            title="Founder Log - 3/5/2024 09:07",
            original_audio_path=path,
            processed_audio_path=path,
            transcription="Original transcript",
            duration=12
        )
    )
