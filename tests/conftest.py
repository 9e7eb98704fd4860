"""
Shared test fixtures for the OTP Auth test suite.

Each test gets its own in-memory aiosqlite database, a temporary upload
directory and a recording notifier, wired into the app through
``dependency_overrides``.
"""

import os
import sys
import tempfile
from typing import AsyncGenerator

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key-not-for-production"
os.environ["CORS_ORIGINS"] = '["*"]'
os.environ["EMAIL_BACKEND"] = "console"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="otp-auth-uploads-")

from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from otp_auth.api.v1.deps import get_db
from otp_auth.db.base import Base
from otp_auth.main import app
from otp_auth.models.user import User
from otp_auth.services.notifier import NotifierError, get_notifier
from otp_auth.services.storage import ProfileImageStore, get_image_store

# Smallest valid PNG (1x1, transparent)
PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06"
    b"\x00\x00\x00\x1f\x15\xc4\x89\x00\x00\x00\rIDATx\x9cc\xf8\x0f\x00\x00\x01\x01"
    b"\x00\x05\x18\xd8N\x00\x00\x00\x00IEND\xaeB`\x82"
)


class RecordingNotifier:
    """Stands in for the email backend; remembers every code it was asked to send."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []
        self.fail = False

    async def send_otp(self, to_email: str, otp: str) -> None:
        if self.fail:
            raise NotifierError("SMTP server unreachable")
        self.sent.append((to_email, otp))

    def last_code(self, email: str) -> str:
        return [code for to, code in self.sent if to == email][-1]


@pytest.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh in-memory database with all tables created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def image_store(tmp_path) -> ProfileImageStore:
    return ProfileImageStore(root=tmp_path / "uploads")


@pytest.fixture
async def async_client(
    session_factory, notifier, image_store
) -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app."""

    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_image_store] = lambda: image_store

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# ── Helpers ─────────────────────────────────────────────────────────
async def fetch_user(session_factory, email: str) -> User | None:
    """Read a user through a new session so no stale identity map is involved."""
    async with session_factory() as session:
        result = await session.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()


def stored_files(store: ProfileImageStore) -> list:
    directory = store.root / store.subdir
    if not directory.exists():
        return []
    return sorted(p.name for p in directory.iterdir())


@pytest.fixture
def make_user(session_factory):
    """Insert a user directly, bypassing the HTTP layer."""

    async def _make(
        email: str = "ann@x.com",
        password: str = "Abcdef1",
        name: str = "Ann",
        **extra,
    ) -> User:
        async with session_factory() as session:
            user = User(name=name, email=email, **extra)
            user.set_password(password)
            session.add(user)
            await session.commit()
            await session.refresh(user)
            return user

    return _make
