"""Pytest configuration and fixtures."""

import os
from collections.abc import AsyncGenerator
from datetime import timedelta

# Set test environment before importing app
os.environ["ENVIRONMENT"] = "test"
os.environ["EMAIL_BACKEND"] = "console"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from academy.api.deps import get_email_service
from academy.config import settings
from academy.database import get_session
from academy.main import app
from academy.models import AuthCode, Purchase, UserSession, utcnow
from academy.services.auth import AuthService, generate_session_token
from academy.services.email import EmailBackend, EmailService
from academy.services.purchases import PurchaseService


class RecordingEmailBackend(EmailBackend):
    """Email backend that keeps sent messages in memory."""

    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.sent: list[dict[str, str | None]] = []

    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str | None = None,
        reply_to: str | None = None,
    ) -> bool:
        self.sent.append({"to": to, "subject": subject, "html": html, "text": text})
        return self.succeed


@pytest_asyncio.fixture
async def test_engine():
    """Create a fresh in-memory database per test."""
    engine = create_async_engine(
        settings.database_url_test,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session bound to the test engine."""
    async_session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with async_session_factory() as session:
        yield session


@pytest.fixture
def email_backend() -> RecordingEmailBackend:
    return RecordingEmailBackend()


@pytest.fixture
def emails(email_backend: RecordingEmailBackend) -> EmailService:
    return EmailService(backend=email_backend)


@pytest.fixture
def auth_service(session: AsyncSession, emails: EmailService) -> AuthService:
    return AuthService(session, emails=emails)


@pytest.fixture
def purchase_service(session: AsyncSession, auth_service: AuthService) -> PurchaseService:
    return PurchaseService(session, auth_service)


@pytest.fixture
async def client(session: AsyncSession, emails: EmailService) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_session():
        yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_email_service] = lambda: emails

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def user_session(session: AsyncSession) -> UserSession:
    """Create a valid session for test@example.com."""
    user_session = UserSession(
        email="test@example.com",
        token=generate_session_token(),
        expires_at=utcnow() + timedelta(days=30),
    )
    session.add(user_session)
    await session.commit()
    return user_session


@pytest.fixture
def auth_headers(user_session: UserSession) -> dict[str, str]:
    """Create authorization headers for the test session."""
    return {"Authorization": f"Bearer {user_session.token}"}


@pytest.fixture
async def purchase(session: AsyncSession) -> Purchase:
    """Create a completed purchase for test@example.com."""
    purchase = Purchase(
        email="test@example.com",
        external_session_id="cs_test_existing",
        amount=9900,
        currency="eur",
        course_slug="openclaw-beginner-course",
    )
    session.add(purchase)
    await session.commit()
    return purchase


@pytest.fixture
async def expired_code(session: AsyncSession) -> AuthCode:
    """An unused code whose expiry has passed."""
    auth_code = AuthCode(
        email="late@example.com",
        code="424242",
        expires_at=utcnow() - timedelta(minutes=1),
    )
    session.add(auth_code)
    await session.commit()
    return auth_code
