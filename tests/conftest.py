"""Shared fixtures: in-memory database, users and a recording email dispatcher."""

import os

os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite+aiosqlite://")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("SENDGRID_API_KEY", "")

from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import app.models  # noqa: E402,F401
from app.database import Base  # noqa: E402
from app.models.user import User  # noqa: E402
from app.schemas.booking import BookingCreate  # noqa: E402
from app.services.booking_service import BookingService  # noqa: E402
from app.services.email_service import EmailDeliveryError  # noqa: E402
from app.services.notification_service import NotificationService  # noqa: E402


class RecordingEmailDispatcher:
    """Email dispatcher double that records messages and can be told to fail."""

    def __init__(self) -> None:
        self.sent: list[dict[str, str]] = []
        self.attempts = 0
        self.failures_remaining = 0

    def fail_next(self, times: int = 1) -> None:
        self.failures_remaining = times

    async def send(self, to_email: str, subject: str, html_content: str) -> None:
        self.attempts += 1
        if self.failures_remaining:
            self.failures_remaining -= 1
            raise EmailDeliveryError(to_email, "connection reset by peer")
        self.sent.append({"to": to_email, "subject": subject, "html": html_content})

    async def close(self) -> None:
        return None


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def email():
    return RecordingEmailDispatcher()


@pytest.fixture
def service(email):
    return BookingService(email_dispatcher=email, notifications=NotificationService())


async def _make_user(db, **fields) -> User:
    user = User(**fields)
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
async def client_user(db):
    return await _make_user(
        db,
        name="Chipo Nangolo",
        email="chipo@example.com",
        phone="+264811234567",
        role="client",
        profile_image="avatars/chipo.png",
    )


@pytest.fixture
async def provider_user(db):
    return await _make_user(
        db,
        name="Petrus Plumbing",
        email="petrus@example.com",
        phone="+264819876543",
        role="provider",
        profile_image="https://cdn.example.com/petrus.jpg",
    )


@pytest.fixture
async def other_provider(db):
    return await _make_user(
        db,
        name="Selma Electric",
        email="selma@example.com",
        phone="+264815550000",
        role="provider",
    )


@pytest.fixture
async def other_client(db):
    return await _make_user(
        db,
        name="Tangeni Shikongo",
        email="tangeni@example.com",
        phone="+264813330000",
        role="client",
    )


@pytest.fixture
def booking_request():
    def build(client: User, provider: User, **overrides) -> BookingCreate:
        fields = {
            "user_id": client.id,
            "provider_id": provider.id,
            "service_name": "Plumbing",
            "date": "2025-03-01",
            "time": "14:00",
            "price": Decimal("450"),
            "address": "12 Main St",
        }
        fields.update(overrides)
        return BookingCreate(**fields)

    return build
