"""
Shared fixtures: an in-memory SQLite database, a fixed request clock, a
recording notification service and an HTTP client wired to the app.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("ENV_MODE", "development")
os.environ.setdefault("RESTAURANT_TIMEZONE", "UTC")

from datetime import datetime, timedelta, timezone
from typing import Optional

import httpx
import pytest
from fastapi import Header
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from restaurant_app.core.context import RequestContext
from restaurant_app.database import get_db, init_db
from restaurant_app.main import app, get_request_context
from restaurant_app.models import Reservation, ReservationStatus
from restaurant_app.services.notifications import get_notification_service
from restaurant_app.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
)

FIXED_NOW = datetime(2025, 7, 20, 12, 0, tzinfo=timezone.utc)


class RecordingNotificationService(BaseNotificationService):
    """Keeps every message in memory; can be told to fail or raise."""

    def __init__(self):
        super().__init__("Test Bistro", sms_enabled=True)
        self.fail = False
        self.error: Optional[Exception] = None
        self.emails: list[dict] = []
        self.sms: list[dict] = []

    @property
    def provider_name(self) -> str:
        return "recording"

    async def send_sms(self, to_phone, message):
        if self.error:
            raise self.error
        self.sms.append({"to": to_phone, "body": message})
        return NotificationResult(success=not self.fail, message_id="sms-1", provider="recording")

    async def send_email(self, to_email, subject, body_html, body_text=None):
        if self.error:
            raise self.error
        self.emails.append({"to": to_email, "subject": subject, "text": body_text})
        return NotificationResult(
            success=not self.fail,
            message_id="email-1",
            error_message="mailbox full" if self.fail else None,
            provider="recording",
        )

    async def health_check(self):
        return True


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def ctx(now):
    return RequestContext(actor="tester", now=now)


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def notifier():
    return RecordingNotificationService()


@pytest.fixture
def reservation_values(now):
    """Factory for a valid booking two days out at 19:00."""
    def build(**overrides):
        values = {
            "customer_name": "Jane Smith",
            "customer_email": "jane@example.com",
            "customer_phone": "555-123-4567",
            "party_size": 4,
            "reservation_date": (now + timedelta(days=2)).replace(hour=19, minute=0),
            "special_requests": "Window seat",
        }
        values.update(overrides)
        return values
    return build


@pytest.fixture
def insert_reservation(session, now):
    """Write a reservation row directly, bypassing validation."""
    async def insert(**fields):
        values = {
            "customer_name": "Walk In",
            "customer_email": "walkin@example.com",
            "customer_phone": "555-000-0000",
            "party_size": 2,
            "reservation_date": now + timedelta(days=1),
            "status": ReservationStatus.PENDING,
            "created_at": now,
            "updated_at": now,
        }
        values.update(fields)
        reservation = Reservation(**values)
        session.add(reservation)
        await session.commit()
        return reservation
    return insert


@pytest.fixture
async def client(session_maker, notifier, now):
    async def override_get_db():
        async with session_maker() as session:
            yield session

    def override_context(x_actor: Optional[str] = Header(None, alias="X-Actor")) -> RequestContext:
        return RequestContext(actor=x_actor, now=now)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_service] = lambda: notifier
    app.dependency_overrides[get_request_context] = override_context

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
