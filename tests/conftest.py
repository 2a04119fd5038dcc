import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from accountability.database import Base
from accountability.models import CustomHabit, User
from accountability.services import notification_service
from accountability.utils import time_utils


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def push_calls(monkeypatch):
    """Capture outbound pushes instead of calling the relay."""
    calls = []

    async def fake_send_push_notifications(device_tokens, notification):
        calls.append((list(device_tokens), notification))
        return []

    monkeypatch.setattr(notification_service, "send_push_notifications", fake_send_push_notifications)
    return calls


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock(monkeypatch):
    fake = FakeClock(datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc))
    monkeypatch.setattr(time_utils, "utc_now", fake)
    return fake


@pytest.fixture
async def users(db):
    alice = User(id="alice", username="alice", display_name="Alice", avatar_url="https://cdn.example.com/a.png")
    bob = User(id="bob", username="bob", display_name="Bob")
    carol = User(id="carol", username="carol", display_name="Carol")
    db.add_all([alice, bob, carol])
    await db.commit()
    return {"alice": {"uid": "alice"}, "bob": {"uid": "bob"}, "carol": {"uid": "carol"}}


async def make_habit(db, user_id, title="Cold Plunge", **fields):
    values = dict(
        description="Three minutes at 10 degrees",
        emoji="🧊",
        color="#1E88E5",
        accent_color="#90CAF9",
        schedule_days=[0, 2, 4],
        target_quantity=3.0,
        target_unit="minutes",
        reminder_time="07:30",
        timezone="Europe/Oslo",
    )
    values.update(fields)
    habit = CustomHabit(user_id=user_id, title=title, **values)
    db.add(habit)
    await db.commit()
    await db.refresh(habit)
    return habit
