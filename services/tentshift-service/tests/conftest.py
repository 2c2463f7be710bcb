import os

# settings are read at import time, so set them before importing the app
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-secret"
os.environ.pop("JWT_AUDIENCE", None)
os.environ.pop("REDIS_URL", None)
os.environ.pop("RABBIT_URL", None)

import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import httpx
import pytest
from jose import jwt

from shared.database import get_engine, get_session

from app import cache
from app.db import Base, get_db
from app.main import app
from app.models import Profile, Role, Tent, TentType
from app.rabbitmq import publisher
from app.security import RequestContext

JWT_SECRET = "test-secret"
DAY = datetime(2026, 2, 1)


def at(hour: float) -> datetime:
    """Naive UTC datetime on the test day, hour may be fractional."""
    return DAY + timedelta(hours=hour)


def make_token(user_id: uuid.UUID | str, email: str | None = None, expires_in: int = 3600) -> str:
    claims = {
        "sub": str(user_id),
        "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
    }
    if email:
        claims["email"] = email
    return jwt.encode(claims, JWT_SECRET, algorithm="HS256")


def auth(user_id: uuid.UUID | str, email: str | None = None) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id, email)}"}


class FakeRedis:
    def __init__(self):
        self.store = {}
        self.ttls = {}

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value
        self.ttls[key] = ex
        return True

    async def incr(self, key):
        value = int(self.store.get(key, 0)) + 1
        self.store[key] = str(value)
        return value

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if key in self.store:
                del self.store[key]
                removed += 1
        return removed


@pytest.fixture
async def engine(tmp_path):
    engine = get_engine(f"sqlite+aiosqlite:///{tmp_path / 'tentshift.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return get_session(engine)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def fake_redis(monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr(cache, "redis_client", fake)
    return fake


@pytest.fixture(autouse=True)
def published(monkeypatch):
    mock = AsyncMock()
    monkeypatch.setattr(publisher, "publish_event", mock)
    return mock


@pytest.fixture
async def tent(db):
    """A tent with a captain and one member."""
    captain_id = uuid.uuid4()
    member_id = uuid.uuid4()
    tent = Tent(
        name="Blue Devils",
        join_code="ABC123",
        tent_type=TentType.BLACK,
        created_by=captain_id,
    )
    db.add(tent)
    await db.flush()
    db.add_all(
        [
            Profile(id=captain_id, full_name="Alice", tent_id=tent.id, role=Role.CAPTAIN),
            Profile(id=member_id, full_name="Bob", tent_id=tent.id, role=Role.MEMBER),
        ]
    )
    await db.commit()
    return {"tent_id": tent.id, "captain_id": captain_id, "member_id": member_id}


@pytest.fixture
def member_ctx(tent):
    return RequestContext(user_id=tent["member_id"], tent_id=tent["tent_id"], role=Role.MEMBER)
