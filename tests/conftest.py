"""Shared fixtures: SQLite database, in-memory Redis double, signed API client."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("INTERNAL_AUTH_SECRET", "test-secret-test-secret-test-secret")
os.environ.setdefault("CLASSIFIER_AUTH_SECRET", "classifier-secret-classifier-secret")
os.environ.setdefault("ENVIRONMENT", "test")

import json  # noqa: E402
import time  # noqa: E402
import uuid  # noqa: E402
from collections.abc import AsyncGenerator  # noqa: E402
from typing import Any  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

import models  # noqa: E402,F401
from core.auth import sign_body  # noqa: E402
from core.config import settings  # noqa: E402
from core.db import Base  # noqa: E402
from models.content import Post, Profile  # noqa: E402
from models.role import AppRole, UserRole  # noqa: E402


class FakeRedis:
    """Just enough of redis.asyncio.Redis for the rate limiter and health checks."""

    def __init__(self) -> None:
        self.values: dict[str, int] = {}
        self.expires: dict[str, float] = {}
        self.clock = time.monotonic()

    def advance(self, seconds: float) -> None:
        self.clock += seconds

    def _purge(self, key: str) -> None:
        deadline = self.expires.get(key)
        if deadline is not None and deadline <= self.clock:
            self.values.pop(key, None)
            self.expires.pop(key, None)

    async def get(self, key: str) -> str | None:
        self._purge(key)
        return str(self.values[key]) if key in self.values else None

    def _incrby(self, key: str, amount: int) -> int:
        self._purge(key)
        self.values[key] = self.values.get(key, 0) + amount
        return self.values[key]

    async def incr(self, key: str) -> int:
        return self._incrby(key, 1)

    async def decr(self, key: str) -> int:
        return self._incrby(key, -1)

    def _expire(self, key: str, seconds: int, nx: bool = False) -> bool:
        self._purge(key)
        if key not in self.values or (nx and key in self.expires):
            return False
        self.expires[key] = self.clock + seconds
        return True

    async def expire(self, key: str, seconds: int, nx: bool = False) -> bool:
        return self._expire(key, seconds, nx)

    async def ttl(self, key: str) -> int:
        self._purge(key)
        if key not in self.values:
            return -2
        if key not in self.expires:
            return -1
        return int(self.expires[key] - self.clock)

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            removed += int(self.values.pop(key, None) is not None)
            self.expires.pop(key, None)
        return removed

    async def ping(self) -> bool:
        return True

    def pipeline(self, transaction: bool = True) -> "FakePipeline":
        return FakePipeline(self)


class FakePipeline:
    def __init__(self, client: FakeRedis) -> None:
        self.client = client
        self.ops: list[tuple[str, tuple[Any, ...], dict[str, Any]]] = []

    async def __aenter__(self) -> "FakePipeline":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self.ops.clear()

    def incr(self, key: str) -> "FakePipeline":
        self.ops.append(("incr", (key,), {}))
        return self

    def expire(self, key: str, seconds: int, nx: bool = False) -> "FakePipeline":
        self.ops.append(("expire", (key, seconds), {"nx": nx}))
        return self

    async def execute(self) -> list[Any]:
        results: list[Any] = []
        for name, args, kwargs in self.ops:
            if name == "incr":
                results.append(self.client._incrby(*args, 1))
            else:
                results.append(self.client._expire(*args, **kwargs))
        self.ops.clear()
        return results


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'moderation.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest_asyncio.fixture
async def profiles(db):
    """Reporter, flagged user and reviewer profiles."""
    rows = {
        "alice": Profile(id=uuid.uuid4(), username="alice"),
        "bob": Profile(id=uuid.uuid4(), username="bob", avatar_url="https://cdn.example/bob.png"),
        "rita": Profile(id=uuid.uuid4(), username="rita"),
    }
    db.add_all(rows.values())
    await db.commit()
    return rows


@pytest_asyncio.fixture
async def post(db, profiles):
    row = Post(id=uuid.uuid4(), user_id=profiles["bob"].id, caption="buy followers now", type="text")
    db.add(row)
    await db.commit()
    return row


def signed_headers(actor_id: uuid.UUID | None, body: bytes = b"") -> dict[str, str]:
    headers = {"X-Actor-Signature": sign_body(body), "Content-Type": "application/json"}
    if actor_id is not None:
        headers["X-Actor-Id"] = str(actor_id)
    return headers


def classifier_headers(body: bytes) -> dict[str, str]:
    return {"X-Service-Signature": sign_body(body, settings.classifier_auth_secret), "Content-Type": "application/json"}


def encode(payload: dict[str, Any]) -> bytes:
    return json.dumps(payload).encode()


@pytest_asyncio.fixture
async def client(session_factory, fake_redis) -> AsyncGenerator[AsyncClient, None]:
    from apps.api.deps import get_db, get_redis_client
    from apps.api.main import app

    async def _db():
        async with session_factory() as session:
            yield session

    async def _redis():
        return fake_redis

    app.dependency_overrides[get_db] = _db
    app.dependency_overrides[get_redis_client] = _redis
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def grant_role(session_factory):
    """Give a user an app role: ``await grant_role(user_id, AppRole.ADMIN)``."""

    async def _grant(user_id: uuid.UUID, role: AppRole) -> uuid.UUID:
        async with session_factory() as session:
            session.add(UserRole(user_id=user_id, role=role.value))
            await session.commit()
        return user_id

    return _grant
