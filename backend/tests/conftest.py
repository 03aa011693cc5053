"""Shared fixtures: a throwaway SQLite database and an in-process API client."""
import os
import tempfile
from datetime import datetime, timedelta

# Settings are read at import time, so point them at a scratch directory first
os.environ["DATA_PATH"] = tempfile.mkdtemp(prefix="epsilon-test-")
os.environ["MODE"] = "server"
os.environ.pop("DATABASE_URL", None)

import httpx
import pytest

from epsilon.database import Base, async_session, engine, init_db
from epsilon.models import AuthSession, User

TEST_TOKEN = "test-session-token"
OTHER_TOKEN = "other-session-token"


@pytest.fixture
async def database():
    await init_db()
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


async def _create_user(name: str, email: str, token: str, expires_in: timedelta = timedelta(days=1)) -> User:
    async with async_session() as session:
        user = User(name=name, email=email)
        session.add(user)
        await session.flush()
        session.add(AuthSession(
            token=token,
            user_id=user.id,
            expires_at=datetime.utcnow() + expires_in,
        ))
        await session.commit()
        return user


@pytest.fixture
async def user(database):
    return await _create_user("Test User", "test@example.com", TEST_TOKEN)


@pytest.fixture
async def other_user(database):
    return await _create_user("Other User", "other@example.com", OTHER_TOKEN)


@pytest.fixture
async def client(database):
    from epsilon.main import app

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {TEST_TOKEN}"}


@pytest.fixture
def other_headers():
    return {"Authorization": f"Bearer {OTHER_TOKEN}"}
