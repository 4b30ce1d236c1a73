"""Shared fixtures: in-memory database, email outbox, API client."""

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import chgk_portal.models  # noqa: F401
from chgk_portal.database import Base, get_db
from chgk_portal.main import app
from chgk_portal.services import notifications


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
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def outbox(monkeypatch):
    """Captures status emails instead of calling EmailJS."""
    sent = []

    async def fake_send(to_email, to_name, status_text, feedback=None):
        sent.append(
            {"to_email": to_email, "to_name": to_name, "status": status_text, "feedback": feedback}
        )
        return True

    monkeypatch.setattr(notifications, "send_status_email", fake_send)
    return sent


@pytest.fixture
async def make_client(session_factory, outbox):
    """Factory for independent browser sessions sharing one database."""
    clients = []

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    def _make():
        ac = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")
        clients.append(ac)
        return ac

    yield _make
    for ac in clients:
        await ac.aclose()
    app.dependency_overrides.clear()


@pytest.fixture
def client(make_client):
    return make_client()
