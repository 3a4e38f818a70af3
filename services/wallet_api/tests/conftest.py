from __future__ import annotations

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from services.wallet_api.app import models  # noqa: F401
from services.wallet_api.app.db.base import Base
from services.wallet_api.app.dependencies import get_session_factory
from services.wallet_api.app.main import create_app
from services.wallet_api.app import settings as wallet_settings_module


def asgi_client(app) -> AsyncClient:
    transport = ASGITransport(app=app)
    return AsyncClient(transport=transport, base_url="http://testserver")


@pytest_asyncio.fixture()
async def session_factory():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    await engine.dispose()


@pytest_asyncio.fixture()
async def wallet_test_app(monkeypatch, session_factory):
    wallet_settings_module.wallet_settings.cache_clear()
    monkeypatch.setenv("WALLET_OTEL_ENDPOINT", "")

    app = create_app()
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    yield app

    await app.state.serializer.stop()
    wallet_settings_module.wallet_settings.cache_clear()


@pytest_asyncio.fixture()
async def client(wallet_test_app):
    async with asgi_client(wallet_test_app) as client:
        yield client
