"""集成测试共享 fixture"""

import os
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from taskledger.core.ids import UlidGenerator
from taskledger.core.services import ServiceGroup
from taskledger.core.store import create_document_store
from taskledger.gateway.config import load_gateway_config


@pytest_asyncio.fixture
async def integration_app(tmp_path: Path):
    """集成测试用 FastAPI app"""
    os.environ["TASKLEDGER_DB_PATH"] = str(tmp_path / "test.db")

    from taskledger.gateway.main import create_app

    app = create_app()

    store = await create_document_store(str(tmp_path / "test.db"))
    app.state.config = load_gateway_config()
    app.state.store = store
    app.state.services = ServiceGroup(store, UlidGenerator())

    yield app

    await store.close()
    os.environ.pop("TASKLEDGER_DB_PATH", None)


@pytest_asyncio.fixture
async def client(integration_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=integration_app),
        base_url="http://test",
        headers={"X-Actor-ID": "alice"},
    ) as ac:
        yield ac
