"""gateway 测试配置 -- FastAPI app + httpx AsyncClient

手动初始化 app.state（绕过 lifespan）。
"""

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
async def app(tmp_path: Path):
    """创建测试用 FastAPI app 实例"""
    os.environ["TASKLEDGER_DB_PATH"] = str(tmp_path / "sqlite" / "test.db")

    from taskledger.gateway.main import create_app

    application = create_app()

    store = await create_document_store(str(tmp_path / "sqlite" / "test.db"))
    application.state.config = load_gateway_config()
    application.state.store = store
    application.state.services = ServiceGroup(store, UlidGenerator())

    yield application

    await store.close()
    os.environ.pop("TASKLEDGER_DB_PATH", None)


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """提供 httpx AsyncClient 用于测试"""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"X-Actor-ID": "alice"},
    ) as ac:
        yield ac
