"""全局 pytest 配置 -- 临时 SQLite 数据库与文档存储 fixture

每个测试独占一个数据库文件，互不共享状态。
"""

from collections.abc import AsyncGenerator
from pathlib import Path

import aiosqlite
import pytest_asyncio
from taskledger.core.store import SqliteDocumentStore
from taskledger.core.store.sqlite_init import init_db


@pytest_asyncio.fixture
async def db_conn(tmp_path: Path) -> AsyncGenerator[aiosqlite.Connection, None]:
    """已建表（documents）的临时数据库连接"""
    conn = await aiosqlite.connect(str(tmp_path / "ledger.db"))
    await init_db(conn)
    yield conn
    await conn.close()


@pytest_asyncio.fixture
async def store(db_conn: aiosqlite.Connection) -> SqliteDocumentStore:
    """基于临时数据库的文档存储"""
    return SqliteDocumentStore(db_conn)
