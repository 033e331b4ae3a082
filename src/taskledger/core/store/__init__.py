"""TaskLedger Core Store -- 文档存储适配器

提供工厂函数打开 SQLite 数据库并返回 DocumentStore 实现。
"""

from pathlib import Path

import aiosqlite

from .protocols import Collection, DocumentStore, IdGenerator
from .query import (
    RANGE_OPS,
    ArrayRemove,
    ArrayUnion,
    DeleteField,
    FieldFilter,
    Increment,
    QueryOp,
    ServerTimestamp,
    where,
)
from .sqlite_init import init_db, verify_wal_mode
from .sqlite_store import SqliteDocumentStore


async def create_document_store(db_path: str) -> SqliteDocumentStore:
    """打开数据库并创建文档存储

    Args:
        db_path: SQLite 数据库文件路径

    Returns:
        SqliteDocumentStore 实例
    """
    # 确保数据库目录存在
    db_dir = Path(db_path).parent
    db_dir.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(db_path)
    await init_db(conn)

    return SqliteDocumentStore(conn)


__all__ = [
    "Collection",
    "DocumentStore",
    "IdGenerator",
    "SqliteDocumentStore",
    "create_document_store",
    "init_db",
    "verify_wal_mode",
    # 查询构建
    "FieldFilter",
    "QueryOp",
    "RANGE_OPS",
    "where",
    # 局部更新哨兵
    "ArrayUnion",
    "ArrayRemove",
    "Increment",
    "DeleteField",
    "ServerTimestamp",
]
