"""SQLite 数据库初始化

PRAGMA 配置 + 文档表 DDL + 索引创建。
所有集合共用一张 documents 表，正文为 JSON，按 (collection, doc_id) 定位。
"""

import aiosqlite

# documents 表 DDL
_DOCUMENTS_DDL = """
CREATE TABLE IF NOT EXISTS documents (
    collection  TEXT NOT NULL,
    doc_id      TEXT NOT NULL,
    body        TEXT NOT NULL DEFAULT '{}',
    written_at  TEXT NOT NULL,

    PRIMARY KEY (collection, doc_id)
);
"""

_DOCUMENTS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_documents_collection ON documents(collection);",
    # 审计按工作项查询最频繁
    (
        "CREATE INDEX IF NOT EXISTS idx_documents_audit_item "
        "ON documents(collection, json_extract(body, '$.item_id'));"
    ),
    # 版本按文档查询
    (
        "CREATE INDEX IF NOT EXISTS idx_documents_version_doc "
        "ON documents(collection, json_extract(body, '$.doc_id'));"
    ),
]


async def init_db(conn: aiosqlite.Connection) -> None:
    """初始化数据库：设置 PRAGMA + 创建表 + 创建索引

    Args:
        conn: aiosqlite 数据库连接
    """
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA busy_timeout = 5000;")

    await conn.execute(_DOCUMENTS_DDL)

    for idx_sql in _DOCUMENTS_INDEXES:
        await conn.execute(idx_sql)

    await conn.commit()


async def verify_wal_mode(conn: aiosqlite.Connection) -> bool:
    """验证 WAL 模式是否生效

    Returns:
        True 如果 WAL 模式已启用
    """
    cursor = await conn.execute("PRAGMA journal_mode;")
    row = await cursor.fetchone()
    return row is not None and row[0].lower() == "wal"
