"""DocumentStore SQLite 实现

每个方法独立提交，不提供跨操作事务。
update() 内部的读-改-写由 asyncio.Lock 串行化，
保证 ArrayUnion / ArrayRemove / Increment 对单次调用原子。
aiosqlite 异常统一包装为 StoreUnavailable。
"""

import asyncio
import contextlib
import json
from datetime import UTC, datetime
from typing import Any

import aiosqlite

from ..errors import EntityNotFound, StoreUnavailable
from ..models.common import format_timestamp
from .query import (
    RANGE_OPS,
    ArrayRemove,
    ArrayUnion,
    DeleteField,
    FieldFilter,
    Increment,
    QueryOp,
    ServerTimestamp,
    to_storable,
)

_SQL_OPS: dict[QueryOp, str] = {
    QueryOp.EQ: "=",
    QueryOp.LT: "<",
    QueryOp.LE: "<=",
    QueryOp.GT: ">",
    QueryOp.GE: ">=",
}


class SqliteDocumentStore:
    """DocumentStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self.conn = conn
        self._write_lock = asyncio.Lock()

    def server_timestamp(self) -> datetime:
        return datetime.now(UTC)

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """根据 ID 读取文档"""
        try:
            cursor = await self.conn.execute(
                "SELECT body FROM documents WHERE collection = ? AND doc_id = ?",
                (collection, doc_id),
            )
            row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StoreUnavailable(f"get {collection}/{doc_id}", e) from e
        if row is None:
            return None
        return json.loads(row[0])

    async def upsert(self, collection: str, doc_id: str, doc: dict[str, Any]) -> None:
        """整体写入（不存在则创建）"""
        body = self._resolve_sentinels(dict(doc), current=None)
        async with self._write_lock:
            try:
                await self._write(collection, doc_id, body)
                await self.conn.commit()
            except aiosqlite.Error as e:
                await self._safe_rollback()
                raise StoreUnavailable(f"upsert {collection}/{doc_id}", e) from e

    async def update(self, collection: str, doc_id: str, partial: dict[str, Any]) -> None:
        """局部更新

        Raises:
            EntityNotFound: 文档不存在
            StoreUnavailable: 底层写入失败
        """
        async with self._write_lock:
            current = await self.get(collection, doc_id)
            if current is None:
                raise EntityNotFound(collection, doc_id)
            body = self._resolve_sentinels(dict(partial), current=current)
            try:
                await self._write(collection, doc_id, body)
                await self.conn.commit()
            except aiosqlite.Error as e:
                await self._safe_rollback()
                raise StoreUnavailable(f"update {collection}/{doc_id}", e) from e

    async def delete(self, collection: str, doc_id: str) -> None:
        """删除文档（不存在时静默）"""
        async with self._write_lock:
            try:
                await self.conn.execute(
                    "DELETE FROM documents WHERE collection = ? AND doc_id = ?",
                    (collection, doc_id),
                )
                await self.conn.commit()
            except aiosqlite.Error as e:
                await self._safe_rollback()
                raise StoreUnavailable(f"delete {collection}/{doc_id}", e) from e

    async def query(
        self,
        collection: str,
        filters: list[FieldFilter] | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """按类型化过滤条件扫描集合

        结果不保证顺序，排序由调用方在内存中完成。
        """
        clauses = ["collection = ?"]
        params: list[Any] = [collection]
        for flt in filters or []:
            clause, clause_params = self._compile_filter(flt)
            clauses.append(clause)
            params.extend(clause_params)

        sql = f"SELECT body FROM documents WHERE {' AND '.join(clauses)}"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)

        try:
            cursor = await self.conn.execute(sql, params)
            rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise StoreUnavailable(f"query {collection}", e) from e
        return [json.loads(row[0]) for row in rows]

    async def query_equal(self, collection: str, field: str, value: Any) -> list[dict[str, Any]]:
        return await self.query(collection, [FieldFilter(field, QueryOp.EQ, value)])

    async def query_range(
        self,
        collection: str,
        field: str,
        op: QueryOp,
        value: Any,
    ) -> list[dict[str, Any]]:
        if op not in RANGE_OPS:
            raise ValueError(f"not a range operator: {op}")
        return await self.query(collection, [FieldFilter(field, op, value)])

    async def ping(self) -> bool:
        """连通性检查（readiness 使用）"""
        cursor = await self.conn.execute("SELECT 1")
        row = await cursor.fetchone()
        return row is not None

    async def close(self) -> None:
        await self.conn.close()

    async def _write(self, collection: str, doc_id: str, body: dict[str, Any]) -> None:
        await self.conn.execute(
            """
            INSERT INTO documents (collection, doc_id, body, written_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT (collection, doc_id)
            DO UPDATE SET body = excluded.body, written_at = excluded.written_at
            """,
            (
                collection,
                doc_id,
                json.dumps(body, ensure_ascii=False),
                format_timestamp(self.server_timestamp()),
            ),
        )

    async def _safe_rollback(self) -> None:
        # 回滚失败时保留原始异常向上传播
        with contextlib.suppress(aiosqlite.Error):
            await self.conn.rollback()

    def _resolve_sentinels(
        self,
        partial: dict[str, Any],
        current: dict[str, Any] | None,
    ) -> dict[str, Any]:
        """将哨兵值解析为具体值，返回合并后的完整文档"""
        body = dict(current or {})
        for key, value in partial.items():
            if isinstance(value, DeleteField):
                body.pop(key, None)
            elif isinstance(value, ServerTimestamp):
                body[key] = format_timestamp(self.server_timestamp())
            elif isinstance(value, ArrayUnion):
                existing = list(body.get(key) or [])
                for item in value.values:
                    if item not in existing:
                        existing.append(item)
                body[key] = existing
            elif isinstance(value, ArrayRemove):
                existing = list(body.get(key) or [])
                body[key] = [item for item in existing if item not in value.values]
            elif isinstance(value, Increment):
                body[key] = (body.get(key) or 0) + value.amount
            else:
                body[key] = value
        return body

    @staticmethod
    def _compile_filter(flt: FieldFilter) -> tuple[str, list[Any]]:
        """将 FieldFilter 编译为参数化 SQL 片段（字段路径也作为参数传入）"""
        path = f"$.{flt.field}"
        value = to_storable(flt.value)
        if flt.op == QueryOp.ARRAY_CONTAINS:
            return (
                "EXISTS (SELECT 1 FROM json_each(documents.body, ?) AS elem WHERE elem.value = ?)",
                [path, value],
            )
        if flt.op == QueryOp.EQ and value is None:
            return "json_extract(body, ?) IS NULL", [path]
        return f"json_extract(body, ?) {_SQL_OPS[flt.op]} ?", [path, value]
