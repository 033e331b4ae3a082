"""Store Protocol 接口定义

定义文档存储与 ID 生成器的抽象接口，
使用 Python Protocol 实现结构化子类型（duck typing）。
存储不提供跨集合事务：每个方法是一次独立的原子操作。
"""

from datetime import datetime
from enum import StrEnum
from typing import Any, Protocol

from .query import FieldFilter, QueryOp


class Collection(StrEnum):
    """文档集合名称"""

    WORK_ITEMS = "work_items"
    OBJECTIVES = "objectives"
    AUDIT_LOGS = "audit_logs"
    DOCUMENTS = "knowledge_documents"
    DOCUMENT_VERSIONS = "document_versions"


class DocumentStore(Protocol):
    """文档存储接口"""

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """根据 ID 读取文档，不存在返回 None"""
        ...

    async def upsert(self, collection: str, doc_id: str, doc: dict[str, Any]) -> None:
        """整体写入（不存在则创建）"""
        ...

    async def update(self, collection: str, doc_id: str, partial: dict[str, Any]) -> None:
        """局部更新，支持 ArrayUnion / ArrayRemove / Increment / DeleteField / ServerTimestamp"""
        ...

    async def delete(self, collection: str, doc_id: str) -> None:
        """删除文档"""
        ...

    async def query(
        self,
        collection: str,
        filters: list[FieldFilter] | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """按类型化过滤条件扫描集合（结果无序）"""
        ...

    async def query_equal(self, collection: str, field: str, value: Any) -> list[dict[str, Any]]:
        """字段相等过滤"""
        ...

    async def query_range(
        self,
        collection: str,
        field: str,
        op: QueryOp,
        value: Any,
    ) -> list[dict[str, Any]]:
        """字段范围过滤"""
        ...

    def server_timestamp(self) -> datetime:
        """服务端时间戳"""
        ...


class IdGenerator(Protocol):
    """全局唯一 ID 生成器，无需协调"""

    def new_id(self) -> str:
        """生成新 ID"""
        ...
