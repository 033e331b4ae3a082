"""AuditLogger -- append-only 审计日志

写入：每个被接受的变更恰好一条，分配 ULID + 服务端时间戳，写入失败向上传播。
读取：全部在内存中按时间倒序排序；读取失败记录日志并返回空结果。
"""

import csv
import io
import json
from collections.abc import Iterable
from datetime import datetime
from typing import Any

import structlog

from .config import AUDIT_DEFAULT_LIMIT, AUDIT_EXPORT_LIMIT
from .errors import StoreUnavailable
from .models import (
    FLAT_RECORD_FIELDS,
    AuditAction,
    AuditExportPage,
    AuditLogEntry,
    AuditQuery,
    RequestMetadata,
    StateChange,
)
from .store import Collection, DocumentStore, FieldFilter, IdGenerator, QueryOp

log = structlog.get_logger()


def _newest_first(entries: list[AuditLogEntry]) -> list[AuditLogEntry]:
    return sorted(entries, key=lambda e: (e.timestamp, e.event_id), reverse=True)


def state_diff(
    previous: dict[str, Any] | None,
    new: dict[str, Any] | None,
) -> list[StateChange]:
    """字段级快照差异

    previous 为 None（创建事件）时，new 的每个字段都视为新增；
    new 为 None（永久删除）时，previous 的每个字段都视为移除。
    """
    before = previous or {}
    after = new or {}
    changes: list[StateChange] = []
    for field in sorted(set(before) | set(after)):
        old_value = before.get(field)
        new_value = after.get(field)
        if json.dumps(old_value, sort_keys=True, default=str) != json.dumps(
            new_value, sort_keys=True, default=str
        ):
            changes.append(StateChange(field=field, before=old_value, after=new_value))
    return changes


def export_csv(entries: Iterable[AuditLogEntry]) -> str:
    """将审计条目渲染为 CSV（首行为表头）"""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=FLAT_RECORD_FIELDS)
    writer.writeheader()
    for entry in entries:
        writer.writerow(entry.to_flat_record())
    return buffer.getvalue()


class AuditLogger:
    """审计日志读写"""

    state_diff = staticmethod(state_diff)
    export_csv = staticmethod(export_csv)

    def __init__(self, store: DocumentStore, id_generator: IdGenerator) -> None:
        self._store = store
        self._ids = id_generator

    async def append(
        self,
        item_id: str,
        actor_id: str,
        action: AuditAction,
        previous_state: dict[str, Any] | None,
        new_state: dict[str, Any] | None,
        reason: str | None = None,
        metadata: RequestMetadata | None = None,
    ) -> AuditLogEntry:
        """追加一条审计记录（只写一次，之后不会再被修改）

        Raises:
            StoreUnavailable: 写入失败
        """
        entry = AuditLogEntry(
            event_id=self._ids.new_id(),
            item_id=item_id,
            timestamp=self._store.server_timestamp(),
            actor_id=actor_id,
            action=action,
            previous_state=previous_state,
            new_state=new_state,
            reason=reason,
            ip_address=metadata.ip_address if metadata else None,
            user_agent=metadata.user_agent if metadata else None,
        )
        await self._store.upsert(
            Collection.AUDIT_LOGS,
            entry.event_id,
            entry.model_dump(mode="json"),
        )
        log.debug(
            "audit_appended",
            event_id=entry.event_id,
            item_id=item_id,
            action=action.value,
            actor_id=actor_id,
        )
        return entry

    async def history(self, item_id: str) -> list[AuditLogEntry]:
        """工作项的完整审计历史（最新在前）"""
        entries = await self._read([FieldFilter("item_id", QueryOp.EQ, item_id)], "history")
        return _newest_first(entries)

    async def by_actor(
        self, actor_id: str, limit: int = AUDIT_DEFAULT_LIMIT
    ) -> list[AuditLogEntry]:
        entries = await self._read([FieldFilter("actor_id", QueryOp.EQ, actor_id)], "by_actor")
        return _newest_first(entries)[:limit]

    async def by_action(
        self, action: AuditAction, limit: int = AUDIT_DEFAULT_LIMIT
    ) -> list[AuditLogEntry]:
        entries = await self._read([FieldFilter("action", QueryOp.EQ, action)], "by_action")
        return _newest_first(entries)[:limit]

    async def by_time_range(
        self,
        start: datetime,
        end: datetime,
        limit: int = 1000,
    ) -> list[AuditLogEntry]:
        """闭区间 [start, end] 内的审计记录"""
        entries = await self._read(
            [
                FieldFilter("timestamp", QueryOp.GE, start),
                FieldFilter("timestamp", QueryOp.LE, end),
            ],
            "by_time_range",
        )
        return _newest_first(entries)[:limit]

    async def recent(self, limit: int = 50) -> list[AuditLogEntry]:
        entries = await self._read([], "recent")
        return _newest_first(entries)[:limit]

    async def export(self, query: AuditQuery | None = None) -> AuditExportPage:
        """按可组合条件导出（合规报表），结果上限 AUDIT_EXPORT_LIMIT 条，再按 offset/limit 分页"""
        query = query or AuditQuery()
        filters: list[FieldFilter] = []
        if query.item_id:
            filters.append(FieldFilter("item_id", QueryOp.EQ, query.item_id))
        if query.actor_id:
            filters.append(FieldFilter("actor_id", QueryOp.EQ, query.actor_id))
        if query.action:
            filters.append(FieldFilter("action", QueryOp.EQ, query.action))
        if query.start:
            filters.append(FieldFilter("timestamp", QueryOp.GE, query.start))
        if query.end:
            filters.append(FieldFilter("timestamp", QueryOp.LE, query.end))

        matched = _newest_first(await self._read(filters, "export"))[:AUDIT_EXPORT_LIMIT]
        page = matched[query.offset : query.offset + query.limit]
        return AuditExportPage(
            entries=page,
            total=len(matched),
            offset=query.offset,
            limit=query.limit,
        )

    async def count(
        self,
        item_id: str | None = None,
        actor_id: str | None = None,
        action: AuditAction | None = None,
    ) -> int:
        filters: list[FieldFilter] = []
        if item_id:
            filters.append(FieldFilter("item_id", QueryOp.EQ, item_id))
        if actor_id:
            filters.append(FieldFilter("actor_id", QueryOp.EQ, actor_id))
        if action:
            filters.append(FieldFilter("action", QueryOp.EQ, action))
        return len(await self._read(filters, "count"))

    async def _read(self, filters: list[FieldFilter], operation: str) -> list[AuditLogEntry]:
        try:
            docs = await self._store.query(Collection.AUDIT_LOGS, filters)
        except StoreUnavailable as e:
            log.warning("audit_read_failed", operation=operation, error=str(e))
            return []
        return [AuditLogEntry.model_validate(doc) for doc in docs]
