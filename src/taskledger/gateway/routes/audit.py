"""审计日志路由 -- 只读

GET /api/audit/items/{item_id}: 工作项历史 + 每条记录的字段差异
GET /api/audit/actors/{actor_id}: 按操作者
GET /api/audit/actions/{action}: 按动作
GET /api/audit/recent: 最近记录
GET /api/audit/range: 时间区间
GET /api/audit/export: 组合条件导出（json / csv）
GET /api/audit/count: 计数
"""

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from starlette.responses import Response
from taskledger.core.audit import export_csv, state_diff
from taskledger.core.config import AUDIT_DEFAULT_LIMIT
from taskledger.core.models import (
    AuditAction,
    AuditExportPage,
    AuditLogEntry,
    AuditQuery,
    StateChange,
)

from ..deps import get_services

router = APIRouter()


class AuditEntryWithChanges(BaseModel):
    """审计记录 + 字段级差异"""

    entry: AuditLogEntry
    changes: list[StateChange]


class ItemAuditResponse(BaseModel):
    item_id: str
    history: list[AuditEntryWithChanges]


class AuditEntriesResponse(BaseModel):
    entries: list[AuditLogEntry]


class AuditCountResponse(BaseModel):
    count: int


@router.get("/api/audit/items/{item_id}", response_model=ItemAuditResponse)
async def item_audit(item_id: str, services=Depends(get_services)):
    entries = await services.audit.history(item_id)
    return ItemAuditResponse(
        item_id=item_id,
        history=[
            AuditEntryWithChanges(
                entry=entry,
                changes=state_diff(entry.previous_state, entry.new_state),
            )
            for entry in entries
        ],
    )


@router.get("/api/audit/actors/{actor_id}", response_model=AuditEntriesResponse)
async def actor_audit(
    actor_id: str,
    limit: int = Query(default=AUDIT_DEFAULT_LIMIT, ge=1),
    services=Depends(get_services),
):
    return AuditEntriesResponse(entries=await services.audit.by_actor(actor_id, limit))


@router.get("/api/audit/actions/{action}", response_model=AuditEntriesResponse)
async def action_audit(
    action: AuditAction,
    limit: int = Query(default=AUDIT_DEFAULT_LIMIT, ge=1),
    services=Depends(get_services),
):
    return AuditEntriesResponse(entries=await services.audit.by_action(action, limit))


@router.get("/api/audit/recent", response_model=AuditEntriesResponse)
async def recent_audit(
    limit: int = Query(default=50, ge=1),
    services=Depends(get_services),
):
    return AuditEntriesResponse(entries=await services.audit.recent(limit))


@router.get("/api/audit/range", response_model=AuditEntriesResponse)
async def range_audit(
    start: datetime = Query(description="起始时间（含）"),
    end: datetime = Query(description="结束时间（含）"),
    limit: int = Query(default=1000, ge=1),
    services=Depends(get_services),
):
    return AuditEntriesResponse(entries=await services.audit.by_time_range(start, end, limit))


@router.get("/api/audit/export", response_model=AuditExportPage)
async def export_audit(
    item_id: str | None = Query(default=None),
    actor_id: str | None = Query(default=None),
    action: AuditAction | None = Query(default=None),
    start: datetime | None = Query(default=None),
    end: datetime | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1),
    format: str = Query(default="json", pattern="^(json|csv)$"),
    services=Depends(get_services),
):
    """合规导出：json 返回分页结果，csv 返回当前页的扁平表格"""
    page = await services.audit.export(
        AuditQuery(
            item_id=item_id,
            actor_id=actor_id,
            action=action,
            start=start,
            end=end,
            offset=offset,
            limit=limit,
        )
    )
    if format == "csv":
        return Response(
            content=export_csv(page.entries),
            media_type="text/csv",
            headers={"Content-Disposition": 'attachment; filename="audit-export.csv"'},
        )
    return page


@router.get("/api/audit/count", response_model=AuditCountResponse)
async def count_audit(
    item_id: str | None = Query(default=None),
    actor_id: str | None = Query(default=None),
    action: AuditAction | None = Query(default=None),
    services=Depends(get_services),
):
    count = await services.audit.count(item_id=item_id, actor_id=actor_id, action=action)
    return AuditCountResponse(count=count)
