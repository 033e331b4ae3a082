"""工作项路由

POST   /api/work-items: 创建工作项（201）
GET    /api/work-items: 列表查询，支持 assignee/objective/status/tags 等筛选
GET    /api/work-items/trash | grouped | stats | overdue: 回收站、看板、统计、逾期
GET    /api/work-items/{item_id}: 详情
PATCH  /api/work-items/{item_id}: 部分更新
DELETE /api/work-items/{item_id}: 移入回收站
POST   /api/work-items/{item_id}/restore: 从回收站恢复
DELETE /api/work-items/{item_id}/permanent: 永久删除
POST   /api/work-items/{item_id}/links/{other_id}: 关联工作项
DELETE /api/work-items/{item_id}/links/{other_id}: 取消关联
GET    /api/work-items/{item_id}/audit: 审计历史
"""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from starlette.responses import Response
from taskledger.core.models import (
    AuditLogEntry,
    CreateWorkItemRequest,
    GroupedWorkItems,
    UpdateWorkItemRequest,
    WorkItem,
    WorkItemFilters,
    WorkItemStats,
    WorkItemStatus,
)

from ..deps import get_actor_id, get_request_metadata, get_services

router = APIRouter()


class WorkItemListResponse(BaseModel):
    """工作项列表响应"""

    items: list[WorkItem]
    total: int


class AuditHistoryResponse(BaseModel):
    """审计历史响应"""

    item_id: str
    entries: list[AuditLogEntry]


@router.post("/api/work-items", status_code=201, response_model=WorkItem)
async def create_work_item(
    body: CreateWorkItemRequest,
    services=Depends(get_services),
    actor_id: str = Depends(get_actor_id),
    metadata=Depends(get_request_metadata),
):
    """创建工作项，目标不存在时自动创建"""
    return await services.work_items.create(body, actor_id, metadata)


@router.get("/api/work-items", response_model=WorkItemListResponse)
async def list_work_items(
    assignee: str | None = Query(default=None, description="按负责人筛选"),
    objective: str | None = Query(default=None, description="按目标筛选"),
    status: WorkItemStatus | None = Query(default=None, description="按状态筛选"),
    created_by: str | None = Query(default=None, description="按创建者筛选"),
    tags: list[str] | None = Query(default=None, description="标签（任一匹配）"),
    services=Depends(get_services),
):
    """查询未删除的工作项，按 created_at 倒序"""
    items = await services.work_items.list(
        WorkItemFilters(
            assignee=assignee,
            objective=objective,
            status=status,
            created_by=created_by,
            tags=tags,
        )
    )
    return WorkItemListResponse(items=items, total=len(items))


@router.get("/api/work-items/trash", response_model=WorkItemListResponse)
async def list_trash(services=Depends(get_services)):
    """回收站中的工作项"""
    items = await services.work_items.list_trash()
    return WorkItemListResponse(items=items, total=len(items))


@router.get("/api/work-items/grouped", response_model=GroupedWorkItems)
async def grouped_work_items(
    assignee: str | None = Query(default=None),
    objective: str | None = Query(default=None),
    services=Depends(get_services),
):
    """按状态分组（看板视图）"""
    return await services.work_items.grouped_by_status(
        WorkItemFilters(assignee=assignee, objective=objective)
    )


@router.get("/api/work-items/stats", response_model=WorkItemStats)
async def work_item_stats(
    assignee: str | None = Query(default=None),
    objective: str | None = Query(default=None),
    services=Depends(get_services),
):
    return await services.work_items.stats(assignee=assignee, objective=objective)


@router.get("/api/work-items/overdue", response_model=WorkItemListResponse)
async def overdue_work_items(services=Depends(get_services)):
    items = await services.work_items.overdue()
    return WorkItemListResponse(items=items, total=len(items))


@router.get("/api/work-items/{item_id}", response_model=WorkItem)
async def get_work_item(item_id: str, services=Depends(get_services)):
    return await services.work_items.require(item_id)


@router.patch("/api/work-items/{item_id}", response_model=WorkItem)
async def update_work_item(
    item_id: str,
    body: UpdateWorkItemRequest,
    services=Depends(get_services),
    actor_id: str = Depends(get_actor_id),
    metadata=Depends(get_request_metadata),
):
    """部分更新，只有请求体中出现的字段会被修改"""
    return await services.work_items.update(item_id, body, actor_id, metadata)


@router.delete("/api/work-items/{item_id}", response_model=WorkItem)
async def soft_delete_work_item(
    item_id: str,
    reason: str | None = Query(default=None, description="删除原因"),
    services=Depends(get_services),
    actor_id: str = Depends(get_actor_id),
    metadata=Depends(get_request_metadata),
):
    """移入回收站（可恢复）"""
    return await services.work_items.soft_delete(item_id, actor_id, reason, metadata)


@router.post("/api/work-items/{item_id}/restore", response_model=WorkItem)
async def restore_work_item(
    item_id: str,
    services=Depends(get_services),
    actor_id: str = Depends(get_actor_id),
    metadata=Depends(get_request_metadata),
):
    return await services.work_items.restore(item_id, actor_id, metadata)


@router.delete("/api/work-items/{item_id}/permanent", status_code=204)
async def permanent_delete_work_item(
    item_id: str,
    services=Depends(get_services),
    actor_id: str = Depends(get_actor_id),
    metadata=Depends(get_request_metadata),
):
    """永久删除，审计历史保留"""
    await services.work_items.permanent_delete(item_id, actor_id, metadata)
    return Response(status_code=204)


@router.post("/api/work-items/{item_id}/links/{other_id}", response_model=WorkItem)
async def link_work_item(
    item_id: str,
    other_id: str,
    services=Depends(get_services),
    actor_id: str = Depends(get_actor_id),
    metadata=Depends(get_request_metadata),
):
    return await services.work_items.link(item_id, other_id, actor_id, metadata)


@router.delete("/api/work-items/{item_id}/links/{other_id}", response_model=WorkItem)
async def unlink_work_item(
    item_id: str,
    other_id: str,
    services=Depends(get_services),
    actor_id: str = Depends(get_actor_id),
    metadata=Depends(get_request_metadata),
):
    return await services.work_items.unlink(item_id, other_id, actor_id, metadata)


@router.get("/api/work-items/{item_id}/audit", response_model=AuditHistoryResponse)
async def work_item_audit(item_id: str, services=Depends(get_services)):
    """工作项审计历史（最新在前），永久删除后仍可查询"""
    entries = await services.audit.history(item_id)
    return AuditHistoryResponse(item_id=item_id, entries=entries)
