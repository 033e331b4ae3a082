"""目标路由

POST   /api/objectives: 创建目标
GET    /api/objectives: 列表（owner/status/tags 筛选）
GET    /api/objectives/{objective_id}: 详情
PATCH  /api/objectives/{objective_id}: 更新（成员不可修改）
DELETE /api/objectives/{objective_id}: 归档
GET    /api/objectives/{objective_id}/members: 成员工作项
GET    /api/objectives/{objective_id}/stats: 统计
"""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from taskledger.core.models import (
    CreateObjectiveRequest,
    Objective,
    ObjectiveStats,
    ObjectiveStatus,
    UpdateObjectiveRequest,
)

from ..deps import get_actor_id, get_services

router = APIRouter()


class ObjectiveListResponse(BaseModel):
    """目标列表响应"""

    objectives: list[Objective]


class MembersResponse(BaseModel):
    """目标成员响应"""

    objective_id: str
    members: list[str]


@router.post("/api/objectives", status_code=201, response_model=Objective)
async def create_objective(
    body: CreateObjectiveRequest,
    services=Depends(get_services),
    actor_id: str = Depends(get_actor_id),
):
    return await services.objectives.create(body, actor_id)


@router.get("/api/objectives", response_model=ObjectiveListResponse)
async def list_objectives(
    owner: str | None = Query(default=None, description="按负责人筛选"),
    status: ObjectiveStatus | None = Query(default=None, description="按状态筛选"),
    tags: list[str] | None = Query(default=None, description="标签（任一匹配）"),
    services=Depends(get_services),
):
    objectives = await services.objectives.list(owner=owner, status=status, tags=tags)
    return ObjectiveListResponse(objectives=objectives)


@router.get("/api/objectives/{objective_id}", response_model=Objective)
async def get_objective(objective_id: str, services=Depends(get_services)):
    return await services.objectives.require(objective_id)


@router.patch("/api/objectives/{objective_id}", response_model=Objective)
async def update_objective(
    objective_id: str,
    body: UpdateObjectiveRequest,
    services=Depends(get_services),
    actor_id: str = Depends(get_actor_id),
):
    return await services.objectives.update(objective_id, body, actor_id)


@router.delete("/api/objectives/{objective_id}", response_model=Objective)
async def archive_objective(
    objective_id: str,
    services=Depends(get_services),
    actor_id: str = Depends(get_actor_id),
):
    """目标只归档，不物理删除"""
    return await services.objectives.archive(objective_id, actor_id)


@router.get("/api/objectives/{objective_id}/members", response_model=MembersResponse)
async def objective_members(objective_id: str, services=Depends(get_services)):
    members = await services.objectives.members(objective_id)
    return MembersResponse(objective_id=objective_id, members=members)


@router.get("/api/objectives/{objective_id}/stats", response_model=ObjectiveStats)
async def objective_stats(objective_id: str, services=Depends(get_services)):
    return await services.objectives.stats(objective_id)
