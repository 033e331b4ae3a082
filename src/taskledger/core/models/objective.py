"""Objective Domain Model -- 对工作项分组的目标

members 为工作项 ID 集合，由 ObjectiveLinker 维护。
目标只会被归档（status=archived），不会被物理删除。
"""

from pydantic import BaseModel, Field

from .common import UtcDatetime
from .enums import ObjectiveStatus


class Objective(BaseModel):
    """目标数据模型"""

    objective_id: str = Field(description="唯一标识")
    title: str = Field(description="简短名称")
    description: str = Field(description="详细描述")
    owner: str = Field(description="负责人 ID")
    members: list[str] = Field(default_factory=list, description="成员工作项 ID")
    status: ObjectiveStatus = Field(default=ObjectiveStatus.ACTIVE, description="目标状态")

    created_at: UtcDatetime = Field(description="创建时间")
    updated_at: UtcDatetime = Field(description="更新时间")
    created_by: str = Field(description="创建者 ID")

    due_date: UtcDatetime | None = Field(default=None, description="截止时间")
    tags: list[str] = Field(default_factory=list, description="标签")


class CreateObjectiveRequest(BaseModel):
    """目标创建请求"""

    title: str | None = None
    description: str | None = None
    owner: str | None = None
    due_date: UtcDatetime | None = None
    tags: list[str] | None = None


class UpdateObjectiveRequest(BaseModel):
    """目标更新补丁（ID / 创建信息 / 成员不可通过补丁修改）"""

    title: str | None = None
    description: str | None = None
    owner: str | None = None
    status: ObjectiveStatus | None = None
    due_date: UtcDatetime | None = None
    tags: list[str] | None = None


class ObjectiveStats(BaseModel):
    """目标统计"""

    objective: Objective
    total_items: int = 0
