"""WorkItem Domain Model -- 工作项及其请求/过滤模型

必填字段（本体约束）：objective, assignee, start_date, due_date,
status, deliverable, evidence。
deleted_at 存在即表示已进入回收站（软删除）。
"""

from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator

from .common import UtcDatetime
from .enums import ReferenceType, WorkItemStatus


def normalize_evidence(value: str | list[str] | None) -> list[str]:
    """evidence 允许单个字符串，统一转换为列表"""
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return list(value)


class Reference(BaseModel):
    """外部引用"""

    type: ReferenceType = Field(description="引用类型")
    title: str = Field(description="引用标题")
    url: str = Field(description="引用地址")
    description: str | None = Field(default=None, description="引用说明")


class WorkItem(BaseModel):
    """工作项数据模型

    version 从 1 开始，每次被接受的变更 +1。
    """

    item_id: str = Field(description="唯一标识，ULID 格式")
    objective: str = Field(description="所属目标 ID")
    assignee: str = Field(description="负责人 ID")
    start_date: UtcDatetime = Field(description="开始时间")
    due_date: UtcDatetime = Field(description="截止时间")
    status: WorkItemStatus = Field(default=WorkItemStatus.PENDING, description="当前状态")
    deliverable: str = Field(description="交付物描述")
    evidence: list[str] = Field(default_factory=list, description="完成证据")
    intent: str | None = Field(default=None, description="意图说明")

    version: int = Field(default=1, description="版本号")
    visibility: list[str] = Field(default_factory=lambda: ["all"], description="可见范围")

    tags: list[str] = Field(default_factory=list, description="标签")
    linked_items: list[str] = Field(default_factory=list, description="关联工作项 ID")
    related_documents: list[str] = Field(default_factory=list, description="关联知识文档 ID")
    references: list[Reference] = Field(default_factory=list, description="外部引用")

    created_at: UtcDatetime = Field(description="创建时间")
    updated_at: UtcDatetime = Field(description="更新时间")
    created_by: str = Field(description="创建者 ID")
    last_modified_by: str = Field(description="最后修改者 ID")

    deleted_at: UtcDatetime | None = Field(default=None, description="软删除时间")
    deleted_by: str | None = Field(default=None, description="软删除操作者")

    @field_validator("evidence", mode="before")
    @classmethod
    def _coerce_evidence(cls, value):
        return normalize_evidence(value)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class CreateWorkItemRequest(BaseModel):
    """工作项创建请求

    必填字段在模型层保持可选，由本体校验器统一给出字段级错误。
    """

    objective: str | None = None
    assignee: str | None = None
    start_date: str | datetime | date | None = None
    due_date: str | datetime | date | None = None
    deliverable: str | None = None
    evidence: str | list[str] | None = None
    intent: str | None = None

    tags: list[str] | None = None
    linked_items: list[str] | None = None
    related_documents: list[str] | None = None
    references: list[Reference] | None = None
    visibility: list[str] | None = None


class UpdateWorkItemRequest(BaseModel):
    """工作项更新补丁 -- 只有显式给出的字段参与校验与合并"""

    objective: str | None = None
    assignee: str | None = None
    start_date: str | datetime | date | None = None
    due_date: str | datetime | date | None = None
    status: WorkItemStatus | None = None
    deliverable: str | None = None
    evidence: str | list[str] | None = None
    intent: str | None = None

    tags: list[str] | None = None
    linked_items: list[str] | None = None
    related_documents: list[str] | None = None
    references: list[Reference] | None = None
    visibility: list[str] | None = None

    reason: str | None = Field(default=None, description="变更原因（写入审计）")

    def changes(self) -> dict:
        """显式给出的字段（不含 reason）"""
        return {
            name: getattr(self, name)
            for name in self.model_fields_set
            if name != "reason"
        }


class WorkItemFilters(BaseModel):
    """工作项列表过滤条件"""

    assignee: str | None = None
    objective: str | None = None
    status: WorkItemStatus | None = None
    created_by: str | None = None
    tags: list[str] | None = None
    due_before: UtcDatetime | None = None
    due_after: UtcDatetime | None = None


class WorkItemStats(BaseModel):
    """工作项统计"""

    total: int = 0
    pending: int = 0
    active: int = 0
    done: int = 0
    overdue: int = 0


class GroupedWorkItems(BaseModel):
    """按状态分组（看板列）"""

    pending: list[WorkItem] = Field(default_factory=list)
    active: list[WorkItem] = Field(default_factory=list)
    done: list[WorkItem] = Field(default_factory=list)
