"""MutationIntent -- 工作项变更意图与执行计划

服务层的每个公开变更方法只构造一个意图，交给 WorkItemService.apply()：
加载当前记录 -> 校验 -> 生成 MutationPlan -> 按 steps 顺序执行。
"""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from .models import (
    AuditAction,
    CreateWorkItemRequest,
    RequestMetadata,
    UpdateWorkItemRequest,
    WorkItem,
)


@dataclass(frozen=True)
class Create:
    request: CreateWorkItemRequest


@dataclass(frozen=True)
class Update:
    item_id: str
    patch: UpdateWorkItemRequest


@dataclass(frozen=True)
class SoftDelete:
    item_id: str
    reason: str | None = None


@dataclass(frozen=True)
class Restore:
    item_id: str


@dataclass(frozen=True)
class PermanentDelete:
    item_id: str


@dataclass(frozen=True)
class Link:
    item_id: str
    other_id: str


@dataclass(frozen=True)
class Unlink:
    item_id: str
    other_id: str


MutationIntent = Create | Update | SoftDelete | Restore | PermanentDelete | Link | Unlink


class Step(StrEnum):
    """计划步骤"""

    PERSIST = "persist"  # 整体写入 record
    PATCH = "patch"  # 局部更新（哨兵值）
    LINK_OBJECTIVE = "link_objective"
    UNLINK_OBJECTIVE = "unlink_objective"
    WRITE_AUDIT = "write_audit"
    REMOVE = "remove"


@dataclass
class MutationPlan:
    """一次变更的完整执行计划

    steps 为空表示无变化（幂等操作命中），不写任何记录。
    """

    intent: MutationIntent
    actor_id: str
    metadata: RequestMetadata | None
    item_id: str
    current: WorkItem | None = None
    record: WorkItem | None = None
    patch: dict[str, Any] = field(default_factory=dict)
    action: AuditAction | None = None
    previous_state: dict[str, Any] | None = None
    new_state: dict[str, Any] | None = None
    reason: str | None = None
    link_objective: str | None = None
    unlink_objective: str | None = None
    steps: list[Step] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_noop(self) -> bool:
        return not self.steps
