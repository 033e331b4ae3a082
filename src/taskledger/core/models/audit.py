"""AuditLogEntry Domain Model -- 审计日志

审计表 append-only，写入后不允许更新或删除。
previous_state 仅在 created 事件为 None；
new_state 仅在永久删除的终态事件为 None。
"""

import json
from typing import Any

from pydantic import BaseModel, Field

from .common import UtcDatetime, format_timestamp
from .enums import AuditAction


class AuditLogEntry(BaseModel):
    """审计日志条目"""

    event_id: str = Field(description="唯一标识，ULID 格式，时间有序")
    item_id: str = Field(description="被变更的工作项 ID")
    timestamp: UtcDatetime = Field(description="服务端时间戳")
    actor_id: str = Field(description="操作者 ID")
    action: AuditAction = Field(description="动作")
    previous_state: dict[str, Any] | None = Field(default=None, description="变更前快照")
    new_state: dict[str, Any] | None = Field(default=None, description="变更后快照")
    reason: str | None = Field(default=None, description="变更原因")
    ip_address: str | None = Field(default=None, description="来源 IP")
    user_agent: str | None = Field(default=None, description="客户端标识")

    def to_flat_record(self) -> dict[str, str]:
        """展平为合规导出用的字符串记录（JSON / 表格均可用）"""
        return {
            "event_id": self.event_id,
            "item_id": self.item_id,
            "timestamp": format_timestamp(self.timestamp),
            "actor_id": self.actor_id,
            "action": self.action.value,
            "reason": self.reason or "",
            "ip_address": self.ip_address or "",
            "user_agent": self.user_agent or "",
            "previous_state": _dump_state(self.previous_state),
            "new_state": _dump_state(self.new_state),
        }


def _dump_state(state: dict[str, Any] | None) -> str:
    if state is None:
        return ""
    return json.dumps(state, ensure_ascii=False, sort_keys=True, default=str)


FLAT_RECORD_FIELDS: list[str] = [
    "event_id",
    "item_id",
    "timestamp",
    "actor_id",
    "action",
    "reason",
    "ip_address",
    "user_agent",
    "previous_state",
    "new_state",
]


class AuditQuery(BaseModel):
    """审计导出过滤条件（可组合） + 分页"""

    item_id: str | None = None
    actor_id: str | None = None
    action: AuditAction | None = None
    start: UtcDatetime | None = None
    end: UtcDatetime | None = None
    offset: int = Field(default=0, ge=0)
    limit: int = Field(default=100, ge=1)


class AuditExportPage(BaseModel):
    """审计导出分页结果"""

    entries: list[AuditLogEntry] = Field(default_factory=list)
    total: int = 0
    offset: int = 0
    limit: int = 0


class StateChange(BaseModel):
    """两个快照之间的单字段差异"""

    field: str
    before: Any = None
    after: Any = None
