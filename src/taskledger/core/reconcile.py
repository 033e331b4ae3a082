"""一致性核对 -- 扫描工作项、目标与审计日志，报告多步变更中途失败留下的不一致

只报告，不修复。检查项：
- 工作项未出现在所属目标的 members 中
- 目标 members 中的工作项已不存在
- 工作项最新审计条目的 new_state.version 与记录不一致（审计缺失）
- 工作项引用的目标不存在
"""

import time
from enum import StrEnum

import structlog
from pydantic import BaseModel, Field

from .models import AuditLogEntry, Objective, WorkItem
from .store import Collection, DocumentStore

log = structlog.get_logger()


class IssueKind(StrEnum):
    """不一致类型"""

    MISSING_MEMBERSHIP = "missing_membership"
    ORPHAN_MEMBER = "orphan_member"
    AUDIT_VERSION_MISMATCH = "audit_version_mismatch"
    MISSING_OBJECTIVE = "missing_objective"


class ReconcileIssue(BaseModel):
    kind: IssueKind
    item_id: str
    objective_id: str | None = None
    detail: str = ""


class ReconcileReport(BaseModel):
    """核对结果"""

    issues: list[ReconcileIssue] = Field(default_factory=list)
    items_scanned: int = 0
    objectives_scanned: int = 0
    audit_entries_scanned: int = 0

    @property
    def consistent(self) -> bool:
        return not self.issues

    def of_kind(self, kind: IssueKind) -> list[ReconcileIssue]:
        return [issue for issue in self.issues if issue.kind == kind]


async def reconcile(store: DocumentStore) -> ReconcileReport:
    """全量扫描并生成核对报告"""
    start_time = time.monotonic()

    items = {
        doc["item_id"]: WorkItem.model_validate(doc)
        for doc in await store.query(Collection.WORK_ITEMS)
    }
    objectives = {
        doc["objective_id"]: Objective.model_validate(doc)
        for doc in await store.query(Collection.OBJECTIVES)
    }
    entries = [
        AuditLogEntry.model_validate(doc) for doc in await store.query(Collection.AUDIT_LOGS)
    ]

    # 每个工作项的最新审计条目
    latest: dict[str, AuditLogEntry] = {}
    for entry in entries:
        previous = latest.get(entry.item_id)
        if previous is None or (entry.timestamp, entry.event_id) > (
            previous.timestamp,
            previous.event_id,
        ):
            latest[entry.item_id] = entry

    report = ReconcileReport(
        items_scanned=len(items),
        objectives_scanned=len(objectives),
        audit_entries_scanned=len(entries),
    )

    for item_id, item in items.items():
        objective = objectives.get(item.objective)
        if objective is None:
            report.issues.append(
                ReconcileIssue(
                    kind=IssueKind.MISSING_OBJECTIVE,
                    item_id=item_id,
                    objective_id=item.objective,
                    detail=f"objective {item.objective} does not exist",
                )
            )
        elif item_id not in objective.members:
            report.issues.append(
                ReconcileIssue(
                    kind=IssueKind.MISSING_MEMBERSHIP,
                    item_id=item_id,
                    objective_id=item.objective,
                    detail=f"item is not a member of objective {item.objective}",
                )
            )

        entry = latest.get(item_id)
        audited_version = (entry.new_state or {}).get("version") if entry else None
        if audited_version != item.version:
            report.issues.append(
                ReconcileIssue(
                    kind=IssueKind.AUDIT_VERSION_MISMATCH,
                    item_id=item_id,
                    detail=(
                        f"record version {item.version}, "
                        f"latest audited version {audited_version}"
                    ),
                )
            )

    for objective_id, objective in objectives.items():
        for member_id in objective.members:
            if member_id not in items:
                report.issues.append(
                    ReconcileIssue(
                        kind=IssueKind.ORPHAN_MEMBER,
                        item_id=member_id,
                        objective_id=objective_id,
                        detail="member work item no longer exists",
                    )
                )

    elapsed_ms = int((time.monotonic() - start_time) * 1000)
    await log.ainfo(
        "reconcile_completed",
        items_scanned=report.items_scanned,
        objectives_scanned=report.objectives_scanned,
        audit_entries_scanned=report.audit_entries_scanned,
        issue_count=len(report.issues),
        elapsed_ms=elapsed_ms,
    )
    return report
