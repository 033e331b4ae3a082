"""WorkItemService -- 工作项变更与查询

所有变更走同一条流水线 apply()：
1. 加载当前记录（不存在抛 EntityNotFound）
2. 本体校验（失败抛 ValidationFailed，携带完整字段错误列表）
3. 生成 MutationPlan（新记录、审计动作、快照、目标成员变更、步骤顺序）
4. 按 plan.steps 顺序执行

各步骤是相互独立的存储操作，中途失败不回滚，由 reconcile 报告不一致。
"""

from datetime import datetime

import structlog

from ..audit import AuditLogger
from ..config import LIST_QUERY_LIMIT
from ..errors import EntityNotFound, IllegalStatusTransition, ValidationFailed
from ..intents import (
    Create,
    Link,
    MutationIntent,
    MutationPlan,
    PermanentDelete,
    Restore,
    SoftDelete,
    Step,
    Unlink,
    Update,
)
from ..linker import ObjectiveLinker
from ..models import (
    OPEN_STATES,
    AuditAction,
    CreateWorkItemRequest,
    ErrorCode,
    GroupedWorkItems,
    RequestMetadata,
    UpdateWorkItemRequest,
    ValidationError,
    ValidationResult,
    WorkItem,
    WorkItemFilters,
    WorkItemStats,
    WorkItemStatus,
    format_timestamp,
    normalize_evidence,
    parse_date,
)
from ..ontology import (
    validate_complete_work_item,
    validate_soft_relationships,
    validate_work_item_creation,
    validate_work_item_update,
)
from ..store import (
    ArrayRemove,
    ArrayUnion,
    Collection,
    DocumentStore,
    FieldFilter,
    IdGenerator,
    Increment,
    QueryOp,
)

log = structlog.get_logger()

_LIST_FIELDS = ("tags", "linked_items", "related_documents", "references", "visibility")


async def _assignee_exists(assignee_id: str) -> bool:
    # 尚无用户目录，非空即视为存在
    return bool(assignee_id and assignee_id.strip())


def _snapshot(item: WorkItem) -> dict:
    return item.model_dump(mode="json")


def _raise_if_invalid(
    result: ValidationResult,
    current: WorkItem | None = None,
    patch: UpdateWorkItemRequest | None = None,
) -> None:
    if result.valid:
        return
    if (
        current is not None
        and patch is not None
        and patch.status is not None
        and any(e.code == ErrorCode.INVALID_STATUS_TRANSITION for e in result.errors)
    ):
        raise IllegalStatusTransition(current.status, patch.status, result.errors)
    raise ValidationFailed(result.errors, result.warnings)


class WorkItemService:
    """工作项业务服务"""

    def __init__(
        self,
        store: DocumentStore,
        id_generator: IdGenerator,
        audit_logger: AuditLogger,
        linker: ObjectiveLinker,
    ) -> None:
        self._store = store
        self._ids = id_generator
        self._audit = audit_logger
        self._linker = linker
        self._planners = {
            Create: self._plan_create,
            Update: self._plan_update,
            SoftDelete: self._plan_soft_delete,
            Restore: self._plan_restore,
            PermanentDelete: self._plan_permanent_delete,
            Link: self._plan_link,
            Unlink: self._plan_unlink,
        }

    # ============================================================
    # 公开变更方法
    # ============================================================

    async def create(
        self,
        request: CreateWorkItemRequest,
        actor_id: str,
        metadata: RequestMetadata | None = None,
    ) -> WorkItem:
        """创建工作项

        状态固定为 Pending，version=1；目标不存在时自动创建。
        """
        return await self.apply(Create(request), actor_id, metadata)

    async def update(
        self,
        item_id: str,
        patch: UpdateWorkItemRequest,
        actor_id: str,
        metadata: RequestMetadata | None = None,
    ) -> WorkItem:
        return await self.apply(Update(item_id, patch), actor_id, metadata)

    async def soft_delete(
        self,
        item_id: str,
        actor_id: str,
        reason: str | None = None,
        metadata: RequestMetadata | None = None,
    ) -> WorkItem:
        """移入回收站（先写审计，再打删除标记）"""
        return await self.apply(SoftDelete(item_id, reason), actor_id, metadata)

    async def restore(
        self,
        item_id: str,
        actor_id: str,
        metadata: RequestMetadata | None = None,
    ) -> WorkItem:
        return await self.apply(Restore(item_id), actor_id, metadata)

    async def permanent_delete(
        self,
        item_id: str,
        actor_id: str,
        metadata: RequestMetadata | None = None,
    ) -> None:
        """永久删除：终态审计 -> 移出目标 -> 删除记录

        审计历史保留。
        """
        await self.apply(PermanentDelete(item_id), actor_id, metadata)

    async def link(
        self,
        item_id: str,
        other_id: str,
        actor_id: str,
        metadata: RequestMetadata | None = None,
    ) -> WorkItem:
        return await self.apply(Link(item_id, other_id), actor_id, metadata)

    async def unlink(
        self,
        item_id: str,
        other_id: str,
        actor_id: str,
        metadata: RequestMetadata | None = None,
    ) -> WorkItem:
        return await self.apply(Unlink(item_id, other_id), actor_id, metadata)

    # ============================================================
    # 流水线
    # ============================================================

    async def apply(
        self,
        intent: MutationIntent,
        actor_id: str,
        metadata: RequestMetadata | None = None,
    ) -> WorkItem | None:
        """校验并执行一个变更意图

        Returns:
            变更后的工作项；永久删除返回 None

        Raises:
            EntityNotFound: 工作项不存在
            ValidationFailed: 本体校验失败（不会产生任何写入）
            StoreUnavailable: 存储失败（已执行的步骤不回滚）
        """
        planner = self._planners[type(intent)]
        plan = await planner(intent, actor_id, metadata)

        if plan.warnings:
            log.warning(
                "work_item_validation_warnings",
                item_id=plan.item_id,
                warnings=plan.warnings,
            )
        if plan.is_noop:
            log.debug("work_item_mutation_noop", item_id=plan.item_id, intent=type(intent).__name__)
            return plan.record

        await self._execute(plan)
        log.info(
            "work_item_mutated",
            item_id=plan.item_id,
            intent=type(intent).__name__,
            action=plan.action.value if plan.action else None,
            actor_id=actor_id,
            version=plan.record.version if plan.record else None,
        )
        return plan.record

    async def _execute(self, plan: MutationPlan) -> None:
        for step in plan.steps:
            if step == Step.PERSIST:
                await self._store.upsert(
                    Collection.WORK_ITEMS, plan.item_id, _snapshot(plan.record)
                )
            elif step == Step.PATCH:
                await self._store.update(Collection.WORK_ITEMS, plan.item_id, plan.patch)
            elif step == Step.LINK_OBJECTIVE:
                await self._linker.link_member(plan.link_objective, plan.item_id)
            elif step == Step.UNLINK_OBJECTIVE:
                await self._linker.unlink_member(plan.unlink_objective, plan.item_id)
            elif step == Step.WRITE_AUDIT:
                await self._audit.append(
                    item_id=plan.item_id,
                    actor_id=plan.actor_id,
                    action=plan.action,
                    previous_state=plan.previous_state,
                    new_state=plan.new_state,
                    reason=plan.reason,
                    metadata=plan.metadata,
                )
            elif step == Step.REMOVE:
                await self._store.delete(Collection.WORK_ITEMS, plan.item_id)

    # ============================================================
    # 计划生成
    # ============================================================

    async def _plan_create(
        self, intent: Create, actor_id: str, metadata: RequestMetadata | None
    ) -> MutationPlan:
        request = intent.request
        structure = validate_work_item_creation(request)
        if structure.valid:
            structure.merge(validate_soft_relationships(request.linked_items, request.tags))
        _raise_if_invalid(structure)

        # 其余校验全部通过后才补齐目标，引用检查随后执行
        await self._linker.ensure_exists(request.objective)
        result = await validate_complete_work_item(
            request, self._linker.exists, _assignee_exists
        )
        _raise_if_invalid(result)

        now = self._store.server_timestamp()
        item = WorkItem(
            item_id=self._ids.new_id(),
            objective=request.objective,
            assignee=request.assignee,
            start_date=parse_date(request.start_date),
            due_date=parse_date(request.due_date),
            status=WorkItemStatus.PENDING,
            deliverable=request.deliverable,
            evidence=normalize_evidence(request.evidence),
            intent=request.intent,
            version=1,
            visibility=request.visibility if request.visibility is not None else ["all"],
            tags=request.tags or [],
            linked_items=request.linked_items or [],
            related_documents=request.related_documents or [],
            references=request.references or [],
            created_at=now,
            updated_at=now,
            created_by=actor_id,
            last_modified_by=actor_id,
        )
        return MutationPlan(
            intent=intent,
            actor_id=actor_id,
            metadata=metadata,
            item_id=item.item_id,
            record=item,
            action=AuditAction.CREATED,
            previous_state=None,
            new_state=_snapshot(item),
            reason="Work item created",
            link_objective=item.objective,
            steps=[Step.PERSIST, Step.LINK_OBJECTIVE, Step.WRITE_AUDIT],
            warnings=list(result.warnings),
        )

    async def _plan_update(
        self, intent: Update, actor_id: str, metadata: RequestMetadata | None
    ) -> MutationPlan:
        current = await self.require(intent.item_id)
        patch = intent.patch
        result = validate_work_item_update(current, patch)
        _raise_if_invalid(result, current, patch)

        changes = patch.changes()
        merged = current.model_dump()
        for name, value in changes.items():
            if name in ("start_date", "due_date"):
                value = parse_date(value)
            elif name == "evidence":
                value = normalize_evidence(value)
            elif name in _LIST_FIELDS and value is None:
                value = []
            merged[name] = value
        merged["version"] = current.version + 1
        merged["updated_at"] = self._store.server_timestamp()
        merged["last_modified_by"] = actor_id
        record = WorkItem.model_validate(merged)

        if "status" in changes and record.status != current.status:
            action = AuditAction.STATUS_CHANGED
        elif "assignee" in changes and record.assignee != current.assignee:
            action = AuditAction.REASSIGNED
        else:
            action = AuditAction.UPDATED

        steps = [Step.PERSIST, Step.WRITE_AUDIT]
        objective_changed = record.objective != current.objective
        if objective_changed:
            steps = [Step.UNLINK_OBJECTIVE, Step.LINK_OBJECTIVE, *steps]

        return MutationPlan(
            intent=intent,
            actor_id=actor_id,
            metadata=metadata,
            item_id=current.item_id,
            current=current,
            record=record,
            action=action,
            previous_state=_snapshot(current),
            new_state=_snapshot(record),
            reason=patch.reason,
            link_objective=record.objective if objective_changed else None,
            unlink_objective=current.objective if objective_changed else None,
            steps=steps,
            warnings=list(result.warnings),
        )

    async def _plan_soft_delete(
        self, intent: SoftDelete, actor_id: str, metadata: RequestMetadata | None
    ) -> MutationPlan:
        current = await self.require(intent.item_id)
        now = self._store.server_timestamp()
        record = current.model_copy(
            update={
                "deleted_at": now,
                "deleted_by": actor_id,
                "updated_at": now,
                "last_modified_by": actor_id,
                "version": current.version + 1,
            }
        )
        return MutationPlan(
            intent=intent,
            actor_id=actor_id,
            metadata=metadata,
            item_id=current.item_id,
            current=current,
            record=record,
            action=AuditAction.DELETED,
            previous_state=_snapshot(current),
            new_state=_snapshot(record),
            reason=intent.reason or "Moved to trash",
            steps=[Step.WRITE_AUDIT, Step.PERSIST],
        )

    async def _plan_restore(
        self, intent: Restore, actor_id: str, metadata: RequestMetadata | None
    ) -> MutationPlan:
        current = await self.require(intent.item_id)
        if not current.is_deleted:
            raise ValidationFailed(
                [
                    ValidationError(
                        field="deleted_at",
                        message=f"Work item {current.item_id} is not in the trash",
                        code=ErrorCode.NOT_DELETED,
                    )
                ]
            )
        now = self._store.server_timestamp()
        record = current.model_copy(
            update={
                "deleted_at": None,
                "deleted_by": None,
                "updated_at": now,
                "last_modified_by": actor_id,
                "version": current.version + 1,
            }
        )
        return MutationPlan(
            intent=intent,
            actor_id=actor_id,
            metadata=metadata,
            item_id=current.item_id,
            current=current,
            record=record,
            action=AuditAction.STATUS_CHANGED,
            previous_state=_snapshot(current),
            new_state=_snapshot(record),
            reason="Restored from trash",
            steps=[Step.PERSIST, Step.WRITE_AUDIT],
        )

    async def _plan_permanent_delete(
        self, intent: PermanentDelete, actor_id: str, metadata: RequestMetadata | None
    ) -> MutationPlan:
        current = await self.require(intent.item_id)
        return MutationPlan(
            intent=intent,
            actor_id=actor_id,
            metadata=metadata,
            item_id=current.item_id,
            current=current,
            record=None,
            action=AuditAction.DELETED,
            previous_state=_snapshot(current),
            new_state=None,
            reason="Permanently deleted",
            unlink_objective=current.objective,
            steps=[Step.WRITE_AUDIT, Step.UNLINK_OBJECTIVE, Step.REMOVE],
        )

    async def _plan_link(
        self, intent: Link, actor_id: str, metadata: RequestMetadata | None
    ) -> MutationPlan:
        current = await self.require(intent.item_id)
        self._check_other_id(intent.other_id)
        plan = MutationPlan(
            intent=intent,
            actor_id=actor_id,
            metadata=metadata,
            item_id=current.item_id,
            current=current,
            record=current,
        )
        if intent.other_id in current.linked_items:
            return plan

        linked = [*current.linked_items, intent.other_id]
        plan.warnings = validate_soft_relationships(linked, None).warnings
        return self._plan_link_change(
            plan, linked, ArrayUnion(intent.other_id), AuditAction.LINKED,
            f"Linked to work item {intent.other_id}",
        )

    async def _plan_unlink(
        self, intent: Unlink, actor_id: str, metadata: RequestMetadata | None
    ) -> MutationPlan:
        current = await self.require(intent.item_id)
        self._check_other_id(intent.other_id)
        plan = MutationPlan(
            intent=intent,
            actor_id=actor_id,
            metadata=metadata,
            item_id=current.item_id,
            current=current,
            record=current,
        )
        if intent.other_id not in current.linked_items:
            return plan

        linked = [i for i in current.linked_items if i != intent.other_id]
        return self._plan_link_change(
            plan, linked, ArrayRemove(intent.other_id), AuditAction.UNLINKED,
            f"Unlinked from work item {intent.other_id}",
        )

    def _plan_link_change(
        self,
        plan: MutationPlan,
        linked: list[str],
        operation: ArrayUnion | ArrayRemove,
        action: AuditAction,
        reason: str,
    ) -> MutationPlan:
        current = plan.current
        now = self._store.server_timestamp()
        record = current.model_copy(
            update={
                "linked_items": linked,
                "updated_at": now,
                "last_modified_by": plan.actor_id,
                "version": current.version + 1,
            }
        )
        plan.record = record
        plan.patch = {
            "linked_items": operation,
            "version": Increment(1),
            "updated_at": format_timestamp(now),
            "last_modified_by": plan.actor_id,
        }
        plan.action = action
        plan.previous_state = _snapshot(current)
        plan.new_state = _snapshot(record)
        plan.reason = reason
        plan.steps = [Step.PATCH, Step.WRITE_AUDIT]
        return plan

    @staticmethod
    def _check_other_id(other_id: str) -> None:
        if not other_id or not other_id.strip():
            raise ValidationFailed(
                [
                    ValidationError(
                        field="linked_items",
                        message="Linked work item ID cannot be empty",
                        code=ErrorCode.REQUIRED_FIELD,
                    )
                ]
            )

    # ============================================================
    # 查询
    # ============================================================

    async def get(self, item_id: str) -> WorkItem | None:
        doc = await self._store.get(Collection.WORK_ITEMS, item_id)
        if doc is None:
            return None
        return WorkItem.model_validate(doc)

    async def require(self, item_id: str) -> WorkItem:
        """获取工作项，不存在抛 EntityNotFound"""
        item = await self.get(item_id)
        if item is None:
            raise EntityNotFound("WorkItem", item_id)
        return item

    async def list_trash(self) -> list[WorkItem]:
        """回收站：只包含软删除的工作项，最近删除的在前"""
        docs = await self._store.query(Collection.WORK_ITEMS)
        items = [WorkItem.model_validate(doc) for doc in docs]
        trashed = [item for item in items if item.is_deleted]
        trashed.sort(key=lambda item: item.deleted_at, reverse=True)
        return trashed

    async def grouped_by_status(self, filters: WorkItemFilters | None = None) -> GroupedWorkItems:
        """看板分组，每列按截止时间升序"""
        items = await self.list(filters)
        items.sort(key=lambda item: item.due_date)
        grouped = GroupedWorkItems()
        for item in items:
            if item.status == WorkItemStatus.PENDING:
                grouped.pending.append(item)
            elif item.status == WorkItemStatus.ACTIVE:
                grouped.active.append(item)
            else:
                grouped.done.append(item)
        return grouped

    async def overdue(self, now: datetime | None = None) -> list[WorkItem]:
        """已过截止时间且仍未完成的工作项，按截止时间升序"""
        now = now or self._store.server_timestamp()
        items = [
            item
            for item in await self.list()
            if item.status in OPEN_STATES and item.due_date < now
        ]
        items.sort(key=lambda item: item.due_date)
        return items

    async def stats(
        self,
        assignee: str | None = None,
        objective: str | None = None,
        now: datetime | None = None,
    ) -> WorkItemStats:
        now = now or self._store.server_timestamp()
        items = await self.list(WorkItemFilters(assignee=assignee, objective=objective))
        stats = WorkItemStats(total=len(items))
        for item in items:
            if item.status == WorkItemStatus.PENDING:
                stats.pending += 1
            elif item.status == WorkItemStatus.ACTIVE:
                stats.active += 1
            else:
                stats.done += 1
            if item.status in OPEN_STATES and item.due_date < now:
                stats.overdue += 1
        return stats

    async def list(self, filters: WorkItemFilters | None = None) -> list[WorkItem]:
        """列出未删除的工作项（最新创建在前）

        标签过滤为任一匹配，在内存中完成。
        """
        filters = filters or WorkItemFilters()
        conditions = [FieldFilter("deleted_at", QueryOp.EQ, None)]
        for name in ("assignee", "objective", "status", "created_by"):
            value = getattr(filters, name)
            if value is not None:
                conditions.append(FieldFilter(name, QueryOp.EQ, value))
        if filters.due_before is not None:
            conditions.append(FieldFilter("due_date", QueryOp.LE, filters.due_before))
        if filters.due_after is not None:
            conditions.append(FieldFilter("due_date", QueryOp.GE, filters.due_after))

        docs = await self._store.query(Collection.WORK_ITEMS, conditions)
        items = [WorkItem.model_validate(doc) for doc in docs]
        if filters.tags:
            wanted = set(filters.tags)
            items = [item for item in items if wanted.intersection(item.tags)]
        items.sort(key=lambda item: item.created_at, reverse=True)
        return items[:LIST_QUERY_LIMIT]
