"""ObjectiveService -- 目标的创建、查询、更新与归档

目标只会被归档，不会被物理删除；成员集合由 ObjectiveLinker 维护，
不能通过更新补丁修改。
"""

import structlog

from ..errors import EntityNotFound, ReferenceNotFound, ValidationFailed
from ..models import (
    CreateObjectiveRequest,
    Objective,
    ObjectiveStats,
    ObjectiveStatus,
    UpdateObjectiveRequest,
)
from ..ontology import validate_objective_creation, validate_objective_update
from ..store import Collection, DocumentStore, FieldFilter, IdGenerator, QueryOp

log = structlog.get_logger()


class ObjectiveService:
    """目标业务服务"""

    def __init__(self, store: DocumentStore, id_generator: IdGenerator) -> None:
        self._store = store
        self._ids = id_generator

    async def create(self, request: CreateObjectiveRequest, actor_id: str) -> Objective:
        result = validate_objective_creation(request)
        if not result.valid:
            raise ValidationFailed(result.errors, result.warnings)

        now = self._store.server_timestamp()
        objective = Objective(
            objective_id=self._ids.new_id(),
            title=request.title,
            description=request.description,
            owner=request.owner,
            members=[],
            status=ObjectiveStatus.ACTIVE,
            created_at=now,
            updated_at=now,
            created_by=actor_id,
            due_date=request.due_date,
            tags=request.tags or [],
        )
        await self._store.upsert(
            Collection.OBJECTIVES,
            objective.objective_id,
            objective.model_dump(mode="json"),
        )
        log.info("objective_created", objective_id=objective.objective_id, actor_id=actor_id)
        return objective

    async def get(self, objective_id: str) -> Objective | None:
        doc = await self._store.get(Collection.OBJECTIVES, objective_id)
        if doc is None:
            return None
        return Objective.model_validate(doc)

    async def require(self, objective_id: str) -> Objective:
        objective = await self.get(objective_id)
        if objective is None:
            raise EntityNotFound("Objective", objective_id)
        return objective

    async def update(
        self,
        objective_id: str,
        patch: UpdateObjectiveRequest,
        actor_id: str,
    ) -> Objective:
        """更新目标（ID、创建信息、成员不可修改）"""
        current = await self.require(objective_id)
        result = validate_objective_update(patch)
        if not result.valid:
            raise ValidationFailed(result.errors, result.warnings)

        changes = {name: getattr(patch, name) for name in patch.model_fields_set}
        if "tags" in changes and changes["tags"] is None:
            changes["tags"] = []
        merged = current.model_dump()
        merged.update(changes)
        merged["updated_at"] = self._store.server_timestamp()
        objective = Objective.model_validate(merged)

        # 只写入补丁字段，避免覆盖并发的成员变更
        stored = objective.model_dump(mode="json")
        partial = {name: stored[name] for name in changes}
        partial["updated_at"] = stored["updated_at"]
        await self._store.update(Collection.OBJECTIVES, objective_id, partial)
        log.info(
            "objective_updated",
            objective_id=objective_id,
            fields=sorted(changes),
            actor_id=actor_id,
        )
        return objective

    async def archive(self, objective_id: str, actor_id: str) -> Objective:
        return await self.update(
            objective_id,
            UpdateObjectiveRequest(status=ObjectiveStatus.ARCHIVED),
            actor_id,
        )

    async def members(self, objective_id: str) -> list[str]:
        """目标下的工作项 ID

        Raises:
            ReferenceNotFound: 目标不存在
        """
        objective = await self.get(objective_id)
        if objective is None:
            raise ReferenceNotFound("Objective", objective_id)
        return list(objective.members)

    async def stats(self, objective_id: str) -> ObjectiveStats:
        objective = await self.get(objective_id)
        if objective is None:
            raise ReferenceNotFound("Objective", objective_id)
        return ObjectiveStats(objective=objective, total_items=len(objective.members))

    async def list(
        self,
        owner: str | None = None,
        status: ObjectiveStatus | None = None,
        tags: list[str] | None = None,
    ) -> list[Objective]:
        """列出目标（最新创建在前），标签任一匹配"""
        conditions: list[FieldFilter] = []
        if owner:
            conditions.append(FieldFilter("owner", QueryOp.EQ, owner))
        if status:
            conditions.append(FieldFilter("status", QueryOp.EQ, status))

        docs = await self._store.query(Collection.OBJECTIVES, conditions)
        objectives = [Objective.model_validate(doc) for doc in docs]
        if tags:
            wanted = set(tags)
            objectives = [obj for obj in objectives if wanted.intersection(obj.tags)]
        objectives.sort(key=lambda obj: obj.created_at, reverse=True)
        return objectives
