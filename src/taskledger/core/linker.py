"""ObjectiveLinker -- 维护目标的成员集合

工作项引用的目标不存在时自动创建占位目标，
成员增删使用 ArrayUnion / ArrayRemove，保证幂等。
"""

import structlog

from .config import AUTO_OBJECTIVE_DESCRIPTION, SYSTEM_ACTOR
from .errors import EntityNotFound
from .models import Objective, ObjectiveStatus
from .store import ArrayRemove, ArrayUnion, Collection, DocumentStore, ServerTimestamp

log = structlog.get_logger()


class ObjectiveLinker:
    """目标成员关系维护"""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def exists(self, objective_id: str) -> bool:
        if not objective_id or not objective_id.strip():
            return False
        return await self._store.get(Collection.OBJECTIVES, objective_id) is not None

    async def ensure_exists(self, objective_id: str) -> Objective:
        """目标不存在时创建占位目标（title 与 ID 相同，owner 为 system）"""
        doc = await self._store.get(Collection.OBJECTIVES, objective_id)
        if doc is not None:
            return Objective.model_validate(doc)

        now = self._store.server_timestamp()
        objective = Objective(
            objective_id=objective_id,
            title=objective_id,
            description=AUTO_OBJECTIVE_DESCRIPTION,
            owner=SYSTEM_ACTOR,
            members=[],
            status=ObjectiveStatus.ACTIVE,
            created_at=now,
            updated_at=now,
            created_by=SYSTEM_ACTOR,
            tags=["auto-created"],
        )
        await self._store.upsert(
            Collection.OBJECTIVES,
            objective_id,
            objective.model_dump(mode="json"),
        )
        log.info("objective_auto_created", objective_id=objective_id)
        return objective

    async def link_member(self, objective_id: str, item_id: str) -> None:
        await self.ensure_exists(objective_id)
        await self._store.update(
            Collection.OBJECTIVES,
            objective_id,
            {"members": ArrayUnion(item_id), "updated_at": ServerTimestamp()},
        )

    async def unlink_member(self, objective_id: str, item_id: str) -> None:
        """从目标成员中移除（目标不存在时只记录告警）"""
        try:
            await self._store.update(
                Collection.OBJECTIVES,
                objective_id,
                {"members": ArrayRemove(item_id), "updated_at": ServerTimestamp()},
            )
        except EntityNotFound:
            log.warning(
                "objective_unlink_missing",
                objective_id=objective_id,
                item_id=item_id,
            )
