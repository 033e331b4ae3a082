"""TaskLedger Core Services -- 业务服务组

所有服务共享同一个 DocumentStore 与 IdGenerator（显式注入，无全局句柄）。
"""

from ..audit import AuditLogger
from ..linker import ObjectiveLinker
from ..store import DocumentStore, IdGenerator
from .documents import DocumentService
from .objectives import ObjectiveService
from .work_items import WorkItemService


class ServiceGroup:
    """服务实例组 -- 共享同一个存储"""

    def __init__(self, store: DocumentStore, id_generator: IdGenerator) -> None:
        self.store = store
        self.audit = AuditLogger(store, id_generator)
        self.linker = ObjectiveLinker(store)
        self.work_items = WorkItemService(store, id_generator, self.audit, self.linker)
        self.objectives = ObjectiveService(store, id_generator)
        self.documents = DocumentService(store, id_generator)


__all__ = [
    "ServiceGroup",
    "WorkItemService",
    "ObjectiveService",
    "DocumentService",
]
