"""TaskLedger Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .audit import (
    FLAT_RECORD_FIELDS,
    AuditExportPage,
    AuditLogEntry,
    AuditQuery,
    StateChange,
)
from .common import (
    RequestMetadata,
    UtcDatetime,
    ValidationError,
    ValidationResult,
    ensure_utc,
    format_timestamp,
    parse_date,
)
from .document import (
    CreateDocumentRequest,
    DocumentFilters,
    DocumentSnapshot,
    DocumentVersion,
    FieldDifference,
    KnowledgeDocument,
    TemplateCheck,
    TemplateData,
    TemplateInstanceRequest,
    UpdateDocumentRequest,
    VersionDiff,
)
from .enums import (
    OPEN_STATES,
    VALID_TRANSITIONS,
    AuditAction,
    ChangeType,
    DocumentCategory,
    DocumentStatus,
    ErrorCode,
    ObjectiveStatus,
    ReferenceType,
    WorkItemStatus,
    validate_transition,
)
from .objective import (
    CreateObjectiveRequest,
    Objective,
    ObjectiveStats,
    UpdateObjectiveRequest,
)
from .work_item import (
    CreateWorkItemRequest,
    GroupedWorkItems,
    Reference,
    UpdateWorkItemRequest,
    WorkItem,
    WorkItemFilters,
    WorkItemStats,
    normalize_evidence,
)

__all__ = [
    # 枚举
    "WorkItemStatus",
    "ObjectiveStatus",
    "AuditAction",
    "ReferenceType",
    "DocumentStatus",
    "DocumentCategory",
    "ChangeType",
    "ErrorCode",
    # 状态机
    "VALID_TRANSITIONS",
    "OPEN_STATES",
    "validate_transition",
    # 公共类型
    "UtcDatetime",
    "ValidationError",
    "ValidationResult",
    "RequestMetadata",
    "ensure_utc",
    "format_timestamp",
    "parse_date",
    # WorkItem
    "WorkItem",
    "Reference",
    "CreateWorkItemRequest",
    "UpdateWorkItemRequest",
    "WorkItemFilters",
    "WorkItemStats",
    "GroupedWorkItems",
    "normalize_evidence",
    # Objective
    "Objective",
    "CreateObjectiveRequest",
    "UpdateObjectiveRequest",
    "ObjectiveStats",
    # Audit
    "AuditLogEntry",
    "AuditQuery",
    "AuditExportPage",
    "StateChange",
    "FLAT_RECORD_FIELDS",
    # Document
    "KnowledgeDocument",
    "DocumentSnapshot",
    "DocumentVersion",
    "TemplateData",
    "CreateDocumentRequest",
    "UpdateDocumentRequest",
    "DocumentFilters",
    "FieldDifference",
    "VersionDiff",
    "TemplateInstanceRequest",
    "TemplateCheck",
]
