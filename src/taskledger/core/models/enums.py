"""枚举定义 -- 工作项状态机、目标状态、审计动作、文档状态/分类/变更类型

VALID_TRANSITIONS 为工作项状态的合法流转映射：三个状态之间全部双向可达。
"""

from enum import StrEnum


class WorkItemStatus(StrEnum):
    """工作项状态机"""

    PENDING = "Pending"
    ACTIVE = "Active"
    DONE = "Done"


# 合法状态流转 -- 所有跨状态流转双向合法（支持 Done -> Pending 的“重新打开”）
VALID_TRANSITIONS: dict[WorkItemStatus, set[WorkItemStatus]] = {
    WorkItemStatus.PENDING: {WorkItemStatus.ACTIVE, WorkItemStatus.DONE},
    WorkItemStatus.ACTIVE: {WorkItemStatus.PENDING, WorkItemStatus.DONE},
    WorkItemStatus.DONE: {WorkItemStatus.ACTIVE, WorkItemStatus.PENDING},
}

# 仍需推进的状态（逾期统计只看这些）
OPEN_STATES: set[WorkItemStatus] = {WorkItemStatus.PENDING, WorkItemStatus.ACTIVE}


class ObjectiveStatus(StrEnum):
    """目标状态"""

    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class AuditAction(StrEnum):
    """审计动作"""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    STATUS_CHANGED = "status_changed"
    REASSIGNED = "reassigned"
    LINKED = "linked"
    UNLINKED = "unlinked"


class ReferenceType(StrEnum):
    """外部引用类型"""

    URL = "url"
    FILE = "file"
    DOCUMENT = "document"
    KNOWLEDGE = "knowledge"


class DocumentStatus(StrEnum):
    """知识文档状态"""

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class DocumentCategory(StrEnum):
    """知识文档分类"""

    PROCESS = "process"
    GUIDELINE = "guideline"
    POLICY = "policy"
    TUTORIAL = "tutorial"
    REFERENCE = "reference"
    TEMPLATE = "template"
    OTHER = "other"


class ChangeType(StrEnum):
    """文档版本变更类型"""

    CREATED = "created"
    CONTENT_UPDATED = "content_updated"
    STATUS_CHANGED = "status_changed"
    METADATA_UPDATED = "metadata_updated"
    TEMPLATE_MODIFIED = "template_modified"
    ARCHIVED = "archived"


class ErrorCode(StrEnum):
    """字段级校验错误码"""

    REQUIRED_FIELD = "REQUIRED_FIELD"
    INVALID_DATE = "INVALID_DATE"
    INVALID_DATE_RANGE = "INVALID_DATE_RANGE"
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    INVALID_REFERENCE = "INVALID_REFERENCE"
    DUPLICATE_REFERENCE = "DUPLICATE_REFERENCE"
    INVALID_TAG = "INVALID_TAG"
    INVALID_VALUE = "INVALID_VALUE"
    TITLE_TOO_LONG = "TITLE_TOO_LONG"
    NOT_DELETED = "NOT_DELETED"
    NOT_A_TEMPLATE = "NOT_A_TEMPLATE"


def validate_transition(from_status: WorkItemStatus, to_status: WorkItemStatus) -> bool:
    """验证状态流转是否合法

    自身流转（无变化）永远合法。

    Args:
        from_status: 当前状态
        to_status: 目标状态

    Returns:
        True 如果流转合法，否则 False
    """
    if from_status == to_status:
        return True
    allowed = VALID_TRANSITIONS.get(from_status, set())
    return to_status in allowed
