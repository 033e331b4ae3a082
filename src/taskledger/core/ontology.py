"""本体校验器 -- 所有变更在落库前必须通过的领域规则

纯函数（validate_complete_work_item 除外，它等待注入的存在性谓词），
返回 ValidationResult，不抛异常，由服务层决定是否拒绝变更。

规则：
- 每个工作项必须归属一个目标并有负责人
- 必填字段：objective, assignee, start_date, due_date, deliverable, evidence
- start_date 不得晚于 due_date
- 状态流转必须符合 VALID_TRANSITIONS
"""

from collections.abc import Awaitable, Callable
from typing import Any

from .config import DOCUMENT_TITLE_MAX_LENGTH, MAX_LINKED_ITEMS_WARNING, MAX_TAGS_WARNING
from .models import (
    CreateDocumentRequest,
    CreateObjectiveRequest,
    CreateWorkItemRequest,
    ErrorCode,
    UpdateDocumentRequest,
    UpdateObjectiveRequest,
    UpdateWorkItemRequest,
    ValidationResult,
    WorkItem,
    normalize_evidence,
    parse_date,
    validate_transition,
)

ExistsPredicate = Callable[[str], Awaitable[bool]]


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def _evidence_missing(value: Any) -> bool:
    """空列表、全空白字符串列表都视为缺失"""
    items = normalize_evidence(value)
    return not any(isinstance(item, str) and item.strip() for item in items)


def _check_dates(result: ValidationResult, start: Any, due: Any) -> None:
    """给出的日期逐个解析，两者都合法时检查先后"""
    start_dt = parse_date(start) if start is not None else None
    due_dt = parse_date(due) if due is not None else None

    if start is not None and start_dt is None:
        result.add_error("start_date", "Invalid start date format", ErrorCode.INVALID_DATE)
    if due is not None and due_dt is None:
        result.add_error("due_date", "Invalid due date format", ErrorCode.INVALID_DATE)

    if start_dt is not None and due_dt is not None and start_dt > due_dt:
        result.add_error(
            "due_date",
            "Due date must be after start date",
            ErrorCode.INVALID_DATE_RANGE,
        )


def validate_work_item_creation(request: CreateWorkItemRequest) -> ValidationResult:
    """校验工作项创建请求的结构"""
    result = ValidationResult()

    if _is_blank(request.objective):
        result.add_error(
            "objective", "Objective is required and cannot be empty", ErrorCode.REQUIRED_FIELD
        )
    if _is_blank(request.assignee):
        result.add_error(
            "assignee", "Assignee is required and cannot be empty", ErrorCode.REQUIRED_FIELD
        )
    if _is_blank(request.start_date):
        result.add_error("start_date", "Start date is required", ErrorCode.REQUIRED_FIELD)
    if _is_blank(request.due_date):
        result.add_error("due_date", "Due date is required", ErrorCode.REQUIRED_FIELD)
    if _is_blank(request.deliverable):
        result.add_error(
            "deliverable", "Deliverable is required and cannot be empty", ErrorCode.REQUIRED_FIELD
        )
    if _evidence_missing(request.evidence):
        result.add_error(
            "evidence",
            "Evidence is required (can be URL, file path, or description)",
            ErrorCode.REQUIRED_FIELD,
        )

    _check_dates(
        result,
        None if _is_blank(request.start_date) else request.start_date,
        None if _is_blank(request.due_date) else request.due_date,
    )
    return result


def validate_work_item_update(
    current: WorkItem,
    patch: UpdateWorkItemRequest,
) -> ValidationResult:
    """校验工作项更新补丁

    只检查补丁中显式给出的字段；显式给出 None 视为清空。
    日期先后只在补丁同时给出两个日期时检查。
    """
    result = ValidationResult()
    changes = patch.changes()

    for field in ("objective", "assignee", "deliverable"):
        if field in changes and _is_blank(changes[field]):
            result.add_error(
                field, f"{field.capitalize()} cannot be empty", ErrorCode.REQUIRED_FIELD
            )

    if "evidence" in changes and _evidence_missing(changes["evidence"]):
        result.add_error("evidence", "Evidence cannot be empty", ErrorCode.REQUIRED_FIELD)

    for field in ("start_date", "due_date"):
        if field in changes and _is_blank(changes[field]):
            label = "Start date" if field == "start_date" else "Due date"
            result.add_error(field, f"{label} cannot be empty", ErrorCode.REQUIRED_FIELD)

    if "status" in changes:
        new_status = changes["status"]
        if new_status is None:
            result.add_error("status", "Status cannot be empty", ErrorCode.REQUIRED_FIELD)
        elif not validate_transition(current.status, new_status):
            result.add_error(
                "status",
                f"Invalid status transition: {current.status} -> {new_status}",
                ErrorCode.INVALID_STATUS_TRANSITION,
            )

    start = changes.get("start_date")
    due = changes.get("due_date")
    _check_dates(
        result,
        None if _is_blank(start) else start,
        None if _is_blank(due) else due,
    )

    if "linked_items" in changes or "tags" in changes:
        result.merge(
            validate_soft_relationships(changes.get("linked_items"), changes.get("tags"))
        )
    return result


def validate_soft_relationships(
    linked_items: list[str] | None = None,
    tags: list[str] | None = None,
) -> ValidationResult:
    """校验软关系（关联工作项、标签）

    数量超过阈值只产生告警；重复关联和空标签是错误。
    """
    result = ValidationResult()

    if linked_items:
        if len(linked_items) > MAX_LINKED_ITEMS_WARNING:
            result.warnings.append(
                f"Work item has more than {MAX_LINKED_ITEMS_WARNING} linked items. "
                "Consider grouping under an objective."
            )
        if len(set(linked_items)) != len(linked_items):
            result.add_error(
                "linked_items",
                "Duplicate work item IDs found in linked_items",
                ErrorCode.DUPLICATE_REFERENCE,
            )

    if tags:
        if len(tags) > MAX_TAGS_WARNING:
            result.warnings.append(
                f"Work item has more than {MAX_TAGS_WARNING} tags. "
                "Consider using fewer, more specific tags."
            )
        if any(_is_blank(tag) for tag in tags):
            result.add_error("tags", "Tags cannot be empty strings", ErrorCode.INVALID_TAG)

    return result


async def validate_complete_work_item(
    request: CreateWorkItemRequest,
    objective_exists: ExistsPredicate,
    assignee_exists: ExistsPredicate,
) -> ValidationResult:
    """完整校验：结构 -> 引用存在性 -> 软关系

    结构不合法时直接返回，不调用存在性谓词。
    """
    structure = validate_work_item_creation(request)
    if not structure.valid:
        return structure

    result = ValidationResult()
    if not await objective_exists(request.objective):
        result.add_error(
            "objective",
            f"Objective '{request.objective}' does not exist",
            ErrorCode.INVALID_REFERENCE,
        )
    if not await assignee_exists(request.assignee):
        result.add_error(
            "assignee",
            f"Assignee '{request.assignee}' does not exist",
            ErrorCode.INVALID_REFERENCE,
        )

    result.merge(validate_soft_relationships(request.linked_items, request.tags))
    return result


def validate_objective_creation(request: CreateObjectiveRequest) -> ValidationResult:
    """目标创建：title / description / owner 必填"""
    result = ValidationResult()
    if _is_blank(request.title):
        result.add_error("title", "Objective title is required", ErrorCode.REQUIRED_FIELD)
    if _is_blank(request.description):
        result.add_error(
            "description", "Objective description is required", ErrorCode.REQUIRED_FIELD
        )
    if _is_blank(request.owner):
        result.add_error("owner", "Objective owner is required", ErrorCode.REQUIRED_FIELD)
    return result


def validate_objective_update(patch: UpdateObjectiveRequest) -> ValidationResult:
    """目标更新：补丁中给出的必填字段不得为空"""
    result = ValidationResult()
    for field in ("title", "description", "owner"):
        if field in patch.model_fields_set and _is_blank(getattr(patch, field)):
            result.add_error(
                field, f"Objective {field} cannot be empty", ErrorCode.REQUIRED_FIELD
            )
    if "status" in patch.model_fields_set and patch.status is None:
        result.add_error("status", "Objective status cannot be empty", ErrorCode.REQUIRED_FIELD)
    return result


def validate_document_creation(request: CreateDocumentRequest) -> ValidationResult:
    """知识文档创建校验"""
    result = ValidationResult()

    if _is_blank(request.title):
        result.add_error("title", "Title is mandatory", ErrorCode.REQUIRED_FIELD)
    elif len(request.title) > DOCUMENT_TITLE_MAX_LENGTH:
        result.add_error(
            "title",
            f"Title must be at most {DOCUMENT_TITLE_MAX_LENGTH} characters",
            ErrorCode.TITLE_TOO_LONG,
        )
    if request.category is None:
        result.add_error("category", "Category is mandatory", ErrorCode.REQUIRED_FIELD)
    if _is_blank(request.content):
        result.add_error("content", "Content is mandatory", ErrorCode.REQUIRED_FIELD)

    if request.is_template and request.template_data is None:
        result.warnings.append("Template flag is set but no template data provided")
    if request.visibility is not None and len(request.visibility) == 0:
        result.warnings.append(
            "Empty visibility list - document will not be accessible to anyone"
        )
    return result


def validate_document_update(patch: UpdateDocumentRequest) -> ValidationResult:
    """知识文档更新校验（只检查补丁中给出的字段）"""
    result = ValidationResult()
    changes = patch.changes()

    if "title" in changes:
        title = changes["title"]
        if _is_blank(title):
            result.add_error("title", "Title cannot be empty", ErrorCode.REQUIRED_FIELD)
        elif len(title) > DOCUMENT_TITLE_MAX_LENGTH:
            result.add_error(
                "title",
                f"Title must be at most {DOCUMENT_TITLE_MAX_LENGTH} characters",
                ErrorCode.TITLE_TOO_LONG,
            )
    if "content" in changes and _is_blank(changes["content"]):
        result.add_error("content", "Content cannot be empty", ErrorCode.REQUIRED_FIELD)
    for field, label in (
        ("category", "Category"),
        ("status", "Status"),
        ("is_template", "Template flag"),
    ):
        if field in changes and changes[field] is None:
            result.add_error(field, f"{label} cannot be empty", ErrorCode.REQUIRED_FIELD)

    if changes.get("is_template") and changes.get("template_data") is None:
        result.warnings.append("Template flag is set but no template data provided")
    visibility = changes.get("visibility")
    if visibility is not None and len(visibility) == 0:
        result.warnings.append(
            "Empty visibility list - document will not be accessible to anyone"
        )
    return result
