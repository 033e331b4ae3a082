"""TaskLedger 异常体系

ValidationFailed 携带完整的字段级错误列表，变更不会被部分应用。
StoreUnavailable 包装存储适配器的底层异常，直接向上传播，不重试。
"""

from .models.common import ValidationError
from .models.enums import WorkItemStatus


class TaskLedgerError(Exception):
    """TaskLedger 基础异常"""

    code: str = "TASKLEDGER_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationFailed(TaskLedgerError):
    """本体校验失败"""

    code = "VALIDATION_FAILED"

    def __init__(
        self,
        errors: list[ValidationError],
        warnings: list[str] | None = None,
        message: str | None = None,
    ) -> None:
        """
        Args:
            errors: 字段级错误列表
            warnings: 告警（不阻止变更，随错误一并返回）
            message: 自定义描述，默认由错误列表拼接
        """
        summary = "; ".join(f"{e.field}: {e.message}" for e in errors)
        super().__init__(message or f"Validation failed: {summary}")
        self.errors = list(errors)
        self.warnings = list(warnings or [])


class IllegalStatusTransition(ValidationFailed):
    """状态流转被状态机拒绝

    当前双向矩阵允许所有流转，保留此异常以便将来收紧状态机。
    """

    code = "ILLEGAL_STATUS_TRANSITION"

    def __init__(
        self,
        from_status: WorkItemStatus,
        to_status: WorkItemStatus,
        errors: list[ValidationError],
    ) -> None:
        super().__init__(
            errors,
            message=f"Invalid status transition: {from_status} -> {to_status}",
        )
        self.from_status = from_status
        self.to_status = to_status


class EntityNotFound(TaskLedgerError):
    """操作对象不存在"""

    code = "ENTITY_NOT_FOUND"

    def __init__(self, kind: str, entity_id: str) -> None:
        super().__init__(f"{kind} {entity_id} not found")
        self.kind = kind
        self.entity_id = entity_id


class ReferenceNotFound(TaskLedgerError):
    """引用的 ID 无法解析（目标、版本号等）"""

    code = "REFERENCE_NOT_FOUND"

    def __init__(self, kind: str, reference_id: str, message: str | None = None) -> None:
        super().__init__(message or f"Referenced {kind} '{reference_id}' does not exist")
        self.kind = kind
        self.reference_id = reference_id


class StoreUnavailable(TaskLedgerError):
    """存储适配器失败

    此异常直接传播给调用方，由调用方决定是否整体重试。
    """

    code = "STORE_UNAVAILABLE"

    def __init__(self, operation: str, original_error: Exception) -> None:
        """
        Args:
            operation: 失败的存储操作（如 "update documents/xxx"）
            original_error: 原始异常
        """
        super().__init__(f"Store operation failed: {operation} -- {original_error}")
        self.operation = operation
        self.original_error = original_error
