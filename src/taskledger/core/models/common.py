"""公共类型 -- UTC 时间戳、校验结果、请求元数据

存储中的时间统一序列化为定宽 ISO-8601（微秒 + "+00:00"），
保证文档存储按文本比较时与时间先后一致。
"""

from datetime import UTC, date, datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, Field, PlainSerializer

from .enums import ErrorCode


def ensure_utc(value: datetime) -> datetime:
    """naive 时间视为 UTC，aware 时间统一转换到 UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def format_timestamp(value: datetime) -> str:
    """序列化为定宽 ISO-8601 文本"""
    return ensure_utc(value).isoformat(timespec="microseconds")


def parse_date(value: str | date | datetime | None) -> datetime | None:
    """解析日期输入（ISO 字符串 / date / datetime），失败返回 None"""
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=UTC)
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return ensure_utc(datetime.fromisoformat(value.strip()))
    except ValueError:
        return None


UtcDatetime = Annotated[
    datetime,
    AfterValidator(ensure_utc),
    PlainSerializer(format_timestamp, return_type=str, when_used="json"),
]


class ValidationError(BaseModel):
    """字段级校验错误"""

    field: str
    message: str
    code: ErrorCode


class ValidationResult(BaseModel):
    """本体校验结果"""

    errors: list[ValidationError] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, field: str, message: str, code: ErrorCode) -> None:
        self.errors.append(ValidationError(field=field, message=message, code=code))

    def merge(self, other: "ValidationResult") -> "ValidationResult":
        """合并另一个结果（就地修改并返回自身）"""
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        return self


class RequestMetadata(BaseModel):
    """请求元数据（来源地址 + 客户端标识）"""

    ip_address: str | None = Field(default=None, description="来源 IP")
    user_agent: str | None = Field(default=None, description="客户端标识")
