"""类型化查询构建 + 局部更新哨兵值

FieldFilter 以字段名 + 比较运算符描述过滤条件，替代动态拼接查询。
ArrayUnion / ArrayRemove / Increment / DeleteField / ServerTimestamp
在 update() 中由存储适配器原子解析。
"""

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum, StrEnum
from typing import Any

from ..models.common import format_timestamp

_FIELD_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class QueryOp(StrEnum):
    """比较运算符"""

    EQ = "=="
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="
    ARRAY_CONTAINS = "array-contains"


RANGE_OPS: set[QueryOp] = {QueryOp.LT, QueryOp.LE, QueryOp.GT, QueryOp.GE}


@dataclass(frozen=True)
class FieldFilter:
    """单字段过滤条件"""

    field: str
    op: QueryOp
    value: Any

    def __post_init__(self) -> None:
        if not _FIELD_NAME.match(self.field):
            raise ValueError(f"invalid field name: {self.field!r}")


def where(field: str, op: QueryOp | str, value: Any) -> FieldFilter:
    """构建过滤条件，op 接受枚举或其字面值（"==", "<=" ...）"""
    return FieldFilter(field=field, op=QueryOp(op), value=value)


def to_storable(value: Any) -> Any:
    """将 Python 值转换为存储可比较的 JSON 标量"""
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, Enum):
        return value.value
    return value


@dataclass(frozen=True)
class ArrayUnion:
    """数组集合并（已存在的元素不重复追加）"""

    values: tuple[Any, ...]

    def __init__(self, *values: Any) -> None:
        object.__setattr__(self, "values", tuple(values))


@dataclass(frozen=True)
class ArrayRemove:
    """数组集合差"""

    values: tuple[Any, ...]

    def __init__(self, *values: Any) -> None:
        object.__setattr__(self, "values", tuple(values))


@dataclass(frozen=True)
class Increment:
    """数值原子自增"""

    amount: int = 1


class DeleteField:
    """删除字段"""


class ServerTimestamp:
    """由存储写入时分配的服务端时间戳"""
