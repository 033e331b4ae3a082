"""core 测试配置 -- 服务组与请求工厂 fixture"""

from collections.abc import Callable

import pytest
import pytest_asyncio
from taskledger.core.ids import UlidGenerator
from taskledger.core.models import CreateWorkItemRequest
from taskledger.core.services import ServiceGroup
from taskledger.core.store import SqliteDocumentStore


@pytest_asyncio.fixture
async def services(store: SqliteDocumentStore) -> ServiceGroup:
    """共享同一存储的服务组"""
    return ServiceGroup(store, UlidGenerator())


@pytest.fixture
def make_request() -> Callable[..., CreateWorkItemRequest]:
    """构造合法的工作项创建请求，关键字参数覆盖默认字段"""

    def _make(**overrides) -> CreateWorkItemRequest:
        data = {
            "objective": "proj-x",
            "assignee": "alice",
            "start_date": "2025-01-01",
            "due_date": "2025-01-10",
            "deliverable": "draft spec",
            "evidence": "doc-url",
        }
        data.update(overrides)
        return CreateWorkItemRequest(**data)

    return _make
