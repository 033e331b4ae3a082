"""TraceMiddleware -- 为实体操作绑定 trace_id

从 /api/work-items/{item_id} 或 /api/documents/{doc_id} 路径中提取实体 ID，
贯穿该实体相关的服务层日志。
"""

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

_TRACED_COLLECTIONS = {"work-items", "documents", "objectives"}

# 集合下的非实体子路由
_RESERVED_SEGMENTS = {"trash", "grouped", "stats", "overdue", "templates"}


class TraceMiddleware(BaseHTTPMiddleware):
    """实体级追踪中间件"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        parts = [part for part in request.url.path.split("/") if part]
        trace_id = None

        for i, part in enumerate(parts[:-1]):
            if part in _TRACED_COLLECTIONS:
                entity_id = parts[i + 1]
                if entity_id not in _RESERVED_SEGMENTS:
                    trace_id = f"trace-{entity_id}"
                break

        if trace_id:
            structlog.contextvars.bind_contextvars(trace_id=trace_id)

        return await call_next(request)
