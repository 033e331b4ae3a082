"""依赖注入模块 -- 通过 FastAPI Depends 注入服务与请求上下文

ServiceGroup 通过 app.state 管理，在 lifespan 中初始化/清理。
"""

from fastapi import Header, Request
from taskledger.core.models import RequestMetadata
from taskledger.core.services import ServiceGroup


def get_services(request: Request) -> ServiceGroup:
    """从 app.state 获取 ServiceGroup 实例"""
    return request.app.state.services


def get_actor_id(
    request: Request,
    x_actor_id: str | None = Header(default=None, alias="X-Actor-ID"),
) -> str:
    """操作者 ID：X-Actor-ID 请求头，缺省时使用配置的默认操作者"""
    if x_actor_id and x_actor_id.strip():
        return x_actor_id.strip()
    config = getattr(request.app.state, "config", None)
    return config.default_actor if config is not None else "anonymous"


def get_request_metadata(request: Request) -> RequestMetadata:
    """请求元数据：来源地址 + User-Agent（写入审计）"""
    return RequestMetadata(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("User-Agent"),
    )
