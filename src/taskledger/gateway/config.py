"""GatewayConfig -- HTTP 网关配置加载

从环境变量加载配置，非法值记录告警并回退默认值，不阻塞启动。
"""

import os

import structlog
from pydantic import BaseModel, Field
from taskledger.core.config import get_db_path

log = structlog.get_logger()


class GatewayConfig(BaseModel):
    """网关配置 -- 从环境变量加载

    环境变量:
        TASKLEDGER_HOST: 监听地址（默认 127.0.0.1）
        TASKLEDGER_PORT: 监听端口（默认 8000）
        TASKLEDGER_DB_PATH: SQLite 数据库路径
        TASKLEDGER_DEFAULT_ACTOR: 请求未携带 X-Actor-ID 时的操作者（默认 anonymous）
    """

    host: str = Field(default="127.0.0.1", description="监听地址")
    port: int = Field(default=8000, ge=1, le=65535, description="监听端口")
    db_path: str = Field(default_factory=get_db_path, description="SQLite 数据库路径")
    default_actor: str = Field(default="anonymous", description="默认操作者 ID")


def load_gateway_config() -> GatewayConfig:
    """从环境变量加载网关配置

    Returns:
        GatewayConfig 实例
    """
    kwargs: dict = {}

    if val := os.environ.get("TASKLEDGER_HOST"):
        kwargs["host"] = val

    if val := os.environ.get("TASKLEDGER_PORT"):
        try:
            port = int(val)
            if not 1 <= port <= 65535:
                raise ValueError(val)
            kwargs["port"] = port
        except ValueError:
            log.warning(
                "invalid_port_config",
                env_var="TASKLEDGER_PORT",
                value=val,
                fallback=8000,
            )

    if val := os.environ.get("TASKLEDGER_DEFAULT_ACTOR"):
        kwargs["default_actor"] = val.strip() or "anonymous"

    return GatewayConfig(**kwargs)
