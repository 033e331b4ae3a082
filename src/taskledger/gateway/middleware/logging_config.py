"""structlog 配置模块

dev 模式：控制台彩色输出
json 模式：每行一个 JSON 对象，便于审计系统之外的日志采集
"""

import logging
import os

import structlog

# 逐条 SQL 打 debug 日志的第三方 logger，只保留告警以上
_NOISY_LOGGERS = ("aiosqlite", "uvicorn.access")


def _build_renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer(ensure_ascii=False)
    return structlog.dev.ConsoleRenderer()


def setup_logging(log_format: str | None = None, log_level: str | None = None) -> None:
    """初始化 structlog 配置

    参数缺省时读取环境变量：
    - TASKLEDGER_LOG_FORMAT: "json" 或 "dev"（默认）
    - TASKLEDGER_LOG_LEVEL: 标准库日志级别名（默认 INFO）
    """
    log_format = log_format or os.environ.get("TASKLEDGER_LOG_FORMAT", "dev")
    log_level = log_level or os.environ.get("TASKLEDGER_LOG_LEVEL", "INFO")

    # request_id / actor_id / trace_id 由中间件绑定到 contextvars
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if log_format == "json":
        shared_processors.append(structlog.processors.format_exc_info)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=_build_renderer(log_format),
            foreign_pre_chain=shared_processors,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
