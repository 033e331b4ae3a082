"""FastAPI 应用主文件

app 创建 + lifespan 管理：DB 初始化/关闭 + 服务组装 + 路由注册 + 领域异常映射。
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from starlette.responses import JSONResponse
from taskledger.core.errors import (
    EntityNotFound,
    IllegalStatusTransition,
    ReferenceNotFound,
    StoreUnavailable,
    TaskLedgerError,
    ValidationFailed,
)
from taskledger.core.ids import UlidGenerator
from taskledger.core.services import ServiceGroup
from taskledger.core.store import create_document_store

from .config import load_gateway_config
from .middleware.logging_config import setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .middleware.trace_mw import TraceMiddleware
from .routes import audit, documents, health, objectives, work_items

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理：启动时打开存储并组装服务，关闭时清理连接"""
    config = load_gateway_config()
    app.state.config = config

    store = await create_document_store(config.db_path)
    app.state.store = store
    app.state.services = ServiceGroup(store, UlidGenerator())
    log.info("gateway_started", db_path=config.db_path)

    yield

    # 关闭：清理数据库连接
    if getattr(app.state, "store", None) is not None:
        await app.state.store.close()


def error_response(status_code: int, exc: TaskLedgerError, details: dict) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": exc.code,
                "message": exc.message,
                "details": details,
            }
        },
    )


async def handle_validation_failed(request: Request, exc: ValidationFailed) -> JSONResponse:
    details = {
        "errors": [e.model_dump(mode="json") for e in exc.errors],
        "warnings": exc.warnings,
    }
    if isinstance(exc, IllegalStatusTransition):
        details["from_status"] = exc.from_status.value
        details["to_status"] = exc.to_status.value
    return error_response(400, exc, details)


async def handle_entity_not_found(request: Request, exc: EntityNotFound) -> JSONResponse:
    return error_response(404, exc, {"kind": exc.kind, "id": exc.entity_id})


async def handle_reference_not_found(request: Request, exc: ReferenceNotFound) -> JSONResponse:
    return error_response(404, exc, {"kind": exc.kind, "id": exc.reference_id})


async def handle_store_unavailable(request: Request, exc: StoreUnavailable) -> JSONResponse:
    log.error("store_unavailable", operation=exc.operation, error=str(exc.original_error))
    return error_response(503, exc, {"operation": exc.operation})


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="TaskLedger Gateway",
        version="0.1.0",
        description="工作项 / 目标 / 知识文档 + 审计日志 API",
        lifespan=lifespan,
    )

    # 注册中间件（顺序：先 Trace 后 Logging）
    app.add_middleware(TraceMiddleware)
    app.add_middleware(LoggingMiddleware)

    # 初始化日志
    setup_logging()

    # 领域异常 -> 统一错误响应
    app.add_exception_handler(ValidationFailed, handle_validation_failed)
    app.add_exception_handler(EntityNotFound, handle_entity_not_found)
    app.add_exception_handler(ReferenceNotFound, handle_reference_not_found)
    app.add_exception_handler(StoreUnavailable, handle_store_unavailable)

    # 注册路由
    app.include_router(work_items.router, tags=["work-items"])
    app.include_router(objectives.router, tags=["objectives"])
    app.include_router(audit.router, tags=["audit"])
    app.include_router(documents.router, tags=["documents"])
    app.include_router(health.router, tags=["health"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()
