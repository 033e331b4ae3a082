"""健康检查路由

GET /health: 存活检查，进程在即返回 200。
GET /ready: 就绪检查，覆盖文档存储连通性、WAL 模式与数据目录所在磁盘的剩余空间。
"""

import shutil
from pathlib import Path

import aiosqlite
import structlog
from fastapi import APIRouter, Request
from starlette.responses import JSONResponse
from taskledger.core.store import verify_wal_mode

log = structlog.get_logger()

router = APIRouter()


def _data_dir(request: Request) -> Path:
    """数据库文件所在目录（尚未创建时退回当前目录）"""
    config = getattr(request.app.state, "config", None)
    if config is None:
        return Path(".")
    parent = Path(config.db_path).parent
    return parent if parent.exists() else Path(".")


@router.get("/health")
async def health():
    return {"status": "ok"}


@router.get("/ready")
async def ready(request: Request):
    """就绪检查

    任一检查失败返回 503，checks 中逐项给出结果：
    sqlite / journal_mode / disk_space_mb
    """
    checks: dict[str, str | int] = {}
    all_ok = True

    store = getattr(request.app.state, "store", None)
    if store is None:
        checks["sqlite"] = "error: store not initialized"
        all_ok = False
    else:
        try:
            await store.ping()
            checks["sqlite"] = "ok"
            wal = await verify_wal_mode(store.conn)
            checks["journal_mode"] = "wal" if wal else "other"
        except (aiosqlite.Error, ValueError) as e:
            log.warning("readiness_sqlite_failed", error=str(e))
            checks["sqlite"] = f"error: {e}"
            all_ok = False

    try:
        checks["disk_space_mb"] = shutil.disk_usage(_data_dir(request)).free // (1024 * 1024)
    except OSError as e:
        log.warning("readiness_disk_check_failed", error=str(e))
        checks["disk_space_mb"] = 0
        all_ok = False

    return JSONResponse(
        status_code=200 if all_ok else 503,
        content={
            "status": "ready" if all_ok else "not_ready",
            "checks": checks,
        },
    )
