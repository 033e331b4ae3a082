"""配置常量模块 -- 可通过环境变量覆盖

包含数据库路径、本体校验阈值、审计导出上限等可配置常量。
"""

import os
from pathlib import Path


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("TASKLEDGER_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "TASKLEDGER_DB_PATH",
        str(_get_base_dir() / "sqlite" / "taskledger.db"),
    )


# 工作项关联数量告警阈值（超过仅告警，不拒绝）
MAX_LINKED_ITEMS_WARNING: int = int(
    os.environ.get("TASKLEDGER_MAX_LINKED_ITEMS_WARNING", "20")
)

# 工作项标签数量告警阈值
MAX_TAGS_WARNING: int = int(os.environ.get("TASKLEDGER_MAX_TAGS_WARNING", "10"))

# 文档标题最大长度
DOCUMENT_TITLE_MAX_LENGTH: int = 200

# 搜索关键词只取正文前 N 个字符
SEARCH_KEYWORD_CONTENT_CHARS: int = 500

# 审计查询默认条数
AUDIT_DEFAULT_LIMIT: int = 100

# 审计导出单次上限
AUDIT_EXPORT_LIMIT: int = int(os.environ.get("TASKLEDGER_AUDIT_EXPORT_LIMIT", "10000"))

# 列表查询上限
LIST_QUERY_LIMIT: int = 1000

# 自动创建的目标占位描述
AUTO_OBJECTIVE_DESCRIPTION: str = "Auto-created objective"

# 系统操作者 ID
SYSTEM_ACTOR: str = "system"

# 模板生成工作项时交付物截断长度
TEMPLATE_DELIVERABLE_MAX_LENGTH: int = 500
