"""文档版本管理 -- 快照、变更分类、变更摘要、版本对比

纯函数，不访问存储。
"""

import json
from typing import Any

from .config import SEARCH_KEYWORD_CONTENT_CHARS
from .models import (
    ChangeType,
    DocumentSnapshot,
    DocumentStatus,
    DocumentVersion,
    FieldDifference,
    KnowledgeDocument,
    UpdateDocumentRequest,
    VersionDiff,
)

# 版本对比逐字段比较的快照字段
SNAPSHOT_FIELDS: list[str] = [
    "title",
    "category",
    "content",
    "tags",
    "related_items",
    "related_documents",
    "status",
    "visibility",
    "is_template",
    "template_data",
]

_METADATA_FIELDS = ("tags", "related_items", "related_documents", "visibility")


def _same(old: Any, new: Any) -> bool:
    return json.dumps(old, sort_keys=True, default=str) == json.dumps(
        new, sort_keys=True, default=str
    )


def compute_search_keywords(title: str, content: str, tags: list[str]) -> list[str]:
    """派生搜索关键词

    标题中长度 > 2 的词，正文前 500 字符中长度 > 3 的词，以及全部标签；
    统一小写，按首次出现顺序去重。
    """
    keywords: dict[str, None] = {}
    for word in title.lower().split():
        if len(word) > 2:
            keywords[word] = None
    for word in content[:SEARCH_KEYWORD_CONTENT_CHARS].lower().split():
        if len(word) > 3:
            keywords[word] = None
    for tag in tags:
        keywords[tag.lower()] = None
    return list(keywords)


def build_snapshot(document: KnowledgeDocument) -> DocumentSnapshot:
    return DocumentSnapshot(
        title=document.title,
        category=document.category,
        content=document.content,
        tags=list(document.tags),
        related_items=list(document.related_items),
        related_documents=list(document.related_documents),
        status=document.status,
        visibility=list(document.visibility),
        is_template=document.is_template,
        template_data=document.template_data,
    )


def classify_change(current: KnowledgeDocument, patch: UpdateDocumentRequest) -> ChangeType:
    """判定一次更新的变更类型

    优先级：状态变化（归档单独区分） > 模板标记变化 > 元数据字段 > 内容。
    """
    changes = patch.changes()
    status = changes.get("status")
    if status is not None and status != current.status:
        if status == DocumentStatus.ARCHIVED:
            return ChangeType.ARCHIVED
        return ChangeType.STATUS_CHANGED
    is_template = changes.get("is_template")
    if is_template is not None and is_template != current.is_template:
        return ChangeType.TEMPLATE_MODIFIED
    if any(field in changes for field in _METADATA_FIELDS):
        return ChangeType.METADATA_UPDATED
    return ChangeType.CONTENT_UPDATED


def generate_changes_summary(old: KnowledgeDocument, new: KnowledgeDocument) -> list[str]:
    """生成可读的变更说明列表"""
    summary: list[str] = []
    if old.title != new.title:
        summary.append(f'Title changed from "{old.title}" to "{new.title}"')
    if old.category != new.category:
        summary.append(f'Category changed from "{old.category}" to "{new.category}"')
    if old.content != new.content:
        summary.append("Content updated")
    if old.status != new.status:
        summary.append(f'Status changed from "{old.status}" to "{new.status}"')
    if old.tags != new.tags:
        summary.append("Tags modified")
    if old.related_items != new.related_items:
        summary.append("Related items updated")
    if old.related_documents != new.related_documents:
        summary.append("Related documents updated")
    if old.is_template != new.is_template:
        summary.append("Converted to template" if new.is_template else "Template status removed")
    if old.visibility != new.visibility:
        summary.append("Visibility settings updated")
    return summary


def compare_snapshots(from_version: DocumentVersion, to_version: DocumentVersion) -> VersionDiff:
    """逐字段对比两个版本的快照"""
    old = from_version.snapshot.model_dump(mode="json")
    new = to_version.snapshot.model_dump(mode="json")
    changes = [
        FieldDifference(field=field, old_value=old.get(field), new_value=new.get(field))
        for field in SNAPSHOT_FIELDS
        if not _same(old.get(field), new.get(field))
    ]
    return VersionDiff(
        from_version=from_version.version_number,
        to_version=to_version.version_number,
        changes=changes,
        timestamp=to_version.created_at,
        changed_by=to_version.created_by,
    )
