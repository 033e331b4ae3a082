"""DocumentService -- 知识文档变更、版本历史与模板

每次被接受的变更：文档 version+1，并写入一条带完整快照的 DocumentVersion。
恢复旧版本、归档、关联工作项都是普通的前向更新。
view_count 的自增不产生版本。
"""

import structlog

from ..config import TEMPLATE_DELIVERABLE_MAX_LENGTH
from ..errors import EntityNotFound, ReferenceNotFound, ValidationFailed
from ..models import (
    ChangeType,
    CreateDocumentRequest,
    CreateWorkItemRequest,
    DocumentCategory,
    DocumentFilters,
    DocumentStatus,
    DocumentVersion,
    ErrorCode,
    KnowledgeDocument,
    TemplateCheck,
    TemplateData,
    TemplateInstanceRequest,
    UpdateDocumentRequest,
    ValidationError,
    VersionDiff,
)
from ..ontology import validate_document_creation, validate_document_update
from ..store import (
    Collection,
    DocumentStore,
    FieldFilter,
    IdGenerator,
    Increment,
    QueryOp,
    ServerTimestamp,
)
from ..templates import render, validate_template
from ..versioning import (
    build_snapshot,
    classify_change,
    compare_snapshots,
    compute_search_keywords,
    generate_changes_summary,
)

log = structlog.get_logger()

_LIST_FIELDS = ("tags", "related_items", "related_documents", "visibility")

# 由 record_view 独立维护的字段，更新时不覆盖
_VIEW_FIELDS = ("view_count", "last_viewed_at")


class DocumentService:
    """知识文档业务服务"""

    def __init__(self, store: DocumentStore, id_generator: IdGenerator) -> None:
        self._store = store
        self._ids = id_generator

    # ============================================================
    # 变更
    # ============================================================

    async def create(self, request: CreateDocumentRequest, actor_id: str) -> KnowledgeDocument:
        """创建文档并写入初始版本（version=1, change_type=created）"""
        result = validate_document_creation(request)
        if not result.valid:
            raise ValidationFailed(result.errors, result.warnings)
        if result.warnings:
            log.warning("document_validation_warnings", warnings=result.warnings)

        now = self._store.server_timestamp()
        tags = request.tags or []
        document = KnowledgeDocument(
            doc_id=self._ids.new_id(),
            title=request.title,
            category=request.category,
            content=request.content,
            version=1,
            created_by=actor_id,
            created_at=now,
            updated_at=now,
            last_updated_by=actor_id,
            tags=tags,
            related_items=request.related_items or [],
            related_documents=request.related_documents or [],
            status=request.status or DocumentStatus.DRAFT,
            visibility=request.visibility if request.visibility is not None else ["all"],
            is_template=bool(request.is_template),
            template_data=request.template_data,
            view_count=0,
            search_keywords=compute_search_keywords(request.title, request.content, tags),
        )
        await self._store.upsert(
            Collection.DOCUMENTS,
            document.doc_id,
            document.model_dump(mode="json"),
        )
        await self._write_version(
            document,
            ChangeType.CREATED,
            actor_id,
            reason="Initial creation",
        )
        log.info("document_created", doc_id=document.doc_id, actor_id=actor_id)
        return document

    async def update(
        self,
        doc_id: str,
        patch: UpdateDocumentRequest,
        actor_id: str,
        reason: str | None = None,
    ) -> KnowledgeDocument:
        """更新文档并写入新版本

        Raises:
            EntityNotFound: 文档不存在
            ValidationFailed: 补丁校验失败
        """
        current = await self.require(doc_id)
        result = validate_document_update(patch)
        if not result.valid:
            raise ValidationFailed(result.errors, result.warnings)
        if result.warnings:
            log.warning("document_validation_warnings", doc_id=doc_id, warnings=result.warnings)

        change_type = classify_change(current, patch)
        changes = patch.changes()
        merged = current.model_dump()
        for name, value in changes.items():
            if name in _LIST_FIELDS and value is None:
                value = []
            merged[name] = value
        merged["version"] = current.version + 1
        merged["updated_at"] = self._store.server_timestamp()
        merged["last_updated_by"] = actor_id
        if {"title", "content", "tags"} & changes.keys():
            merged["search_keywords"] = compute_search_keywords(
                merged["title"], merged["content"], merged["tags"]
            )
        document = KnowledgeDocument.model_validate(merged)

        stored = document.model_dump(mode="json")
        for name in _VIEW_FIELDS:
            stored.pop(name)
        await self._store.update(Collection.DOCUMENTS, doc_id, stored)

        await self._write_version(
            document,
            change_type,
            actor_id,
            reason=reason,
            previous_version=current.version,
            changes_summary=generate_changes_summary(current, document),
        )
        log.info(
            "document_updated",
            doc_id=doc_id,
            version=document.version,
            change_type=change_type.value,
            actor_id=actor_id,
        )
        return document

    async def restore_version(
        self,
        doc_id: str,
        version_number: int,
        actor_id: str,
    ) -> KnowledgeDocument:
        """恢复到指定版本：以该版本快照做一次普通更新，生成更高的新版本

        Raises:
            ReferenceNotFound: 版本不存在
        """
        version = await self.get_version(doc_id, version_number)
        patch = UpdateDocumentRequest(**version.snapshot.model_dump())
        return await self.update(
            doc_id,
            patch,
            actor_id,
            reason=f"Restored to version {version_number}",
        )

    async def delete(self, doc_id: str, actor_id: str) -> KnowledgeDocument:
        """归档（文档不会被物理删除）"""
        return await self.update(
            doc_id,
            UpdateDocumentRequest(status=DocumentStatus.ARCHIVED),
            actor_id,
            reason="Document archived",
        )

    async def link_item(self, doc_id: str, item_id: str, actor_id: str) -> KnowledgeDocument:
        """关联工作项（已关联时不产生新版本）"""
        current = await self.require(doc_id)
        if item_id in current.related_items:
            return current
        return await self.update(
            doc_id,
            UpdateDocumentRequest(related_items=[*current.related_items, item_id]),
            actor_id,
            reason=f"Linked to work item {item_id}",
        )

    async def unlink_item(self, doc_id: str, item_id: str, actor_id: str) -> KnowledgeDocument:
        current = await self.require(doc_id)
        return await self.update(
            doc_id,
            UpdateDocumentRequest(
                related_items=[i for i in current.related_items if i != item_id]
            ),
            actor_id,
            reason=f"Unlinked from work item {item_id}",
        )

    async def record_view(self, doc_id: str) -> None:
        """浏览计数原子 +1（不产生版本）"""
        try:
            await self._store.update(
                Collection.DOCUMENTS,
                doc_id,
                {"view_count": Increment(1), "last_viewed_at": ServerTimestamp()},
            )
        except EntityNotFound:
            raise EntityNotFound("KnowledgeDocument", doc_id) from None

    # ============================================================
    # 版本
    # ============================================================

    async def versions(self, doc_id: str) -> list[DocumentVersion]:
        """版本历史（最新在前）"""
        docs = await self._store.query_equal(Collection.DOCUMENT_VERSIONS, "doc_id", doc_id)
        versions = [DocumentVersion.model_validate(doc) for doc in docs]
        versions.sort(key=lambda v: v.version_number, reverse=True)
        return versions

    async def get_version(self, doc_id: str, version_number: int) -> DocumentVersion:
        docs = await self._store.query(
            Collection.DOCUMENT_VERSIONS,
            [
                FieldFilter("doc_id", QueryOp.EQ, doc_id),
                FieldFilter("version_number", QueryOp.EQ, version_number),
            ],
            limit=1,
        )
        if not docs:
            raise ReferenceNotFound(
                "DocumentVersion",
                f"{doc_id}@{version_number}",
                message=f"Version {version_number} not found for document {doc_id}",
            )
        return DocumentVersion.model_validate(docs[0])

    async def compare_versions(
        self,
        doc_id: str,
        from_version: int,
        to_version: int,
    ) -> VersionDiff:
        older = await self.get_version(doc_id, from_version)
        newer = await self.get_version(doc_id, to_version)
        return compare_snapshots(older, newer)

    async def _write_version(
        self,
        document: KnowledgeDocument,
        change_type: ChangeType,
        actor_id: str,
        reason: str | None = None,
        previous_version: int | None = None,
        changes_summary: list[str] | None = None,
    ) -> DocumentVersion:
        version = DocumentVersion(
            version_id=self._ids.new_id(),
            doc_id=document.doc_id,
            version_number=document.version,
            change_type=change_type,
            snapshot=build_snapshot(document),
            created_at=self._store.server_timestamp(),
            created_by=actor_id,
            change_reason=reason,
            previous_version=previous_version,
            changes_summary=changes_summary or [],
        )
        await self._store.upsert(
            Collection.DOCUMENT_VERSIONS,
            version.version_id,
            version.model_dump(mode="json"),
        )
        return version

    # ============================================================
    # 模板
    # ============================================================

    async def get_template(self, template_id: str) -> KnowledgeDocument:
        document = await self.require(template_id)
        if not document.is_template:
            raise ValidationFailed(
                [
                    ValidationError(
                        field="is_template",
                        message=f"Document {template_id} is not a template",
                        code=ErrorCode.NOT_A_TEMPLATE,
                    )
                ]
            )
        return document

    async def list_templates(
        self, category: DocumentCategory | None = None
    ) -> list[KnowledgeDocument]:
        """已发布的模板"""
        return await self.list(
            DocumentFilters(
                is_template=True,
                status=DocumentStatus.PUBLISHED,
                category=category,
            )
        )

    async def convert_to_template(
        self,
        doc_id: str,
        template_data: TemplateData,
        actor_id: str,
    ) -> KnowledgeDocument:
        """转为模板并发布"""
        return await self.update(
            doc_id,
            UpdateDocumentRequest(
                is_template=True,
                template_data=template_data,
                status=DocumentStatus.PUBLISHED,
            ),
            actor_id,
            reason="Converted to template",
        )

    async def create_from_template(
        self,
        template_id: str,
        request: TemplateInstanceRequest,
        actor_id: str,
    ) -> KnowledgeDocument:
        """从模板创建草稿文档

        替换已声明的占位符，应用模板默认值，并通过 related_documents 关联回模板。
        """
        template = await self.get_template(template_id)
        template_data = template.template_data or TemplateData()
        content = render(
            request.content or template.content,
            template_data.placeholders,
            request.placeholder_values,
        )
        data = {
            "title": request.title or template.title,
            "category": template.category,
            "content": content,
            "tags": request.tags or list(template.tags),
            "related_items": request.related_items or [],
            "related_documents": [template_id],
            "status": DocumentStatus.DRAFT,
            "visibility": list(template.visibility),
            "is_template": False,
        }
        for name, value in (template_data.default_values or {}).items():
            if name in CreateDocumentRequest.model_fields:
                data[name] = value
        return await self.create(CreateDocumentRequest(**data), actor_id)

    async def work_item_request_from_template(
        self,
        template_id: str,
        assignee: str,
        start_date: str,
        due_date: str,
        placeholder_values: dict[str, str] | None = None,
    ) -> CreateWorkItemRequest:
        """由模板生成工作项创建请求（不落库，由调用方提交给 WorkItemService）"""
        template = await self.get_template(template_id)
        template_data = template.template_data or TemplateData()
        defaults = template_data.default_values or {}
        deliverable = render(template.content, template_data.placeholders, placeholder_values)
        return CreateWorkItemRequest(
            objective=defaults.get("objective") or template.title,
            assignee=assignee,
            start_date=start_date,
            due_date=due_date,
            deliverable=deliverable[:TEMPLATE_DELIVERABLE_MAX_LENGTH],
            evidence=defaults.get("evidence") or "To be provided upon completion",
            tags=[*template.tags, "from-template"],
            visibility=list(template.visibility),
        )

    async def validate_template(self, doc_id: str) -> TemplateCheck:
        return validate_template(await self.require(doc_id))

    # ============================================================
    # 查询
    # ============================================================

    async def get(self, doc_id: str) -> KnowledgeDocument | None:
        doc = await self._store.get(Collection.DOCUMENTS, doc_id)
        if doc is None:
            return None
        return KnowledgeDocument.model_validate(doc)

    async def require(self, doc_id: str) -> KnowledgeDocument:
        document = await self.get(doc_id)
        if document is None:
            raise EntityNotFound("KnowledgeDocument", doc_id)
        return document

    async def list(self, filters: DocumentFilters | None = None) -> list[KnowledgeDocument]:
        """列出文档（最近更新在前）

        未指定 status 时排除已归档文档；标签任一匹配。
        """
        filters = filters or DocumentFilters()
        conditions: list[FieldFilter] = []
        for name in ("category", "status", "is_template", "created_by"):
            value = getattr(filters, name)
            if value is not None:
                conditions.append(FieldFilter(name, QueryOp.EQ, value))

        docs = await self._store.query(Collection.DOCUMENTS, conditions)
        documents = [KnowledgeDocument.model_validate(doc) for doc in docs]
        if filters.status is None:
            documents = [d for d in documents if d.status != DocumentStatus.ARCHIVED]
        if filters.tags:
            wanted = set(filters.tags)
            documents = [d for d in documents if wanted.intersection(d.tags)]
        documents.sort(key=lambda d: d.updated_at, reverse=True)
        return documents
