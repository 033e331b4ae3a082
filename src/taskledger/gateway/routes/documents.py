"""知识文档路由 -- 文档 CRUD、版本历史、模板

文档只归档不物理删除；每次内容/元数据变更生成一个新版本。
"""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from taskledger.core.models import (
    CreateDocumentRequest,
    DocumentCategory,
    DocumentFilters,
    DocumentStatus,
    DocumentVersion,
    KnowledgeDocument,
    TemplateCheck,
    TemplateData,
    TemplateInstanceRequest,
    UpdateDocumentRequest,
    VersionDiff,
    WorkItem,
)

from ..deps import get_actor_id, get_request_metadata, get_services

router = APIRouter()


class DocumentListResponse(BaseModel):
    """文档列表响应"""

    documents: list[KnowledgeDocument]


class VersionListResponse(BaseModel):
    doc_id: str
    versions: list[DocumentVersion]


class TemplateWorkItemRequest(BaseModel):
    """由模板创建工作项的请求体"""

    assignee: str
    start_date: str
    due_date: str
    placeholder_values: dict[str, str] | None = None


@router.post("/api/documents", status_code=201, response_model=KnowledgeDocument)
async def create_document(
    body: CreateDocumentRequest,
    services=Depends(get_services),
    actor_id: str = Depends(get_actor_id),
):
    return await services.documents.create(body, actor_id)


@router.get("/api/documents", response_model=DocumentListResponse)
async def list_documents(
    category: DocumentCategory | None = Query(default=None),
    status: DocumentStatus | None = Query(default=None, description="缺省时排除已归档"),
    tags: list[str] | None = Query(default=None, description="标签（任一匹配）"),
    is_template: bool | None = Query(default=None),
    created_by: str | None = Query(default=None),
    services=Depends(get_services),
):
    documents = await services.documents.list(
        DocumentFilters(
            category=category,
            status=status,
            tags=tags,
            is_template=is_template,
            created_by=created_by,
        )
    )
    return DocumentListResponse(documents=documents)


@router.get("/api/documents/templates", response_model=DocumentListResponse)
async def list_templates(
    category: DocumentCategory | None = Query(default=None),
    services=Depends(get_services),
):
    """已发布的模板"""
    return DocumentListResponse(documents=await services.documents.list_templates(category))


@router.post(
    "/api/documents/templates/{template_id}/instantiate",
    status_code=201,
    response_model=KnowledgeDocument,
)
async def instantiate_template(
    template_id: str,
    body: TemplateInstanceRequest,
    services=Depends(get_services),
    actor_id: str = Depends(get_actor_id),
):
    """从模板创建草稿文档"""
    return await services.documents.create_from_template(template_id, body, actor_id)


@router.post(
    "/api/documents/templates/{template_id}/work-item",
    status_code=201,
    response_model=WorkItem,
)
async def work_item_from_template(
    template_id: str,
    body: TemplateWorkItemRequest,
    services=Depends(get_services),
    actor_id: str = Depends(get_actor_id),
    metadata=Depends(get_request_metadata),
):
    """由模板生成并创建工作项"""
    request = await services.documents.work_item_request_from_template(
        template_id,
        assignee=body.assignee,
        start_date=body.start_date,
        due_date=body.due_date,
        placeholder_values=body.placeholder_values,
    )
    return await services.work_items.create(request, actor_id, metadata)


@router.get("/api/documents/{doc_id}", response_model=KnowledgeDocument)
async def get_document(doc_id: str, services=Depends(get_services)):
    """文档详情（浏览计数 +1）"""
    await services.documents.record_view(doc_id)
    return await services.documents.require(doc_id)


@router.patch("/api/documents/{doc_id}", response_model=KnowledgeDocument)
async def update_document(
    doc_id: str,
    body: UpdateDocumentRequest,
    reason: str | None = Query(default=None, description="变更原因（写入版本记录）"),
    services=Depends(get_services),
    actor_id: str = Depends(get_actor_id),
):
    return await services.documents.update(doc_id, body, actor_id, reason=reason)


@router.delete("/api/documents/{doc_id}", response_model=KnowledgeDocument)
async def archive_document(
    doc_id: str,
    services=Depends(get_services),
    actor_id: str = Depends(get_actor_id),
):
    return await services.documents.delete(doc_id, actor_id)


@router.get("/api/documents/{doc_id}/versions", response_model=VersionListResponse)
async def list_versions(doc_id: str, services=Depends(get_services)):
    """版本历史（最新在前）"""
    versions = await services.documents.versions(doc_id)
    return VersionListResponse(doc_id=doc_id, versions=versions)


@router.get("/api/documents/{doc_id}/versions/{version_number}", response_model=DocumentVersion)
async def get_version(doc_id: str, version_number: int, services=Depends(get_services)):
    return await services.documents.get_version(doc_id, version_number)


@router.post(
    "/api/documents/{doc_id}/versions/{version_number}/restore",
    response_model=KnowledgeDocument,
)
async def restore_version(
    doc_id: str,
    version_number: int,
    services=Depends(get_services),
    actor_id: str = Depends(get_actor_id),
):
    """恢复到历史版本（生成新版本，不改写历史）"""
    return await services.documents.restore_version(doc_id, version_number, actor_id)


@router.get("/api/documents/{doc_id}/compare", response_model=VersionDiff)
async def compare_versions(
    doc_id: str,
    from_version: int = Query(alias="from", ge=1),
    to_version: int = Query(alias="to", ge=1),
    services=Depends(get_services),
):
    return await services.documents.compare_versions(doc_id, from_version, to_version)


@router.post("/api/documents/{doc_id}/link-task/{item_id}", response_model=KnowledgeDocument)
async def link_task(
    doc_id: str,
    item_id: str,
    services=Depends(get_services),
    actor_id: str = Depends(get_actor_id),
):
    return await services.documents.link_item(doc_id, item_id, actor_id)


@router.delete("/api/documents/{doc_id}/link-task/{item_id}", response_model=KnowledgeDocument)
async def unlink_task(
    doc_id: str,
    item_id: str,
    services=Depends(get_services),
    actor_id: str = Depends(get_actor_id),
):
    return await services.documents.unlink_item(doc_id, item_id, actor_id)


@router.post("/api/documents/{doc_id}/convert-to-template", response_model=KnowledgeDocument)
async def convert_to_template(
    doc_id: str,
    body: TemplateData,
    services=Depends(get_services),
    actor_id: str = Depends(get_actor_id),
):
    return await services.documents.convert_to_template(doc_id, body, actor_id)


@router.get("/api/documents/{doc_id}/template-check", response_model=TemplateCheck)
async def template_check(doc_id: str, services=Depends(get_services)):
    return await services.documents.validate_template(doc_id)
