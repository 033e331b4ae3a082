"""DocumentService 与版本管理测试

测试内容：
1. 创建写入初始版本，派生搜索关键词
2. 更新的变更类型判定与变更摘要
3. 恢复旧版本是前向更新，版本号只增不减
4. 归档、关联工作项、浏览计数
"""

import pytest
from taskledger.core.errors import EntityNotFound, ReferenceNotFound, ValidationFailed
from taskledger.core.models import (
    ChangeType,
    CreateDocumentRequest,
    DocumentCategory,
    DocumentFilters,
    DocumentStatus,
    TemplateData,
    UpdateDocumentRequest,
)
from taskledger.core.services import ServiceGroup
from taskledger.core.versioning import compute_search_keywords


def _request(**overrides) -> CreateDocumentRequest:
    data = {
        "title": "Release process",
        "category": DocumentCategory.PROCESS,
        "content": "Tag the release and publish artifacts",
        "tags": ["Release"],
    }
    data.update(overrides)
    return CreateDocumentRequest(**data)


class TestSearchKeywords:
    def test_keyword_rules(self):
        keywords = compute_search_keywords("A Big Release", "the deploy runbook for prod", ["Ops"])
        assert keywords == ["big", "release", "deploy", "runbook", "prod", "ops"]

    def test_only_first_500_content_chars(self):
        content = "x" * 500 + " hiddenword"
        assert "hiddenword" not in compute_search_keywords("t", content, [])

    def test_deduplicated(self):
        assert compute_search_keywords("Deploy", "deploy deploy", ["deploy"]) == ["deploy"]


class TestCreateDocument:
    async def test_create_writes_initial_version(self, services: ServiceGroup):
        doc = await services.documents.create(_request(), "alice")
        assert doc.version == 1
        assert doc.status == DocumentStatus.DRAFT
        assert doc.visibility == ["all"]
        assert doc.view_count == 0
        assert "release" in doc.search_keywords

        versions = await services.documents.versions(doc.doc_id)
        assert len(versions) == 1
        assert versions[0].version_number == 1
        assert versions[0].change_type == ChangeType.CREATED
        assert versions[0].change_reason == "Initial creation"
        assert versions[0].snapshot.title == "Release process"

    async def test_create_invalid(self, services: ServiceGroup):
        with pytest.raises(ValidationFailed):
            await services.documents.create(_request(title="x" * 201), "alice")


class TestUpdateDocument:
    @pytest.mark.parametrize(
        "patch,expected",
        [
            (UpdateDocumentRequest(content="New body"), ChangeType.CONTENT_UPDATED),
            (UpdateDocumentRequest(title="Renamed"), ChangeType.CONTENT_UPDATED),
            (UpdateDocumentRequest(tags=["ops"]), ChangeType.METADATA_UPDATED),
            (UpdateDocumentRequest(visibility=["team"]), ChangeType.METADATA_UPDATED),
            (
                UpdateDocumentRequest(status=DocumentStatus.PUBLISHED, tags=["x"]),
                ChangeType.STATUS_CHANGED,
            ),
            (UpdateDocumentRequest(status=DocumentStatus.ARCHIVED), ChangeType.ARCHIVED),
            (
                UpdateDocumentRequest(is_template=True, template_data=TemplateData()),
                ChangeType.TEMPLATE_MODIFIED,
            ),
        ],
    )
    async def test_change_classification(self, services: ServiceGroup, patch, expected):
        doc = await services.documents.create(_request(), "alice")
        updated = await services.documents.update(doc.doc_id, patch, "bob")
        assert updated.version == 2
        assert updated.last_updated_by == "bob"
        latest = (await services.documents.versions(doc.doc_id))[0]
        assert latest.change_type == expected
        assert latest.version_number == 2
        assert latest.previous_version == 1

    async def test_changes_summary(self, services: ServiceGroup):
        doc = await services.documents.create(_request(), "alice")
        await services.documents.update(
            doc.doc_id,
            UpdateDocumentRequest(title="Renamed", content="Other", tags=["a"]),
            "alice",
            reason="rewrite",
        )
        latest = (await services.documents.versions(doc.doc_id))[0]
        assert latest.changes_summary == [
            'Title changed from "Release process" to "Renamed"',
            "Content updated",
            "Tags modified",
        ]
        assert latest.change_reason == "rewrite"

    async def test_keywords_recomputed(self, services: ServiceGroup):
        doc = await services.documents.create(_request(), "alice")
        updated = await services.documents.update(
            doc.doc_id, UpdateDocumentRequest(title="Incident handbook"), "alice"
        )
        assert "incident" in updated.search_keywords
        assert "process" not in updated.search_keywords

    async def test_update_preserves_view_count(self, services: ServiceGroup):
        doc = await services.documents.create(_request(), "alice")
        await services.documents.record_view(doc.doc_id)
        await services.documents.record_view(doc.doc_id)
        await services.documents.update(doc.doc_id, UpdateDocumentRequest(content="x"), "a")
        stored = await services.documents.require(doc.doc_id)
        assert stored.view_count == 2
        assert stored.last_viewed_at is not None

    async def test_update_missing(self, services: ServiceGroup):
        with pytest.raises(EntityNotFound):
            await services.documents.update("ghost", UpdateDocumentRequest(content="x"), "a")

    async def test_update_empty_content_rejected(self, services: ServiceGroup):
        doc = await services.documents.create(_request(), "alice")
        with pytest.raises(ValidationFailed):
            await services.documents.update(doc.doc_id, UpdateDocumentRequest(content=""), "a")
        assert (await services.documents.require(doc.doc_id)).version == 1

    async def test_null_template_flag_rejected(self, services: ServiceGroup):
        """显式 is_template: null 返回校验错误而不是模型异常"""
        doc = await services.documents.create(_request(), "alice")
        patch = UpdateDocumentRequest.model_validate({"is_template": None})
        with pytest.raises(ValidationFailed) as exc_info:
            await services.documents.update(doc.doc_id, patch, "a")
        assert exc_info.value.errors[0].field == "is_template"
        assert (await services.documents.require(doc.doc_id)).version == 1


class TestRestoreVersion:
    async def test_restore_is_forward_update(self, services: ServiceGroup):
        """恢复到版本 N 生成新版本，快照与版本 N 相同"""
        doc = await services.documents.create(_request(), "alice")
        await services.documents.update(doc.doc_id, UpdateDocumentRequest(content="v2"), "a")
        await services.documents.update(
            doc.doc_id, UpdateDocumentRequest(status=DocumentStatus.PUBLISHED), "a"
        )

        restored = await services.documents.restore_version(doc.doc_id, 1, "alice")
        assert restored.version == 4
        assert restored.content == doc.content
        assert restored.status == DocumentStatus.DRAFT

        v1 = await services.documents.get_version(doc.doc_id, 1)
        v4 = await services.documents.get_version(doc.doc_id, 4)
        assert v4.snapshot == v1.snapshot
        assert v4.change_reason == "Restored to version 1"
        assert [v.version_number for v in await services.documents.versions(doc.doc_id)] == [
            4,
            3,
            2,
            1,
        ]

    async def test_missing_version(self, services: ServiceGroup):
        doc = await services.documents.create(_request(), "alice")
        with pytest.raises(ReferenceNotFound):
            await services.documents.restore_version(doc.doc_id, 9, "alice")

    async def test_compare_versions(self, services: ServiceGroup):
        doc = await services.documents.create(_request(), "alice")
        await services.documents.update(
            doc.doc_id, UpdateDocumentRequest(content="v2", tags=["ops"]), "bob"
        )
        diff = await services.documents.compare_versions(doc.doc_id, 1, 2)
        assert diff.from_version == 1
        assert diff.to_version == 2
        assert diff.changed_by == "bob"
        assert {c.field for c in diff.changes} == {"content", "tags"}
        content = next(c for c in diff.changes if c.field == "content")
        assert content.old_value == doc.content
        assert content.new_value == "v2"


class TestArchiveAndLinks:
    async def test_delete_archives(self, services: ServiceGroup):
        doc = await services.documents.create(_request(), "alice")
        archived = await services.documents.delete(doc.doc_id, "alice")
        assert archived.status == DocumentStatus.ARCHIVED
        assert await services.documents.list() == []
        archived_docs = await services.documents.list(
            DocumentFilters(status=DocumentStatus.ARCHIVED)
        )
        assert len(archived_docs) == 1
        latest = (await services.documents.versions(doc.doc_id))[0]
        assert latest.change_type == ChangeType.ARCHIVED

    async def test_link_item_versioned_and_idempotent(self, services: ServiceGroup):
        doc = await services.documents.create(_request(), "alice")
        linked = await services.documents.link_item(doc.doc_id, "item-1", "alice")
        again = await services.documents.link_item(doc.doc_id, "item-1", "alice")
        assert linked.related_items == ["item-1"]
        assert linked.version == 2
        assert again.version == 2

        unlinked = await services.documents.unlink_item(doc.doc_id, "item-1", "alice")
        assert unlinked.related_items == []
        assert unlinked.version == 3
        latest = (await services.documents.versions(doc.doc_id))[0]
        assert latest.change_reason == "Unlinked from work item item-1"

    async def test_record_view_missing(self, services: ServiceGroup):
        with pytest.raises(EntityNotFound) as exc_info:
            await services.documents.record_view("ghost")
        assert exc_info.value.kind == "KnowledgeDocument"

    async def test_list_filters(self, services: ServiceGroup):
        a = await services.documents.create(_request(tags=["ops"]), "alice")
        b = await services.documents.create(
            _request(category=DocumentCategory.POLICY, tags=["hr"]), "bob"
        )
        docs = services.documents
        assert {d.doc_id for d in await docs.list()} == {a.doc_id, b.doc_id}
        policy = await docs.list(DocumentFilters(category=DocumentCategory.POLICY))
        assert [d.doc_id for d in policy] == [b.doc_id]
        assert [d.doc_id for d in await docs.list(DocumentFilters(tags=["ops"]))] == [a.doc_id]
        assert [d.doc_id for d in await docs.list(DocumentFilters(created_by="bob"))] == [
            b.doc_id
        ]
