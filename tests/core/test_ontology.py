"""本体校验器单元测试"""

from datetime import UTC, datetime

import pytest
from taskledger.core.models import (
    CreateDocumentRequest,
    CreateObjectiveRequest,
    CreateWorkItemRequest,
    DocumentCategory,
    ErrorCode,
    TemplateData,
    UpdateDocumentRequest,
    UpdateObjectiveRequest,
    UpdateWorkItemRequest,
    WorkItem,
    WorkItemStatus,
)
from taskledger.core.ontology import (
    validate_complete_work_item,
    validate_document_creation,
    validate_document_update,
    validate_objective_creation,
    validate_objective_update,
    validate_soft_relationships,
    validate_work_item_creation,
    validate_work_item_update,
)


def _codes(result) -> dict[str, ErrorCode]:
    return {e.field: e.code for e in result.errors}


def _current(status: WorkItemStatus = WorkItemStatus.PENDING) -> WorkItem:
    now = datetime(2025, 1, 1, tzinfo=UTC)
    return WorkItem(
        item_id="item-1",
        objective="proj-x",
        assignee="alice",
        start_date=now,
        due_date=datetime(2025, 1, 10, tzinfo=UTC),
        status=status,
        deliverable="draft spec",
        evidence=["doc-url"],
        created_at=now,
        updated_at=now,
        created_by="alice",
        last_modified_by="alice",
    )


async def _yes(_: str) -> bool:
    return True


async def _no(_: str) -> bool:
    return False


class TestWorkItemCreation:
    def test_valid_request(self, make_request):
        result = validate_work_item_creation(make_request())
        assert result.valid
        assert result.errors == []

    def test_all_required_fields_reported_together(self):
        """空请求一次性返回所有必填字段错误"""
        result = validate_work_item_creation(CreateWorkItemRequest())
        codes = _codes(result)
        for field in ("objective", "assignee", "start_date", "due_date", "deliverable", "evidence"):
            assert codes[field] == ErrorCode.REQUIRED_FIELD

    @pytest.mark.parametrize("field", ["objective", "assignee", "deliverable"])
    def test_whitespace_only_is_empty(self, make_request, field):
        result = validate_work_item_creation(make_request(**{field: "   "}))
        assert _codes(result) == {field: ErrorCode.REQUIRED_FIELD}

    def test_objective_message(self, make_request):
        result = validate_work_item_creation(make_request(objective=""))
        assert result.errors[0].message == "Objective is required and cannot be empty"

    @pytest.mark.parametrize("evidence", [[], [""], ["  ", ""], None])
    def test_evidence_missing(self, make_request, evidence):
        result = validate_work_item_creation(make_request(evidence=evidence))
        assert _codes(result) == {"evidence": ErrorCode.REQUIRED_FIELD}

    def test_evidence_list_accepted(self, make_request):
        assert validate_work_item_creation(make_request(evidence=["a", "b"])).valid

    def test_unparseable_dates(self, make_request):
        result = validate_work_item_creation(
            make_request(start_date="yesterday", due_date="2025-13-45")
        )
        assert _codes(result) == {
            "start_date": ErrorCode.INVALID_DATE,
            "due_date": ErrorCode.INVALID_DATE,
        }
        assert result.errors[0].message == "Invalid start date format"

    def test_start_after_due(self, make_request):
        result = validate_work_item_creation(
            make_request(start_date="2025-02-01", due_date="2025-01-01")
        )
        assert _codes(result) == {"due_date": ErrorCode.INVALID_DATE_RANGE}
        assert result.errors[0].message == "Due date must be after start date"

    def test_same_day_is_valid(self, make_request):
        assert validate_work_item_creation(
            make_request(start_date="2025-01-01", due_date="2025-01-01")
        ).valid


class TestWorkItemUpdate:
    def test_empty_patch_is_valid(self):
        assert validate_work_item_update(_current(), UpdateWorkItemRequest()).valid

    def test_only_present_fields_checked(self):
        """补丁中未出现的字段不参与校验"""
        patch = UpdateWorkItemRequest(intent="why not")
        assert validate_work_item_update(_current(), patch).valid

    def test_blank_present_field_rejected(self):
        patch = UpdateWorkItemRequest(assignee="", deliverable=None)
        codes = _codes(validate_work_item_update(_current(), patch))
        assert codes == {
            "assignee": ErrorCode.REQUIRED_FIELD,
            "deliverable": ErrorCode.REQUIRED_FIELD,
        }

    def test_empty_evidence_rejected(self):
        patch = UpdateWorkItemRequest(evidence=[])
        assert _codes(validate_work_item_update(_current(), patch)) == {
            "evidence": ErrorCode.REQUIRED_FIELD
        }

    @pytest.mark.parametrize("current", list(WorkItemStatus))
    @pytest.mark.parametrize("target", list(WorkItemStatus))
    def test_any_status_transition_accepted(self, current, target):
        patch = UpdateWorkItemRequest(status=target)
        assert validate_work_item_update(_current(current), patch).valid

    def test_disallowed_transition_reported(self, monkeypatch):
        """收紧状态机后，不允许的流转产生 INVALID_STATUS_TRANSITION"""
        from taskledger.core.models import VALID_TRANSITIONS

        monkeypatch.setitem(VALID_TRANSITIONS, WorkItemStatus.DONE, {WorkItemStatus.ACTIVE})
        patch = UpdateWorkItemRequest(status=WorkItemStatus.PENDING)
        result = validate_work_item_update(_current(WorkItemStatus.DONE), patch)
        assert _codes(result) == {"status": ErrorCode.INVALID_STATUS_TRANSITION}

    def test_date_range_checked_when_both_given(self):
        patch = UpdateWorkItemRequest(start_date="2025-03-01", due_date="2025-02-01")
        assert _codes(validate_work_item_update(_current(), patch)) == {
            "due_date": ErrorCode.INVALID_DATE_RANGE
        }

    def test_single_date_not_compared_with_current(self):
        """只给出一个日期时不与当前记录比较"""
        patch = UpdateWorkItemRequest(start_date="2026-01-01")
        assert validate_work_item_update(_current(), patch).valid

    def test_invalid_single_date(self):
        patch = UpdateWorkItemRequest(due_date="soon")
        assert _codes(validate_work_item_update(_current(), patch)) == {
            "due_date": ErrorCode.INVALID_DATE
        }

    def test_duplicate_linked_items_in_patch(self):
        patch = UpdateWorkItemRequest(linked_items=["a", "a"])
        assert _codes(validate_work_item_update(_current(), patch)) == {
            "linked_items": ErrorCode.DUPLICATE_REFERENCE
        }


class TestSoftRelationships:
    def test_duplicate_linked_items(self):
        result = validate_soft_relationships(["a", "b", "a"], None)
        assert _codes(result) == {"linked_items": ErrorCode.DUPLICATE_REFERENCE}
        assert result.errors[0].message == "Duplicate work item IDs found in linked_items"

    def test_too_many_links_is_warning(self):
        result = validate_soft_relationships([f"item-{i}" for i in range(21)], None)
        assert result.valid
        assert len(result.warnings) == 1

    def test_twenty_links_no_warning(self):
        result = validate_soft_relationships([f"item-{i}" for i in range(20)], None)
        assert result.warnings == []

    def test_too_many_tags_is_warning(self):
        result = validate_soft_relationships(None, [f"t{i}" for i in range(11)])
        assert result.valid
        assert len(result.warnings) == 1

    def test_empty_tag_is_error(self):
        result = validate_soft_relationships(None, ["ok", ""])
        assert _codes(result) == {"tags": ErrorCode.INVALID_TAG}
        assert result.errors[0].message == "Tags cannot be empty strings"


class TestCompleteValidation:
    async def test_all_references_exist(self, make_request):
        result = await validate_complete_work_item(make_request(), _yes, _yes)
        assert result.valid

    async def test_missing_references(self, make_request):
        result = await validate_complete_work_item(make_request(), _no, _no)
        assert _codes(result) == {
            "objective": ErrorCode.INVALID_REFERENCE,
            "assignee": ErrorCode.INVALID_REFERENCE,
        }

    async def test_structure_errors_short_circuit(self):
        """结构不合法时不调用存在性检查"""
        calls: list[str] = []

        async def _track(value: str) -> bool:
            calls.append(value)
            return True

        result = await validate_complete_work_item(CreateWorkItemRequest(), _track, _track)
        assert not result.valid
        assert calls == []

    async def test_soft_relationships_included(self, make_request):
        result = await validate_complete_work_item(
            make_request(linked_items=["x", "x"], tags=[f"t{i}" for i in range(12)]),
            _yes,
            _yes,
        )
        assert _codes(result) == {"linked_items": ErrorCode.DUPLICATE_REFERENCE}
        assert len(result.warnings) == 1


class TestObjectiveValidation:
    def test_required_fields(self):
        result = validate_objective_creation(CreateObjectiveRequest(title=" "))
        assert set(_codes(result)) == {"title", "description", "owner"}

    def test_valid(self):
        request = CreateObjectiveRequest(title="Q1", description="ship it", owner="bob")
        assert validate_objective_creation(request).valid

    def test_update_blank_title(self):
        result = validate_objective_update(UpdateObjectiveRequest(title=""))
        assert _codes(result) == {"title": ErrorCode.REQUIRED_FIELD}

    def test_update_absent_fields_ignored(self):
        assert validate_objective_update(UpdateObjectiveRequest(tags=["x"])).valid


class TestDocumentValidation:
    def _request(self, **overrides) -> CreateDocumentRequest:
        data = {
            "title": "Onboarding",
            "category": DocumentCategory.PROCESS,
            "content": "Step one",
        }
        data.update(overrides)
        return CreateDocumentRequest(**data)

    def test_valid(self):
        assert validate_document_creation(self._request()).valid

    def test_title_mandatory(self):
        result = validate_document_creation(self._request(title=""))
        assert result.errors[0].message == "Title is mandatory"

    def test_title_length(self):
        assert validate_document_creation(self._request(title="x" * 200)).valid
        result = validate_document_creation(self._request(title="x" * 201))
        assert _codes(result) == {"title": ErrorCode.TITLE_TOO_LONG}

    def test_category_and_content_required(self):
        result = validate_document_creation(self._request(category=None, content=""))
        assert set(_codes(result)) == {"category", "content"}

    def test_template_flag_without_data_warns(self):
        result = validate_document_creation(self._request(is_template=True))
        assert result.valid
        assert result.warnings == ["Template flag is set but no template data provided"]

    def test_template_with_data_no_warning(self):
        result = validate_document_creation(
            self._request(is_template=True, template_data=TemplateData(placeholders=["name"]))
        )
        assert result.warnings == []

    def test_update_empty_content(self):
        result = validate_document_update(UpdateDocumentRequest(content="  "))
        assert _codes(result) == {"content": ErrorCode.REQUIRED_FIELD}

    def test_update_without_content_ok(self):
        assert validate_document_update(UpdateDocumentRequest(tags=["a"])).valid
