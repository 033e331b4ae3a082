"""领域模型与状态机单元测试

测试内容：
1. 三状态双向可达，自身流转合法
2. 日期解析与 UTC 归一化
3. evidence 单值转列表
4. 审计条目展平
"""

from datetime import UTC, date, datetime, timedelta, timezone

import pytest
from taskledger.core.models import (
    FLAT_RECORD_FIELDS,
    VALID_TRANSITIONS,
    AuditAction,
    AuditLogEntry,
    ErrorCode,
    UpdateWorkItemRequest,
    ValidationResult,
    WorkItemStatus,
    format_timestamp,
    normalize_evidence,
    parse_date,
    validate_transition,
)


class TestStatusStateMachine:
    """工作项状态机"""

    @pytest.mark.parametrize("from_status", list(WorkItemStatus))
    @pytest.mark.parametrize("to_status", list(WorkItemStatus))
    def test_every_pair_is_legal(self, from_status: WorkItemStatus, to_status: WorkItemStatus):
        """任意两个状态之间都可以一步流转"""
        assert validate_transition(from_status, to_status) is True

    def test_matrix_covers_all_states(self):
        assert set(VALID_TRANSITIONS) == set(WorkItemStatus)
        for status, targets in VALID_TRANSITIONS.items():
            assert targets == set(WorkItemStatus) - {status}

    def test_status_values(self):
        assert WorkItemStatus.PENDING == "Pending"
        assert WorkItemStatus.ACTIVE == "Active"
        assert WorkItemStatus.DONE == "Done"


class TestDateParsing:
    """日期输入解析"""

    def test_iso_date_string(self):
        assert parse_date("2025-01-10") == datetime(2025, 1, 10, tzinfo=UTC)

    def test_naive_datetime_treated_as_utc(self):
        assert parse_date(datetime(2025, 1, 1, 8, 30)) == datetime(2025, 1, 1, 8, 30, tzinfo=UTC)

    def test_aware_datetime_converted_to_utc(self):
        tz = timezone(timedelta(hours=8))
        parsed = parse_date(datetime(2025, 1, 1, 8, 0, tzinfo=tz))
        assert parsed == datetime(2025, 1, 1, 0, 0, tzinfo=UTC)
        assert parsed.tzinfo == UTC

    def test_date_object(self):
        assert parse_date(date(2025, 3, 1)) == datetime(2025, 3, 1, tzinfo=UTC)

    @pytest.mark.parametrize("value", ["not-a-date", "", "   ", None])
    def test_unparseable_returns_none(self, value):
        assert parse_date(value) is None

    def test_format_timestamp_is_fixed_width(self):
        """微秒为 0 时也保留完整精度，保证文本比较与时间先后一致"""
        a = format_timestamp(datetime(2025, 1, 1, tzinfo=UTC))
        b = format_timestamp(datetime(2025, 1, 1, 0, 0, 0, 1, tzinfo=UTC))
        assert len(a) == len(b)
        assert a < b
        assert a.endswith("+00:00")


class TestEvidence:
    def test_single_string_becomes_list(self):
        assert normalize_evidence("doc-url") == ["doc-url"]

    def test_list_kept(self):
        assert normalize_evidence(["a", "b"]) == ["a", "b"]

    def test_none_becomes_empty(self):
        assert normalize_evidence(None) == []


class TestValidationResult:
    def test_valid_iff_no_errors(self):
        result = ValidationResult()
        assert result.valid
        result.warnings.append("just a warning")
        assert result.valid
        result.add_error("title", "Title is mandatory", ErrorCode.REQUIRED_FIELD)
        assert not result.valid

    def test_merge(self):
        a = ValidationResult()
        a.add_error("tags", "bad", ErrorCode.INVALID_TAG)
        b = ValidationResult(warnings=["w"])
        merged = b.merge(a)
        assert merged is b
        assert len(b.errors) == 1
        assert b.warnings == ["w"]


class TestUpdatePatch:
    def test_changes_only_explicit_fields(self):
        """只有显式给出的字段进入 changes，reason 不算"""
        patch = UpdateWorkItemRequest(status=WorkItemStatus.DONE, reason="finished early")
        assert patch.changes() == {"status": WorkItemStatus.DONE}

    def test_explicit_none_is_a_change(self):
        patch = UpdateWorkItemRequest(tags=None)
        assert patch.changes() == {"tags": None}


class TestAuditFlatRecord:
    def test_flat_record_has_all_columns(self):
        entry = AuditLogEntry(
            event_id="01J000000000000000000000",
            item_id="item-1",
            timestamp=datetime(2025, 1, 1, tzinfo=UTC),
            actor_id="alice",
            action=AuditAction.CREATED,
            previous_state=None,
            new_state={"status": "Pending", "version": 1},
        )
        record = entry.to_flat_record()
        assert list(record) == FLAT_RECORD_FIELDS
        assert record["previous_state"] == ""
        assert record["new_state"] == '{"status": "Pending", "version": 1}'
        assert record["action"] == "created"
        assert record["reason"] == ""
