"""Tests for apexcompile schemas."""

from datetime import datetime, timezone

import pytest

from apexcompile.schemas import (
    AsyncCompileRequest,
    AsyncRequestState,
    CompilationUnit,
    CompileOutcome,
    CompileResult,
    ContainerMember,
    LifecycleState,
    TERMINAL_FAILURE_STATES,
    UnitKind,
    container_name,
)


class TestUnitKind:

    def test_member_types(self):
        assert UnitKind.CLASS.member_type == "ApexClassMember"
        assert UnitKind.TRIGGER.member_type == "ApexTriggerMember"

    def test_labels(self):
        assert UnitKind.CLASS.label == "class"
        assert UnitKind.TRIGGER.label == "trigger"


class TestAsyncRequestState:

    def test_parse_known(self):
        assert AsyncRequestState.parse("Invalidated") is AsyncRequestState.INVALIDATED

    @pytest.mark.parametrize("value", [None, "", "Processing", "completed"])
    def test_parse_unknown_is_none(self, value):
        assert AsyncRequestState.parse(value) is None

    def test_queued_is_not_terminal(self):
        assert not AsyncRequestState.QUEUED.is_terminal

    def test_failure_states(self):
        assert TERMINAL_FAILURE_STATES == {
            AsyncRequestState.FAILED,
            AsyncRequestState.ERROR,
            AsyncRequestState.ABORTED,
            AsyncRequestState.INVALIDATED,
        }
        assert all(s.is_terminal and not s.is_successful for s in TERMINAL_FAILURE_STATES)
        assert AsyncRequestState.COMPLETED.is_successful


class TestLifecycleState:

    def test_error_maps_to_errored(self):
        assert LifecycleState.from_request_state(AsyncRequestState.ERROR) is LifecycleState.ERRORED

    def test_queued_has_no_lifecycle_state(self):
        with pytest.raises(ValueError):
            LifecycleState.from_request_state(AsyncRequestState.QUEUED)


class TestCompilationUnit:

    def test_from_record(self):
        unit = CompilationUnit.from_record(
            {"attributes": {"type": "ApexClass"}, "Id": "01p1", "Name": "Foo", "Body": "public class Foo {}"},
            UnitKind.CLASS,
        )
        assert unit == CompilationUnit(id="01p1", name="Foo", body="public class Foo {}", kind=UnitKind.CLASS)

    def test_missing_body_becomes_empty(self):
        unit = CompilationUnit.from_record({"Id": "01p1", "Name": "Foo", "Body": None}, UnitKind.CLASS)
        assert unit.body == ""


def test_container_name_uses_epoch_millis():
    now = datetime(2026, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc)
    assert container_name(now) == f"Compile_{int(now.timestamp() * 1000)}"
    assert container_name(now).startswith("Compile_17")


class TestContainerMember:

    def test_payload_and_path(self):
        unit = CompilationUnit(id="01q1", name="T", body="trigger T on Account (before insert) {}", kind=UnitKind.TRIGGER)
        member = ContainerMember.for_unit("1dc1", unit)
        assert member.resource_path == "/sobjects/ApexTriggerMember"
        assert member.to_payload() == {
            "MetadataContainerId": "1dc1",
            "ContentEntityId": "01q1",
            "Body": "trigger T on Account (before insert) {}",
        }


class TestAsyncCompileRequest:

    def test_create_payload_is_check_only(self):
        assert AsyncCompileRequest.create_payload("1dc1") == {"MetadataContainerId": "1dc1", "IsCheckOnly": True}

    def test_cannot_be_deploying(self):
        with pytest.raises(ValueError, match="check-only"):
            AsyncCompileRequest(id="1dr1", container_id="1dc1", is_check_only=False)

    def test_from_record(self):
        request = AsyncCompileRequest.from_record(
            {"Id": "1dr1", "State": "Failed", "CompilerErrors": "[]", "ErrorMsg": "boom"}, "1dr1", "1dc1"
        )
        assert request.state == "Failed"
        assert request.container_id == "1dc1"
        assert request.compiler_errors == "[]"
        assert request.error_message == "boom"
        assert request.is_terminal

    def test_unknown_state_is_not_terminal(self):
        request = AsyncCompileRequest(id="1dr1", container_id="1dc1", state="Compacting")
        assert request.parsed_state is None
        assert not request.is_terminal


class TestCompileResult:

    def test_exit_codes(self):
        assert CompileResult(outcome=CompileOutcome.SUCCEEDED).exit_code == 0
        assert CompileResult(outcome=CompileOutcome.NOTHING_TO_COMPILE).exit_code == 0
        assert CompileResult(outcome=CompileOutcome.UNSUCCESSFUL).exit_code == 1

    def test_to_dict_omits_unset(self):
        result = CompileResult(
            outcome=CompileOutcome.SUCCEEDED,
            class_count=2,
            trigger_count=1,
            members_staged=3,
            transitions=[LifecycleState.CREATED, LifecycleState.DELETED],
        )
        assert result.to_dict() == {
            "outcome": "succeeded",
            "success": True,
            "class_count": 2,
            "trigger_count": 1,
            "members_staged": 3,
            "transitions": ["created", "deleted"],
        }
