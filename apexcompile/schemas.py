"""
Schemas for a compile run.

CompilationUnit, MetadataContainer, ContainerMember and AsyncCompileRequest
mirror the Tooling API objects the run touches. CompileResult is what a
run hands back to the CLI.

Lifecycle of one run:
    created -> populating -> submitted -> polling
        -> completed | failed | errored | aborted | invalidated
        -> deleted
An empty inventory short-circuits to skipped without creating anything.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class UnitKind(str, Enum):
    """Kind of program unit, valued by its Tooling sObject name."""
    CLASS = "ApexClass"
    TRIGGER = "ApexTrigger"

    @property
    def member_type(self) -> str:
        """Container member sObject used to stage this kind."""
        return f"{self.value}Member"

    @property
    def label(self) -> str:
        return "class" if self is UnitKind.CLASS else "trigger"


class AsyncRequestState(str, Enum):
    """State values reported on a ContainerAsyncRequest."""
    QUEUED = "Queued"
    COMPLETED = "Completed"
    FAILED = "Failed"
    ERROR = "Error"
    ABORTED = "Aborted"
    INVALIDATED = "Invalidated"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["AsyncRequestState"]:
        """Parse a remote state value; unknown values return None."""
        for state in cls:
            if state.value == value:
                return state
        return None

    @property
    def is_terminal(self) -> bool:
        return self.is_successful or self in TERMINAL_FAILURE_STATES

    @property
    def is_successful(self) -> bool:
        return self is AsyncRequestState.COMPLETED


TERMINAL_FAILURE_STATES = frozenset({
    AsyncRequestState.FAILED,
    AsyncRequestState.ERROR,
    AsyncRequestState.ABORTED,
    AsyncRequestState.INVALIDATED,
})


class LifecycleState(str, Enum):
    """Container lifecycle states recorded on a CompileResult."""
    SKIPPED = "skipped"
    CREATED = "created"
    POPULATING = "populating"
    SUBMITTED = "submitted"
    POLLING = "polling"
    COMPLETED = "completed"
    FAILED = "failed"
    ERRORED = "errored"
    ABORTED = "aborted"
    INVALIDATED = "invalidated"
    DELETED = "deleted"

    @classmethod
    def from_request_state(cls, state: AsyncRequestState) -> "LifecycleState":
        """Map a terminal request state to its lifecycle state."""
        mapping = {
            AsyncRequestState.COMPLETED: cls.COMPLETED,
            AsyncRequestState.FAILED: cls.FAILED,
            AsyncRequestState.ERROR: cls.ERRORED,
            AsyncRequestState.ABORTED: cls.ABORTED,
            AsyncRequestState.INVALIDATED: cls.INVALIDATED,
        }
        if state not in mapping:
            raise ValueError(f"Not a terminal request state: {state.value}")
        return mapping[state]


class CompileOutcome(str, Enum):
    """Overall outcome of a run."""
    SUCCEEDED = "succeeded"
    NOTHING_TO_COMPILE = "nothing_to_compile"
    UNSUCCESSFUL = "unsuccessful"


@dataclass(frozen=True)
class CompilationUnit:
    """
    A class or trigger as fetched at inventory time.

    Attributes:
        id: Tooling record Id
        name: Class or trigger name
        body: Source body; resubmitted unchanged to force recompilation
        kind: CLASS or TRIGGER
    """
    id: str
    name: str
    body: str
    kind: UnitKind

    @classmethod
    def from_record(cls, record: dict[str, Any], kind: UnitKind) -> "CompilationUnit":
        """Build from a Tooling query row with Id, Name and Body."""
        return cls(
            id=record["Id"],
            name=record["Name"],
            body=record.get("Body") or "",
            kind=kind,
        )


def container_name(now: datetime) -> str:
    """Run-unique container name derived from the creation timestamp."""
    return f"Compile_{int(now.timestamp() * 1000)}"


@dataclass(frozen=True)
class MetadataContainer:
    id: str
    name: str


@dataclass(frozen=True)
class ContainerMember:
    """One unit staged into a container."""
    container_id: str
    unit_id: str
    kind: UnitKind
    body: str

    @classmethod
    def for_unit(cls, container_id: str, unit: CompilationUnit) -> "ContainerMember":
        return cls(
            container_id=container_id,
            unit_id=unit.id,
            kind=unit.kind,
            body=unit.body,
        )

    @property
    def resource_path(self) -> str:
        return f"/sobjects/{self.kind.member_type}"

    def to_payload(self) -> dict[str, Any]:
        """Request body for the member create call."""
        return {
            "MetadataContainerId": self.container_id,
            "ContentEntityId": self.unit_id,
            "Body": self.body,
        }


@dataclass(frozen=True)
class AsyncCompileRequest:
    """
    A ContainerAsyncRequest as last read from the org.

    Attributes:
        id: Request Id
        container_id: Container the request compiles
        is_check_only: Always True; runs never deploy
        state: Raw State value (may be a value this version doesn't know)
        compiler_errors: CompilerErrors field, list or JSON string
        error_message: ErrorMsg field
    """
    id: str
    container_id: str
    state: Optional[str] = None
    compiler_errors: Any = None
    error_message: Optional[str] = None
    is_check_only: bool = True

    def __post_init__(self):
        if self.is_check_only is not True:
            raise ValueError("Compile requests are always check-only")

    @classmethod
    def from_record(cls, record: dict[str, Any], request_id: str, container_id: str) -> "AsyncCompileRequest":
        return cls(
            id=record.get("Id") or request_id,
            container_id=record.get("MetadataContainerId") or container_id,
            state=record.get("State"),
            compiler_errors=record.get("CompilerErrors"),
            error_message=record.get("ErrorMsg"),
        )

    @staticmethod
    def create_payload(container_id: str) -> dict[str, Any]:
        return {"MetadataContainerId": container_id, "IsCheckOnly": True}

    @property
    def parsed_state(self) -> Optional[AsyncRequestState]:
        return AsyncRequestState.parse(self.state)

    @property
    def is_terminal(self) -> bool:
        """Unknown states are treated as still running."""
        state = self.parsed_state
        return state is not None and state.is_terminal


@dataclass
class CompileResult:
    """
    Result of a compile run.

    Attributes:
        outcome: succeeded, nothing_to_compile or unsuccessful
        class_count: Classes found at inventory time
        trigger_count: Triggers found at inventory time
        members_staged: Container members created
        request_state: Terminal State of the async request, if submitted
        container_id: Container Id, if one was created
        request_id: Async request Id, if one was submitted
        diagnostics: Rendered compiler errors, if any were found
        error_message: Generic ErrorMsg from the request, if any
        transitions: Lifecycle states in the order they were entered
    """
    outcome: CompileOutcome
    class_count: int = 0
    trigger_count: int = 0
    members_staged: int = 0
    request_state: Optional[str] = None
    container_id: Optional[str] = None
    request_id: Optional[str] = None
    diagnostics: Optional[str] = None
    error_message: Optional[str] = None
    transitions: list[LifecycleState] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.class_count + self.trigger_count

    @property
    def success(self) -> bool:
        return self.outcome is not CompileOutcome.UNSUCCESSFUL

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON output."""
        result: dict[str, Any] = {
            "outcome": self.outcome.value,
            "success": self.success,
            "class_count": self.class_count,
            "trigger_count": self.trigger_count,
            "members_staged": self.members_staged,
            "transitions": [t.value for t in self.transitions],
        }
        if self.request_state is not None:
            result["request_state"] = self.request_state
        if self.container_id is not None:
            result["container_id"] = self.container_id
        if self.request_id is not None:
            result["request_id"] = self.request_id
        if self.diagnostics is not None:
            result["diagnostics"] = self.diagnostics
        if self.error_message is not None:
            result["error_message"] = self.error_message
        return result
