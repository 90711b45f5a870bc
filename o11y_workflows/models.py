"""Execution models - ExecutionContext, StepResult, WorkflowExecutionResult."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Union
from uuid import UUID, uuid4

from o11y_workflows.definitions import JsonValue
from o11y_workflows.utils.datetime import to_iso


class StepStatus(str, Enum):
    """Terminal states of a step."""

    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class WorkflowStatus(str, Enum):
    """Aggregated outcome of a run."""

    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


class ResourceType(str, Enum):
    """Kinds of resources recognized in tool output."""

    DASHBOARD = "dashboard"
    SLO = "slo"
    ALERT_RULE = "alert_rule"
    OTHER = "other"


@dataclass(frozen=True)
class ExecutionID:
    """Unique identifier of one workflow run."""

    value: UUID

    @classmethod
    def generate(cls) -> "ExecutionID":
        """Generate a new ExecutionID."""
        return cls(value=uuid4())

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class ParsedOutput:
    """Step output whose raw text was valid JSON."""

    value: JsonValue


@dataclass(frozen=True)
class RawOutput:
    """Step output kept as plain text."""

    text: str


StepOutput = Union[ParsedOutput, RawOutput]


def output_value(output: StepOutput) -> JsonValue:
    """The value path expressions see for a step output."""
    if isinstance(output, ParsedOutput):
        return output.value
    return output.text


@dataclass(frozen=True)
class StepRecord:
    """Output of a step that ran successfully."""

    output: StepOutput
    raw: str

    def as_tree(self) -> dict[str, JsonValue]:
        return {"output": output_value(self.output), "raw": self.raw}


@dataclass
class ExecutionContext:
    """
    Mutable state of one run.

    A context belongs to exactly one run; never pass the same instance to two
    concurrent runs.
    """

    variables: dict[str, JsonValue] = field(default_factory=dict)
    steps: dict[str, StepRecord] = field(default_factory=dict)

    def as_tree(self) -> dict[str, JsonValue]:
        """Value tree that `${...}` paths and conditions resolve against."""
        return {
            "variables": self.variables,
            "steps": {step_id: record.as_tree() for step_id, record in self.steps.items()},
        }


@dataclass(frozen=True)
class CreatedResource:
    """Resource referenced by a URL in tool output."""

    type: ResourceType
    id: str
    name: str
    url: str

    def to_dict(self) -> dict[str, str]:
        return {"type": self.type.value, "id": self.id, "name": self.name, "url": self.url}


@dataclass
class StepResult:
    """Result of a workflow step execution."""

    id: str
    name: str
    tool: str
    status: StepStatus
    started_at: datetime
    completed_at: datetime
    duration_ms: int
    output_summary: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {
            "id": self.id,
            "name": self.name,
            "tool": self.tool,
            "status": self.status.value,
            "started_at": to_iso(self.started_at),
            "completed_at": to_iso(self.completed_at),
            "duration_ms": self.duration_ms,
        }
        if self.output_summary is not None:
            data["output_summary"] = self.output_summary
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class WorkflowExecutionResult:
    """Result of a workflow execution."""

    workflow_name: str
    execution_id: ExecutionID
    status: WorkflowStatus
    started_at: datetime
    completed_at: datetime
    duration_ms: int
    steps: list[StepResult]
    created_resources: list[CreatedResource]

    def to_dict(self) -> dict[str, object]:
        """JSON-serializable execution report."""
        return {
            "workflow_name": self.workflow_name,
            "execution_id": str(self.execution_id),
            "status": self.status.value,
            "started_at": to_iso(self.started_at),
            "completed_at": to_iso(self.completed_at),
            "duration_ms": self.duration_ms,
            "steps": [step.to_dict() for step in self.steps],
            "created_resources": [resource.to_dict() for resource in self.created_resources],
        }
