"""Workflow definitions - VariableSpec, StepDefinition, WorkflowDefinition."""

from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Type alias for JSON-like values flowing through parameters and outputs
JsonValue = Any

VariableType = Literal["string", "number", "boolean", "object"]


class OnErrorPolicy(str, Enum):
    """What the runner does after a step fails."""

    STOP = "stop"
    SKIP = "skip"
    CONTINUE = "continue"


class VariableSpec(BaseModel):
    """Declared input variable of a workflow."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    description: str
    type: VariableType
    default: JsonValue = None
    required: bool = False

    @property
    def has_default(self) -> bool:
        """True when the document set `default`, even to null."""
        return "default" in self.model_fields_set


class StepDefinition(BaseModel):
    """A single step in a workflow."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(..., min_length=1, pattern=r"^[a-z_][a-z0-9_]*$")
    name: str = Field(..., min_length=1)
    tool: str = Field(..., min_length=1)
    parameters: dict[str, JsonValue]
    condition: Optional[str] = None
    output_mapping: dict[str, str] = Field(default_factory=dict)
    on_error: OnErrorPolicy = OnErrorPolicy.STOP


class WorkflowDefinition(BaseModel):
    """Definition of a workflow."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(..., min_length=1, pattern=r"^[a-z0-9][a-z0-9-]*$")
    description: str = Field(..., min_length=1)
    version: Optional[str] = Field(default=None, pattern=r"^\d+\.\d+\.\d+$")
    variables: dict[str, VariableSpec] = Field(default_factory=dict)
    steps: list[StepDefinition] = Field(..., min_length=1)

    @model_validator(mode="after")
    def check_unique_step_ids(self) -> "WorkflowDefinition":
        seen: set[str] = set()
        for step in self.steps:
            if step.id in seen:
                raise ValueError(f'Duplicate step id "{step.id}"')
            seen.add(step.id)
        return self

    def to_document(self) -> dict[str, JsonValue]:
        """Plain dict form, as written to workflow files."""
        return self.model_dump(mode="json", exclude_unset=True)
