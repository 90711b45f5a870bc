"""Workflow engine - declarative tool workflows with variables, conditions and events."""

from .bus import EventBusProtocol, InMemoryEventBus
from .catalog import BUILT_IN_WORKFLOWS
from .conditions import evaluate_condition, parse_condition
from .definitions import OnErrorPolicy, StepDefinition, VariableSpec, WorkflowDefinition
from .errors import (
    ToolInvocationError,
    WorkflowError,
    WorkflowNotFoundError,
    WorkflowParseError,
    WorkflowValidationError,
)
from .events import Event, EventMetadata
from .executor import StepExecutor, StepOutcome
from .models import (
    CreatedResource,
    ExecutionContext,
    ExecutionID,
    ParsedOutput,
    RawOutput,
    ResourceType,
    StepRecord,
    StepResult,
    StepStatus,
    WorkflowExecutionResult,
    WorkflowStatus,
)
from .parser import load_workflow_file, parse_workflow
from .paths import MISSING, resolve_path
from .plan import render_plan
from .registry import WorkflowRegistry, WorkflowSummary
from .resources import extract_resources
from .runner import WorkflowRunner, execute_workflow
from .substitution import substitute
from .tools import TextContent, ToolExecutor, ToolResponse

__all__ = [
    "BUILT_IN_WORKFLOWS",
    "CreatedResource",
    "Event",
    "EventBusProtocol",
    "EventMetadata",
    "ExecutionContext",
    "ExecutionID",
    "InMemoryEventBus",
    "MISSING",
    "OnErrorPolicy",
    "ParsedOutput",
    "RawOutput",
    "ResourceType",
    "StepDefinition",
    "StepExecutor",
    "StepOutcome",
    "StepRecord",
    "StepResult",
    "StepStatus",
    "TextContent",
    "ToolExecutor",
    "ToolInvocationError",
    "ToolResponse",
    "VariableSpec",
    "WorkflowDefinition",
    "WorkflowError",
    "WorkflowExecutionResult",
    "WorkflowNotFoundError",
    "WorkflowParseError",
    "WorkflowRegistry",
    "WorkflowRunner",
    "WorkflowStatus",
    "WorkflowSummary",
    "WorkflowValidationError",
    "create_default_runner",
    "evaluate_condition",
    "execute_workflow",
    "extract_resources",
    "load_workflow_file",
    "parse_condition",
    "parse_workflow",
    "render_plan",
    "resolve_path",
    "substitute",
]


def create_default_runner(tool_executor: ToolExecutor) -> WorkflowRunner:
    """Create a runner wired to a fresh in-memory event bus.

    Args:
        tool_executor: Async callable performing tool invocations

    Returns:
        WorkflowRunner instance
    """
    return WorkflowRunner(tool_executor=tool_executor, event_bus=InMemoryEventBus())
