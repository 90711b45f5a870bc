"""Workflow runner - runs workflow steps in order with lifecycle events."""

from collections.abc import Mapping
from typing import Optional

from o11y_workflows.definitions import JsonValue, OnErrorPolicy, WorkflowDefinition
from o11y_workflows.logging import get_logger
from o11y_workflows.settings import WorkflowSettings, get_settings
from o11y_workflows.utils.datetime import elapsed_ms, utc_now

from . import events
from .bus import EventBusProtocol
from .events import Event, EventMetadata
from .executor import StepExecutor
from .models import (
    CreatedResource,
    ExecutionContext,
    ExecutionID,
    StepResult,
    StepStatus,
    WorkflowExecutionResult,
    WorkflowStatus,
)
from .tools import ToolExecutor

_STEP_EVENTS = {
    StepStatus.SUCCESS: events.STEP_SUCCEEDED,
    StepStatus.FAILED: events.STEP_FAILED,
    StepStatus.SKIPPED: events.STEP_SKIPPED,
}


def seed_context(
    definition: WorkflowDefinition,
    variables: Optional[Mapping[str, JsonValue]] = None,
    context: Optional[ExecutionContext] = None,
) -> ExecutionContext:
    """Fill a context with caller variables, then declared defaults.

    Required variables without a value are not checked here; that belongs to
    definition validation.
    """
    ctx = context if context is not None else ExecutionContext()
    ctx.variables.update(variables or {})
    for name, spec in definition.variables.items():
        if name not in ctx.variables and spec.has_default:
            ctx.variables[name] = spec.default
    return ctx


class WorkflowRunner:
    """Runner for workflow definitions against an injected tool executor."""

    def __init__(
        self,
        tool_executor: ToolExecutor,
        event_bus: Optional[EventBusProtocol] = None,
        settings: Optional[WorkflowSettings] = None,
    ) -> None:
        """Initialize runner.

        Args:
            tool_executor: Async callable invoked once per executed step
            event_bus: Optional EventBusProtocol for lifecycle events
            settings: Engine settings (defaults to get_settings())
        """
        settings = settings or get_settings()
        self._step_executor = StepExecutor(
            tool_executor, summary_length=settings.output_summary_length
        )
        self._event_bus = event_bus
        self._logger = get_logger("o11y_workflows.runner")

    async def run(
        self,
        workflow: WorkflowDefinition,
        variables: Optional[Mapping[str, JsonValue]] = None,
        context: Optional[ExecutionContext] = None,
    ) -> WorkflowExecutionResult:
        """Run a workflow.

        Step failures never raise; they are recorded on the result.

        Args:
            workflow: Validated WorkflowDefinition to run
            variables: Initial values for the workflow variables
            context: Fresh ExecutionContext to use instead of a new one

        Returns:
            WorkflowExecutionResult with the ordered audit trail
        """
        started_at = utc_now()
        execution_id = ExecutionID.generate()
        ctx = seed_context(workflow, variables, context)

        self._logger.info(
            "workflow_starting execution_id=%s workflow_name=%s step_count=%d",
            execution_id,
            workflow.name,
            len(workflow.steps),
        )
        await self._publish_event(
            events.WORKFLOW_STARTED,
            execution_id,
            workflow.name,
            {"step_count": len(workflow.steps)},
        )

        step_results: list[StepResult] = []
        resources: list[CreatedResource] = []
        status = WorkflowStatus.SUCCESS

        # Execute steps in sequence
        for step in workflow.steps:
            await self._publish_event(
                events.STEP_STARTED,
                execution_id,
                workflow.name,
                {"step_id": step.id, "tool": step.tool},
            )

            outcome = await self._step_executor.execute(step, ctx)
            step_results.append(outcome.result)
            resources.extend(outcome.resources)

            await self._publish_event(
                _STEP_EVENTS[outcome.result.status],
                execution_id,
                workflow.name,
                self._step_payload(outcome.result),
            )

            if outcome.result.status is not StepStatus.FAILED:
                continue

            self._logger.warning(
                "workflow_step_failed execution_id=%s step_id=%s on_error=%s error=%s",
                execution_id,
                step.id,
                step.on_error.value,
                outcome.result.error,
            )
            if step.on_error is OnErrorPolicy.STOP:
                status = WorkflowStatus.FAILED
                break
            status = WorkflowStatus.PARTIAL

        completed_at = utc_now()
        result = WorkflowExecutionResult(
            workflow_name=workflow.name,
            execution_id=execution_id,
            status=status,
            started_at=started_at,
            completed_at=completed_at,
            duration_ms=elapsed_ms(started_at, completed_at),
            steps=step_results,
            created_resources=resources,
        )

        await self._publish_event(
            events.WORKFLOW_FINISHED,
            execution_id,
            workflow.name,
            {
                "status": status.value,
                "step_count": len(step_results),
                "success_count": sum(1 for s in step_results if s.status is StepStatus.SUCCESS),
            },
        )
        self._logger.info(
            "workflow_finished execution_id=%s workflow_name=%s status=%s duration_ms=%d",
            execution_id,
            workflow.name,
            status.value,
            result.duration_ms,
        )

        return result

    @staticmethod
    def _step_payload(result: StepResult) -> dict[str, object]:
        payload: dict[str, object] = {
            "step_id": result.id,
            "tool": result.tool,
            "duration_ms": result.duration_ms,
        }
        if result.error is not None:
            payload["error"] = result.error
        return payload

    async def _publish_event(
        self,
        name: str,
        execution_id: ExecutionID,
        workflow_name: str,
        payload: dict[str, object],
    ) -> None:
        """Publish an event; publishing problems never affect the run.

        Args:
            name: Event name
            execution_id: ExecutionID of the run
            workflow_name: Name of the running workflow
            payload: Event payload
        """
        if self._event_bus is None:
            return

        metadata = EventMetadata(
            execution_id=str(execution_id),
            workflow_name=workflow_name,
            timestamp=utc_now(),
        )
        try:
            await self._event_bus.publish(Event(name=name, payload=payload, metadata=metadata))
        except Exception:
            self._logger.exception("event_publish_failed event_name=%s", name)


async def execute_workflow(
    workflow: WorkflowDefinition,
    variables: Optional[Mapping[str, JsonValue]],
    tool_executor: ToolExecutor,
) -> WorkflowExecutionResult:
    """Run `workflow` once with a fresh context and no event bus."""
    return await WorkflowRunner(tool_executor).run(workflow, variables)
