"""Step executor - runs one workflow step against the execution context."""

import asyncio
import json
from dataclasses import dataclass, field
from datetime import datetime

from o11y_workflows.conditions import evaluate_condition
from o11y_workflows.definitions import JsonValue, StepDefinition
from o11y_workflows.errors import ToolInvocationError
from o11y_workflows.logging import get_logger
from o11y_workflows.models import (
    CreatedResource,
    ExecutionContext,
    ParsedOutput,
    RawOutput,
    StepOutput,
    StepRecord,
    StepResult,
    StepStatus,
    output_value,
)
from o11y_workflows.paths import MISSING, resolve_path
from o11y_workflows.resources import extract_resources
from o11y_workflows.substitution import substitute
from o11y_workflows.tools import ToolExecutor, normalize_response
from o11y_workflows.utils.datetime import elapsed_ms, utc_now

DEFAULT_SUMMARY_LENGTH = 500


@dataclass
class StepOutcome:
    """StepResult plus the resources found in the step's output."""

    result: StepResult
    resources: list[CreatedResource] = field(default_factory=list)


def _reject_constant(name: str) -> float:
    raise ValueError(f"{name} is not valid JSON")


def _parse_int(text: str) -> int | float:
    # Digit strings too long for int() still parse as a (possibly infinite) float
    try:
        return int(text)
    except ValueError:
        return float(text)


def parse_output(raw: str) -> StepOutput:
    """JSON output becomes ParsedOutput; anything else stays RawOutput."""
    try:
        value = json.loads(raw, parse_constant=_reject_constant, parse_int=_parse_int)
    except (ValueError, RecursionError):
        return RawOutput(raw)
    return ParsedOutput(value)


class StepExecutor:
    """Executes a single step: condition, substitution, invocation, bookkeeping."""

    def __init__(
        self, tool_executor: ToolExecutor, summary_length: int = DEFAULT_SUMMARY_LENGTH
    ) -> None:
        """Initialize step executor.

        Args:
            tool_executor: Async callable performing the actual tool invocation
            summary_length: Characters of raw output kept in output_summary
        """
        self._tool_executor = tool_executor
        self._summary_length = summary_length
        self._logger = get_logger("o11y_workflows.executor")

    async def execute(self, step: StepDefinition, context: ExecutionContext) -> StepOutcome:
        """Execute a step and update `context` when it succeeds.

        Args:
            step: Step to execute
            context: Context of the current run (mutated in place)

        Returns:
            StepOutcome for the step; failures are recorded, never raised
        """
        started_at = utc_now()

        if step.condition and not evaluate_condition(step.condition, context):
            self._logger.info("step_skipped step_id=%s condition=%r", step.id, step.condition)
            return StepOutcome(
                self._result(
                    step,
                    StepStatus.SKIPPED,
                    started_at,
                    output_summary=f'Skipped: condition "{step.condition}" was false',
                )
            )

        parameters = substitute(step.parameters, context)

        try:
            raw = await self._invoke(step.tool, parameters)
        except Exception as exc:
            message = str(exc) or type(exc).__name__
            self._logger.warning(
                "step_failed step_id=%s tool=%s error=%s", step.id, step.tool, message
            )
            return StepOutcome(self._result(step, StepStatus.FAILED, started_at, error=message))

        output = parse_output(raw)
        context.steps[step.id] = StepRecord(output=output, raw=raw)
        self._apply_output_mapping(step, output_value(output), context)

        return StepOutcome(
            self._result(
                step,
                StepStatus.SUCCESS,
                started_at,
                output_summary=raw[: self._summary_length],
            ),
            resources=extract_resources(raw),
        )

    async def _invoke(self, tool: str, parameters: dict[str, JsonValue]) -> str:
        """Call the tool and return its text, raising on any kind of failure."""
        try:
            response = normalize_response(await self._tool_executor(tool, parameters))
        except asyncio.CancelledError as exc:
            # Only a cancellation aimed at the tool call counts as a step failure
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                raise
            raise ToolInvocationError(str(exc) or f"Tool {tool} was cancelled") from exc

        if response.is_error:
            raise ToolInvocationError(response.text)
        return response.text

    @staticmethod
    def _apply_output_mapping(
        step: StepDefinition, output: JsonValue, context: ExecutionContext
    ) -> None:
        for variable, path in step.output_mapping.items():
            value = resolve_path(output, path)
            if value is MISSING:
                context.variables.pop(variable, None)
            else:
                context.variables[variable] = value

    @staticmethod
    def _result(
        step: StepDefinition,
        status: StepStatus,
        started_at: datetime,
        output_summary: str | None = None,
        error: str | None = None,
    ) -> StepResult:
        completed_at = utc_now()
        return StepResult(
            id=step.id,
            name=step.name,
            tool=step.tool,
            status=status,
            started_at=started_at,
            completed_at=completed_at,
            duration_ms=elapsed_ms(started_at, completed_at),
            output_summary=output_summary,
            error=error,
        )
