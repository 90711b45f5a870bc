"""Tests for WorkflowRunner - step ordering, data flow and error policies."""

import asyncio
import json
from datetime import timedelta

import pytest

from o11y_workflows import create_default_runner
from o11y_workflows.definitions import WorkflowDefinition
from o11y_workflows.events import Event
from o11y_workflows.models import (
    ExecutionContext,
    ParsedOutput,
    RawOutput,
    ResourceType,
    StepStatus,
    WorkflowStatus,
)
from o11y_workflows.runner import WorkflowRunner, execute_workflow
from o11y_workflows.settings import WorkflowSettings
from o11y_workflows.tools import ToolResponse


class FakeToolExecutor:
    """Fake tool executor echoing its call as JSON."""

    def __init__(self, failing: tuple[str, ...] = (), outputs: dict[str, str] | None = None) -> None:
        """Initialize fake executor."""
        self.calls: list[tuple[str, dict]] = []
        self._failing = failing
        self._outputs = outputs or {}

    async def __call__(self, tool_name: str, parameters: dict) -> ToolResponse:
        """Record the call and answer."""
        self.calls.append((tool_name, parameters))
        if tool_name in self._failing:
            return ToolResponse.error("error happened")
        if tool_name in self._outputs:
            return ToolResponse.ok(self._outputs[tool_name])
        return ToolResponse.ok(json.dumps({"tool": tool_name, "result": "ok", **parameters}))

    @property
    def tools(self) -> list[str]:
        return [tool for tool, _ in self.calls]


class FakeEventBus:
    """Fake EventBus for testing."""

    def __init__(self) -> None:
        """Initialize fake event bus."""
        self.events: list[Event] = []

    async def publish(self, event: Event) -> None:
        """Store event."""
        self.events.append(event)

    def subscribe(self, event_name: str, handler: object) -> None:
        """Subscribe handler (no-op for fake)."""
        pass


class BrokenEventBus(FakeEventBus):
    """Event bus whose publish always fails."""

    async def publish(self, event: Event) -> None:
        raise RuntimeError("bus down")


def _workflow(*steps: dict, variables: dict | None = None) -> WorkflowDefinition:
    return WorkflowDefinition.model_validate(
        {
            "name": "test-workflow",
            "description": "A test workflow",
            "variables": variables or {},
            "steps": list(steps),
        }
    )


def _step(step_id: str, tool: str, **extra) -> dict:
    return {"id": step_id, "name": step_id.replace("_", " "), "tool": tool, "parameters": {}, **extra}


SIMPLE = _workflow(
    _step("step_one", "tool_a", parameters={"key": "value"}),
    _step("step_two", "tool_b", parameters={"key": "other"}),
    _step("step_three", "tool_c"),
)


@pytest.mark.asyncio
async def test_runs_all_steps_in_order():
    """Test that every step is invoked once, in definition order."""
    executor = FakeToolExecutor()

    result = await execute_workflow(SIMPLE, {}, executor)

    assert executor.tools == ["tool_a", "tool_b", "tool_c"]
    assert executor.calls[0][1] == {"key": "value"}
    assert result.status == WorkflowStatus.SUCCESS
    assert [s.id for s in result.steps] == ["step_one", "step_two", "step_three"]
    assert all(s.status == StepStatus.SUCCESS for s in result.steps)
    assert result.workflow_name == "test-workflow"


@pytest.mark.asyncio
async def test_passes_variables_to_parameters():
    """Test substitution of caller variables."""
    workflow = _workflow(
        _step("step_one", "tool_a", parameters={"service": "${variables.service_name}"}),
        variables={"service_name": {"description": "Service", "type": "string"}},
    )
    executor = FakeToolExecutor()

    await execute_workflow(workflow, {"service_name": "my-api"}, executor)

    assert executor.calls == [("tool_a", {"service": "my-api"})]


@pytest.mark.asyncio
async def test_declared_defaults_fill_missing_variables():
    """Test that defaults apply only to variables the caller did not supply."""
    workflow = _workflow(
        _step(
            "step_one",
            "tool_a",
            parameters={"target": "${variables.target}", "index": "${variables.index}"},
        ),
        variables={
            "target": {"description": "SLO target", "type": "number", "default": 99.9},
            "index": {"description": "Index", "type": "string", "default": "metrics-*"},
            "required_one": {"description": "No default", "type": "string", "required": True},
        },
    )
    executor = FakeToolExecutor()
    ctx = ExecutionContext()

    await WorkflowRunner(executor).run(workflow, {"index": "logs-*"}, context=ctx)

    assert executor.calls == [("tool_a", {"target": "99.9", "index": "logs-*"})]
    assert ctx.variables == {"index": "logs-*", "target": 99.9}


@pytest.mark.asyncio
async def test_step_output_feeds_next_step():
    """Test that a later step reads an earlier step's parsed output."""
    workflow = _workflow(
        _step("step_one", "tool_a"),
        _step("step_two", "tool_b", parameters={"prev_tool": "${steps.step_one.output.tool}"}),
    )
    executor = FakeToolExecutor()

    await execute_workflow(workflow, {}, executor)

    assert len(executor.calls) == 2
    assert executor.calls[1][1]["prev_tool"] == "tool_a"


@pytest.mark.asyncio
async def test_output_mapping_sets_variables():
    """Test output_mapping assignment and later interpolation."""
    workflow = _workflow(
        _step("step_one", "tool_a", output_mapping={"x": "foo.bar", "gone": "foo.nope"}),
        _step("step_two", "tool_b", parameters={"value": "${variables.x}"}),
    )
    executor = FakeToolExecutor(outputs={"tool_a": '{"foo": {"bar": 42}}'})
    ctx = ExecutionContext()

    await WorkflowRunner(executor).run(workflow, {"gone": "before"}, context=ctx)

    assert ctx.variables["x"] == 42
    assert "gone" not in ctx.variables
    assert executor.calls[1] == ("tool_b", {"value": "42"})
    assert ctx.steps["step_one"].output == ParsedOutput({"foo": {"bar": 42}})


@pytest.mark.asyncio
async def test_non_json_output_is_kept_raw():
    """Test that plain-text output is stored as RawOutput."""
    workflow = _workflow(
        _step("step_one", "tool_a"),
        _step("step_two", "tool_b", parameters={"echo": "${steps.step_one.output}"}),
    )
    executor = FakeToolExecutor(outputs={"tool_a": "Index created"})
    ctx = ExecutionContext()

    await WorkflowRunner(executor).run(workflow, context=ctx)

    assert ctx.steps["step_one"].output == RawOutput("Index created")
    assert ctx.steps["step_one"].raw == "Index created"
    assert executor.calls[1][1] == {"echo": "Index created"}


@pytest.mark.asyncio
async def test_false_condition_skips_step():
    """Test that a false condition skips the tool call and the run continues."""
    workflow = _workflow(
        _step("step_one", "tool_a"),
        _step("step_two", "tool_b", condition="variables.should_run", on_error="stop"),
        _step("step_three", "tool_c"),
    )
    executor = FakeToolExecutor()
    ctx = ExecutionContext()

    result = await WorkflowRunner(executor).run(workflow, context=ctx)

    assert executor.tools == ["tool_a", "tool_c"]
    assert result.status == WorkflowStatus.SUCCESS
    skipped = result.steps[1]
    assert skipped.status == StepStatus.SKIPPED
    assert skipped.output_summary == 'Skipped: condition "variables.should_run" was false'
    assert skipped.error is None
    assert "step_two" not in ctx.steps


@pytest.mark.asyncio
async def test_true_condition_runs_step():
    """Test a condition reading a previous step's output."""
    workflow = _workflow(
        _step("summarize", "get_data_summary"),
        _step("create", "create_dashboard", condition="steps.summarize.output.has_apm_data == true"),
    )
    executor = FakeToolExecutor(outputs={"get_data_summary": '{"has_apm_data": true}'})

    result = await execute_workflow(workflow, {}, executor)

    assert executor.tools == ["get_data_summary", "create_dashboard"]
    assert result.steps[1].status == StepStatus.SUCCESS


@pytest.mark.asyncio
async def test_stops_on_failure_by_default():
    """Test the default stop policy."""
    workflow = _workflow(_step("step_one", "tool_a"), _step("step_two", "tool_b"))
    executor = FakeToolExecutor(failing=("tool_a",))

    result = await execute_workflow(workflow, {}, executor)

    assert result.status == WorkflowStatus.FAILED
    assert len(result.steps) == 1
    assert result.steps[0].status == StepStatus.FAILED
    assert result.steps[0].error == "error happened"
    assert result.steps[0].output_summary is None
    assert executor.tools == ["tool_a"]


@pytest.mark.asyncio
@pytest.mark.parametrize("policy", ["skip", "continue"])
async def test_failure_with_skip_or_continue_is_partial(policy):
    """Test that skip/continue policies keep going and mark the run partial."""
    workflow = _workflow(
        _step("step_one", "tool_a", on_error=policy),
        _step("step_two", "tool_b"),
    )
    executor = FakeToolExecutor(failing=("tool_a",))

    result = await execute_workflow(workflow, {}, executor)

    assert executor.tools == ["tool_a", "tool_b"]
    assert [s.status for s in result.steps] == [StepStatus.FAILED, StepStatus.SUCCESS]
    assert result.status == WorkflowStatus.PARTIAL


@pytest.mark.asyncio
async def test_stop_after_partial_is_failed():
    """Test that a stop-policy failure after a tolerated one fails the run."""
    workflow = _workflow(
        _step("step_one", "tool_a", on_error="continue"),
        _step("step_two", "tool_b"),
        _step("step_three", "tool_c"),
    )
    executor = FakeToolExecutor(failing=("tool_a", "tool_b"))

    result = await execute_workflow(workflow, {}, executor)

    assert result.status == WorkflowStatus.FAILED
    assert executor.tools == ["tool_a", "tool_b"]


@pytest.mark.asyncio
async def test_failed_step_leaves_context_untouched():
    """Test that failed steps neither record output nor map variables."""
    workflow = _workflow(
        _step("step_one", "tool_a", on_error="skip", output_mapping={"x": "result"}),
    )
    ctx = ExecutionContext()

    await WorkflowRunner(FakeToolExecutor(failing=("tool_a",))).run(workflow, context=ctx)

    assert ctx.steps == {}
    assert ctx.variables == {}


@pytest.mark.asyncio
async def test_raised_exceptions_are_step_failures():
    """Test that exceptions and timeouts from the tool boundary are recorded."""

    async def raising_executor(tool_name: str, parameters: dict) -> ToolResponse:
        if tool_name == "tool_a":
            raise RuntimeError("connection refused")
        raise asyncio.TimeoutError()

    workflow = _workflow(
        _step("step_one", "tool_a", on_error="continue"),
        _step("step_two", "tool_b", on_error="continue"),
    )

    result = await execute_workflow(workflow, {}, raising_executor)

    assert result.status == WorkflowStatus.PARTIAL
    assert result.steps[0].error == "connection refused"
    assert result.steps[1].status == StepStatus.FAILED
    assert result.steps[1].error == "TimeoutError"


@pytest.mark.asyncio
async def test_cancelled_tool_call_is_step_failure():
    """Test that a cancellation raised by the tool boundary is recorded."""

    async def cancelled_executor(tool_name: str, parameters: dict) -> ToolResponse:
        raise asyncio.CancelledError()

    result = await execute_workflow(_workflow(_step("step_one", "tool_a")), {}, cancelled_executor)

    assert result.status == WorkflowStatus.FAILED
    assert result.steps[0].error == "Tool tool_a was cancelled"


@pytest.mark.asyncio
async def test_accepts_mcp_style_mappings():
    """Test that dict results with content/isError are understood."""

    async def mapping_executor(tool_name: str, parameters: dict) -> dict:
        if tool_name == "tool_b":
            return {"content": [{"type": "text", "text": "bad"}, {"type": "text", "text": "request"}], "isError": True}
        return {"content": [{"type": "text", "text": "line 1"}, {"type": "text", "text": "line 2"}]}

    workflow = _workflow(_step("step_one", "tool_a"), _step("step_two", "tool_b"))

    result = await execute_workflow(workflow, {}, mapping_executor)

    assert result.steps[0].output_summary == "line 1\nline 2"
    assert result.steps[1].error == "bad\nrequest"
    assert result.status == WorkflowStatus.FAILED


@pytest.mark.asyncio
async def test_malformed_tool_results_are_step_failures():
    """Test that results the boundary cannot read are recorded, not raised."""

    async def malformed_executor(tool_name: str, parameters: dict) -> object:
        if tool_name == "tool_a":
            return "plain string"
        if tool_name == "tool_b":
            return {"content": ["not a block"]}
        return ToolResponse(content=[None])

    workflow = _workflow(
        _step("step_one", "tool_a", on_error="continue"),
        _step("step_two", "tool_b", on_error="continue"),
        _step("step_three", "tool_c", on_error="continue"),
    )

    result = await execute_workflow(workflow, {}, malformed_executor)

    assert [s.status for s in result.steps] == [StepStatus.FAILED] * 3
    assert result.steps[0].error == "Tool executor returned unsupported result type str"
    assert all(s.error for s in result.steps)
    assert result.status == WorkflowStatus.PARTIAL


@pytest.mark.asyncio
async def test_huge_numbers_in_output_compare_as_infinity():
    """Test that integers beyond float range do not break numeric conditions."""
    workflow = _workflow(
        _step("step_one", "tool_a"),
        _step("step_two", "tool_b", condition="steps.step_one.output.n > 5"),
        _step("step_three", "tool_c", condition="steps.step_one.output.m < 0"),
    )
    executor = FakeToolExecutor(
        outputs={"tool_a": '{"n": 1' + "0" * 400 + ', "m": -1' + "0" * 400 + "}"}
    )

    result = await execute_workflow(workflow, {}, executor)

    assert executor.tools == ["tool_a", "tool_b", "tool_c"]
    assert result.status == WorkflowStatus.SUCCESS


@pytest.mark.asyncio
async def test_overlong_integer_output_is_parsed():
    """Test that integers with thousands of digits still parse as numbers."""
    workflow = _workflow(
        _step("step_one", "tool_a"),
        _step("step_two", "tool_b", parameters={"n": "${steps.step_one.output.n}"}),
    )
    executor = FakeToolExecutor(outputs={"tool_a": '{"n": ' + "9" * 5000 + "}"})
    ctx = ExecutionContext()

    await WorkflowRunner(executor).run(workflow, context=ctx)

    assert isinstance(ctx.steps["step_one"].output, ParsedOutput)
    assert executor.calls[1][1] == {"n": "Infinity"}


@pytest.mark.asyncio
async def test_deeply_nested_output_is_kept_raw():
    """Test that output too deep to decode is stored as raw text."""
    raw = "[" * 200000 + "]" * 200000
    workflow = _workflow(_step("step_one", "tool_a"), _step("step_two", "tool_b"))
    executor = FakeToolExecutor(outputs={"tool_a": raw})
    ctx = ExecutionContext()

    result = await WorkflowRunner(executor).run(workflow, context=ctx)

    assert result.status == WorkflowStatus.SUCCESS
    assert ctx.steps["step_one"].output == RawOutput(raw)


@pytest.mark.asyncio
@pytest.mark.parametrize("text", ["NaN", "Infinity", "-Infinity", '{"x": NaN}'])
async def test_non_standard_json_constants_are_kept_raw(text):
    """Test that NaN and Infinity literals are not treated as JSON."""
    workflow = _workflow(
        _step("step_one", "tool_a"),
        _step("step_two", "tool_b", condition="steps.step_one.output"),
    )
    executor = FakeToolExecutor(outputs={"tool_a": text})
    ctx = ExecutionContext()

    await WorkflowRunner(executor).run(workflow, context=ctx)

    assert ctx.steps["step_one"].output == RawOutput(text)
    assert executor.tools == ["tool_a", "tool_b"]


@pytest.mark.asyncio
async def test_collects_created_resources():
    """Test resource extraction from successful step output."""
    workflow = _workflow(_step("step_one", "create_dashboard"), _step("step_two", "create_slo"))
    executor = FakeToolExecutor(
        outputs={
            "create_dashboard": "Created https://kibana.example.com/app/dashboards#/view/dash-1",
            "create_slo": "SLO at https://kibana.example.com/app/slos/slo-7",
        }
    )

    result = await execute_workflow(workflow, {}, executor)

    assert [(r.type, r.id) for r in result.created_resources] == [
        (ResourceType.DASHBOARD, "dash-1"),
        (ResourceType.SLO, "slo-7"),
    ]


@pytest.mark.asyncio
async def test_output_summary_is_truncated():
    """Test the configurable output summary length."""
    executor = FakeToolExecutor(outputs={"tool_a": "x" * 50})
    runner = WorkflowRunner(executor, settings=WorkflowSettings(output_summary_length=10))

    result = await runner.run(_workflow(_step("step_one", "tool_a")))

    assert result.steps[0].output_summary == "x" * 10


@pytest.mark.asyncio
async def test_default_summary_keeps_500_characters():
    """Test the default output summary length."""
    executor = FakeToolExecutor(outputs={"tool_a": "y" * 800})

    result = await execute_workflow(_workflow(_step("step_one", "tool_a")), {}, executor)

    assert result.steps[0].output_summary == "y" * 500


@pytest.mark.asyncio
async def test_audit_trail_timestamps():
    """Test timestamps and durations on every step, skipped ones included."""
    workflow = _workflow(
        _step("step_one", "tool_a"),
        _step("step_two", "tool_b", condition="variables.never"),
        _step("step_three", "tool_c"),
    )

    result = await execute_workflow(workflow, {}, FakeToolExecutor())

    one_ms = timedelta(milliseconds=1)
    for step in result.steps:
        assert step.started_at <= step.completed_at
        assert step.duration_ms == (step.completed_at - step.started_at) // one_ms
        assert step.duration_ms >= 0
    assert result.started_at <= result.steps[0].started_at
    assert result.steps[-1].completed_at <= result.completed_at
    assert result.duration_ms == (result.completed_at - result.started_at) // one_ms


@pytest.mark.asyncio
async def test_result_report_structure():
    """Test the JSON-serializable report."""
    result = await execute_workflow(SIMPLE, {}, FakeToolExecutor())
    other = await execute_workflow(SIMPLE, {}, FakeToolExecutor())

    report = result.to_dict()

    assert json.loads(json.dumps(report)) == report
    assert report["workflow_name"] == "test-workflow"
    assert isinstance(report["execution_id"], str)
    assert report["execution_id"] != str(other.execution_id)
    assert report["status"] == "success"
    assert report["started_at"].endswith("Z")
    assert isinstance(report["duration_ms"], int)
    assert report["steps"][0]["status"] == "success"
    assert "error" not in report["steps"][0]
    assert report["created_resources"] == []


@pytest.mark.asyncio
async def test_publishes_lifecycle_events():
    """Test lifecycle events and their order."""
    workflow = _workflow(
        _step("step_one", "tool_a"),
        _step("step_two", "tool_b", condition="variables.never"),
        _step("step_three", "tool_c", on_error="skip"),
    )
    bus = FakeEventBus()
    runner = WorkflowRunner(FakeToolExecutor(failing=("tool_c",)), event_bus=bus)

    result = await runner.run(workflow)

    assert [event.name for event in bus.events] == [
        "workflow.started",
        "workflow.step.started",
        "workflow.step.succeeded",
        "workflow.step.started",
        "workflow.step.skipped",
        "workflow.step.started",
        "workflow.step.failed",
        "workflow.finished",
    ]
    assert all(event.metadata.execution_id == str(result.execution_id) for event in bus.events)
    assert bus.events[-1].payload == {"status": "partial", "step_count": 3, "success_count": 1}
    assert bus.events[-2].payload["error"] == "error happened"


@pytest.mark.asyncio
async def test_event_bus_failure_does_not_affect_run():
    """Test that a failing event bus is tolerated."""
    runner = WorkflowRunner(FakeToolExecutor(), event_bus=BrokenEventBus())

    result = await runner.run(SIMPLE)

    assert result.status == WorkflowStatus.SUCCESS


@pytest.mark.asyncio
async def test_default_runner_uses_in_memory_bus():
    """Test create_default_runner."""
    runner = create_default_runner(FakeToolExecutor())

    result = await runner.run(SIMPLE)

    assert result.status == WorkflowStatus.SUCCESS
    assert len(result.steps) == 3


@pytest.mark.asyncio
async def test_runs_do_not_share_context():
    """Test that two runs on one runner start from fresh contexts."""
    workflow = _workflow(
        _step("step_one", "tool_a", parameters={"seen": "${variables.x}"}, output_mapping={"x": "tool"}),
    )
    executor = FakeToolExecutor()
    runner = WorkflowRunner(executor)

    await runner.run(workflow)
    await runner.run(workflow)

    assert executor.calls == [("tool_a", {"seen": ""}), ("tool_a", {"seen": ""})]
