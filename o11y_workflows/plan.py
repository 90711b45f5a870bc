"""Render a workflow as a human-readable execution plan."""

import json
from collections.abc import Mapping
from typing import Optional

from o11y_workflows.definitions import JsonValue, StepDefinition, WorkflowDefinition
from o11y_workflows.values import stringify

FOOTER = (
    "Execute each step in order using the specified MCP tool. Resolve ${…} placeholders "
    "from previous step outputs and supplied variables. Skip steps whose conditions are not met."
)


def _variables_section(
    workflow: WorkflowDefinition, supplied: Mapping[str, JsonValue]
) -> str:
    if not workflow.variables:
        return "  (none)"

    lines = []
    for name, spec in workflow.variables.items():
        if name in supplied:
            value = stringify(supplied[name])
        elif spec.has_default:
            value = f"{stringify(spec.default)} (default)"
        else:
            value = "(not set)"
        marker = " [required]" if spec.required else ""
        lines.append(f"  • {name}{marker}: {value}")
    return "\n".join(lines)


def _step_section(index: int, step: StepDefinition) -> str:
    params = "\n".join(
        f"      {key}: {json.dumps(value, ensure_ascii=False)}"
        for key, value in step.parameters.items()
    )
    text = f"  {index}. [{step.id}] {step.name}\n    Tool: {step.tool}\n    Parameters:\n{params}"
    if step.condition:
        text += f"\n    Condition: {step.condition}"
    if "on_error" in step.model_fields_set:
        text += f"\n    On error: {step.on_error.value}"
    return text


def render_plan(
    workflow: WorkflowDefinition, variables: Optional[Mapping[str, JsonValue]] = None
) -> str:
    """Markdown plan listing variables and steps of `workflow`."""
    steps = "\n\n".join(
        _step_section(index, step) for index, step in enumerate(workflow.steps, start=1)
    )
    return "\n".join(
        [
            f"## Workflow Plan: {workflow.name}",
            "",
            workflow.description,
            "",
            "### Variables",
            _variables_section(workflow, variables or {}),
            "",
            "### Steps",
            steps,
            "",
            "---",
            FOOTER,
        ]
    )
