"""Tests for execution plan rendering."""

from o11y_workflows.catalog import SERVICE_DASHBOARD, SLO_FROM_APM
from o11y_workflows.definitions import WorkflowDefinition
from o11y_workflows.plan import render_plan


def test_renders_supplied_variables_and_steps():
    """Test a plan with caller-supplied variables."""
    plan = render_plan(SERVICE_DASHBOARD, {"service_name": "checkout"})

    assert plan.startswith("## Workflow Plan: service-dashboard\n")
    assert "  • service_name [required]: checkout" in plan
    assert "  1. [discover] Discover service data\n    Tool: discover_o11y_data" in plan
    assert '      service_name: "${variables.service_name}"' in plan
    assert "    On error: stop" in plan
    assert plan.endswith("Skip steps whose conditions are not met.")


def test_renders_defaults_and_unset_variables():
    """Test default markers, unset variables and conditions."""
    plan = render_plan(SLO_FROM_APM)

    assert "  • service_name: (not set)" in plan
    assert "  • target: 99.9 (default)" in plan
    assert "    Condition: steps.summarize.output.has_apm_data == true" in plan
    assert "      target: \"${variables.target}\"" in plan


def test_renders_workflow_without_variables():
    """Test the empty variables section and omitted on_error."""
    workflow = WorkflowDefinition.model_validate(
        {
            "name": "bare",
            "description": "Bare workflow",
            "steps": [{"id": "only", "name": "Only", "tool": "t", "parameters": {"n": 1}}],
        }
    )

    plan = render_plan(workflow)

    assert "### Variables\n  (none)\n" in plan
    assert "      n: 1" in plan
    assert "On error" not in plan
