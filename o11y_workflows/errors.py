"""
Workflow errors.

Definition problems surface as WorkflowParseError / WorkflowValidationError
before a run starts. ToolInvocationError only lives inside the step executor,
where it is recorded on the step result.
"""


class WorkflowError(Exception):
    """Base class for workflow errors."""


class WorkflowParseError(WorkflowError):
    """Workflow document could not be read or decoded."""


class WorkflowValidationError(WorkflowError):
    """Workflow document does not match the definition schema."""

    def __init__(self, problems: list[str]) -> None:
        self.problems = problems
        details = "\n".join(f"  - {problem}" for problem in problems)
        super().__init__(f"Workflow validation failed:\n{details}")


class WorkflowNotFoundError(WorkflowError):
    """No built-in or custom workflow with the requested name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            f'Workflow "{name}" not found. Use list_workflows to see available workflows.'
        )


class ToolInvocationError(WorkflowError):
    """Tool reported an error result."""
