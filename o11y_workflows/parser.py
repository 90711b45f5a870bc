"""
Workflow parser.

Reads YAML or JSON workflow documents and validates them into
WorkflowDefinition models.
"""
import json
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import ValidationError

from o11y_workflows.definitions import WorkflowDefinition
from o11y_workflows.errors import WorkflowParseError, WorkflowValidationError

WorkflowFormat = Literal["yaml", "json"]

_EXTENSIONS: dict[str, WorkflowFormat] = {
    ".yaml": "yaml",
    ".yml": "yaml",
    ".json": "json",
}


def _pointer(location: tuple[Any, ...]) -> str:
    return "/" + "/".join(str(part) for part in location)


def validate_workflow(document: Any) -> WorkflowDefinition:
    """
    Validate a decoded document.

    Raises:
        WorkflowValidationError: listing every schema problem found
    """
    if not isinstance(document, dict):
        raise WorkflowValidationError([f"/: must be an object, got {type(document).__name__}"])
    try:
        return WorkflowDefinition.model_validate(document)
    except ValidationError as exc:
        problems = [f"{_pointer(error['loc'])}: {error['msg']}" for error in exc.errors()]
        raise WorkflowValidationError(problems) from exc


def parse_workflow(content: str, fmt: WorkflowFormat) -> WorkflowDefinition:
    """
    Parse and validate workflow text.

    Args:
        content: Document text
        fmt: "yaml" or "json"

    Returns:
        Validated WorkflowDefinition

    Raises:
        WorkflowParseError: if the text is not valid YAML/JSON
        WorkflowValidationError: if the document does not match the schema
    """
    try:
        document = yaml.safe_load(content) if fmt == "yaml" else json.loads(content)
    except (yaml.YAMLError, ValueError) as exc:
        raise WorkflowParseError(f"Failed to parse workflow {fmt.upper()}: {exc}") from exc

    return validate_workflow(document)


def load_workflow_file(path: str | Path) -> WorkflowDefinition:
    """
    Load a workflow from a .yaml, .yml or .json file.

    Raises:
        WorkflowParseError: for unsupported extensions, unreadable or undecodable files
        WorkflowValidationError: if the document does not match the schema
    """
    file_path = Path(path)
    ext = file_path.suffix.lower()
    fmt = _EXTENSIONS.get(ext)
    if fmt is None:
        raise WorkflowParseError(
            f'Unsupported workflow file extension "{ext}". Use .yaml, .yml, or .json'
        )

    try:
        content = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise WorkflowParseError(f"Failed to read workflow file {file_path}: {exc}") from exc

    return parse_workflow(content, fmt)
