"""Workflow registry - built-in catalog plus custom workflow files."""
from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, Optional

import yaml

from o11y_workflows.catalog import BUILT_IN_WORKFLOWS
from o11y_workflows.definitions import WorkflowDefinition
from o11y_workflows.errors import WorkflowError, WorkflowNotFoundError, WorkflowValidationError
from o11y_workflows.logging import get_logger
from o11y_workflows.parser import load_workflow_file, validate_workflow
from o11y_workflows.settings import get_settings

WorkflowSource = Literal["built-in", "custom"]

_NAME_RE = re.compile(r"^[a-z0-9][a-z0-9-]*$")
_WORKFLOW_SUFFIXES = {".yaml", ".yml", ".json"}


@dataclass(frozen=True)
class WorkflowSummary:
    """Listing entry for a workflow."""

    name: str
    description: str
    version: Optional[str]
    source: WorkflowSource
    step_count: int

    @classmethod
    def from_definition(
        cls, definition: WorkflowDefinition, source: WorkflowSource
    ) -> WorkflowSummary:
        return cls(
            name=definition.name,
            description=definition.description,
            version=definition.version,
            source=source,
            step_count=len(definition.steps),
        )


class WorkflowRegistry:
    """
    Lookup of built-in and custom workflows.

    Custom workflows are the .yaml/.yml/.json files of `custom_dir`; files that
    fail to parse or validate are skipped with a warning.
    """

    def __init__(self, custom_dir: str | Path | None = None) -> None:
        self._custom_dir = Path(custom_dir) if custom_dir is not None else None
        self._logger = get_logger("o11y_workflows.registry")

    @classmethod
    def from_settings(cls) -> WorkflowRegistry:
        """Registry reading custom workflows from WORKFLOWS_CUSTOM_DIR."""
        return cls(custom_dir=get_settings().custom_dir)

    @property
    def custom_dir(self) -> Optional[Path]:
        return self._custom_dir

    def list_workflows(self) -> list[WorkflowSummary]:
        """Summaries of all workflows, built-ins first."""
        summaries = [
            WorkflowSummary.from_definition(definition, "built-in")
            for definition in BUILT_IN_WORKFLOWS
        ]
        summaries.extend(
            WorkflowSummary.from_definition(definition, "custom")
            for definition in self._load_custom_workflows()
        )
        return summaries

    def get_workflow(self, name: str) -> Optional[WorkflowDefinition]:
        """Find a workflow by name; a built-in shadows a custom one."""
        for definition in BUILT_IN_WORKFLOWS:
            if definition.name == name:
                return definition
        for definition in self._load_custom_workflows():
            if definition.name == name:
                return definition
        return None

    def require_workflow(self, name: str) -> WorkflowDefinition:
        """Like get_workflow, but raise WorkflowNotFoundError when missing."""
        definition = self.get_workflow(name)
        if definition is None:
            raise WorkflowNotFoundError(name)
        return definition

    def save_workflow(
        self,
        name: str,
        definition: WorkflowDefinition | dict[str, Any],
        directory: str | Path | None = None,
    ) -> Path:
        """
        Validate and write a workflow as `<name>.yaml`.

        Args:
            name: File name stem (same pattern as workflow names)
            definition: WorkflowDefinition or raw document to validate
            directory: Target directory (default: custom_dir, then WORKFLOWS_SAVE_DIR)

        Returns:
            Path of the written file
        """
        if not _NAME_RE.match(name):
            raise WorkflowValidationError(
                [f'/name: "{name}" must be lowercase letters, digits and hyphens']
            )
        if not isinstance(definition, WorkflowDefinition):
            definition = validate_workflow(definition)

        target_dir = Path(directory) if directory is not None else self._save_dir()
        target_dir.mkdir(parents=True, exist_ok=True)
        file_path = target_dir / f"{name}.yaml"
        file_path.write_text(
            yaml.safe_dump(
                definition.to_document(), sort_keys=False, allow_unicode=True, width=120
            ),
            encoding="utf-8",
        )
        self._logger.info("workflow_saved name=%s path=%s", name, file_path)
        return file_path

    def _save_dir(self) -> Path:
        if self._custom_dir is not None:
            return self._custom_dir
        return get_settings().save_dir

    def _load_custom_workflows(self) -> list[WorkflowDefinition]:
        if self._custom_dir is None or not self._custom_dir.is_dir():
            return []

        definitions: list[WorkflowDefinition] = []
        for path in sorted(self._custom_dir.iterdir()):
            if path.suffix.lower() not in _WORKFLOW_SUFFIXES or not path.is_file():
                continue
            try:
                definitions.append(load_workflow_file(path))
            except WorkflowError as exc:
                self._logger.warning("custom_workflow_skipped path=%s error=%s", path, exc)
        return definitions
