"""Workflow lifecycle events - Event, EventMetadata."""

from dataclasses import dataclass
from datetime import datetime

WORKFLOW_STARTED = "workflow.started"
WORKFLOW_FINISHED = "workflow.finished"
STEP_STARTED = "workflow.step.started"
STEP_SUCCEEDED = "workflow.step.succeeded"
STEP_FAILED = "workflow.step.failed"
STEP_SKIPPED = "workflow.step.skipped"


@dataclass
class EventMetadata:
    """Metadata for an event."""

    execution_id: str
    workflow_name: str
    timestamp: datetime


@dataclass
class Event:
    """Something that happened during a workflow run."""

    name: str
    payload: dict[str, object]
    metadata: EventMetadata
