"""Detect resources (dashboards, SLOs, alert rules) referenced in tool output."""

import re
from uuid import uuid4

from o11y_workflows.models import CreatedResource, ResourceType

URL_RE = re.compile(r"https?://[^\s)>\"]+")

# Checked in order; the first marker found in the URL wins
_MARKERS: tuple[tuple[tuple[str, ...], ResourceType], ...] = (
    (("/dashboard",), ResourceType.DASHBOARD),
    (("/slo",), ResourceType.SLO),
    (("/alert", "/rule"), ResourceType.ALERT_RULE),
)


def classify_url(url: str) -> ResourceType:
    for markers, resource_type in _MARKERS:
        if any(marker in url for marker in markers):
            return resource_type
    return ResourceType.OTHER


def extract_resources(text: str) -> list[CreatedResource]:
    """Return one CreatedResource per URL in `text`, in order of appearance.

    This is a heuristic: the id is the URL's last path segment and nothing
    guarantees the URL points at something the step actually created.
    """
    resources: list[CreatedResource] = []
    for url in URL_RE.findall(text):
        resource_type = classify_url(url)
        resources.append(
            CreatedResource(
                type=resource_type,
                id=url.rsplit("/", 1)[-1] or str(uuid4()),
                name=f"{resource_type.value} resource",
                url=url,
            )
        )
    return resources
