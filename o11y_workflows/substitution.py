"""`${...}` placeholder substitution over step parameters."""

import re

from o11y_workflows.definitions import JsonValue
from o11y_workflows.models import ExecutionContext
from o11y_workflows.paths import MISSING, resolve_path
from o11y_workflows.values import stringify

PLACEHOLDER_RE = re.compile(r"\$\{([^}]+)}")


def substitute(value: JsonValue, context: ExecutionContext) -> JsonValue:
    """Return `value` with every placeholder in its strings replaced.

    Lists and dicts keep their shape. Placeholders always interpolate to
    strings, so `"${variables.count}"` yields `"3"`, not `3`. Unresolvable
    placeholders become empty strings.
    """
    return _substitute(value, context.as_tree())


def _substitute(value: JsonValue, tree: dict[str, JsonValue]) -> JsonValue:
    if isinstance(value, str):
        if "${" not in value:
            return value
        return PLACEHOLDER_RE.sub(lambda match: _replacement(match, tree), value)
    if isinstance(value, list):
        return [_substitute(item, tree) for item in value]
    if isinstance(value, dict):
        return {key: _substitute(item, tree) for key, item in value.items()}
    return value


def _replacement(match: re.Match, tree: dict[str, JsonValue]) -> str:
    resolved = resolve_path(tree, match.group(1).strip())
    if resolved is MISSING:
        return ""
    return stringify(resolved)
