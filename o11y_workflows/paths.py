"""Dotted-path lookup inside nested mappings."""

from collections.abc import Mapping

from o11y_workflows.definitions import JsonValue


class _Missing:
    """Sentinel for a path that does not resolve (distinct from None)."""

    _instance = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()


def resolve_path(value: JsonValue, path: str) -> JsonValue:
    """Resolve `path` such as "steps.discover.output.services" against `value`.

    Each segment must index a mapping; anything else (lists, strings, numbers,
    a missing key) ends the lookup with MISSING.
    """
    current = value
    for part in path.split("."):
        if not isinstance(current, Mapping):
            return MISSING
        current = current.get(part, MISSING)
    return current
