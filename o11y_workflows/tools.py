"""Tool boundary - the single side-effecting seam of the engine."""

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Union


@dataclass(frozen=True)
class TextContent:
    """One text block of a tool response."""

    text: str
    type: str = "text"


@dataclass(frozen=True)
class ToolResponse:
    """What a tool invocation returns."""

    content: list[TextContent] = field(default_factory=list)
    is_error: bool = False

    @property
    def text(self) -> str:
        """All text blocks joined with newlines."""
        return "\n".join(block.text for block in self.content)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ToolResponse":
        """Build from an MCP-style `{"content": [...], "isError": bool}` result."""
        blocks = [
            TextContent(text=str(block.get("text", "")), type=str(block.get("type", "text")))
            for block in data.get("content") or []
        ]
        is_error = data.get("isError", data.get("is_error", False))
        return cls(content=blocks, is_error=bool(is_error))

    @classmethod
    def ok(cls, text: str) -> "ToolResponse":
        return cls(content=[TextContent(text=text)])

    @classmethod
    def error(cls, text: str) -> "ToolResponse":
        return cls(content=[TextContent(text=text)], is_error=True)


ToolResult = Union[ToolResponse, Mapping[str, Any]]

# Type alias for the injected tool executor: (tool_name, parameters) -> result
ToolExecutor = Callable[[str, dict[str, Any]], Awaitable[ToolResult]]


def normalize_response(result: ToolResult) -> ToolResponse:
    """Accept either a ToolResponse or an MCP-style mapping."""
    if isinstance(result, ToolResponse):
        return result
    if isinstance(result, Mapping):
        return ToolResponse.from_mapping(result)
    raise TypeError(f"Tool executor returned unsupported result type {type(result).__name__}")
