from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Literal

from pydantic import BaseModel, Field


@dataclass(frozen=True)
class ToolSpec:
    """Static definition of a tool and its builder function.

    Attributes:
        name: The unique identifier for the tool.
        builder: A callable that returns the tool instance.
        intent: Formal semantic purpose of the tool for developer clarity.
        schema_notes: Expected input/output patterns and semantic constraints.
        groups: Tool groups this tool belongs to.
    """

    name: str
    builder: Callable[[], Any]
    intent: str = ""
    schema_notes: str = ""
    groups: list[str] = field(default_factory=list)


class ContentBlock(BaseModel):
    type: Literal["text", "image"]
    text: str | None = None
    # Base64 payload for image blocks.
    data: str | None = None
    mime_type: str | None = None


class ToolResult(BaseModel):
    """Well-formed tool outcome. Failures set ``is_error`` instead of raising."""

    content: list[ContentBlock] = Field(default_factory=list)
    is_error: bool = False
    error_code: str | None = None
    session_id: str | None = None
    media_type: str | None = None
    # Screenshot resource URI -> stored screenshot reference, scoped to this result.
    resources: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def text(cls, text: str, **kwargs: Any) -> ToolResult:
        return cls(content=[ContentBlock(type="text", text=text)], **kwargs)

    @classmethod
    def error(cls, message: str, error_code: str, **kwargs: Any) -> ToolResult:
        return cls(
            content=[ContentBlock(type="text", text=f"Error: {message}")],
            is_error=True,
            error_code=error_code,
            **kwargs,
        )

    def first_text(self) -> str:
        for block in self.content:
            if block.type == "text" and block.text is not None:
                return block.text
        return ""
