"""Prompt assembly.

Pure functions that fold editing context into the payload a transport sends.
Blocks are appended in a fixed order (file, selection, error) before the
user's text; absent fields are skipped.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any, Union

from .config import DEFAULT_SYSTEM_PROMPT, TransportConfig

JSON = Union[dict[str, "JSON"], list["JSON"], str, int, float, bool, None]


@dataclass(frozen=True)
class EditorContext:
    """Snapshot of the editing state at send time."""

    file_content: str | None = None
    selection: str | None = None
    error_text: str | None = None
    language: str | None = None
    filename: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> EditorContext:
        """Accept snake_case or camelCase keys, and ``error`` as an alias."""

        def pick(*keys: str) -> str | None:
            for key in keys:
                value = data.get(key)
                if value:
                    return str(value)
            return None

        return cls(
            file_content=pick("file_content", "fileContent"),
            selection=pick("selection"),
            error_text=pick("error_text", "errorText", "error"),
            language=pick("language", "filetype"),
            filename=pick("filename"),
        )

    def replace(self, **changes: str | None) -> EditorContext:
        return replace(self, **changes)


ContextLike = Union[EditorContext, Mapping[str, Any], None]


def coerce_context(context: ContextLike) -> EditorContext:
    if context is None:
        return EditorContext()
    if isinstance(context, EditorContext):
        return context
    return EditorContext.from_mapping(context)


def _fenced(label: str, body: str, language: str | None) -> str:
    return f"{label}:\n```{language or ''}\n{body}\n```\n\n"


CLI_FILE_LABEL = "Current file context"
HTTP_FILE_LABEL = "Context (current file)"


def context_blocks(context: EditorContext, file_label: str = CLI_FILE_LABEL) -> str:
    """Render the context blocks that precede the user text."""
    text = ""
    if context.file_content:
        text += _fenced(file_label, context.file_content, context.language)
    if context.selection:
        text += _fenced("Selected code", context.selection, context.language)
    if context.error_text:
        text += f"Error details:\n{context.error_text}\n\n"
    return text


def build_cli_prompt(
    user_text: str,
    context: ContextLike = None,
    *,
    system: str | None = None,
) -> str:
    """Build the single text blob the CLI transport writes to stdin."""
    preamble = system or DEFAULT_SYSTEM_PROMPT
    return f"{preamble}\n\n{context_blocks(coerce_context(context))}{user_text}"


def build_http_payload(
    user_text: str,
    context: ContextLike = None,
    *,
    config: TransportConfig,
    system: str | None = None,
) -> dict[str, JSON]:
    """Build the messages-API request body for the HTTP transport."""
    content = context_blocks(coerce_context(context), HTTP_FILE_LABEL) + user_text
    return {
        "model": config.model,
        "max_tokens": config.max_tokens,
        "temperature": config.temperature,
        "system": system or config.system_preamble,
        "messages": [{"role": "user", "content": content}],
    }
