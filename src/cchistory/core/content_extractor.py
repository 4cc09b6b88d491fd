"""Plain-text extraction from a selected request.

Handles both content encodings the traced binary has used over time:
newer releases send user content as one string, older ones as a list of
typed blocks. Non-text blocks (tool_use, image, ...) are skipped.

Shape problems never raise here; an empty string is the "nothing
extractable" value.
"""

from __future__ import annotations

from collections.abc import Sequence

from cchistory.core.records import (
    BlockContent,
    Message,
    MessageContent,
    RequestBody,
    TextContent,
    ToolDef,
)

RESERVED_TOOL_PREFIX = "mcp__"


def content_text(content: MessageContent) -> str:
    """Flatten message content to text, newline-joining text blocks."""
    if isinstance(content, TextContent):
        return content.text
    if isinstance(content, BlockContent):
        return "\n".join(
            block.text or "" for block in content.blocks if block.type == "text"
        )
    return ""


def extract_user_message(messages: Sequence[Message]) -> str:
    """Text of the first user-role message, or "" if there is none."""
    for message in messages:
        if message.role == "user":
            return content_text(message.content)
    return ""


def extract_system_prompt(body: RequestBody) -> str:
    if not body.system:
        return ""
    return "\n".join(
        block.text for block in body.system if block.type == "text" and block.text is not None
    )


def _collation_class(ch: str) -> int:
    # punctuation and symbols, then digits, then letters
    if ch.isalpha():
        return 2
    if ch.isdigit():
        return 1
    return 0


def _locale_name_key(tool: ToolDef) -> tuple[tuple[tuple[int, str], ...], str]:
    # case-insensitive first; on ties lowercase sorts before uppercase
    primary = tuple((_collation_class(ch), ch.casefold()) for ch in tool.name)
    return (primary, tool.name.swapcase())


def filter_and_sort_tools(tools: Sequence[ToolDef] | None) -> list[ToolDef]:
    """Drop MCP-registered tools and order the rest by name."""
    if not tools:
        return []
    kept = [tool for tool in tools if not tool.name.startswith(RESERVED_TOOL_PREFIX)]
    return sorted(kept, key=_locale_name_key)
