"""Typed view over trace-log records.

Each line of a claude-trace ``log-*.jsonl`` file is one request/response
pair. This module turns those loose JSON dicts into frozen dataclasses so
the selector and extractor only ever see one shape per concept.

Pure computation module with no I/O.

// [LAW:single-enforcer] Shape probing of raw log JSON happens here only.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Union


class LogParseError(ValueError):
    """A trace-log line could not be decoded as JSON."""

    def __init__(self, line_number: int, cause: json.JSONDecodeError) -> None:
        super().__init__(f"line {line_number}: {cause.msg}")
        self.line_number = line_number
        self.cause = cause


# ─── Content union ────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ContentBlock:
    """One typed fragment of block-encoded content."""

    type: str
    text: str | None = None


@dataclass(frozen=True)
class TextContent:
    """Newer encoding: message content is a single plain string."""

    text: str


@dataclass(frozen=True)
class BlockContent:
    """Older encoding: message content is a sequence of typed blocks."""

    blocks: tuple[ContentBlock, ...] = ()


@dataclass(frozen=True)
class UnrecognizedContent:
    """Content present but neither a string nor a list."""

    raw: object = None


MessageContent = Union[TextContent, BlockContent, UnrecognizedContent]


# ─── Request model ────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Message:
    role: str
    content: MessageContent


@dataclass(frozen=True)
class SystemBlock:
    type: str
    text: str | None = None


@dataclass(frozen=True)
class ToolDef:
    name: str
    description: str = ""
    input_schema: dict = field(default_factory=dict)


@dataclass(frozen=True)
class RequestBody:
    """The API request body the traced binary sent.

    ``system`` and ``tools`` are None when the field is absent or is not a
    list; an empty tuple means the list was present but empty.

    ``system_entries``/``tool_entries`` hold the length of the raw list,
    malformed entries included. Classification and ranking go by these;
    extraction only sees the well-formed entries in ``system``/``tools``.
    They default to the tuple lengths when not given.
    """

    model: str | None
    messages: tuple[Message, ...] = ()
    system: tuple[SystemBlock, ...] | None = None
    tools: tuple[ToolDef, ...] | None = None
    system_entries: int | None = None
    tool_entries: int | None = None

    def __post_init__(self) -> None:
        if self.system_entries is None and self.system is not None:
            object.__setattr__(self, "system_entries", len(self.system))
        if self.tool_entries is None and self.tools is not None:
            object.__setattr__(self, "tool_entries", len(self.tools))


@dataclass(frozen=True, eq=False)
class LoggedRecord:
    """One captured request/response pair.

    Compared by identity: two records with equal fields are still two
    distinct network calls.
    """

    request: RequestBody
    response: dict = field(default_factory=dict)
    url: str = ""
    method: str = ""


# ─── Parsing ──────────────────────────────────────────────────────────────────


def _parse_block(raw: object) -> ContentBlock | None:
    if not isinstance(raw, dict):
        return None
    text = raw.get("text")
    return ContentBlock(
        type=str(raw.get("type", "")),
        text=text if isinstance(text, str) else None,
    )


def parse_content(raw: object) -> MessageContent:
    """Narrow raw ``content`` JSON into the tagged union."""
    if isinstance(raw, str):
        return TextContent(raw)
    if isinstance(raw, list):
        blocks = tuple(b for b in (_parse_block(item) for item in raw) if b is not None)
        return BlockContent(blocks)
    return UnrecognizedContent(raw)


def _parse_message(raw: object) -> Message | None:
    if not isinstance(raw, dict):
        return None
    return Message(role=str(raw.get("role", "")), content=parse_content(raw.get("content")))


def _parse_system(raw: object) -> tuple[SystemBlock, ...] | None:
    if not isinstance(raw, list):
        return None
    blocks = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        text = item.get("text")
        blocks.append(
            SystemBlock(type=str(item.get("type", "")), text=text if isinstance(text, str) else None)
        )
    return tuple(blocks)


def _parse_tool(raw: object) -> ToolDef | None:
    if not isinstance(raw, dict):
        return None
    name = raw.get("name")
    schema = raw.get("input_schema")
    return ToolDef(
        name=name if isinstance(name, str) else "",
        description=str(raw.get("description") or ""),
        input_schema=schema if isinstance(schema, dict) else {},
    )


def _parse_tools(raw: object) -> tuple[ToolDef, ...] | None:
    if not isinstance(raw, list):
        return None
    return tuple(t for t in (_parse_tool(item) for item in raw) if t is not None)


def parse_request_body(raw: object) -> RequestBody:
    if not isinstance(raw, dict):
        return RequestBody(model=None)
    model = raw.get("model")
    messages = raw.get("messages")
    system = raw.get("system")
    tools = raw.get("tools")
    return RequestBody(
        model=model if isinstance(model, str) and model else None,
        messages=tuple(
            m for m in (_parse_message(item) for item in (messages if isinstance(messages, list) else []))
            if m is not None
        ),
        system=_parse_system(system),
        tools=_parse_tools(tools),
        system_entries=len(system) if isinstance(system, list) else None,
        tool_entries=len(tools) if isinstance(tools, list) else None,
    )


def parse_record(raw: object) -> LoggedRecord:
    """Build a LoggedRecord from one decoded log line.

    claude-trace nests the body under ``request.body``; a bare request dict
    that already carries ``model``/``messages`` is accepted as the body.
    """
    request = raw.get("request") if isinstance(raw, dict) else None
    if not isinstance(request, dict):
        request = {}
    body = request.get("body")
    if body is None and ("model" in request or "messages" in request):
        body = request
    response = raw.get("response") if isinstance(raw, dict) else None
    return LoggedRecord(
        request=parse_request_body(body),
        response=response if isinstance(response, dict) else {},
        url=str(request.get("url", "")),
        method=str(request.get("method", "")),
    )


def parse_log(text: str) -> list[LoggedRecord]:
    """Parse line-delimited JSON log text into records, skipping blank lines.

    Raises:
        LogParseError: a non-blank line is not valid JSON
    """
    records = []
    for line_number, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        try:
            raw = json.loads(line)
        except json.JSONDecodeError as e:
            raise LogParseError(line_number, e) from e
        records.append(parse_record(raw))
    return records
