"""Markdown rendering of an extracted prompt snapshot.

Extracted prompt text is itself Markdown, so its headers are demoted one
level to nest under the report's own sections.
"""

from __future__ import annotations

import json
import re
from collections.abc import Sequence
from dataclasses import dataclass

from cchistory.core.records import ToolDef

_HEADER_RE = re.compile(r"^(#+)(\s+)")
TOOL_SEPARATOR = "\n\n---\n\n"


@dataclass(frozen=True)
class ReportInput:
    version_label: str
    release_date: str
    user_message: str
    system_prompt: str
    tools: Sequence[ToolDef] = ()


def indent_headers(text: str) -> str:
    """Add one ``#`` to every Markdown ATX header line."""
    return "\n".join(
        f"#{line}" if _HEADER_RE.match(line) else line for line in text.split("\n")
    )


def format_tool(tool: ToolDef) -> str:
    description = indent_headers(indent_headers(tool.description))
    schema = json.dumps(tool.input_schema, indent=2, ensure_ascii=False)
    return f"## {tool.name}\n\n{description}\n{schema}"


def render_report(report: ReportInput) -> str:
    tools = TOOL_SEPARATOR.join(format_tool(tool) for tool in report.tools)
    return (
        f"# Claude Code Version {report.version_label}\n"
        f"\n"
        f"Release Date: {report.release_date}\n"
        f"\n"
        f"# User Message\n"
        f"\n"
        f"{indent_headers(report.user_message)}\n"
        f"\n"
        f"# System Prompt\n"
        f"\n"
        f"{indent_headers(report.system_prompt)}\n"
        f"\n"
        f"# Tools\n"
        f"\n"
        f"{tools}\n"
    )
