"""Runs the traced binary under claude-trace and locates the captured log.

claude-trace wraps a cli.js, records every API request/response it makes,
and writes them as line-delimited JSON under <cwd>/.claude-trace/.

// [LAW:locality-or-seam] All subprocess logic isolated here.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path

import cchistory.io.files

logger = logging.getLogger(__name__)

TRACE_DIR_NAME = ".claude-trace"
LOG_PREFIX = "log-"
LOG_SUFFIX = ".jsonl"
_SHELL_OPERATOR_CHARS = frozenset("();<>|&")


class TraceError(RuntimeError):
    """claude-trace failed or left no log behind."""

    def __init__(self, message: str, command: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.command = list(command)

    @property
    def command_line(self) -> str:
        return shlex.join(self.command)


def parse_claude_args(raw: str | None) -> list[str]:
    """Split user-supplied args with shell rules, dropping shell operators.

    "--debug && rm -rf /" -> ["--debug", "rm", "-rf", "/"]
    """
    if not raw:
        return []
    lexer = shlex.shlex(raw, posix=True, punctuation_chars=True)
    lexer.whitespace_split = True
    return [tok for tok in lexer if not (tok and set(tok) <= _SHELL_OPERATOR_CHARS)]


def default_prompt(now: datetime | None = None) -> str:
    stamp = (now or datetime.now(timezone.utc)).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return f"{stamp} is the date. Write a haiku about it."


def build_trace_command(
    claude_path: str,
    claude_args: Sequence[str] = (),
    *,
    trace_package: str = "@mariozechner/claude-trace",
    prompt: str | None = None,
) -> list[str]:
    return [
        "npx",
        "--node-options=--no-warnings",
        "-y",
        trace_package,
        "--claude-path",
        claude_path,
        "--no-open",
        "--run-with",
        *claude_args,
        "-p",
        prompt if prompt is not None else default_prompt(),
    ]


def run_trace(cmd: Sequence[str], cwd: Path, timeout: int) -> None:
    """Run claude-trace in cwd. BLOCKING.

    Raises:
        TraceError: non-zero exit, timeout, or npx not found
    """
    logger.info("running %s (cwd=%s)", shlex.join(cmd), cwd)
    try:
        result = subprocess.run(
            list(cmd),
            cwd=str(cwd),
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise TraceError(f"Timeout ({timeout}s)", cmd) from e
    except FileNotFoundError as e:
        raise TraceError(f"Command not found: {cmd[0]}", cmd) from e

    if result.stdout:
        logger.debug("claude-trace stdout:\n%s", result.stdout)
    if result.returncode != 0:
        stderr_snippet = result.stderr[:500] if result.stderr else "(no stderr)"
        raise TraceError(f"Exit code {result.returncode}: {stderr_snippet}", cmd)


def find_trace_log(work_dir: Path) -> Path:
    """Return the first log-*.jsonl under work_dir/.claude-trace.

    Raises:
        TraceError: directory missing or holds no log file
    """
    trace_dir = Path(work_dir) / TRACE_DIR_NAME
    try:
        names = cchistory.io.files.list_dir(trace_dir)
    except OSError as e:
        raise TraceError(f"No {TRACE_DIR_NAME} directory in {work_dir}") from e

    for name in names:
        if name.startswith(LOG_PREFIX) and name.endswith(LOG_SUFFIX):
            return trace_dir / name
    raise TraceError(f"No JSONL log file found in {trace_dir}")
