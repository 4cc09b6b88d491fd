"""One version, end to end: fetch, patch, trace, select, extract, report.

Import as: import cchistory.pipeline.version_processor
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

import cchistory.io.files
from cchistory.core.content_extractor import (
    extract_system_prompt,
    extract_user_message,
    filter_and_sort_tools,
)
from cchistory.core.patcher import patch_version_check
from cchistory.core.records import parse_log
from cchistory.core.report import ReportInput, render_report
from cchistory.core.request_filter import has_tools, select_best_request
from cchistory.io.npm_registry import RegistryClient, extract_package
from cchistory.io.settings import Settings
from cchistory.io.trace_runner import build_trace_command, find_trace_log, run_trace
from cchistory.io.workspace import VersionWorkspace

logger = logging.getLogger(__name__)

CUSTOM_RELEASE_DATE = "Custom Binary"


class CliFileNotFound(FileNotFoundError):
    """The extracted package has no cli.js."""


class PatchNotApplied(RuntimeError):
    """Version check could not be located and strict patching was requested."""


@dataclass(frozen=True)
class VersionJob:
    """What to process and where the report goes.

    binary_path set means a user-supplied cli.js; version is then only a label.
    """

    version: str
    output_dir: Path
    binary_path: Path | None = None
    claude_args: Sequence[str] = ()
    strict_patch: bool = False
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_custom(self) -> bool:
        return self.binary_path is not None

    @property
    def display_name(self) -> str:
        return f"custom binary ({self.binary_path})" if self.is_custom else self.version

    @property
    def output_filename(self) -> str:
        if self.is_custom:
            stamp = self.started_at.isoformat(timespec="milliseconds").replace("+00:00", "Z")
            return f"prompts-custom-{stamp.replace(':', '-').replace('.', '-')}.md"
        return f"prompts-{self.version}.md"

    @property
    def output_path(self) -> Path:
        return Path(self.output_dir) / self.output_filename


@dataclass(frozen=True)
class ProcessResult:
    job: VersionJob
    skipped: bool
    output_path: Path
    patched: bool = False
    model: str = ""
    tool_count: int = 0


def _list_package(package_dir: Path) -> str:
    try:
        names = cchistory.io.files.list_dir(package_dir)
    except OSError:
        return "  Could not list package directory"
    return "\n".join(f"  - {name}" for name in names)


def _prepare_cli(job: VersionJob, workspace: VersionWorkspace, registry: RegistryClient) -> Path:
    if job.binary_path is not None:
        return Path(job.binary_path).resolve()

    tarball = registry.download_package(job.version, workspace.root)
    package_dir = extract_package(tarball, workspace.root)
    cli_path = workspace.cli_path
    if not cli_path.exists():
        raise CliFileNotFound(
            f"CLI file not found for version {job.version} at {cli_path}\n"
            f"Package contents:\n{_list_package(package_dir)}"
        )
    return cli_path


def _apply_patch(job: VersionJob, cli_path: Path) -> bool:
    result = patch_version_check(cchistory.io.files.read_text(cli_path))
    if result.patched:
        if job.is_custom:
            logger.warning("disabling version check in place: %s", cli_path)
        cchistory.io.files.write_text_atomic(cli_path, result.content)
        return True

    if not job.is_custom:
        if job.strict_patch:
            raise PatchNotApplied(f"Could not find version check to patch in version {job.version}")
        logger.warning(
            "Could not find version check to patch in version %s; "
            "this version might not have the version check, continuing anyway",
            job.version,
        )
    return False


def process_version(
    job: VersionJob,
    settings: Settings,
    registry: RegistryClient | None = None,
    run: Callable[..., None] = run_trace,
) -> ProcessResult:
    """Produce the prompt report for one version (or custom binary).

    An existing report is left untouched and reported as skipped.

    Raises:
        NoSuitableRequest, TraceError, RegistryError, CliFileNotFound,
        PatchNotApplied, LogParseError
    """
    output_path = job.output_path
    if cchistory.io.files.exists(output_path):
        logger.info("Skipping %s - already exists", job.display_name)
        return ProcessResult(job=job, skipped=True, output_path=output_path)

    registry = registry or RegistryClient(settings)
    prefix = "claude-history-custom" if job.is_custom else "claude-history"

    with VersionWorkspace.create(prefix) as workspace:
        cli_path = _prepare_cli(job, workspace, registry)
        patched = _apply_patch(job, cli_path)

        # npm packages run from the workspace root; custom binaries by absolute path
        claude_path = str(cli_path) if job.is_custom else "./package/cli.js"
        cmd = build_trace_command(
            claude_path,
            job.claude_args,
            trace_package=settings.trace_package,
        )
        run(cmd, workspace.root, settings.trace_timeout_seconds)

        log_path = find_trace_log(workspace.root)
        records = parse_log(cchistory.io.files.read_text(log_path))
        logger.info("parsed %d request(s) from %s", len(records), log_path.name)

        selected = select_best_request(records)
        if not has_tools(selected):
            logger.warning("Selected request has no tools. This may not be a Claude Code request.")

        body = selected.request
        user_message = extract_user_message(body.messages)
        system_prompt = extract_system_prompt(body)
        tools = filter_and_sort_tools(body.tools)
        if not user_message:
            logger.warning("No user message text in selected request (%s)", body.model)
        if not system_prompt:
            logger.warning("No system prompt in selected request (%s)", body.model)

        if job.is_custom:
            release_date = CUSTOM_RELEASE_DATE
            version_label = f"Custom Binary ({job.output_filename})"
        else:
            release_date = registry.get_version_release_date(job.version)
            version_label = job.version

        report = render_report(
            ReportInput(
                version_label=version_label,
                release_date=release_date,
                user_message=user_message,
                system_prompt=system_prompt,
                tools=tools,
            )
        )
        cchistory.io.files.write_text_atomic(output_path, report)

    return ProcessResult(
        job=job,
        skipped=False,
        output_path=output_path,
        patched=patched,
        model=body.model or "",
        tool_count=len(tools),
    )
