"""CLI entry point for cchistory."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from importlib.metadata import PackageNotFoundError, version as package_version
from pathlib import Path

from rich.console import Console
from rich.markup import escape

import cchistory.io.logging_setup
import cchistory.io.settings
from cchistory.io.npm_registry import RegistryClient
from cchistory.io.trace_runner import TraceError, parse_claude_args
from cchistory.pipeline.version_processor import VersionJob, process_version

logger = logging.getLogger(__name__)

console = Console(highlight=False, soft_wrap=True)
err_console = Console(stderr=True, highlight=False, soft_wrap=True)

# Options whose value may itself start with "-" (forwarded CLI flags).
_DASH_VALUE_OPTIONS = ("--claude-args",)

USAGE_LINE = 'Usage: cchistory [version] [--latest] [--binary-path <path>] [--claude-args "<args>"]'

USAGE_EXAMPLES = """\
Examples:
  cchistory 1.0.0                                          # Extract prompts from version 1.0.0
  cchistory 1.0.0 --latest                                 # Extract prompts from 1.0.0 to latest
  cchistory --binary-path /home/claude-code/cli.js         # Use custom binary
  cchistory --binary-path cli.js --claude-args "--debug"   # Pass args to custom binary
  cchistory 1.0.0 --claude-args "--append-system-prompt"   # Pass args to npm version
  cchistory --version                                      # Show version"""


def get_version() -> str:
    try:
        return package_version("cchistory")
    except PackageNotFoundError:
        return "0.0.0"


def _debug_enabled() -> bool:
    return bool(os.environ.get("DEBUG"))


def join_dash_values(argv: list[str]) -> list[str]:
    """Rewrite ``--opt VALUE`` as ``--opt=VALUE`` so argparse accepts VALUE="-x"."""
    out: list[str] = []
    i = 0
    while i < len(argv):
        arg = argv[i]
        if arg in _DASH_VALUE_OPTIONS and i + 1 < len(argv):
            out.append(f"{arg}={argv[i + 1]}")
            i += 2
            continue
        out.append(arg)
        i += 1
    return out


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cchistory",
        description="Extract Claude Code system prompts and tool definitions across versions",
        epilog=USAGE_EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("version", nargs="?", default=None, help="Version to extract (or label for --binary-path)")
    parser.add_argument(
        "--latest",
        action="store_true",
        default=False,
        help="Process every release from VERSION through the latest",
    )
    parser.add_argument(
        "--binary-path",
        type=str,
        default=None,
        help="Use a local cli.js instead of downloading from npm",
    )
    parser.add_argument(
        "--claude-args",
        type=str,
        default=None,
        help='Extra arguments passed to the traced binary, e.g. "--debug"',
    )
    parser.add_argument(
        "--strict-patch",
        action="store_true",
        default=False,
        help="Fail an npm version when its version check cannot be patched",
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help="Directory for prompts-*.md reports (default: current directory)",
    )
    parser.add_argument("-v", "--version", dest="show_version", action="store_true", help="Show version and exit")
    return parser


def _report_failure(label: str, error: BaseException) -> None:
    err_console.print(f"[red]✗ {escape(label)} failed:[/red]")
    err_console.print(f"[dim]  Error: {escape(str(error))}[/dim]")
    if isinstance(error, TraceError) and error.command:
        err_console.print(f"[dim]  Command: {escape(error.command_line)}[/dim]")
    if _debug_enabled():
        logger.exception("%s failed", label)


def _run_job(job: VersionJob, settings, registry: RegistryClient) -> None:
    err_console.print(f"[blue]Processing {escape(job.display_name)}...[/blue]")
    result = process_version(job, settings, registry=registry)
    if result.skipped:
        console.print(f"[dim]Skipping {escape(job.display_name)} - already exists[/dim]")
        return
    console.print(f"[green]✓ {escape(job.display_name)} → {escape(result.output_path.name)}[/green]")


def run(argv: list[str]) -> int:
    parser = build_parser()
    args = parser.parse_args(join_dash_values(argv))

    if args.show_version:
        console.print(get_version())
        return 0

    if args.claude_args is not None and not args.claude_args.strip():
        err_console.print("[red]Error: --claude-args requires a value[/red]")
        return 1

    console.print(f"[cyan]cchistory v{get_version()}[/cyan]")
    console.print()

    if not args.version and not args.binary_path:
        console.print(f"[yellow]{escape(USAGE_LINE)}[/yellow]")
        console.print(f"[dim]{USAGE_EXAMPLES}[/dim]")
        return 1

    log_runtime = cchistory.io.logging_setup.configure(run_name=args.version or "custom")
    logger.debug("logging configured level=%s file=%s", log_runtime.level_name, log_runtime.file_path)

    settings = cchistory.io.settings.load_settings()
    registry = RegistryClient(settings)
    output_dir = Path(args.output_dir) if args.output_dir else Path.cwd()
    claude_args = parse_claude_args(args.claude_args)

    binary_path = Path(args.binary_path) if args.binary_path else None
    if binary_path is not None:
        if not binary_path.exists():
            err_console.print(f"[red]Error: Binary path does not exist: {escape(str(binary_path))}[/red]")
            return 1
        if args.latest:
            err_console.print("[yellow]Warning: --latest flag is ignored when using --binary-path[/yellow]")
            err_console.print("[yellow]Only the custom binary will be processed[/yellow]")
        if args.version:
            console.print(f'[dim]Note: Using label "{escape(args.version)}" for custom binary output[/dim]')

    def make_job(version: str) -> VersionJob:
        return VersionJob(
            version=version,
            output_dir=output_dir,
            binary_path=binary_path,
            claude_args=claude_args,
            strict_patch=args.strict_patch,
        )

    if args.latest and binary_path is None:
        latest = registry.get_latest_version()
        console.print(f"[blue]Fetching versions {escape(args.version)} → {escape(latest)}[/blue]")
        versions = registry.get_all_versions_between(args.version, latest)
        console.print(f"[dim]Found {len(versions)} versions[/dim]")

        failed = 0
        for v in versions:
            try:
                _run_job(make_job(v), settings, registry)
            except Exception as e:
                # failures are counted per version
                failed += 1
                _report_failure(v, e)

        console.print(f"\n[green]Completed {len(versions) - failed}/{len(versions)} versions[/green]")
        return 0

    job = make_job(args.version or "custom")
    try:
        _run_job(job, settings, registry)
    except Exception as e:
        _report_failure(job.display_name, e)
        return 1
    return 0


def main() -> None:
    try:
        code = run(sys.argv[1:])
    except KeyboardInterrupt:
        code = 130
    except Exception as e:
        err_console.print("[red]Fatal error:[/red]")
        err_console.print(f"[dim]Message: {escape(str(e))}[/dim]")
        if _debug_enabled():
            err_console.print_exception()
        else:
            err_console.print("[dim]\nTip: Set DEBUG=1 to see full stack traces[/dim]")
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
