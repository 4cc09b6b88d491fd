"""Per-version scratch directories.

A VersionWorkspace is the explicit context each version run works in:
the downloaded tarball, the extracted package and the .claude-trace log
all live under its root, and subprocesses receive it as cwd. Nothing
changes the process-wide working directory.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VersionWorkspace:
    root: Path

    @property
    def package_dir(self) -> Path:
        return self.root / "package"

    @property
    def cli_path(self) -> Path:
        return self.package_dir / "cli.js"

    @classmethod
    def create(cls, prefix: str = "claude-history") -> "VersionWorkspace":
        root = Path(tempfile.mkdtemp(prefix=f"{prefix}-"))
        logger.debug("created workspace %s", root)
        return cls(root=root)

    def cleanup(self) -> None:
        shutil.rmtree(self.root, ignore_errors=True)
        logger.debug("removed workspace %s", self.root)

    def __enter__(self) -> "VersionWorkspace":
        return self

    def __exit__(self, *exc_info) -> None:
        self.cleanup()
