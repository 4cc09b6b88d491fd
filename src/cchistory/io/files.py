"""File helpers shared by the pipeline.

Writes are atomic (temp file in the target directory, then rename) so an
interrupted run never leaves a half-written report or cli.js behind.
"""

import os
import tempfile
from pathlib import Path


def exists(path) -> bool:
    return Path(path).exists()


def read_text(path) -> str:
    return Path(path).read_text(encoding="utf-8")


def list_dir(path) -> list[str]:
    return sorted(os.listdir(path))


def write_text_atomic(path, content: str) -> None:
    """Atomic write of text to path.

    Creates parent directories if needed. Preserves the mode of an existing
    file.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    mode = target.stat().st_mode if target.exists() else None
    # Atomic: write temp → rename
    fd, tmp_path = tempfile.mkstemp(dir=target.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        if mode is not None:
            os.chmod(tmp_path, mode)
        os.replace(tmp_path, target)
    except Exception:
        # Clean up temp file on failure
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
