"""Settings for cchistory.

Reads an optional JSON settings file at XDG_CONFIG_HOME/cchistory/settings.json,
layers it over built-in defaults, then applies CCHISTORY_* environment
overrides. The result is a frozen Settings value passed explicitly to
every collaborator.

Import as: import cchistory.io.settings
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    registry_url: str = "https://registry.npmjs.org"
    package_name: str = "@anthropic-ai/claude-code"
    trace_package: str = "@mariozechner/claude-trace"
    trace_timeout_seconds: int = 600
    http_timeout_seconds: int = 60


# // [LAW:one-source-of-truth] Env var names for each overridable key.
ENV_OVERRIDES: dict[str, str] = {
    "registry_url": "CCHISTORY_REGISTRY_URL",
    "package_name": "CCHISTORY_PACKAGE",
    "trace_package": "CCHISTORY_TRACE_PACKAGE",
    "trace_timeout_seconds": "CCHISTORY_TRACE_TIMEOUT",
    "http_timeout_seconds": "CCHISTORY_HTTP_TIMEOUT",
}


def get_config_path() -> Path:
    """Return path to settings file.

    Uses XDG_CONFIG_HOME (default ~/.config) / cchistory / settings.json.
    """
    config_home = os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config"))
    return Path(config_home) / "cchistory" / "settings.json"


def load_settings_file() -> dict:
    """Load settings JSON. Returns empty dict on missing/corrupt file."""
    path = get_config_path()
    # [LAW:dataflow-not-control-flow] Always attempt read; empty dict is the "no data" value.
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (FileNotFoundError, json.JSONDecodeError, OSError):
        return {}
    return data if isinstance(data, dict) else {}


def _coerce(name: str, value: object, default: object) -> object:
    if isinstance(default, int):
        try:
            return max(1, int(value))
        except (TypeError, ValueError):
            logger.warning("ignoring non-integer setting %s=%r", name, value)
            return default
    text = str(value).strip()
    if not text:
        return default
    return text.rstrip("/") if name == "registry_url" else text


def load_settings() -> Settings:
    defaults = Settings()
    overrides: dict[str, object] = {}
    file_values = load_settings_file()

    for f in fields(Settings):
        default = getattr(defaults, f.name)
        raw = os.environ.get(ENV_OVERRIDES[f.name])
        if raw is None:
            raw = file_values.get(f.name)
        if raw is not None:
            overrides[f.name] = _coerce(f.name, raw, default)

    return replace(defaults, **overrides)
