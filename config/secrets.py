from __future__ import annotations

"""Shared helpers for locating and reading the ``secrets.json`` store."""

from collections.abc import Iterable
import json
import os
from pathlib import Path
import sys
from typing import Any

__all__ = [
    "SECRETS_FILE_NAME",
    "APP_IDENTIFIER",
    "PROJECT_ROOT",
    "iter_candidate_files",
    "load_secrets",
    "read_json",
]

# Canonical ``secrets.json`` file name and per-user application folder name.
SECRETS_FILE_NAME = "secrets.json"
APP_IDENTIFIER = "gw2-loot-tracker"

# Repository root used for the project-level secrets file.
PROJECT_ROOT = Path(__file__).resolve().parent.parent


def iter_candidate_files(
    platform: str | None = None,
    project_root: Path | None = None,
) -> Iterable[Path]:
    """Yield candidate paths where ``secrets.json`` might live."""

    root = project_root or PROJECT_ROOT
    yield root / SECRETS_FILE_NAME
    # The tracker's own data folder, next to settings.json and history.json.
    home_override = os.environ.get("LOOT_TRACKER_HOME")
    if home_override:
        yield Path(home_override).expanduser() / SECRETS_FILE_NAME
    yield from _app_data_secret_files(platform=platform)


def load_secrets() -> dict[str, Any]:
    """Return the first successfully parsed secrets mapping, if any."""

    for path in iter_candidate_files():
        data = read_json(path)
        if isinstance(data, dict):
            return data
    return {}


def _app_data_secret_files(platform: str | None = None) -> Iterable[Path]:
    """Return possible ``secrets.json`` locations in per-user app folders."""

    platform = platform or sys.platform
    home = Path.home()
    if platform.startswith("win"):
        roaming = os.environ.get("APPDATA") or home / "AppData" / "Roaming"
        local = os.environ.get("LOCALAPPDATA") or home / "AppData" / "Local"
        bases = [Path(roaming), Path(local)]
    elif platform == "darwin":
        bases = [home / "Library" / "Application Support"]
    else:
        config_home = os.environ.get("XDG_CONFIG_HOME")
        bases = [Path(config_home)] if config_home else []
        bases.append(home / ".config")
    candidates = [base / APP_IDENTIFIER / SECRETS_FILE_NAME for base in bases]

    seen: set[Path] = set()
    for path in candidates:
        if path in seen:
            continue
        seen.add(path)
        yield path


def read_json(path: Path) -> dict[str, Any] | None:
    """Safely read ``path`` as a JSON object, returning ``None`` on failure."""

    if not path.exists():
        return None
    try:
        text = path.read_text(encoding="utf-8")
    except OSError:
        return None
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError, ValueError):
        return None
    if isinstance(data, dict):
        return data
    return None
