"""Per-user data directory for settings, history and profiles."""

import os
from pathlib import Path

from .secrets import APP_IDENTIFIER

__all__ = ["data_dir"]


def data_dir() -> Path:
    """Return ``LOOT_TRACKER_HOME`` or ``~/.config/gw2-loot-tracker``, creating it."""

    override = os.getenv("LOOT_TRACKER_HOME")
    path = Path(override).expanduser() if override else Path.home() / ".config" / APP_IDENTIFIER
    path.mkdir(parents=True, exist_ok=True)
    return path
