from __future__ import annotations

"""Tracker settings persisted to ``settings.json``.

Keys use the same spelling as the in-game add-on's settings file so an
existing file can be reused as-is.
"""

from dataclasses import dataclass
import json
import logging
from pathlib import Path
from typing import Any

from loot.autostart import AutoStartMode, parse_mode

from .paths import data_dir
from .secrets import read_json

__all__ = ["SETTINGS_FILE_NAME", "Settings", "default_settings_path"]

logger = logging.getLogger(__name__)

SETTINGS_FILE_NAME = "settings.json"
DEFAULT_POLL_INTERVAL = 30
MIN_POLL_INTERVAL = 1


def default_settings_path() -> Path:
    return data_dir() / SETTINGS_FILE_NAME


def _as_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    return default


@dataclass
class Settings:
    api_key: str = ""
    poll_interval_sec: int = DEFAULT_POLL_INTERVAL
    show_window: bool = True
    show_zero_deltas: bool = False
    track_currency: bool = True
    track_items: bool = True
    auto_start: AutoStartMode = AutoStartMode.DISABLED

    def __post_init__(self) -> None:
        self.poll_interval_sec = max(int(self.poll_interval_sec), MIN_POLL_INTERVAL)
        self.auto_start = parse_mode(self.auto_start)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Settings":
        try:
            interval = int(data.get("PollIntervalSec", DEFAULT_POLL_INTERVAL))
        except (TypeError, ValueError):
            interval = DEFAULT_POLL_INTERVAL
        api_key = data.get("ApiKey")
        return cls(
            api_key=api_key.strip() if isinstance(api_key, str) else "",
            poll_interval_sec=interval,
            show_window=_as_bool(data.get("ShowWindow"), True),
            show_zero_deltas=_as_bool(data.get("ShowZeroDeltas"), False),
            track_currency=_as_bool(data.get("TrackCurrency"), True),
            track_items=_as_bool(data.get("TrackItems"), True),
            auto_start=parse_mode(data.get("AutoStart", 0)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "ApiKey": self.api_key,
            "PollIntervalSec": self.poll_interval_sec,
            "ShowWindow": self.show_window,
            "ShowZeroDeltas": self.show_zero_deltas,
            "TrackCurrency": self.track_currency,
            "TrackItems": self.track_items,
            "AutoStart": self.auto_start.value,
        }

    @classmethod
    def load(cls, path: Path | None = None) -> "Settings":
        """Load settings from ``path``; missing or malformed files give defaults."""

        path = Path(path) if path is not None else default_settings_path()
        data = read_json(path)
        if data is None:
            if path.exists():
                logger.warning("Ignoring malformed settings file %s", path)
            return cls()
        return cls.from_dict(data)

    def save(self, path: Path | None = None) -> Path:
        path = Path(path) if path is not None else default_settings_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as handle:
            json.dump(self.to_dict(), handle, indent=4)
        return path
