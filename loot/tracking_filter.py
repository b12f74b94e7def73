from __future__ import annotations

"""Named profiles restricting which items and currencies are displayed.

The filter only affects presentation; the session engine always tracks
everything. An empty id set in the active profile means "show all".
"""

import json
import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Iterable

from config.paths import data_dir

__all__ = ["PROFILES_FILE_NAME", "TrackingFilter", "TrackingMode", "TrackingProfile"]

logger = logging.getLogger(__name__)

PROFILES_FILE_NAME = "profiles.json"


class TrackingMode(Enum):
    ALL = 0
    CUSTOM = 1


@dataclass
class TrackingProfile:
    name: str
    item_ids: set[int] = field(default_factory=set)
    currency_ids: set[int] = field(default_factory=set)

    def copy(self) -> "TrackingProfile":
        return TrackingProfile(self.name, set(self.item_ids), set(self.currency_ids))

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "itemIds": sorted(self.item_ids),
            "currencyIds": sorted(self.currency_ids),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TrackingProfile":
        return cls(
            name=str(data.get("name") or ""),
            item_ids=_int_set(data.get("itemIds")),
            currency_ids=_int_set(data.get("currencyIds")),
        )


def _int_set(values: Any) -> set[int]:
    result: set[int] = set()
    if not isinstance(values, Iterable) or isinstance(values, (str, bytes)):
        return result
    for value in values:
        try:
            result.add(int(value))
        except (TypeError, ValueError):
            continue
    return result


class TrackingFilter:
    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path) if path is not None else data_dir() / PROFILES_FILE_NAME
        self._lock = threading.Lock()
        self._mode = TrackingMode.ALL
        self._active = -1
        self._profiles: list[TrackingProfile] = []

    # ------------------------------------------------------------------
    # Mode & active profile
    # ------------------------------------------------------------------
    @property
    def mode(self) -> TrackingMode:
        with self._lock:
            return self._mode

    def set_mode(self, mode: TrackingMode) -> None:
        with self._lock:
            self._mode = mode
            if mode is TrackingMode.ALL:
                self._active = -1

    @property
    def active_index(self) -> int:
        with self._lock:
            return self._active

    def set_active_profile(self, index: int) -> None:
        """Activate profile ``index``; ``-1`` or an invalid index means "All"."""

        with self._lock:
            if 0 <= index < len(self._profiles):
                self._active = index
                self._mode = TrackingMode.CUSTOM
            else:
                self._active = -1
                self._mode = TrackingMode.ALL

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def _active_profile_locked(self) -> TrackingProfile | None:
        if self._mode is TrackingMode.ALL:
            return None
        if not 0 <= self._active < len(self._profiles):
            return None
        return self._profiles[self._active]

    def is_item_tracked(self, item_id: int) -> bool:
        with self._lock:
            profile = self._active_profile_locked()
            if profile is None or not profile.item_ids:
                return True
            return item_id in profile.item_ids

    def is_currency_tracked(self, currency_id: int) -> bool:
        with self._lock:
            profile = self._active_profile_locked()
            if profile is None or not profile.currency_ids:
                return True
            return currency_id in profile.currency_ids

    # ------------------------------------------------------------------
    # Profile CRUD
    # ------------------------------------------------------------------
    def get_profiles(self) -> list[TrackingProfile]:
        with self._lock:
            return [profile.copy() for profile in self._profiles]

    def new_profile(self, name: str) -> int:
        """Create an empty profile, make it active and return its index."""

        with self._lock:
            self._profiles.append(TrackingProfile(name))
            self._active = len(self._profiles) - 1
            self._mode = TrackingMode.CUSTOM
            return self._active

    def delete_profile(self, index: int) -> None:
        with self._lock:
            if not 0 <= index < len(self._profiles):
                return
            del self._profiles[index]
            if self._active == index:
                self._active = -1
            elif self._active > index:
                self._active -= 1
            if not 0 <= self._active < len(self._profiles):
                self._active = -1
                self._mode = TrackingMode.ALL

    def update_profile(self, index: int, profile: TrackingProfile) -> None:
        with self._lock:
            if 0 <= index < len(self._profiles):
                self._profiles[index] = profile.copy()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def load(self) -> None:
        if not self.path.exists():
            return
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable profiles %s: %s", self.path, exc)
            return
        if not isinstance(raw, dict):
            return

        profiles = [
            TrackingProfile.from_dict(entry)
            for entry in raw.get("profiles") or []
            if isinstance(entry, dict)
        ]
        try:
            mode = TrackingMode(int(raw.get("mode", 0)))
        except (TypeError, ValueError):
            mode = TrackingMode.ALL
        try:
            active = int(raw.get("active", -1))
        except (TypeError, ValueError):
            active = -1

        with self._lock:
            self._profiles = profiles
            self._mode = mode
            self._active = active
            if self._active >= len(self._profiles):
                self._active = -1
                self._mode = TrackingMode.ALL

    def save(self) -> None:
        with self._lock:
            payload = {
                "active": self._active,
                "mode": self._mode.value,
                "profiles": [profile.to_dict() for profile in self._profiles],
            }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
