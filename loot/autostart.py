"""Automatic session restarts on login, hourly or daily boundaries."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

__all__ = ["AutoStartMode", "AutoStartTrigger", "parse_mode"]


class AutoStartMode(Enum):
    DISABLED = 0
    # New session each time the character enters the game world.
    ON_LOGIN = 1
    # Reset at the top of every UTC hour.
    HOURLY = 2
    # Reset at the daily reset (00:00 UTC).
    DAILY = 3


_MODE_NAMES = {
    "disabled": AutoStartMode.DISABLED,
    "off": AutoStartMode.DISABLED,
    "on-login": AutoStartMode.ON_LOGIN,
    "on_login": AutoStartMode.ON_LOGIN,
    "login": AutoStartMode.ON_LOGIN,
    "hourly": AutoStartMode.HOURLY,
    "daily": AutoStartMode.DAILY,
}


def parse_mode(value: object) -> AutoStartMode:
    """Return the :class:`AutoStartMode` for an int, name or enum value.

    Unknown values fall back to ``DISABLED``.
    """

    if isinstance(value, AutoStartMode):
        return value
    if isinstance(value, str):
        return _MODE_NAMES.get(value.strip().lower(), AutoStartMode.DISABLED)
    try:
        return AutoStartMode(int(value))  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return AutoStartMode.DISABLED


class AutoStartTrigger:
    """Decide once per poll cycle whether the session should restart.

    ``ON_LOGIN`` fires when the map id goes from ``0`` (no map, e.g.
    character select or a loading screen) to any non-zero id. ``HOURLY`` and
    ``DAILY`` prime on their first observation and fire whenever the UTC
    hour-of-day or day-of-year differs from the last one seen.
    """

    def __init__(self, mode: AutoStartMode = AutoStartMode.DISABLED) -> None:
        self._mode = mode
        self._last_map_id = 0
        self._last_bucket: int | None = None

    @property
    def mode(self) -> AutoStartMode:
        return self._mode

    @mode.setter
    def mode(self, value: AutoStartMode) -> None:
        value = parse_mode(value)
        if value is not self._mode:
            self._mode = value
            self.reset()

    def reset(self) -> None:
        self._last_map_id = 0
        self._last_bucket = None

    def observe(self, map_id: int = 0, now: datetime | None = None) -> bool:
        """Record one poll cycle and return ``True`` if a restart is due."""

        mode = self._mode
        if mode is AutoStartMode.DISABLED:
            return False

        if mode is AutoStartMode.ON_LOGIN:
            previous = self._last_map_id
            self._last_map_id = int(map_id or 0)
            return previous == 0 and self._last_map_id != 0

        now = now or datetime.now(timezone.utc)
        if now.tzinfo is not None:
            now = now.astimezone(timezone.utc)
        if mode is AutoStartMode.HOURLY:
            bucket = now.hour
        else:
            bucket = now.timetuple().tm_yday

        previous_bucket = self._last_bucket
        self._last_bucket = bucket
        return previous_bucket is not None and previous_bucket != bucket
