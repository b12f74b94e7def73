"""Persist finished loot sessions to ``history.json``."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any, List, Sequence

from config.paths import data_dir
from gw2.models import CurrencyDelta, ItemDelta, SavedSession

__all__ = ["HISTORY_FILE_NAME", "SessionHistory", "format_timestamp"]

logger = logging.getLogger(__name__)

HISTORY_FILE_NAME = "history.json"


def format_timestamp(moment: datetime) -> str:
    """Return ``moment`` as ``YYYY-MM-DDTHH:MM:SSZ`` in UTC."""

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class SessionHistory:
    """Thread-safe, append-only list of saved sessions.

    Sessions are stored oldest first on disk and returned newest first by
    :meth:`get_all`. A missing or corrupt file is treated as empty history.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        if path is None:
            path = data_dir() / HISTORY_FILE_NAME
        self.path = Path(path)
        self._lock = Lock()
        self._sessions: List[SavedSession] = []

    def _persist_locked(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = [session.to_dict() for session in self._sessions]
        with self.path.open("w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2)

    def load(self) -> int:
        """Reload history from disk and return the number of sessions."""

        sessions: List[SavedSession] = []
        if self.path.exists():
            try:
                with self.path.open("r", encoding="utf-8") as handle:
                    raw: Any = json.load(handle)
            except (OSError, ValueError) as exc:
                logger.warning("Ignoring unreadable history %s: %s", self.path, exc)
                raw = []
            if isinstance(raw, list):
                sessions = [SavedSession.from_dict(entry) for entry in raw if isinstance(entry, dict)]
        with self._lock:
            self._sessions = sessions
        return len(sessions)

    def save_session(
        self,
        start: datetime,
        end: datetime,
        items: Sequence[ItemDelta],
        currencies: Sequence[CurrencyDelta],
    ) -> SavedSession | None:
        """Record a finished session unless nothing changed during it."""

        has_content = any(item.delta != 0 for item in items) or any(
            currency.delta != 0 for currency in currencies
        )
        if not has_content:
            logger.debug("Session had no changes; not saved")
            return None

        with self._lock:
            session = SavedSession(
                label=f"Session {len(self._sessions) + 1}",
                start_timestamp=format_timestamp(start),
                end_timestamp=format_timestamp(end),
                items=tuple(items),
                currencies=tuple(currencies),
            )
            self._sessions.append(session)
            try:
                self._persist_locked()
            except OSError as exc:
                logger.warning("Failed to write history %s: %s", self.path, exc)
        logger.info("Saved %s", session.label)
        return session

    def get_all(self) -> List[SavedSession]:
        """Return every saved session, newest first."""

        with self._lock:
            return list(reversed(self._sessions))
