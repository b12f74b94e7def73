from __future__ import annotations

"""Background polling of the GW2 API on a single worker thread.

Exactly one snapshot fetch is ever in flight. The worker sleeps on a
condition variable for the configured interval, can be woken early with
:meth:`SnapshotPoller.poll_now`, and hands each successful snapshot to the
registered consumer synchronously before it goes back to sleep.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Protocol, Union

from .client import GW2Client
from .models import Snapshot

__all__ = ["IdentitySource", "SnapshotPoller", "StaticIdentity"]

logger = logging.getLogger(__name__)

SnapshotConsumer = Callable[[Snapshot], None]
KeySource = Union[str, Callable[[], "str | None"]]
IntervalSource = Union[float, Callable[[], float]]


class IdentitySource(Protocol):
    """Supplies the active character and map, e.g. from the game's link data."""

    def character_name(self) -> str:
        ...

    def map_id(self) -> int:
        ...


@dataclass
class StaticIdentity:
    """Settable identity used when no live game link is available."""

    name: str = ""
    current_map_id: int = 0

    def character_name(self) -> str:
        return self.name

    def map_id(self) -> int:
        return self.current_map_id


class SnapshotPoller:
    """Fire :meth:`GW2Client.fetch_snapshot` every ``interval`` seconds.

    Parameters
    ----------
    client:
        API client used for fetching.
    api_key:
        The API key, or a callable returning the current key so settings
        changes take effect on the next cycle. Cycles are skipped while no key
        is configured.
    interval:
        Poll interval in seconds, or a callable returning it.
    identity:
        Optional source of the active character name.
    """

    def __init__(
        self,
        client: GW2Client,
        api_key: KeySource,
        interval: IntervalSource = 30.0,
        identity: IdentitySource | None = None,
    ) -> None:
        self._client = client
        self._api_key = api_key
        self._interval = interval
        self.identity = identity
        self._cond = threading.Condition()
        self._running = False
        self._wake_requested = False
        self._consumer: SnapshotConsumer | None = None
        self._thread: threading.Thread | None = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _current_key(self) -> str:
        key = self._api_key() if callable(self._api_key) else self._api_key
        return (key or "").strip()

    def _current_interval(self) -> float:
        value = self._interval() if callable(self._interval) else self._interval
        return max(float(value), 0.0)

    def _run(self) -> None:
        logger.info("Snapshot poller started")
        while True:
            with self._cond:
                self._cond.wait_for(
                    lambda: self._wake_requested or not self._running,
                    timeout=self._current_interval(),
                )
                if not self._running:
                    break
                self._wake_requested = False
            self._poll_once()
        logger.info("Snapshot poller stopped")

    def _poll_once(self) -> None:
        api_key = self._current_key()
        if not api_key:
            logger.debug("No API key configured; skipping poll")
            return

        name = self.identity.character_name() if self.identity is not None else ""
        snapshot = self._client.fetch_snapshot(api_key, name or "")
        if snapshot is None:
            logger.debug("No snapshot this cycle")
            return

        with self._cond:
            if not self._running:
                return
            consumer = self._consumer
        if consumer is None:
            return
        try:
            consumer(snapshot)
        except Exception:
            logger.exception("Snapshot consumer failed")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def start(self, consumer: SnapshotConsumer) -> None:
        """Start the worker thread. A second call while running is a no-op."""

        with self._cond:
            if self._running:
                return
            self._running = True
            self._wake_requested = False
            self._consumer = consumer
            thread = threading.Thread(target=self._run, name="gw2-poller", daemon=True)
            self._thread = thread
            thread.start()

    def stop(self) -> None:
        """Stop and join the worker. Safe to call multiple times.

        Once this returns the consumer will not be invoked again.
        """

        with self._cond:
            if not self._running:
                return
            self._running = False
            self._wake_requested = True
            thread = self._thread
            self._thread = None
            self._cond.notify_all()

        if thread is not None and thread is not threading.current_thread():
            thread.join()

    def poll_now(self) -> None:
        """Wake the worker so it fetches immediately."""

        with self._cond:
            if not self._running:
                return
            self._wake_requested = True
            self._cond.notify_all()

    def is_running(self) -> bool:
        return self._running
