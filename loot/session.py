from __future__ import annotations

"""Session delta engine.

:class:`LootSession` consumes snapshots delivered by the poller, keeps the
baseline they are compared against and the deltas accumulated since it was
taken. All state lives behind one lock; readers only ever receive copies.

The first snapshot ever seen, and the first one after :meth:`LootSession.start`,
becomes the new baseline instead of being diffed. While no session is active
snapshots keep arriving but leave the deltas untouched.
"""

import logging
import threading
import time
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Protocol, Sequence

from gw2.client import GW2Client
from gw2.models import CurrencyDelta, CurrencyInfo, ItemDelta, ItemInfo, Snapshot
from gw2.poller import IdentitySource, SnapshotPoller

from .autostart import AutoStartMode, AutoStartTrigger, parse_mode
from .resolver import ReferenceResolver

__all__ = ["HistorySink", "LootSession", "SessionState"]

logger = logging.getLogger(__name__)


class SessionState(Enum):
    NO_BASELINE = "no_baseline"
    BASELINE_ONLY = "baseline_only"
    ACTIVE = "active"


class HistorySink(Protocol):
    def save_session(
        self,
        start: datetime,
        end: datetime,
        items: Sequence[ItemDelta],
        currencies: Sequence[CurrencyDelta],
    ) -> Any:
        ...


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LootSession:
    """Track item and currency changes for one account.

    Parameters
    ----------
    client:
        API client used to resolve item/currency metadata.
    poller:
        Background poller feeding :meth:`handle_poll`. Optional so the engine
        can be driven directly with :meth:`on_snapshot`.
    history:
        Receives each finished session from :meth:`stop`.
    identity:
        Source of the current map id for ``ON_LOGIN`` auto-start. Defaults to
        the poller's identity.
    auto_start:
        Initial :class:`AutoStartMode`.
    clock:
        Returns the current UTC time; injectable for tests.
    """

    def __init__(
        self,
        client: GW2Client,
        poller: SnapshotPoller | None = None,
        history: HistorySink | None = None,
        *,
        identity: IdentitySource | None = None,
        auto_start: AutoStartMode = AutoStartMode.DISABLED,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._poller = poller
        self._history = history
        self._identity = identity if identity is not None else getattr(poller, "identity", None)
        self._clock = clock
        self._lock = threading.Lock()
        self._resolver = ReferenceResolver(client, self._lock)
        self._auto_start = AutoStartTrigger(parse_mode(auto_start))

        self._active = False
        self._has_baseline = False
        self._needs_baseline = False
        self._started_at: datetime | None = None
        self._started_monotonic = 0.0

        self._base_wallet: dict[int, int] = {}
        self._base_items: dict[int, int] = {}
        self._wallet_deltas: dict[int, int] = {}
        self._item_deltas: dict[int, int] = {}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def init(self) -> None:
        """Start polling; the first snapshot primes the baseline."""

        if self._poller is None:
            raise RuntimeError("LootSession has no poller to start")
        self._poller.start(self.handle_poll)

    def start(self) -> None:
        """Begin a fresh session against the next snapshot."""

        self._start()
        if self._poller is not None:
            self._poller.poll_now()

    def _start(self) -> None:
        with self._lock:
            self._wallet_deltas.clear()
            self._item_deltas.clear()
            self._active = True
            self._needs_baseline = True
            self._started_at = self._clock()
            self._started_monotonic = time.monotonic()
        logger.info("Session started")

    def stop(self) -> None:
        """Stop accumulating and hand the finished session to history.

        Polling keeps running so the baseline stays warm for the next start.
        """

        with self._lock:
            was_active = self._active
            started_at = self._started_at
            self._active = False
            # Rows are taken with the flag flip so a concurrent start() cannot
            # clear them first.
            items = self._item_rows_locked()
            currencies = self._currency_rows_locked()
        if not was_active:
            return
        logger.info("Session stopped")

        if self._history is None or started_at is None:
            return
        self._history.save_session(started_at, self._clock(), items, currencies)

    def shutdown(self) -> None:
        """Stop the poller and forget the baseline and all deltas."""

        if self._poller is not None:
            self._poller.stop()
        with self._lock:
            self._active = False
            self._has_baseline = False
            self._needs_baseline = False
            self._started_at = None
            self._base_wallet = {}
            self._base_items = {}
            self._wallet_deltas.clear()
            self._item_deltas.clear()
            self._auto_start.reset()

    # ------------------------------------------------------------------
    # Snapshot handling (poller thread)
    # ------------------------------------------------------------------
    def handle_poll(self, snapshot: Snapshot) -> None:
        """Poller consumer: evaluate auto-start, then apply ``snapshot``."""

        self.check_auto_start()
        self.on_snapshot(snapshot)

    def check_auto_start(self, now: datetime | None = None) -> bool:
        """Restart the session when the auto-start condition fires."""

        map_id = self._identity.map_id() if self._identity is not None else 0
        now = now or self._clock()
        with self._lock:
            fired = self._auto_start.observe(map_id, now)
            mode = self._auto_start.mode
        if not fired:
            return False
        logger.info("Auto-start (%s) triggered a new session", mode.name.lower())
        self.stop()
        self._start()
        return True

    def on_snapshot(self, snapshot: Snapshot) -> None:
        wallet = snapshot.wallet_map()
        items = snapshot.item_counts()
        resolver = self._resolver

        with self._lock:
            if not self._has_baseline or self._needs_baseline:
                self._base_wallet = wallet
                self._base_items = items
                self._has_baseline = True
                self._needs_baseline = False
                for currency_id in wallet:
                    resolver.queue_currency_locked(currency_id)
                logger.debug(
                    "Baseline set: %d currencies, %d items", len(wallet), len(items)
                )
            elif self._active:
                base_wallet = self._base_wallet
                base_items = self._base_items
                for currency_id, value in wallet.items():
                    self._wallet_deltas[currency_id] = value - base_wallet.get(currency_id, 0)
                    resolver.queue_currency_locked(currency_id)
                for item_id, count in items.items():
                    delta = count - base_items.get(item_id, 0)
                    # Unchanged items keep whatever was recorded last.
                    if delta != 0:
                        self._item_deltas[item_id] = delta
                        resolver.queue_item_locked(item_id)
                for item_id, base in base_items.items():
                    if item_id not in items:
                        self._item_deltas[item_id] = -base
                        resolver.queue_item_locked(item_id)
            else:
                for currency_id in wallet:
                    resolver.queue_currency_locked(currency_id)
            needs_resolve = resolver.has_pending_locked()

        if needs_resolve:
            resolver.resolve_pending()

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------
    @property
    def state(self) -> SessionState:
        with self._lock:
            if not self._has_baseline:
                return SessionState.NO_BASELINE
            return SessionState.ACTIVE if self._active else SessionState.BASELINE_ONLY

    def is_active(self) -> bool:
        with self._lock:
            return self._active

    def has_baseline(self) -> bool:
        with self._lock:
            return self._has_baseline

    def is_waiting_for_baseline(self) -> bool:
        with self._lock:
            return self._active and (not self._has_baseline or self._needs_baseline)

    def elapsed_time(self) -> timedelta:
        with self._lock:
            if not self._active:
                return timedelta(0)
            started = self._started_monotonic
        return timedelta(seconds=int(time.monotonic() - started))

    @property
    def started_at(self) -> datetime | None:
        with self._lock:
            return self._started_at

    @property
    def auto_start_mode(self) -> AutoStartMode:
        with self._lock:
            return self._auto_start.mode

    def set_auto_start_mode(self, mode: AutoStartMode | int | str) -> None:
        with self._lock:
            self._auto_start.mode = parse_mode(mode)

    def get_item_deltas(self) -> list[ItemDelta]:
        """Item changes, gains first. Zero rows are included."""

        with self._lock:
            return self._item_rows_locked()

    def get_currency_deltas(self) -> list[CurrencyDelta]:
        """Currency changes, gains first. Unchanged currencies are omitted."""

        with self._lock:
            return self._currency_rows_locked()

    def _item_rows_locked(self) -> list[ItemDelta]:
        rows = [
            self._item_row(item_id, delta, self._resolver.item_info_locked(item_id))
            for item_id, delta in self._item_deltas.items()
        ]
        rows.sort(key=lambda row: row.delta, reverse=True)
        return rows

    def _currency_rows_locked(self) -> list[CurrencyDelta]:
        rows = [
            self._currency_row(
                currency_id, delta, self._resolver.currency_info_locked(currency_id)
            )
            for currency_id, delta in self._wallet_deltas.items()
            if delta != 0
        ]
        rows.sort(key=lambda row: row.delta, reverse=True)
        return rows

    def get_known_items(self) -> list[ItemInfo]:
        return self._resolver.known_items()

    def get_known_currencies(self) -> list[CurrencyInfo]:
        return self._resolver.known_currencies()

    def pending_ids(self) -> tuple[frozenset[int], frozenset[int]]:
        return self._resolver.pending()

    def load_currency_catalog(self) -> int:
        """Resolve the whole currency catalog, e.g. for a profile editor."""

        return self._resolver.load_all_currencies()

    @staticmethod
    def _item_row(item_id: int, delta: int, info: ItemInfo | None) -> ItemDelta:
        if info is None:
            return ItemDelta(id=item_id, name=f"Item #{item_id}", delta=delta)
        return ItemDelta(
            id=item_id,
            name=info.name or f"Item #{item_id}",
            delta=delta,
            rarity=info.rarity,
            chat_link=info.chat_link,
            description=info.description,
            type=info.type,
            vendor_value=info.vendor_value,
            icon=info.icon,
        )

    @staticmethod
    def _currency_row(currency_id: int, delta: int, info: CurrencyInfo | None) -> CurrencyDelta:
        if info is None:
            return CurrencyDelta(id=currency_id, name=f"Currency #{currency_id}", delta=delta)
        return CurrencyDelta(
            id=currency_id,
            name=info.name or f"Currency #{currency_id}",
            delta=delta,
            icon=info.icon,
        )
