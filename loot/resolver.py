from __future__ import annotations

"""Resolve item and currency ids into display metadata.

The resolver shares the session engine's lock. Methods ending in
``_locked`` expect the caller to hold it; everything else acquires it
itself and must be called without it. Network lookups always happen with
the lock released.
"""

import logging
import threading

from gw2.client import GW2Client
from gw2.models import CurrencyInfo, ItemInfo

__all__ = ["ReferenceResolver"]

logger = logging.getLogger(__name__)


class ReferenceResolver:
    def __init__(self, client: GW2Client, lock: threading.Lock | None = None) -> None:
        self._client = client
        self._lock = lock if lock is not None else threading.Lock()
        # Append-only for the lifetime of the process.
        self._items: dict[int, ItemInfo] = {}
        self._currencies: dict[int, CurrencyInfo] = {}
        self._pending_items: set[int] = set()
        self._pending_currencies: set[int] = set()
        self._resolving = False

    # ------------------------------------------------------------------
    # Lock-held helpers for the session engine
    # ------------------------------------------------------------------
    def queue_item_locked(self, item_id: int) -> bool:
        if item_id in self._items:
            return False
        self._pending_items.add(item_id)
        return True

    def queue_currency_locked(self, currency_id: int) -> bool:
        if currency_id in self._currencies:
            return False
        self._pending_currencies.add(currency_id)
        return True

    def has_pending_locked(self) -> bool:
        return bool(self._pending_items or self._pending_currencies)

    def item_info_locked(self, item_id: int) -> ItemInfo | None:
        return self._items.get(item_id)

    def currency_info_locked(self, currency_id: int) -> CurrencyInfo | None:
        return self._currencies.get(currency_id)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def pending(self) -> tuple[frozenset[int], frozenset[int]]:
        """Return copies of the pending item and currency id sets."""

        with self._lock:
            return frozenset(self._pending_items), frozenset(self._pending_currencies)

    def resolve_pending(self) -> int:
        """Fetch metadata for every pending id and return how many resolved.

        A call made while another pass is still running returns ``0``
        immediately. Ids the API did not return stay pending for the next
        pass.
        """

        with self._lock:
            if self._resolving:
                return 0
            items = sorted(self._pending_items)
            currencies = sorted(self._pending_currencies)
            if not items and not currencies:
                return 0
            self._resolving = True

        item_infos: list[ItemInfo] = []
        currency_infos: list[CurrencyInfo] = []
        try:
            if items:
                item_infos = self._client.fetch_item_details(items)
            if currencies:
                currency_infos = self._client.fetch_currency_details(currencies)
        finally:
            with self._lock:
                for info in item_infos:
                    self._items[info.id] = info
                    self._pending_items.discard(info.id)
                for info in currency_infos:
                    self._currencies[info.id] = info
                    self._pending_currencies.discard(info.id)
                self._resolving = False

        unresolved = len(items) + len(currencies) - len(item_infos) - len(currency_infos)
        if unresolved > 0:
            logger.debug("%d ids still pending after resolution", unresolved)
        return len(item_infos) + len(currency_infos)

    def load_all_currencies(self) -> int:
        """Merge the full currency catalog into the cache."""

        infos = self._client.fetch_all_currencies()
        with self._lock:
            for info in infos:
                self._currencies[info.id] = info
                self._pending_currencies.discard(info.id)
        logger.info("Loaded %d currencies", len(infos))
        return len(infos)

    def known_items(self) -> list[ItemInfo]:
        with self._lock:
            items = list(self._items.values())
        return sorted(items, key=lambda info: (info.name.lower(), info.id))

    def known_currencies(self) -> list[CurrencyInfo]:
        with self._lock:
            currencies = list(self._currencies.values())
        return sorted(currencies, key=lambda info: (info.name.lower(), info.id))
