from __future__ import annotations

"""Read-only client for the Guild Wars 2 web API.

Only the handful of resources the loot tracker needs are covered: token
introspection, the account wallet, the character/bank/material/shared
inventories and the item and currency catalogs.

Every public method absorbs transport, status and JSON failures and reports
them as "no data" (``None`` or an empty list). Callers decide which missing
pieces are fatal; :meth:`GW2Client.fetch_snapshot` only gives up when the
wallet cannot be read.
"""

import logging
import os
from typing import Any, Callable, Iterable, Iterator, Sequence, TypeVar
from urllib.parse import quote

import requests
from requests import Response
from requests.exceptions import RequestException, Timeout

from .models import (
    BANK,
    MATERIAL_STORAGE,
    SHARED_SLOTS,
    CurrencyInfo,
    ItemInfo,
    ItemStack,
    KeyStatus,
    Snapshot,
    StorageLocation,
    WalletEntry,
)

__all__ = ["GW2Client", "GW2ApiError", "MAX_BATCH_SIZE", "REQUIRED_PERMISSIONS"]

logger = logging.getLogger(__name__)

_API_URL = os.getenv("GW2_API_URL", "https://api.guildwars2.com").rstrip("/")
try:
    _TIMEOUT = float(os.getenv("GW2_API_TIMEOUT", "30"))
except ValueError:
    _TIMEOUT = 30.0
_USER_AGENT = "gw2-loot-tracker/1.0"

# The API rejects ``ids=`` lists longer than this.
MAX_BATCH_SIZE = 200

REQUIRED_PERMISSIONS = frozenset({"inventories", "wallet"})

T = TypeVar("T")


class GW2ApiError(RuntimeError):
    """Raised when the GW2 API answers with a non-200 status."""

    def __init__(self, status: int, path: str) -> None:
        super().__init__(f"GW2 API HTTP {status}: {path}")
        self.status = status
        self.path = path


def _chunked(values: Sequence[T], size: int) -> Iterator[list[T]]:
    for offset in range(0, len(values), size):
        yield list(values[offset : offset + size])


def _unique_ids(ids: Iterable[int]) -> list[int]:
    seen: set[int] = set()
    result: list[int] = []
    for value in ids:
        ident = int(value)
        if ident in seen:
            continue
        seen.add(ident)
        result.append(ident)
    return result


def _coerce_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class GW2Client:
    """Blocking GW2 API client.

    Parameters
    ----------
    session:
        Optional :class:`requests.Session` (or any object with a compatible
        ``get`` method). A fresh session is created when omitted.
    base_url:
        API root, defaults to ``GW2_API_URL`` or the public endpoint.
    timeout:
        Per-request timeout in seconds.
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self._session = session if session is not None else requests.Session()
        self.base_url = (base_url or _API_URL).rstrip("/")
        self.timeout = _TIMEOUT if timeout is None else float(timeout)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------
    def _request(
        self,
        path: str,
        api_key: str = "",
        params: dict[str, str] | None = None,
    ) -> Response:
        headers = {"User-Agent": _USER_AGENT, "Accept": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        logger.debug("GET %s params=%s", path, params)
        resp = self._session.get(
            f"{self.base_url}{path}",
            headers=headers,
            params=params,
            timeout=self.timeout,
        )
        if resp.status_code != 200:
            raise GW2ApiError(resp.status_code, path)
        return resp

    def _get_json(
        self,
        path: str,
        api_key: str = "",
        params: dict[str, str] | None = None,
    ) -> Any | None:
        """Return the decoded body of ``path`` or ``None`` when unavailable."""

        try:
            resp = self._request(path, api_key, params)
        except Timeout:
            logger.warning("Request to %s timed out", path)
            return None
        except GW2ApiError as exc:
            logger.warning("%s", exc)
            return None
        except RequestException as exc:
            logger.warning("Request to %s failed: %s", path, exc)
            return None

        if not (resp.text or "").strip():
            logger.warning("Empty response body from %s", path)
            return None
        try:
            return resp.json()
        except ValueError:
            logger.warning("Invalid JSON payload from %s", path)
            return None

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------
    def validate_key(self, api_key: str) -> KeyStatus:
        """Check ``api_key`` against ``/v2/tokeninfo``."""

        api_key = (api_key or "").strip()
        if not api_key:
            return KeyStatus.INVALID

        payload = self._get_json("/v2/tokeninfo", api_key)
        if not isinstance(payload, dict) or "text" in payload:
            return KeyStatus.INVALID

        permissions = payload.get("permissions")
        if not isinstance(permissions, list):
            permissions = []
        granted = {str(p) for p in permissions}
        if not REQUIRED_PERMISSIONS.issubset(granted):
            return KeyStatus.NO_PERMISSIONS
        return KeyStatus.VALID

    # ------------------------------------------------------------------
    # Account snapshot
    # ------------------------------------------------------------------
    def fetch_wallet(self, api_key: str) -> list[WalletEntry] | None:
        payload = self._get_json("/v2/account/wallet", api_key)
        if not isinstance(payload, list):
            return None
        wallet: list[WalletEntry] = []
        for entry in payload:
            if not isinstance(entry, dict):
                continue
            currency_id = _coerce_int(entry.get("id"))
            value = _coerce_int(entry.get("value"))
            if currency_id is None or value is None:
                continue
            wallet.append(WalletEntry(currency_id, value))
        return wallet

    def fetch_snapshot(self, api_key: str, character_name: str = "") -> Snapshot | None:
        """Fetch and merge the wallet and every inventory-like resource.

        The wallet is mandatory; ``None`` is returned when it cannot be read.
        Character bags, material storage, the bank and shared inventory slots
        are optional and each is skipped independently when unavailable.
        Stacks of the same item across locations are summed so moving an item
        between them never shows up as a change.
        """

        wallet = self.fetch_wallet(api_key)
        if wallet is None:
            return None

        merged: dict[int, list[Any]] = {}

        if character_name:
            encoded = quote(character_name, safe="-_.~")
            bags = self._get_json(f"/v2/characters/{encoded}/inventory", api_key)
            if isinstance(bags, dict):
                self._merge_bags(merged, bags.get("bags"))
            else:
                logger.debug("Character inventory unavailable for %r", character_name)

        for path, location in (
            ("/v2/account/materials", MATERIAL_STORAGE),
            ("/v2/account/bank", BANK),
            ("/v2/account/inventory", SHARED_SLOTS),
        ):
            payload = self._get_json(path, api_key)
            if isinstance(payload, list):
                self._merge_slots(merged, payload, location)

        inventory = tuple(
            ItemStack(item_id, count, location)
            for item_id, (count, location) in merged.items()
        )
        return Snapshot(wallet=tuple(wallet), inventory=inventory)

    @staticmethod
    def _merge_stack(
        merged: dict[int, list[Any]],
        item_id: int,
        count: int,
        location: StorageLocation,
    ) -> None:
        if count <= 0:
            return
        existing = merged.get(item_id)
        if existing is None:
            merged[item_id] = [count, location]
        else:
            existing[0] += count

    def _merge_bags(self, merged: dict[int, list[Any]], bags: Any) -> None:
        if not isinstance(bags, list):
            return
        slot = 0
        for bag in bags:
            if not isinstance(bag, dict):
                # Empty bag slot still occupies an index.
                slot += 1
                continue
            contents = bag.get("inventory")
            if not isinstance(contents, list):
                continue
            for item in contents:
                if isinstance(item, dict):
                    item_id = _coerce_int(item.get("id"))
                    count = _coerce_int(item.get("count"))
                    if item_id is not None and count is not None:
                        self._merge_stack(
                            merged, item_id, count, StorageLocation.bag_slot(slot)
                        )
                slot += 1

    def _merge_slots(
        self,
        merged: dict[int, list[Any]],
        slots: list[Any],
        location: StorageLocation,
    ) -> None:
        for entry in slots:
            if not isinstance(entry, dict):
                continue
            item_id = _coerce_int(entry.get("id"))
            count = _coerce_int(entry.get("count", 0))
            if item_id is None or count is None:
                continue
            self._merge_stack(merged, item_id, count, location)

    # ------------------------------------------------------------------
    # Reference data
    # ------------------------------------------------------------------
    def _fetch_batched(
        self,
        path: str,
        ids: Iterable[int],
        factory: Callable[[dict[str, Any]], T],
    ) -> list[T]:
        unique = _unique_ids(ids)
        results: list[T] = []
        for batch in _chunked(unique, MAX_BATCH_SIZE):
            params = {"ids": ",".join(str(i) for i in batch), "lang": "en"}
            payload = self._get_json(path, params=params)
            if not isinstance(payload, list):
                logger.warning("Skipping %d ids from %s", len(batch), path)
                continue
            for entry in payload:
                if not isinstance(entry, dict) or _coerce_int(entry.get("id")) is None:
                    continue
                try:
                    results.append(factory(entry))
                except (TypeError, ValueError) as exc:
                    logger.debug("Skipping malformed entry from %s: %s", path, exc)
        return results

    def fetch_item_details(self, ids: Iterable[int]) -> list[ItemInfo]:
        """Look up item metadata, 200 ids per request."""

        return self._fetch_batched("/v2/items", ids, ItemInfo.from_json)

    def fetch_currency_details(self, ids: Iterable[int]) -> list[CurrencyInfo]:
        """Look up wallet currency metadata, 200 ids per request."""

        return self._fetch_batched("/v2/currencies", ids, CurrencyInfo.from_json)

    def fetch_all_currencies(self) -> list[CurrencyInfo]:
        payload = self._get_json("/v2/currencies")
        if not isinstance(payload, list):
            return []
        ids = [i for i in (_coerce_int(v) for v in payload) if i is not None]
        return self.fetch_currency_details(ids)
