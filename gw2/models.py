"""Value objects returned by the GW2 web API client.

Everything here is immutable so a :class:`Snapshot` can be handed from the
polling thread to any number of readers without copying.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping


def _as_int(value: Any, default: int = 0) -> int:
    """Lenient ``int()`` for optional API fields."""

    try:
        return int(value)
    except (TypeError, ValueError):
        return default


class KeyStatus(Enum):
    """Result of checking an API key against ``/v2/tokeninfo``."""

    UNKNOWN = "unknown"
    VALID = "valid"
    INVALID = "invalid"
    # Key exists but lacks the "inventories" or "wallet" scope.
    NO_PERMISSIONS = "no_permissions"


class LocationKind(Enum):
    BAG_SLOT = "bag_slot"
    MATERIAL_STORAGE = "material_storage"
    BANK = "bank"
    SHARED_SLOTS = "shared_slots"


@dataclass(frozen=True, slots=True)
class StorageLocation:
    """Where a stack was first seen while merging a snapshot.

    Only bag slots carry an index. Locations are a merge-time detail and
    never influence deltas.
    """

    kind: LocationKind
    slot: int | None = None

    @classmethod
    def bag_slot(cls, index: int) -> "StorageLocation":
        return cls(LocationKind.BAG_SLOT, int(index))


MATERIAL_STORAGE = StorageLocation(LocationKind.MATERIAL_STORAGE)
BANK = StorageLocation(LocationKind.BANK)
SHARED_SLOTS = StorageLocation(LocationKind.SHARED_SLOTS)


@dataclass(frozen=True, slots=True)
class WalletEntry:
    currency_id: int
    value: int


@dataclass(frozen=True, slots=True)
class ItemStack:
    item_id: int
    count: int
    location: StorageLocation


@dataclass(frozen=True, slots=True)
class Snapshot:
    """One merged, point-in-time read of an account."""

    wallet: tuple[WalletEntry, ...] = ()
    inventory: tuple[ItemStack, ...] = ()

    def wallet_map(self) -> dict[int, int]:
        return {entry.currency_id: entry.value for entry in self.wallet}

    def item_counts(self) -> dict[int, int]:
        counts: dict[int, int] = {}
        for stack in self.inventory:
            counts[stack.item_id] = counts.get(stack.item_id, 0) + stack.count
        return counts


@dataclass(frozen=True, slots=True)
class ItemInfo:
    id: int
    name: str = ""
    rarity: str = ""
    icon: str = ""
    chat_link: str = ""
    description: str = ""
    type: str = ""
    vendor_value: int = 0

    @classmethod
    def from_json(cls, payload: Mapping[str, Any]) -> "ItemInfo":
        return cls(
            id=int(payload.get("id", 0)),
            name=str(payload.get("name") or ""),
            rarity=str(payload.get("rarity") or ""),
            icon=str(payload.get("icon") or ""),
            chat_link=str(payload.get("chat_link") or ""),
            description=str(payload.get("description") or ""),
            type=str(payload.get("type") or ""),
            vendor_value=_as_int(payload.get("vendor_value")),
        )


@dataclass(frozen=True, slots=True)
class CurrencyInfo:
    id: int
    name: str = ""
    icon: str = ""
    description: str = ""
    order: int = 0

    @classmethod
    def from_json(cls, payload: Mapping[str, Any]) -> "CurrencyInfo":
        return cls(
            id=int(payload.get("id", 0)),
            name=str(payload.get("name") or ""),
            icon=str(payload.get("icon") or ""),
            description=str(payload.get("description") or ""),
            order=_as_int(payload.get("order")),
        )


@dataclass(frozen=True, slots=True)
class ItemDelta:
    """Display row for one item's change over the current session."""

    id: int
    name: str
    delta: int
    rarity: str = ""
    chat_link: str = ""
    description: str = ""
    type: str = ""
    vendor_value: int = 0
    icon: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "rarity": self.rarity,
            "delta": self.delta,
            "type": self.type,
            "description": self.description,
            "vendorValue": self.vendor_value,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ItemDelta":
        return cls(
            id=int(data.get("id", 0)),
            name=str(data.get("name") or ""),
            delta=int(data.get("delta", 0)),
            rarity=str(data.get("rarity") or ""),
            type=str(data.get("type") or ""),
            description=str(data.get("description") or ""),
            vendor_value=int(data.get("vendorValue") or 0),
        )


@dataclass(frozen=True, slots=True)
class CurrencyDelta:
    id: int
    name: str
    delta: int
    icon: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "delta": self.delta}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CurrencyDelta":
        return cls(
            id=int(data.get("id", 0)),
            name=str(data.get("name") or ""),
            delta=int(data.get("delta", 0)),
        )


@dataclass(frozen=True, slots=True)
class SavedSession:
    label: str
    start_timestamp: str
    end_timestamp: str
    items: tuple[ItemDelta, ...] = field(default_factory=tuple)
    currencies: tuple[CurrencyDelta, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "startTimestamp": self.start_timestamp,
            "endTimestamp": self.end_timestamp,
            "items": [item.to_dict() for item in self.items],
            "currencies": [currency.to_dict() for currency in self.currencies],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SavedSession":
        items = data.get("items") or []
        currencies = data.get("currencies") or []
        return cls(
            label=str(data.get("label") or ""),
            start_timestamp=str(data.get("startTimestamp") or ""),
            end_timestamp=str(data.get("endTimestamp") or ""),
            items=tuple(ItemDelta.from_dict(i) for i in items if isinstance(i, Mapping)),
            currencies=tuple(
                CurrencyDelta.from_dict(c) for c in currencies if isinstance(c, Mapping)
            ),
        )


__all__ = [
    "BANK",
    "CurrencyDelta",
    "CurrencyInfo",
    "ItemDelta",
    "ItemInfo",
    "ItemStack",
    "KeyStatus",
    "LocationKind",
    "MATERIAL_STORAGE",
    "SHARED_SLOTS",
    "SavedSession",
    "Snapshot",
    "StorageLocation",
    "WalletEntry",
]
