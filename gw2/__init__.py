"""Guild Wars 2 web API access for the loot tracker."""

from .client import GW2ApiError, GW2Client, MAX_BATCH_SIZE
from .models import (
    CurrencyDelta,
    CurrencyInfo,
    ItemDelta,
    ItemInfo,
    ItemStack,
    KeyStatus,
    SavedSession,
    Snapshot,
    StorageLocation,
    WalletEntry,
)
from .poller import IdentitySource, SnapshotPoller, StaticIdentity

__all__ = [
    "CurrencyDelta",
    "CurrencyInfo",
    "GW2ApiError",
    "GW2Client",
    "IdentitySource",
    "ItemDelta",
    "ItemInfo",
    "ItemStack",
    "KeyStatus",
    "MAX_BATCH_SIZE",
    "SavedSession",
    "Snapshot",
    "SnapshotPoller",
    "StaticIdentity",
    "StorageLocation",
    "WalletEntry",
]
