from .config import Mode, WishlistConfig
from .controller import Phase, SyncState, WishlistController
from .errors import ErrorKind, StorageError, WishlistError
from .merge import (
    dedupe,
    find_new,
    merge,
    sort_by_newest,
    sort_by_oldest,
    sort_by_price_high_to_low,
    sort_by_price_low_to_high,
    sort_by_title,
)
from .logger import setup_logging
from .models import Image, Item, ItemKey, Price, ProductInfo, make_key
from .remote import Action, RemoteSyncClient, SyncOutcome
from .storage import ByteStore, LocalStore, MemoryByteStore, SqliteByteStore

SORTERS = {
    "newest": sort_by_newest,
    "oldest": sort_by_oldest,
    "title": sort_by_title,
    "price_low_to_high": sort_by_price_low_to_high,
    "price_high_to_low": sort_by_price_high_to_low,
}

__all__ = [
    "Action",
    "ByteStore",
    "ErrorKind",
    "Image",
    "Item",
    "ItemKey",
    "LocalStore",
    "MemoryByteStore",
    "Mode",
    "Phase",
    "Price",
    "ProductInfo",
    "RemoteSyncClient",
    "SORTERS",
    "SqliteByteStore",
    "StorageError",
    "SyncOutcome",
    "SyncState",
    "WishlistConfig",
    "WishlistController",
    "WishlistError",
    "dedupe",
    "find_new",
    "make_key",
    "merge",
    "sort_by_newest",
    "sort_by_oldest",
    "sort_by_price_high_to_low",
    "sort_by_price_low_to_high",
    "setup_logging",
    "sort_by_title",
]
