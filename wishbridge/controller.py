import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from .config import Mode, WishlistConfig
from .errors import ErrorKind, StorageError, WishlistError
from .logger import get_logger
from .merge import dedupe, find_new, sort_by_newest
from .models import Item, ItemKey, ProductInfo, make_key
from .remote import Action, RemoteSyncClient, SyncOutcome
from .storage import LocalStore
from .validation import now_utc_iso, sanitize_input

logger = get_logger(__name__)


class Phase(Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"


@dataclass
class SyncState:
    items: List[Item] = field(default_factory=list)
    mode: Mode = Mode.GUEST
    is_loading: bool = False
    is_syncing: bool = False
    last_error: Optional[WishlistError] = None


class WishlistController:
    """
    Owns the wishlist for one session.

    Guest sessions keep the local store authoritative; identified sessions
    write through the remote client. Mutations are applied in memory first
    and undone if the remote store rejects them. Operations run one at a
    time, and none of them raise: failures land in `error`.
    """

    def __init__(
        self,
        config: WishlistConfig,
        store: Optional[LocalStore] = None,
        client: Optional[RemoteSyncClient] = None,
        on_add: Optional[Callable[[Item], None]] = None,
        on_remove: Optional[Callable[[ItemKey], None]] = None,
        on_error: Optional[Callable[[WishlistError], None]] = None,
        on_sync: Optional[Callable[[List[Item]], None]] = None,
    ):
        self.config = config
        self.store = store if store is not None else LocalStore()
        self._owns_client = client is None
        self.client = client if client is not None else RemoteSyncClient.from_config(config)
        self.on_add = on_add
        self.on_remove = on_remove
        self.on_error = on_error
        self.on_sync = on_sync

        self.state = SyncState(mode=config.mode)
        self.phase = Phase.UNINITIALIZED
        self._lock = asyncio.Lock()

    # Read side

    @property
    def items(self) -> List[Item]:
        return list(self.state.items)

    @property
    def count(self) -> int:
        return len(self.state.items)

    @property
    def mode(self) -> Mode:
        return self.state.mode

    @property
    def is_loading(self) -> bool:
        return self.state.is_loading

    @property
    def is_syncing(self) -> bool:
        return self.state.is_syncing

    @property
    def error(self) -> Optional[WishlistError]:
        return self.state.last_error

    def is_wishlisted(self, product_id: str, variant_id: Optional[str] = None) -> bool:
        return self._has(make_key(product_id, variant_id))

    # Operations

    async def init(self) -> None:
        async with self._lock:
            await self._run("init", self._init)

    async def reinit(self, config: WishlistConfig) -> None:
        """Swap in a new configuration (login, logout) and load again."""
        async with self._lock:
            self.config = config
            if self._owns_client:
                self.client.close()
                self.client = RemoteSyncClient.from_config(config)
            self.state = SyncState(mode=config.mode)
            self.phase = Phase.UNINITIALIZED
            await self._run("init", self._init)

    async def add(self, product: ProductInfo) -> None:
        async with self._lock:
            await self._run("add", self._add, product)

    async def remove(self, product_id: str, variant_id: Optional[str] = None) -> None:
        async with self._lock:
            await self._run("remove", self._remove, make_key(product_id, variant_id))

    async def toggle(self, product: ProductInfo) -> None:
        async with self._lock:
            if self._has(product.key):
                await self._run("remove", self._remove, product.key)
            else:
                await self._run("add", self._add, product)

    async def clear(self) -> None:
        async with self._lock:
            await self._run("clear", self._clear)

    async def sync(self) -> None:
        """Re-read the guest wishlist and reconcile it with the account now."""
        async with self._lock:
            await self._run("sync", self._sync)

    # Internals

    async def _run(self, op: str, fn, *args) -> None:
        self.state.last_error = None
        try:
            await fn(*args)
        except Exception as e:
            logger.exception("Unexpected failure during %s: %s", op, e)
            self._fail(WishlistError.of(ErrorKind.UNKNOWN))

    async def _init(self) -> None:
        self.phase = Phase.LOADING
        self.state.is_loading = True
        try:
            local = self.store.load()
            # Guest items stay visible until a merge replaces them.
            self.state.items = list(local)

            if self.mode is Mode.GUEST:
                if not self.config.enable_guest_mode:
                    logger.warning("No customer identity and guest wishlists are disabled.")
                    self.state.items = []
                    self._fail(WishlistError.of(ErrorKind.NOT_CONFIGURED))
                    return
                logger.info("Loaded %d guest wishlist item(s).", len(local))
                return

            if not self.config.can_reach_remote:
                logger.warning(
                    "Customer %s has no API credential; keeping %d local item(s) in memory only.",
                    self.config.customer_id, len(local),
                )
                return

            if local and self.config.enable_auto_merge:
                logger.info("Merging %d guest item(s) into customer %s.", len(local), self.config.customer_id)
                await self._merge(local)
        finally:
            self.state.is_loading = False
            self.phase = Phase.READY

    async def _merge(self, local: List[Item]) -> None:
        self.state.is_syncing = True
        try:
            outcome = await self.client.merge_sync(self.config.customer_id, local)
        finally:
            self.state.is_syncing = False

        if not outcome.ok:
            self._fail_remote("merge", outcome)
            return

        if outcome.items is None:
            logger.warning("Merge succeeded without returning items; leaving local storage as-is.")
            return

        before = dedupe(self.state.items + local)
        self.state.items = sort_by_newest(dedupe(outcome.items))
        self.store.clear()
        self.store.set_last_sync_marker(now_utc_iso())
        logger.info("Wishlist merged: %d item(s) on the account.", len(self.state.items))
        self._notify(self.on_sync, find_new(before, self.state.items))

    async def _add(self, product: ProductInfo) -> None:
        if not product.id:
            logger.error("Refusing to add a product without an id: %r", product)
            self._fail(WishlistError.of(ErrorKind.UNKNOWN, "Cannot add a product without an id."))
            return
        if not self._writable():
            return

        item = self._build_item(product)
        if self._has(item.key):
            logger.debug("%s already wishlisted.", item.key)
            return

        self.state.items.insert(0, item)

        if self.mode is Mode.GUEST:
            try:
                self.store.add_item(item)
            except StorageError as e:
                logger.warning("Guest item %s kept in memory only: %s", item.key, e)
            self._notify(self.on_add, item)
            return

        outcome: Optional[SyncOutcome] = None
        self.state.is_syncing = True
        try:
            outcome = await self.client.update(self.config.customer_id, Action.ADD, item)
        finally:
            self.state.is_syncing = False
            if outcome is None or not outcome.ok:
                self._discard(item.key)

        if not outcome.ok:
            self._fail_remote("add", outcome)
            return
        self._notify(self.on_add, item)

    async def _remove(self, key: ItemKey) -> None:
        if not self._writable():
            return

        index = next((i for i, it in enumerate(self.state.items) if it.key == key), None)
        removed = self.state.items.pop(index) if index is not None else None

        if self.mode is Mode.GUEST:
            try:
                self.store.remove_item(key)
            except StorageError as e:
                logger.warning("Guest item %s removed in memory only: %s", key, e)
            self._notify(self.on_remove, key)
            return

        outcome: Optional[SyncOutcome] = None
        self.state.is_syncing = True
        try:
            outcome = await self.client.update(self.config.customer_id, Action.REMOVE, key)
        finally:
            self.state.is_syncing = False
            failed = outcome is None or not outcome.ok
            if failed and removed is not None and not self._has(key):
                self.state.items.insert(min(index, len(self.state.items)), removed)

        if not outcome.ok:
            self._fail_remote("remove", outcome)
            return
        self._notify(self.on_remove, key)

    async def _clear(self) -> None:
        self.state.items = []
        if self.mode is Mode.GUEST:
            self.store.clear()
        else:
            # No bulk delete on the account API.
            logger.info("Cleared in-memory wishlist for customer %s.", self.config.customer_id)

    async def _sync(self) -> None:
        if not self.config.can_reach_remote:
            logger.warning("Sync requested without a customer identity and credential.")
            self._fail(WishlistError.of(ErrorKind.NOT_CONFIGURED))
            return
        await self._merge(self.store.load())

    def _build_item(self, product: ProductInfo) -> Item:
        return Item(
            product_id=product.id,
            variant_id=product.variant_id,
            title=sanitize_input(product.title) or product.id,
            handle=product.handle,
            variant_title=sanitize_input(product.variant_title) or None,
            image=product.image,
            price=product.price,
            added_at=now_utc_iso(),
        )

    def _writable(self) -> bool:
        if self.mode is Mode.GUEST:
            ok = self.config.enable_guest_mode
        else:
            ok = self.config.can_reach_remote
        if not ok:
            self._fail(WishlistError.of(ErrorKind.NOT_CONFIGURED))
        return ok

    def _has(self, key: ItemKey) -> bool:
        return any(it.key == key for it in self.state.items)

    def _discard(self, key: ItemKey) -> None:
        self.state.items = [it for it in self.state.items if it.key != key]

    def _fail_remote(self, op: str, outcome: SyncOutcome) -> None:
        error = outcome.error or WishlistError.of(ErrorKind.UNKNOWN)
        if outcome.rate_limited:
            logger.warning("Wishlist %s rate limited; caller should back off.", op)
        else:
            logger.error("Wishlist %s failed (%s): %s", op, error.kind.value, error.message)
        self._fail(error)

    def _fail(self, error: WishlistError) -> None:
        self.state.last_error = error
        self._notify(self.on_error, error)

    def _notify(self, callback, *args) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as e:
            logger.exception("Wishlist listener %r failed: %s", callback, e)
