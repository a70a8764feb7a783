# wishbridge/remote.py
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Union

import requests
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from .config import MAX_ATTEMPTS, REQUEST_TIMEOUT, WishlistConfig
from .errors import ErrorKind, WishlistError
from .logger import get_logger
from .models import DEFAULT_VARIANT, Item, ItemKey
from .validation import is_valid_record

logger = get_logger(__name__)

SYNC_PATH = "/sync"
UPDATE_PATH = "/update"

# Only transport failures are retried; an HTTP status (429 included) is final.
_RETRYABLE = (requests.ConnectionError, requests.Timeout)


class Action(Enum):
    ADD = "add"
    REMOVE = "remove"


@dataclass(frozen=True)
class SyncOutcome:
    ok: bool
    items: Optional[List[Item]] = None
    error: Optional[WishlistError] = None

    @classmethod
    def failure(cls, kind: ErrorKind, message: Optional[str] = None) -> "SyncOutcome":
        return cls(ok=False, error=WishlistError.of(kind, message))

    @property
    def rate_limited(self) -> bool:
        return self.error is not None and self.error.kind is ErrorKind.RATE_LIMITED


def _parse_items(raw: Any) -> Optional[List[Item]]:
    if not isinstance(raw, list):
        return None
    items = [Item.from_dict(rec) for rec in raw if is_valid_record(rec)]
    if len(items) != len(raw):
        logger.warning("Dropped %d invalid record(s) from remote response.", len(raw) - len(items))
    return items


def _key_payload(key: ItemKey) -> Dict[str, str]:
    product_id, variant_id = key
    out = {"productId": product_id}
    if variant_id != DEFAULT_VARIANT:
        out["variantId"] = variant_id
    return out


class RemoteSyncClient:
    """
    Talks to the account wishlist API. Every call resolves to a SyncOutcome;
    transport errors, timeouts and non-2xx responses never escape as exceptions.
    """

    def __init__(
        self,
        api_url: str,
        shop_domain: str,
        api_key: Optional[str] = None,
        timeout: float = REQUEST_TIMEOUT,
        max_attempts: int = MAX_ATTEMPTS,
        session: Optional[requests.Session] = None,
        wait=None,
        deadline: Optional[float] = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.shop_domain = shop_domain
        self.api_key = api_key
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        # Caps the whole call, retries and backoff included.
        self.deadline = deadline if deadline is not None else timeout
        self.wait = wait if wait is not None else wait_exponential_jitter(initial=0.5, max=5)

        self.session = session if session is not None else requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        if api_key:
            self.session.headers.update({"Authorization": f"Bearer {api_key}"})

    @classmethod
    def from_config(cls, config: WishlistConfig, **kwargs) -> "RemoteSyncClient":
        return cls(
            config.api_url,
            config.shop_domain,
            api_key=config.api_key,
            timeout=config.timeout,
            max_attempts=config.max_attempts,
            **kwargs,
        )

    async def merge_sync(self, identity: Optional[str], items: List[Item]) -> SyncOutcome:
        """Send the guest collection; the server answers with its merged collection."""
        payload = {
            "identity": identity,
            "items": [it.to_dict() for it in items],
            "tenant": self.shop_domain,
        }
        return await self._call(identity, SYNC_PATH, payload)

    async def update(
        self,
        identity: Optional[str],
        action: Action,
        item: Union[Item, ItemKey],
    ) -> SyncOutcome:
        if isinstance(item, Item):
            body = item.to_dict() if action is Action.ADD else _key_payload(item.key)
        elif action is Action.ADD:
            logger.error("Refusing to add %s remotely without the full item.", item)
            return SyncOutcome.failure(ErrorKind.UNKNOWN, "Adding requires the full item.")
        else:
            body = _key_payload(item)

        payload = {
            "identity": identity,
            "action": action.value,
            "item": body,
            "tenant": self.shop_domain,
        }
        return await self._call(identity, UPDATE_PATH, payload)

    async def _call(self, identity: Optional[str], path: str, payload: Dict[str, Any]) -> SyncOutcome:
        if not identity or not self.api_key:
            logger.warning("Remote call to %s skipped: identity or credential missing.", path)
            return SyncOutcome.failure(ErrorKind.NOT_CONFIGURED)
        try:
            return await asyncio.wait_for(asyncio.to_thread(self._post, path, payload), self.deadline)
        except asyncio.TimeoutError:
            logger.warning("Call to %s exceeded %.1fs overall; giving up.", path, self.deadline)
            return SyncOutcome.failure(ErrorKind.NETWORK)

    def close(self) -> None:
        self.session.close()

    def _send(self, url: str, payload: Dict[str, Any]) -> requests.Response:
        retryer = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self.wait,
            retry=retry_if_exception_type(_RETRYABLE),
            before_sleep=before_sleep_log(logger, logging.INFO),
            reraise=True,
        )
        return retryer(self.session.post, url, json=payload, timeout=self.timeout)

    def _post(self, path: str, payload: Dict[str, Any]) -> SyncOutcome:
        url = f"{self.api_url}{path}"
        logger.debug("POST %s (tenant=%s)", url, self.shop_domain)

        try:
            resp = self._send(url, payload)
        except requests.RequestException as e:
            logger.warning("Transport failure calling %s: %s", url, e)
            return SyncOutcome.failure(ErrorKind.NETWORK)

        status = resp.status_code
        if status == 429:
            logger.warning("Rate limited by %s.", url)
            return SyncOutcome.failure(ErrorKind.RATE_LIMITED)

        try:
            body = resp.json()
        except ValueError:
            body = None

        message = None
        if isinstance(body, dict) and isinstance(body.get("error"), str):
            message = body["error"]

        if not 200 <= status < 300:
            logger.warning("%s returned status %s: %s", url, status, message or "<no error message>")
            return SyncOutcome.failure(ErrorKind.SYNC_FAILED, message)

        if not isinstance(body, dict):
            logger.error("%s returned status %s with an unreadable body.", url, status)
            return SyncOutcome.failure(ErrorKind.UNKNOWN)

        if not body.get("success"):
            logger.warning("%s reported failure: %s", url, message or "<no error message>")
            return SyncOutcome.failure(ErrorKind.SYNC_FAILED, message)

        return SyncOutcome(ok=True, items=_parse_items(body.get("items")))
