import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .logger import get_logger
from .validation import is_valid_customer_id

logger = get_logger(__name__)

REQUEST_TIMEOUT = 10.0
MAX_ATTEMPTS = 2


class Mode(Enum):
    GUEST = "guest"
    IDENTIFIED = "identified"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() == "true"


def _env_str(name: str) -> Optional[str]:
    raw = os.getenv(name, "").strip()
    return raw or None


@dataclass(frozen=True)
class WishlistConfig:
    """
    Settings fixed for the lifetime of a controller. A login or logout is
    a new config, not a mutation of this one.
    """
    api_url: str
    shop_domain: str
    api_key: Optional[str] = None
    customer_id: Optional[str] = None
    enable_guest_mode: bool = True
    enable_auto_merge: bool = True
    timeout: float = REQUEST_TIMEOUT
    max_attempts: int = MAX_ATTEMPTS

    @property
    def mode(self) -> Mode:
        return Mode.IDENTIFIED if self.customer_id else Mode.GUEST

    @property
    def can_reach_remote(self) -> bool:
        return bool(self.customer_id and self.api_key)

    @classmethod
    def from_env(cls) -> "WishlistConfig":
        customer_id = _env_str("WISHBRIDGE_CUSTOMER_ID")
        if customer_id and not is_valid_customer_id(customer_id):
            logger.warning(
                "WISHBRIDGE_CUSTOMER_ID %r is not a Shopify customer GID or numeric ID; using it as-is.",
                customer_id,
            )

        try:
            timeout = float(os.getenv("WISHBRIDGE_TIMEOUT", str(REQUEST_TIMEOUT)))
        except ValueError:
            logger.warning("Invalid WISHBRIDGE_TIMEOUT; using %.1fs.", REQUEST_TIMEOUT)
            timeout = REQUEST_TIMEOUT

        try:
            max_attempts = int(os.getenv("WISHBRIDGE_MAX_ATTEMPTS", str(MAX_ATTEMPTS)))
        except ValueError:
            logger.warning("Invalid WISHBRIDGE_MAX_ATTEMPTS; using %d.", MAX_ATTEMPTS)
            max_attempts = MAX_ATTEMPTS

        return cls(
            api_url=os.getenv("WISHBRIDGE_API_URL", "").strip().rstrip("/"),
            shop_domain=os.getenv("WISHBRIDGE_SHOP_DOMAIN", "").strip(),
            api_key=_env_str("WISHBRIDGE_API_KEY"),
            customer_id=customer_id,
            enable_guest_mode=_env_bool("WISHBRIDGE_ENABLE_GUEST", True),
            enable_auto_merge=_env_bool("WISHBRIDGE_ENABLE_AUTO_MERGE", True),
            timeout=max(0.1, timeout),
            max_attempts=max(1, max_attempts),
        )
