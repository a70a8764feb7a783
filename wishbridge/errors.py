# wishbridge/errors.py
from dataclasses import dataclass
from enum import Enum


class ErrorKind(Enum):
    NOT_CONFIGURED = "not_configured"
    NETWORK = "network"
    RATE_LIMITED = "rate_limited"
    SYNC_FAILED = "sync_failed"
    STORAGE_UNAVAILABLE = "storage_unavailable"
    UNKNOWN = "unknown"


DEFAULT_MESSAGES = {
    ErrorKind.NOT_CONFIGURED: "Wishlist is not configured.",
    ErrorKind.NETWORK: "Network error. Please try again.",
    ErrorKind.RATE_LIMITED: "Too many requests. Please try again later.",
    ErrorKind.SYNC_FAILED: "Failed to sync wishlist. Please try again.",
    ErrorKind.STORAGE_UNAVAILABLE: "Wishlist storage is unavailable.",
    ErrorKind.UNKNOWN: "An unexpected error occurred.",
}


@dataclass(frozen=True)
class WishlistError:
    """
    Failure recorded on the controller state after an operation.
    The message is user-facing; callers branch on `kind`.
    """
    kind: ErrorKind
    message: str

    @classmethod
    def of(cls, kind: ErrorKind, message: str | None = None) -> "WishlistError":
        return cls(kind=kind, message=message or DEFAULT_MESSAGES[kind])


class StorageError(Exception):
    """Raised by byte stores when the backing store cannot be read or written."""

    kind = ErrorKind.STORAGE_UNAVAILABLE
