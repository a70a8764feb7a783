# wishbridge/validation.py
import datetime
import re
from typing import Any, Optional

import pytz

MAX_INPUT_LENGTH = 500

_CUSTOMER_GID_RE = re.compile(r"^gid://shopify/Customer/\d+$")
_NUMERIC_RE = re.compile(r"^\d+$")


def now_utc_iso() -> str:
    return datetime.datetime.now(tz=pytz.UTC).isoformat()


def parse_timestamp(value: Any) -> Optional[datetime.datetime]:
    """
    Parse an ISO-8601 timestamp into an aware UTC datetime.
    Naive values are taken as UTC. Returns None when unparseable.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return pytz.UTC.localize(parsed)
    return parsed.astimezone(pytz.UTC)


def is_valid_record(record: Any) -> bool:
    """
    A persisted item record needs a non-empty productId, a non-empty
    productTitle and a parseable addedAt. Everything else is optional.
    """
    if not isinstance(record, dict):
        return False

    product_id = record.get("productId")
    if not isinstance(product_id, str) or not product_id:
        return False

    title = record.get("productTitle")
    if not isinstance(title, str) or not title:
        return False

    return parse_timestamp(record.get("addedAt")) is not None


def sanitize_input(value: Optional[str]) -> str:
    if not value or not isinstance(value, str):
        return ""
    return value.strip().replace("<", "").replace(">", "")[:MAX_INPUT_LENGTH]


def is_valid_customer_id(customer_id: Optional[str]) -> bool:
    if not customer_id or not isinstance(customer_id, str):
        return False
    return bool(_CUSTOMER_GID_RE.match(customer_id) or _NUMERIC_RE.match(customer_id))
