# wishbridge/merge.py
import datetime
import unicodedata
from dataclasses import replace
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, List, Optional, Tuple

import pytz

from .models import Item, ItemKey
from .validation import parse_timestamp

_EPOCH = datetime.datetime(1970, 1, 1, tzinfo=pytz.UTC)


def _added(item: Item) -> datetime.datetime:
    # Records are validated on the way in; the fallback only keeps sorting total.
    return parse_timestamp(item.added_at) or _EPOCH


def merge(local: Iterable[Item], remote: Iterable[Item]) -> List[Item]:
    """
    Combine a guest (local) collection with the account (remote) one.
    - remote entries seed the result
    - a local entry with an unseen key is added as-is
    - a local entry whose key exists and whose added_at is strictly earlier
      keeps the remote fields but takes the earlier added_at
    Returns the merged items newest first.
    """
    merged: Dict[ItemKey, Item] = {}
    for it in remote:
        merged[it.key] = it

    for it in local:
        existing = merged.get(it.key)
        if existing is None:
            merged[it.key] = it
        elif _added(it) < _added(existing):
            merged[it.key] = replace(existing, added_at=it.added_at)

    return sort_by_newest(merged.values())


def dedupe(items: Iterable[Item]) -> List[Item]:
    """Keep the first item seen per key, otherwise preserving order."""
    seen = set()
    out: List[Item] = []
    for it in items:
        if it.key in seen:
            continue
        seen.add(it.key)
        out.append(it)
    return out


def find_new(before: Iterable[Item], after: Iterable[Item]) -> List[Item]:
    old_keys = {it.key for it in before}
    return [it for it in after if it.key not in old_keys]


def sort_by_newest(items: Iterable[Item]) -> List[Item]:
    return sorted(items, key=_added, reverse=True)


def sort_by_oldest(items: Iterable[Item]) -> List[Item]:
    return sorted(items, key=_added)


def _collation_key(title: str) -> Tuple[str, str]:
    # Accents and case only break ties between otherwise equal titles.
    decomposed = unicodedata.normalize("NFKD", title)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return (base.casefold(), title)


def sort_by_title(items: Iterable[Item]) -> List[Item]:
    return sorted(items, key=lambda it: _collation_key(it.title))


def _price(item: Item) -> Optional[Decimal]:
    if item.price is None:
        return None
    try:
        amount = Decimal(item.price.amount)
    except (InvalidOperation, TypeError, ValueError):
        return None
    return amount if amount.is_finite() else None


def sort_by_price_low_to_high(items: Iterable[Item]) -> List[Item]:
    # Unpriced items go last whichever direction is asked for.
    def key(it: Item):
        amount = _price(it)
        return (amount is None, amount if amount is not None else Decimal(0))

    return sorted(items, key=key)


def sort_by_price_high_to_low(items: Iterable[Item]) -> List[Item]:
    def key(it: Item):
        amount = _price(it)
        return (amount is None, -amount if amount is not None else Decimal(0))

    return sorted(items, key=key)
