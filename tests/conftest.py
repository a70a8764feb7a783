"""Shared fixtures for wishbridge tests."""

import json

import pytest

from wishbridge.models import Item, Price
from wishbridge.storage import ITEMS_KEY, LocalStore, MemoryByteStore


def make_item(product_id: str = "p1", added_at: str = "2024-01-15T12:00:00Z", **overrides) -> Item:
    fields = {
        "product_id": product_id,
        "title": f"Product {product_id}",
        "added_at": added_at,
    }
    fields.update(overrides)
    return Item(**fields)


def priced(product_id: str, amount: str, **overrides) -> Item:
    return make_item(product_id, price=Price(amount=amount, currency_code="USD"), **overrides)


@pytest.fixture
def backend() -> MemoryByteStore:
    return MemoryByteStore()


@pytest.fixture
def store(backend: MemoryByteStore) -> LocalStore:
    return LocalStore(backend)


@pytest.fixture
def seed_local(backend: MemoryByteStore):
    """Write raw records straight into the byte store."""

    def _seed(records) -> None:
        backend.set(ITEMS_KEY, json.dumps(records).encode("utf-8"))

    return _seed
