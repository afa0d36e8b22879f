"""Shared pytest fixtures for the catalog proxy tests."""
from datetime import datetime, timedelta, timezone

import pytest

from api.cache import CacheStore
from api.keno_client import MockKenoClient


class FakeClock:
    """Controllable clock for TTL tests."""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    """A clock frozen until advanced."""
    return FakeClock()


@pytest.fixture
def cache_store(clock):
    """Cache store driven by the fake clock."""
    return CacheStore(clock=clock)


@pytest.fixture
def category_tree():
    """Vendor category forest with one nested level."""
    return [
        {
            "id": 1,
            "name": "Energy Storage",
            "children": [
                {"id": 78, "name": "Home Batteries", "children": []},
                {"id": 79, "name": "Storage Racks", "children": None},
            ],
        },
        {"id": 2, "name": "Cooling", "children": []},
    ]


@pytest.fixture
def product_base():
    """Vendor GetProductBase payload."""
    return {
        "connection_status": "Success",
        "products_base": [
            {
                "index": "SKU-1",
                "subcategory_id": 78,
                "description": {"lt": "baterija", "en": "battery"},
                "long_description": {"lt": "ilgas aprašymas"},
                "price": 100,
            },
            {
                "index": "SKU-2",
                "subcategory_id": "79",
                "description": {"en": "rack only"},
                "long_description": None,
                "price": 50,
            },
            {
                "index": "SKU-3",
                "subcategory_id": 2,
                "description": {"lt": "ventiliatorius"},
                "long_description": {"lt": "vėsinimas"},
                "price": 20,
            },
        ],
    }


@pytest.fixture
def mock_keno_client(category_tree, product_base):
    """Keno client double replaying the sample payloads."""
    return MockKenoClient(categories=category_tree, product_base=product_base)
