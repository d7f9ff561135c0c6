"""Pytest configuration and fixtures"""
import json
import os
from typing import Dict, List, Optional
from unittest.mock import Mock

import httpx
import pytest
from tenacity import wait_none

# Set test environment variables
os.environ.setdefault("REDIS_REST_URL", "https://test.upstash.io")
os.environ.setdefault("REDIS_REST_TOKEN", "test_token")
os.environ.setdefault("CATALOGUE_HOST", "catalogue")
os.environ.setdefault("CATALOGUE_PORT", "8080")

from cartstore.cart import CartEngine  # noqa: E402
from cartstore.catalogue import CatalogueClient  # noqa: E402
from cartstore.config import TAX_RATE, SHIPPING_ACCUMULATE  # noqa: E402


class FakeRedis:
    """In-memory stand-in for the async Upstash client (get/set/delete/ping)."""

    def __init__(self):
        self.data: Dict[str, str] = {}
        self.writes: List[str] = []
        self.deletes: List[str] = []
        self.fail = False

    def _check(self):
        if self.fail:
            raise ConnectionError("redis down")

    async def get(self, key: str) -> Optional[str]:
        self._check()
        return self.data.get(key)

    async def set(self, key: str, value: str, ex: Optional[int] = None):
        self._check()
        self.writes.append(key)
        self.data[key] = value
        return "OK"

    async def delete(self, *keys: str) -> int:
        self._check()
        removed = 0
        for key in keys:
            self.deletes.append(key)
            if self.data.pop(key, None) is not None:
                removed += 1
        return removed

    async def ping(self) -> str:
        self._check()
        return "PONG"

    def load(self, key: str) -> dict:
        return json.loads(self.data[key])


@pytest.fixture
def sample_products() -> Dict[str, dict]:
    """Catalogue contents keyed by SKU"""
    return {
        "X": {"sku": "X", "name": "Thing", "price": 10, "instock": 5},
        "Y": {"sku": "Y", "name": "Widget", "price": 2.5, "instock": 1},
        "GONE": {"sku": "GONE", "name": "Sold Out", "price": 99, "instock": 0},
    }


@pytest.fixture
def catalogue_calls() -> List[str]:
    return []


@pytest.fixture
def catalogue_transport(sample_products, catalogue_calls):
    """MockTransport serving sample_products at /product/{sku}"""

    def handler(request: httpx.Request) -> httpx.Response:
        catalogue_calls.append(request.url.path)
        sku = request.url.path.rsplit("/", 1)[-1]
        product = sample_products.get(sku)
        if product is None:
            return httpx.Response(404, text="product not found")
        return httpx.Response(200, json=product)

    return httpx.MockTransport(handler)


@pytest.fixture
def catalogue(catalogue_transport) -> CatalogueClient:
    return CatalogueClient(
        "http://catalogue:8080",
        transport=catalogue_transport,
        retry_wait=wait_none(),
    )


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def items_counter() -> Mock:
    return Mock()


@pytest.fixture
def engine(fake_redis, catalogue, items_counter) -> CartEngine:
    """Engine with accumulate shipping and the default tax rate"""
    return CartEngine(
        store=fake_redis,
        catalogue=catalogue,
        tax_rate=TAX_RATE,
        shipping_policy=SHIPPING_ACCUMULATE,
        items_added=items_counter,
    )
