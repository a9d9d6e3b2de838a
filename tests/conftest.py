import logging
import os

os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("LOG_TO_CONSOLE", "false")
os.environ.setdefault("MARKETPLACE_DELAY_SCALE", "0")
os.environ.setdefault("ANALYSIS_TICK_SECONDS", "0")

import pytest

from core.models import InventoryItem, MarketplaceResult
from core.storage import ItemStore, MemoryKeyValueStore
from marketplaces import MarketplaceRegistry, build_default_registry
from marketplaces.base import Lister


class FakeLister(Lister):
    """Scripted marketplace: returns queued results and records calls."""

    def __init__(self, marketplace_id="ebay", has_api=True, results=None, exc=None):
        self.id = marketplace_id
        self.name = marketplace_id.capitalize()
        self.has_api = has_api
        self.results = list(results or [])
        self.exc = exc
        self.calls = []

    def _next(self, op, *args):
        self.calls.append((op,) + args)
        if self.exc is not None:
            raise self.exc
        if self.results:
            return self.results.pop(0)
        return MarketplaceResult(success=True, listing_id=f"{self.id}-1")

    async def post_item(self, item):
        return self._next("post", item.id)

    async def update_item(self, listing_id, updates):
        return self._next("update", listing_id, updates)

    async def unlist_item(self, item):
        return self._next("unlist", item.id)

    async def remove_item(self, listing_id):
        return self._next("remove", listing_id)


@pytest.fixture
def store():
    return ItemStore(MemoryKeyValueStore())


@pytest.fixture
def default_registry():
    return build_default_registry(delay_scale=0)


@pytest.fixture
def make_item(store):
    def _make(item_id="item-1", **kwargs):
        kwargs.setdefault("title", "Vintage Lamp")
        kwargs.setdefault("price", 40.0)
        kwargs.setdefault("date_added", "2026-10-01")
        item = InventoryItem(id=item_id, **kwargs)
        store.add_item(item)
        return store.get_item(item_id)

    return _make


@pytest.fixture
def fake_lister():
    return FakeLister


@pytest.fixture
def registry_with():
    def _build(*listers):
        return MarketplaceRegistry(listers)

    return _build


@pytest.fixture
def restore_log_level():
    root = logging.getLogger()
    level = root.level
    yield
    root.setLevel(level)
