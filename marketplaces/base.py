# marketplaces/base.py
import asyncio
import os
import time
from typing import Any, Dict

from core.logger import get_logger
from core.models import InventoryItem, MarketplaceResult

logger = get_logger(__name__)

# Multiplier on every simulated network delay; 0 disables the sleeps
DELAY_SCALE = float(os.getenv("MARKETPLACE_DELAY_SCALE", "1"))

API_NOT_AVAILABLE = "API not available"


class Lister:
    """
    A marketplace and the operations it supports. Subclasses set the
    identity attributes and implement the four async calls.
    """
    id: str = ""
    name: str = ""
    icon: str = ""
    description: str = ""
    has_api: bool = False
    setup_required: bool = False

    async def post_item(self, item: InventoryItem) -> MarketplaceResult:
        raise NotImplementedError

    async def update_item(self, listing_id: str, updates: Dict[str, Any]) -> MarketplaceResult:
        raise NotImplementedError

    async def unlist_item(self, item: InventoryItem) -> MarketplaceResult:
        raise NotImplementedError

    async def remove_item(self, listing_id: str) -> MarketplaceResult:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id} has_api={self.has_api}>"


class StubLister(Lister):
    """
    Pretends to talk to a marketplace API: logs, waits, and succeeds.
    """
    has_api = True
    setup_required = True
    listing_prefix = ""
    post_delay = 1.0
    call_delay = 1.0

    def __init__(self, delay_scale: float | None = None):
        self.delay_scale = DELAY_SCALE if delay_scale is None else delay_scale

    async def _sleep(self, seconds: float) -> None:
        if self.delay_scale > 0:
            await asyncio.sleep(seconds * self.delay_scale)

    def _new_listing_id(self) -> str:
        return f"{self.listing_prefix}-{int(time.time() * 1000)}"

    async def post_item(self, item: InventoryItem) -> MarketplaceResult:
        logger.info("[%s stub] Posting item: %s", self.name, item.title)
        await self._sleep(self.post_delay)
        listing_id = self._new_listing_id()
        logger.info("[%s stub] Item posted successfully as %s.", self.name, listing_id)
        return MarketplaceResult(success=True, listing_id=listing_id)

    async def update_item(self, listing_id: str, updates: Dict[str, Any]) -> MarketplaceResult:
        logger.info("[%s stub] Updating listing %s with %s", self.name, listing_id, updates)
        await self._sleep(self.call_delay)
        return MarketplaceResult(success=True)

    async def unlist_item(self, item: InventoryItem) -> MarketplaceResult:
        logger.info("[%s stub] Unlisting item: %s", self.name, item.title)
        await self._sleep(self.call_delay)
        return MarketplaceResult(success=True)

    async def remove_item(self, listing_id: str) -> MarketplaceResult:
        logger.info("[%s stub] Removing listing %s", self.name, listing_id)
        await self._sleep(self.call_delay)
        return MarketplaceResult(success=True)


class UnavailableLister(Lister):
    """Marketplaces we can show but not post to yet."""
    has_api = False
    setup_required = False

    async def post_item(self, item: InventoryItem) -> MarketplaceResult:
        return MarketplaceResult(success=False, error=API_NOT_AVAILABLE)

    async def update_item(self, listing_id: str, updates: Dict[str, Any]) -> MarketplaceResult:
        return MarketplaceResult(success=False, error=API_NOT_AVAILABLE)

    async def unlist_item(self, item: InventoryItem) -> MarketplaceResult:
        return MarketplaceResult(success=False, error=API_NOT_AVAILABLE)

    async def remove_item(self, listing_id: str) -> MarketplaceResult:
        return MarketplaceResult(success=False, error=API_NOT_AVAILABLE)
