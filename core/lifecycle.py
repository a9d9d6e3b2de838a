# core/lifecycle.py
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from .errors import (
    CapabilityError,
    ListerError,
    NotFoundError,
    OperationInProgressError,
    RemoteOperationError,
    StorageError,
)
from .logger import get_logger
from .models import InventoryItem, ListingOutcome, MarketplaceResult
from .storage import ItemStore

logger = get_logger(__name__)


class ListingController:
    """
    Lists and unlists items on marketplaces.

    Only one marketplace call may be in flight at a time across the whole
    controller; a second request while one is pending is rejected with
    OperationInProgressError. Failures never touch stored state and are
    returned in the ListingOutcome rather than raised.
    """

    def __init__(self, store: ItemStore, registry):
        self.store = store
        self.registry = registry
        self._in_flight: Optional[Tuple[str, str, str]] = None

    @property
    def busy(self) -> bool:
        return self._in_flight is not None

    def _resolve(self, marketplace_id: str):
        lister = self.registry.find_by_id(marketplace_id)
        if lister is None:
            raise NotFoundError(f"unknown marketplace {marketplace_id!r}")
        if not lister.has_api:
            raise CapabilityError(f"{lister.name} does not support automated listing yet")
        return lister

    def _claim(self, op: str, item: InventoryItem, marketplace_id: str) -> None:
        if self._in_flight is not None:
            pending_op, pending_item, pending_mid = self._in_flight
            raise OperationInProgressError(
                f"{pending_op} of item {pending_item} on {pending_mid} is still running"
            )
        self._in_flight = (op, item.id, marketplace_id)

    async def _call(
        self,
        op: str,
        item: InventoryItem,
        marketplace_id: str,
        remote: Callable[[], Awaitable[MarketplaceResult]],
    ) -> MarketplaceResult:
        self._claim(op, item, marketplace_id)
        try:
            result = await remote()
        except Exception as e:
            logger.exception("%s of %s on %s raised: %s", op, item.id, marketplace_id, e)
            raise RemoteOperationError(f"{marketplace_id}: {e}") from e
        finally:
            self._in_flight = None

        if not result.success:
            raise RemoteOperationError(result.error or f"{marketplace_id} reported failure")
        return result

    def _stored(self, item_id: str) -> InventoryItem:
        try:
            return self.store.get_item(item_id)
        except ListerError:
            raise
        except Exception as e:
            logger.exception("Reading item %s failed: %s", item_id, e)
            raise StorageError(f"could not read item {item_id}: {e}") from e

    def _persist(
        self,
        op: str,
        item_id: str,
        marketplace_id: str,
        listing_id: str,
        mutate: Callable[[InventoryItem], None],
    ) -> InventoryItem:
        # The marketplace call already succeeded; a failure here leaves the
        # remote side and the stored record out of step.
        try:
            return self.store.update_item(item_id, mutate)
        except Exception as e:
            hint = "orphaned; remove it with remove_item" if op == "list" else "still recorded"
            logger.error(
                "%s of item %s on %s went through remotely but was not saved "
                "(listing %s is %s): %s",
                op, item_id, marketplace_id, listing_id or "-", hint, e,
            )
            if isinstance(e, ListerError):
                raise
            raise StorageError(f"could not save item {item_id}: {e}") from e

    async def list(self, item: InventoryItem, marketplace_id: str) -> ListingOutcome:
        """Post ``item`` to ``marketplace_id`` and record the listing."""
        try:
            lister = self._resolve(marketplace_id)
            current = self._stored(item.id)
            if current.is_listed_on(marketplace_id):
                logger.info("Item %s is already listed on %s.", item.id, marketplace_id)
                return ListingOutcome(
                    ok=True,
                    item=current,
                    listing_id=current.listing_ids.get(marketplace_id, ""),
                )

            result = await self._call(
                "list", current, marketplace_id, lambda: lister.post_item(current.copy())
            )

            def apply(stored: InventoryItem) -> None:
                if marketplace_id not in stored.marketplaces:
                    stored.marketplaces.append(marketplace_id)
                existing = stored.listing_ids.get(marketplace_id)
                if existing and result.listing_id and existing != result.listing_id:
                    logger.warning(
                        "Item %s already holds listing %s on %s; listing %s is orphaned.",
                        item.id, existing, marketplace_id, result.listing_id or "-",
                    )
                elif result.listing_id:
                    stored.listing_ids[marketplace_id] = result.listing_id

            updated = self._persist(
                "list", item.id, marketplace_id, result.listing_id, apply
            )
        except ListerError as e:
            logger.warning("List of item %s on %s failed: %s", item.id, marketplace_id, e)
            return ListingOutcome(ok=False, item=item, error=e)

        logger.info(
            "Listed item %s on %s (listing %s); status=%s.",
            item.id, marketplace_id, result.listing_id or "-", updated.status,
        )
        return ListingOutcome(
            ok=True,
            item=updated,
            listing_id=updated.listing_ids.get(marketplace_id, result.listing_id),
        )

    async def unlist(self, item: InventoryItem, marketplace_id: str) -> ListingOutcome:
        """Take ``item`` down from ``marketplace_id``."""
        try:
            lister = self._resolve(marketplace_id)
            current = self._stored(item.id)
            if not current.is_listed_on(marketplace_id):
                raise NotFoundError(f"item {item.id} is not listed on {marketplace_id}")
            listing_id = current.listing_ids.get(marketplace_id, "")

            await self._call(
                "unlist", current, marketplace_id, lambda: lister.unlist_item(current.copy())
            )

            def apply(stored: InventoryItem) -> None:
                stored.marketplaces = [m for m in stored.marketplaces if m != marketplace_id]
                stored.listing_ids.pop(marketplace_id, None)

            updated = self._persist("unlist", item.id, marketplace_id, listing_id, apply)
        except ListerError as e:
            logger.warning("Unlist of item %s on %s failed: %s", item.id, marketplace_id, e)
            return ListingOutcome(ok=False, item=item, error=e)

        logger.info(
            "Unlisted item %s from %s; status=%s.", item.id, marketplace_id, updated.status
        )
        return ListingOutcome(ok=True, item=updated)

    async def update(
        self, item: InventoryItem, marketplace_id: str, updates: Dict[str, Any]
    ) -> ListingOutcome:
        """Push edited fields to an existing listing. Local state is not changed."""
        try:
            lister = self._resolve(marketplace_id)
            current = self._stored(item.id)
            listing_id = current.listing_ids.get(marketplace_id)
            if not current.is_listed_on(marketplace_id) or not listing_id:
                raise NotFoundError(f"item {item.id} has no listing on {marketplace_id}")

            await self._call(
                "update", current, marketplace_id,
                lambda: lister.update_item(listing_id, dict(updates)),
            )
        except ListerError as e:
            logger.warning("Update of item %s on %s failed: %s", item.id, marketplace_id, e)
            return ListingOutcome(ok=False, item=item, error=e)

        logger.info("Updated listing %s on %s with %s.", listing_id, marketplace_id, sorted(updates))
        return ListingOutcome(ok=True, item=current, listing_id=listing_id)
