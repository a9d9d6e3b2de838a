# marketplaces/__init__.py
from typing import Dict, Iterable, List, Optional

from core.errors import NotFoundError

from .base import Lister
from .ebay import EbayLister
from .facebook import FacebookLister
from .coming_soon import MercariLister, PoshmarkLister, DepopLister


class MarketplaceRegistry:
    """Fixed catalog of marketplaces, keyed by id. Built once, read-only."""

    def __init__(self, listers: Iterable[Lister]):
        self._by_id: Dict[str, Lister] = {}
        for lister in listers:
            if lister.id in self._by_id:
                raise ValueError(f"duplicate marketplace id {lister.id!r}")
            self._by_id[lister.id] = lister

    def find_by_id(self, marketplace_id: str) -> Optional[Lister]:
        return self._by_id.get(marketplace_id)

    def get(self, marketplace_id: str) -> Lister:
        lister = self.find_by_id(marketplace_id)
        if lister is None:
            raise NotFoundError(f"unknown marketplace {marketplace_id!r}")
        return lister

    def all(self) -> List[Lister]:
        return list(self._by_id.values())

    def with_api(self) -> List[Lister]:
        return [m for m in self._by_id.values() if m.has_api]

    def __contains__(self, marketplace_id: str) -> bool:
        return marketplace_id in self._by_id


def build_default_registry(delay_scale: float | None = None) -> MarketplaceRegistry:
    return MarketplaceRegistry(
        [
            EbayLister(delay_scale),
            FacebookLister(delay_scale),
            MercariLister(),
            PoshmarkLister(),
            DepopLister(),
        ]
    )


MARKETPLACES = build_default_registry()
