# core/stats.py
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .models import InventoryItem, STATUS_DRAFT, STATUS_LISTED, STATUS_SOLD, UserProfile


@dataclass
class InventoryStats:
    total_items: int = 0
    listed_items: int = 0
    sold_items: int = 0
    draft_items: int = 0
    total_value: float = 0.0
    sold_value: float = 0.0
    avg_price: float = 0.0
    avg_sale_price: float = 0.0
    conversion_rate: float = 0.0
    categories: Dict[str, int] = field(default_factory=dict)


def filter_items(
    items: List[InventoryItem],
    query: str = "",
    status: Optional[str] = None,
    category: Optional[str] = None,
) -> List[InventoryItem]:
    """
    Inventory search. query matches title, description or brand
    case-insensitively; "all" or empty disables status/category filters.
    """
    out = items
    q = (query or "").strip().lower()
    if q:
        out = [
            it for it in out
            if q in it.title.lower() or q in it.description.lower() or q in it.brand.lower()
        ]
    if status and status != "all":
        out = [it for it in out if it.status == status]
    if category and category != "all":
        out = [it for it in out if it.category == category]
    return out


def inventory_stats(items: List[InventoryItem]) -> InventoryStats:
    sold = [it for it in items if it.status == STATUS_SOLD]
    total = len(items)
    total_value = sum(it.price for it in items)
    sold_value = sum(it.price for it in sold)

    return InventoryStats(
        total_items=total,
        listed_items=sum(1 for it in items if it.status == STATUS_LISTED),
        sold_items=len(sold),
        draft_items=sum(1 for it in items if it.status == STATUS_DRAFT),
        total_value=total_value,
        sold_value=sold_value,
        avg_price=total_value / total if total else 0.0,
        avg_sale_price=sold_value / len(sold) if sold else 0.0,
        conversion_rate=len(sold) * 100.0 / total if total else 0.0,
        categories=dict(Counter(it.category or "Uncategorized" for it in items)),
    )


def profile_with_stats(profile: UserProfile, items: List[InventoryItem]) -> UserProfile:
    profile.total_sales = sum(it.price for it in items if it.sold)
    profile.total_listings = len(items)
    return profile


ACHIEVEMENTS = [
    ("First Sale", "Completed your first sale", lambda s: s.sold_items > 0),
    ("Power Seller", "Sold 10+ items", lambda s: s.sold_items >= 10),
    ("Inventory Master", "Listed 25+ items", lambda s: s.total_items >= 25),
    ("Revenue Milestone", "Earned $1,000+", lambda s: s.sold_value >= 1000),
]


def achievements(stats: InventoryStats) -> List[Dict[str, object]]:
    return [
        {"title": title, "description": desc, "earned": bool(check(stats))}
        for title, desc, check in ACHIEVEMENTS
    ]
