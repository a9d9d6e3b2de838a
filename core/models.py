# core/models.py
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from .errors import ListerError

STATUS_DRAFT = "draft"
STATUS_LISTED = "listed"
STATUS_SOLD = "sold"
STATUSES = (STATUS_DRAFT, STATUS_LISTED, STATUS_SOLD)

# Descriptive fields, in the order they are shown and edited
TEXT_FIELDS = (
    "title",
    "description",
    "brand",
    "model",
    "color",
    "size",
    "weight",
    "dimensions",
    "category",
    "condition",
)
PRICE_FIELDS = ("price", "msrp")


def _as_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


@dataclass
class InventoryItem:
    """
    One reseller inventory record.

    ``status`` is computed from ``sold`` and ``marketplaces`` rather than
    stored, so it can never disagree with the listing set:
      - sold            -> "sold"
      - any marketplace -> "listed"
      - otherwise       -> "draft"
    """
    id: str
    title: str = ""
    description: str = ""
    brand: str = ""
    model: str = ""
    color: str = ""
    size: str = ""
    weight: str = ""
    dimensions: str = ""
    category: str = ""
    condition: str = ""
    price: float = 0.0
    msrp: float = 0.0
    image: str = ""
    images: List[str] = field(default_factory=list)
    date_added: str = ""
    sold: bool = False
    marketplaces: List[str] = field(default_factory=list)
    listing_ids: Dict[str, str] = field(default_factory=dict)
    specifications: Dict[str, str] = field(default_factory=dict)

    @property
    def status(self) -> str:
        if self.sold:
            return STATUS_SOLD
        if self.marketplaces:
            return STATUS_LISTED
        return STATUS_DRAFT

    @property
    def on_sale(self) -> bool:
        """True when the msrp should be shown struck through next to the price."""
        return self.msrp > self.price

    def is_listed_on(self, marketplace_id: str) -> bool:
        return marketplace_id in self.marketplaces

    def copy(self) -> "InventoryItem":
        return replace(
            self,
            images=list(self.images),
            marketplaces=list(self.marketplaces),
            listing_ids=dict(self.listing_ids),
            specifications=dict(self.specifications),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "brand": self.brand,
            "model": self.model,
            "color": self.color,
            "size": self.size,
            "weight": self.weight,
            "dimensions": self.dimensions,
            "category": self.category,
            "condition": self.condition,
            "price": self.price,
            "msrp": self.msrp,
            "image": self.image,
            "images": list(self.images),
            "dateAdded": self.date_added,
            "status": self.status,
            "marketplaces": list(self.marketplaces),
            "listingIds": dict(self.listing_ids),
            "specifications": dict(self.specifications),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InventoryItem":
        images = [str(i) for i in data.get("images") or [] if i]
        image = data.get("image") or (images[0] if images else "")
        if image and not images:
            images = [image]

        # Drop duplicate marketplace ids while keeping first-seen order
        marketplaces: List[str] = []
        for mid in data.get("marketplaces") or []:
            if mid not in marketplaces:
                marketplaces.append(mid)

        return cls(
            id=str(data["id"]),
            title=data.get("title") or "",
            description=data.get("description") or "",
            brand=data.get("brand") or "",
            model=data.get("model") or "",
            color=data.get("color") or "",
            size=data.get("size") or "",
            weight=data.get("weight") or "",
            dimensions=data.get("dimensions") or "",
            category=data.get("category") or "",
            condition=data.get("condition") or "",
            price=_as_float(data.get("price")),
            msrp=_as_float(data.get("msrp")),
            image=image,
            images=images,
            date_added=data.get("dateAdded") or "",
            sold=data.get("status") == STATUS_SOLD,
            marketplaces=marketplaces,
            listing_ids=dict(data.get("listingIds") or {}),
            specifications=dict(data.get("specifications") or {}),
        )


@dataclass
class UserProfile:
    """
    Seller profile. total_sales and total_listings are a view over the
    item collection and are recomputed whenever the profile is loaded.
    """
    name: str = "Alex Johnson"
    email: str = "alex.johnson@email.com"
    phone: str = "+1 (555) 123-4567"
    location: str = "San Francisco, CA"
    avatar: str = "/placeholder.svg"
    join_date: str = "2023-06-15"
    rating: float = 4.8
    total_sales: float = 0.0
    total_listings: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "location": self.location,
            "avatar": self.avatar,
            "joinDate": self.join_date,
            "rating": self.rating,
            "totalSales": self.total_sales,
            "totalListings": self.total_listings,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserProfile":
        default = cls()
        return cls(
            name=data.get("name", default.name),
            email=data.get("email", default.email),
            phone=data.get("phone", default.phone),
            location=data.get("location", default.location),
            avatar=data.get("avatar", default.avatar),
            join_date=data.get("joinDate", default.join_date),
            rating=_as_float(data.get("rating", default.rating)),
            total_sales=_as_float(data.get("totalSales", 0)),
            total_listings=int(data.get("totalListings") or 0),
        )


@dataclass
class MarketplaceResult:
    """What a marketplace call reports back."""
    success: bool
    listing_id: str = ""
    error: Optional[str] = None


@dataclass
class ListingOutcome:
    ok: bool
    item: InventoryItem
    error: Optional[ListerError] = None
    listing_id: str = ""
