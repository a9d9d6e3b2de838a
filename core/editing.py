# core/editing.py
import os
import uuid
import datetime
import pytz
from typing import Any, Dict, Iterable, Optional

from .errors import ValidationError
from .logger import get_logger
from .models import InventoryItem, PRICE_FIELDS, TEXT_FIELDS
from .storage import ItemStore

logger = get_logger(__name__)

TIMEZONE = os.getenv("TIMEZONE", "UTC")

EDITABLE_FIELDS = TEXT_FIELDS + PRICE_FIELDS


def today_local() -> str:
    """Calendar date in the configured timezone, YYYY-MM-DD."""
    try:
        tz = pytz.timezone(TIMEZONE)
    except pytz.UnknownTimeZoneError:
        logger.warning("Unknown TIMEZONE %r; falling back to UTC.", TIMEZONE)
        tz = pytz.UTC
    return datetime.datetime.now(tz=tz).date().isoformat()


def parse_amount(field: str, value: Any) -> float:
    """
    Parse a price-like input. Blank means 0; anything else that is not a
    finite non-negative number is rejected.
    """
    if value is None:
        return 0.0
    if isinstance(value, str):
        s = value.strip().replace("$", "").replace(",", "")
        if not s:
            return 0.0
    else:
        s = value
    try:
        amount = float(s)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number, got {value!r}")
    if amount != amount or amount in (float("inf"), float("-inf")):
        raise ValidationError(f"{field} must be a finite number, got {value!r}")
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative, got {value!r}")
    return amount


def _clean_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key, value in fields.items():
        if key in PRICE_FIELDS:
            out[key] = parse_amount(key, value)
        elif key in TEXT_FIELDS:
            out[key] = "" if value is None else str(value)
        else:
            raise ValidationError(f"{key!r} is not an editable field")
    return out


def create_item(
    store: ItemStore,
    fields: Dict[str, Any],
    images: Iterable[str] = (),
    specifications: Optional[Dict[str, str]] = None,
) -> InventoryItem:
    """Create a draft item from form fields and save it."""
    cleaned = _clean_fields(fields)
    image_list = [i for i in images if i]
    item = InventoryItem(
        id=uuid.uuid4().hex,
        image=image_list[0] if image_list else "",
        images=image_list,
        date_added=today_local(),
        specifications=dict(specifications or {}),
        **cleaned,
    )
    return store.add_item(item)


def edit_field(store: ItemStore, item_id: str, field: str, value: Any) -> InventoryItem:
    if field not in EDITABLE_FIELDS:
        raise ValidationError(f"{field!r} is not an editable field")
    cleaned = _clean_fields({field: value})

    def apply(item: InventoryItem) -> None:
        setattr(item, field, cleaned[field])

    updated = store.update_item(item_id, apply)
    logger.info("Item %s: %s updated.", item_id, field)
    return updated


def set_specification(store: ItemStore, item_id: str, key: str, value: str) -> InventoryItem:
    key = key.strip()
    if not key:
        raise ValidationError("specification name cannot be empty")

    def apply(item: InventoryItem) -> None:
        if value:
            item.specifications[key] = value
        else:
            item.specifications.pop(key, None)

    return store.update_item(item_id, apply)


def mark_sold(store: ItemStore, item_id: str) -> InventoryItem:
    def apply(item: InventoryItem) -> None:
        item.sold = True

    updated = store.update_item(item_id, apply)
    logger.info("Item %s marked sold at %.2f.", item_id, updated.price)
    return updated


# --- images ---
# image always mirrors images[0]

def add_image(store: ItemStore, item_id: str, image_ref: str) -> InventoryItem:
    if not image_ref:
        raise ValidationError("image reference cannot be empty")

    def apply(item: InventoryItem) -> None:
        item.images.append(image_ref)
        item.image = item.images[0]

    return store.update_item(item_id, apply)


def delete_image(store: ItemStore, item_id: str, index: int) -> InventoryItem:
    def apply(item: InventoryItem) -> None:
        if len(item.images) <= 1:
            raise ValidationError("an item must keep at least one image")
        if not 0 <= index < len(item.images):
            raise ValidationError(f"no image at position {index}")
        del item.images[index]
        item.image = item.images[0]

    return store.update_item(item_id, apply)


def move_image(store: ItemStore, item_id: str, src: int, dst: int) -> InventoryItem:
    def apply(item: InventoryItem) -> None:
        n = len(item.images)
        if not (0 <= src < n and 0 <= dst < n):
            raise ValidationError(f"image positions must be within 0..{n - 1}")
        moved = item.images.pop(src)
        item.images.insert(dst, moved)
        item.image = item.images[0]

    return store.update_item(item_id, apply)
