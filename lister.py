import argparse
import asyncio
import os
from typing import Dict, List, Optional

from core.logger import get_logger, set_level
from core import editing
from core.analysis import analyze_photo, fields_from_analysis
from core.errors import CapabilityError, ListerError, ValidationError
from core.lifecycle import ListingController
from core.models import InventoryItem, TEXT_FIELDS, STATUSES
from core.report_html import build_html_report, build_plaintext_report
from core.stats import achievements, filter_items, inventory_stats
from core.storage import DB_PATH, ItemStore, SqliteKeyValueStore
from marketplaces import MARKETPLACES

logger = get_logger(__name__)

PROFILE_FIELDS = ("name", "email", "phone", "location", "avatar")


def build_store(path: str = DB_PATH) -> ItemStore:
    return ItemStore(SqliteKeyValueStore(path))


def _print_item_line(it: InventoryItem) -> None:
    where = f" [{', '.join(it.marketplaces)}]" if it.marketplaces else ""
    print(f"{it.id}  {it.status:<6}  ${it.price:>9,.2f}  {it.title}{where}")


def _print_item(it: InventoryItem) -> None:
    print(f"id:          {it.id}")
    print(f"status:      {it.status}")
    print(f"added:       {it.date_added}")
    for name in TEXT_FIELDS:
        print(f"{name + ':':<13}{getattr(it, name)}")
    price = f"${it.price:,.2f}"
    if it.on_sale:
        price += f" (msrp ${it.msrp:,.2f})"
    print(f"price:       {price}")
    print(f"images:      {len(it.images)}" + (f" (primary {it.image[:48]})" if it.image else ""))
    for key, value in sorted(it.specifications.items()):
        print(f"  {key}: {value}")
    for mid in it.marketplaces:
        print(f"listed on:   {mid} {it.listing_ids.get(mid, '')}".rstrip())


def _parse_assignments(pairs: List[str]) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for pair in pairs:
        if "=" not in pair:
            raise ListerError(f"expected FIELD=VALUE, got {pair!r}")
        key, value = pair.split("=", 1)
        out[key.strip()] = value
    return out


def _report_outcome(action: str, outcome) -> int:
    if outcome.ok:
        print(f"{action} ok: {outcome.item.title} is now {outcome.item.status}"
              + (f" (listing {outcome.listing_id})" if outcome.listing_id else ""))
        return 0
    logger.error("%s failed (%s): %s", action, outcome.error.code, outcome.error)
    return 1


# --- commands ---

def cmd_add(store: ItemStore, args) -> int:
    fields = _parse_assignments(args.fields)
    item = editing.create_item(store, fields, images=args.image or [])
    print(item.id)
    return 0


def cmd_analyze(store: ItemStore, args) -> int:
    def progress(pct: int, step: str) -> None:
        if pct % 20 == 0:
            print(f"{pct:3d}%  {step}")

    data = asyncio.run(analyze_photo(args.image, on_progress=progress))
    fields = fields_from_analysis(data)
    item = editing.create_item(store, fields, images=[args.image])
    print(item.id)
    return 0


def cmd_items(store: ItemStore, args) -> int:
    items = filter_items(store.load_items(), args.query, args.status, args.category)
    for it in items:
        _print_item_line(it)
    if not items:
        print("No items match.")
    return 0


def cmd_show(store: ItemStore, args) -> int:
    _print_item(store.get_item(args.item_id))
    return 0


def cmd_edit(store: ItemStore, args) -> int:
    item = editing.edit_field(store, args.item_id, args.field, args.value)
    _print_item_line(item)
    return 0


def cmd_spec(store: ItemStore, args) -> int:
    editing.set_specification(store, args.item_id, args.key, args.value)
    return 0


def cmd_image(store: ItemStore, args) -> int:
    if args.image_action == "add":
        item = editing.add_image(store, args.item_id, args.ref)
    elif args.image_action == "delete":
        item = editing.delete_image(store, args.item_id, args.index)
    else:
        item = editing.move_image(store, args.item_id, args.src, args.dst)
    for idx, ref in enumerate(item.images):
        print(f"{idx}: {ref[:72]}")
    return 0


def cmd_sold(store: ItemStore, args) -> int:
    _print_item_line(editing.mark_sold(store, args.item_id))
    return 0


def cmd_delete(store: ItemStore, args) -> int:
    store.delete_item(args.item_id)
    return 0


def cmd_post(store: ItemStore, args) -> int:
    controller = ListingController(store, MARKETPLACES)
    item = store.get_item(args.item_id)
    m = MARKETPLACES.find_by_id(args.marketplace)
    if m is not None and m.has_api and _marketplace_state(m, store.load_connected()) != "connected":
        raise CapabilityError(f"{m.name} needs setup; run: lister connect {m.id}")
    return _report_outcome("post", asyncio.run(controller.list(item, args.marketplace)))


def cmd_unlist(store: ItemStore, args) -> int:
    controller = ListingController(store, MARKETPLACES)
    item = store.get_item(args.item_id)
    return _report_outcome("unlist", asyncio.run(controller.unlist(item, args.marketplace)))


def cmd_sync(store: ItemStore, args) -> int:
    controller = ListingController(store, MARKETPLACES)
    item = store.get_item(args.item_id)
    unknown = [f for f in args.fields or () if f not in editing.EDITABLE_FIELDS]
    if unknown:
        raise ValidationError(
            f"cannot sync {', '.join(unknown)}; choose from {', '.join(editing.EDITABLE_FIELDS)}"
        )
    fields = args.fields or [f for f in TEXT_FIELDS if getattr(item, f)] + ["price"]
    updates = {f: getattr(item, f) for f in fields}
    return _report_outcome("sync", asyncio.run(controller.update(item, args.marketplace, updates)))


def _marketplace_state(m, connected: List[str]) -> str:
    if not m.has_api:
        return "coming soon"
    if m.setup_required and m.id not in connected:
        return "needs setup"
    return "connected"


def cmd_marketplaces(store: ItemStore, args) -> int:
    connected = store.load_connected()
    for m in MARKETPLACES.all():
        state = _marketplace_state(m, connected)
        print(f"{m.icon} {m.id:<9} {m.name:<22} {state:<12} {m.description}")
    return 0


def cmd_connect(store: ItemStore, args) -> int:
    m = MARKETPLACES.get(args.marketplace)
    connecting = args.command == "connect"
    if connecting and not m.has_api:
        raise CapabilityError(f"{m.name} cannot be connected yet")
    store.set_connected(m.id, connecting)
    print(f"{m.name}: {_marketplace_state(m, store.load_connected())}")
    return 0


def cmd_stats(store: ItemStore, args) -> int:
    stats = inventory_stats(store.load_items())
    print(f"Items: {stats.total_items} ({stats.listed_items} listed, "
          f"{stats.sold_items} sold, {stats.draft_items} drafts)")
    print(f"Inventory value: ${stats.total_value:,.2f}  Sold: ${stats.sold_value:,.2f}")
    print(f"Average price: ${stats.avg_price:,.2f}  Conversion: {stats.conversion_rate:.1f}%")
    for a in achievements(stats):
        print(f"[{'x' if a['earned'] else ' '}] {a['title']}")
    return 0


def cmd_report(store: ItemStore, args) -> int:
    items = store.load_items()
    stats = inventory_stats(items)
    seller = store.load_profile().name
    if args.html:
        with open(args.html, "w", encoding="utf-8") as f:
            f.write(build_html_report(items, stats, seller))
        logger.info("Wrote HTML report to %s", args.html)
    else:
        print(build_plaintext_report(items, stats, seller))
    return 0


def cmd_profile(store: ItemStore, args) -> int:
    profile = store.load_profile()
    if args.set:
        for key, value in _parse_assignments(args.set).items():
            if key not in PROFILE_FIELDS:
                raise ListerError(f"{key!r} is not an editable profile field")
            setattr(profile, key, value)
        store.save_profile(profile)
    for key, value in profile.to_dict().items():
        print(f"{key}: {value}")
    return 0


def cmd_login(store: ItemStore, args) -> int:
    store.set_logged_in(args.command == "login")
    print("Logged in." if store.is_logged_in() else "Logged out.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lister", description="Power Lister inventory and cross-listing tool"
    )
    parser.add_argument("--db", default=os.getenv("DB_PATH", DB_PATH), help="SQLite database path")
    parser.add_argument("--log-level", help="Override LOG_LEVEL (DEBUG, INFO, WARNING, ...)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Same as --log-level DEBUG")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("add", help="Create a draft item")
    p.add_argument("fields", nargs="*", help="FIELD=VALUE pairs, e.g. title=Lamp price=20")
    p.add_argument("--image", action="append", help="Image reference (repeatable)")
    p.set_defaults(func=cmd_add)

    p = sub.add_parser("analyze", help="Create an item from a photo via the analyzer")
    p.add_argument("image")
    p.set_defaults(func=cmd_analyze)

    p = sub.add_parser("items", help="List inventory")
    p.add_argument("--query", "-q", default="")
    p.add_argument("--status", choices=("all",) + STATUSES, default="all")
    p.add_argument("--category", default="all")
    p.set_defaults(func=cmd_items)

    p = sub.add_parser("show", help="Show one item")
    p.add_argument("item_id")
    p.set_defaults(func=cmd_show)

    p = sub.add_parser("edit", help="Edit one field of an item")
    p.add_argument("item_id")
    p.add_argument("field")
    p.add_argument("value")
    p.set_defaults(func=cmd_edit)

    p = sub.add_parser("spec", help="Set (or clear with an empty value) a specification")
    p.add_argument("item_id")
    p.add_argument("key")
    p.add_argument("value")
    p.set_defaults(func=cmd_spec)

    p = sub.add_parser("image", help="Manage item images")
    img = p.add_subparsers(dest="image_action", required=True)
    pa = img.add_parser("add")
    pa.add_argument("item_id")
    pa.add_argument("ref")
    pd = img.add_parser("delete")
    pd.add_argument("item_id")
    pd.add_argument("index", type=int)
    pm = img.add_parser("move")
    pm.add_argument("item_id")
    pm.add_argument("src", type=int)
    pm.add_argument("dst", type=int)
    p.set_defaults(func=cmd_image)

    p = sub.add_parser("sold", help="Mark an item sold")
    p.add_argument("item_id")
    p.set_defaults(func=cmd_sold)

    p = sub.add_parser("delete", help="Delete an item")
    p.add_argument("item_id")
    p.set_defaults(func=cmd_delete)

    for name, func, help_text in (
        ("post", cmd_post, "List an item on a marketplace"),
        ("unlist", cmd_unlist, "Remove an item from a marketplace"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("item_id")
        p.add_argument("marketplace")
        p.set_defaults(func=func)

    p = sub.add_parser("sync", help="Push item fields to an active listing")
    p.add_argument("item_id")
    p.add_argument("marketplace")
    p.add_argument("--field", dest="fields", action="append")
    p.set_defaults(func=cmd_sync)

    p = sub.add_parser("marketplaces", help="Show supported marketplaces")
    p.set_defaults(func=cmd_marketplaces)

    for name, help_text in (
        ("connect", "Finish setup for a marketplace"),
        ("disconnect", "Forget a marketplace connection"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("marketplace")
        p.set_defaults(func=cmd_connect)

    p = sub.add_parser("stats", help="Inventory analytics")
    p.set_defaults(func=cmd_stats)

    p = sub.add_parser("report", help="Render an inventory report")
    p.add_argument("--html", help="Write an HTML report to this path instead of printing text")
    p.set_defaults(func=cmd_report)

    p = sub.add_parser("profile", help="Show or edit the seller profile")
    p.add_argument("--set", action="append", help="FIELD=VALUE (repeatable)")
    p.set_defaults(func=cmd_profile)

    for name in ("login", "logout"):
        p = sub.add_parser(name)
        p.set_defaults(func=cmd_login)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.verbose or args.log_level:
        try:
            set_level("DEBUG" if args.verbose else args.log_level)
        except ValueError as e:
            parser.error(str(e))
    store = build_store(args.db)
    try:
        return args.func(store, args)
    except ListerError as e:
        logger.error("%s: %s", args.command, e)
        return 1


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except Exception as e:
        logger.exception("Fatal lister error: %s", e)
        raise SystemExit(2)
