import os
from pathlib import Path
from typing import List
from jinja2 import Environment, FileSystemLoader
from core.models import InventoryItem
from core.stats import InventoryStats, achievements

# Resolve template directory relative to this file
TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"
env = Environment(loader=FileSystemLoader(str(TEMPLATE_DIR)), autoescape=True)
text_env = Environment(loader=FileSystemLoader(str(TEMPLATE_DIR)))

REPORT_THEME = os.getenv("REPORT_THEME", "dark").strip().lower()
if REPORT_THEME not in ("light", "dark"):
    REPORT_THEME = "dark"

THEMES = {
    "light": {
        "page_bg": "#f5f5f5",
        "card_bg": "#ffffff",
        "card_border": "#e0e0e0",
        "text_primary": "#202124",
        "text_secondary": "#555",
        "text_muted": "#999",
        "status_draft": "#b26a00",
        "status_listed": "#2e7d32",
        "status_sold": "#c62828",
    },
    "dark": {
        "page_bg": "#121212",
        "card_bg": "#1E1E1E",
        "card_border": "#333333",
        "text_primary": "#F1F1F1",
        "text_secondary": "#BBBBBB",
        "text_muted": "#777777",
        "status_draft": "#FFB74D",
        "status_listed": "#4CAF50",
        "status_sold": "#FF6B6B",
    },
}


def _money(amount: float) -> str:
    return f"${amount:,.2f}"


def _item_rows(items: List[InventoryItem]) -> list[dict]:
    rows = []
    for it in items:
        rows.append(
            {
                "id": it.id,
                "title": it.title or "(untitled)",
                "brand": it.brand,
                "category": it.category,
                "status": it.status,
                "price_str": _money(it.price),
                "msrp_str": _money(it.msrp) if it.on_sale else "",
                "marketplaces": ", ".join(it.marketplaces),
                "image": it.image,
                "date_added": it.date_added,
            }
        )
    return rows


def _summary(stats: InventoryStats) -> dict:
    return {
        "total_items": stats.total_items,
        "listed_items": stats.listed_items,
        "sold_items": stats.sold_items,
        "draft_items": stats.draft_items,
        "total_value": _money(stats.total_value),
        "sold_value": _money(stats.sold_value),
        "avg_price": _money(stats.avg_price),
        "avg_sale_price": _money(stats.avg_sale_price),
        "conversion_rate": f"{stats.conversion_rate:.1f}%",
        "categories": sorted(stats.categories.items(), key=lambda kv: (-kv[1], kv[0])),
    }


def build_plaintext_report(
    items: List[InventoryItem],
    stats: InventoryStats,
    seller_name: str = "",
) -> str:
    template = text_env.get_template("inventory_text.txt")

    ctx = {
        "seller_name": seller_name,
        "summary": _summary(stats),
        "items": _item_rows(items),
        "achievements": achievements(stats),
    }

    return template.render(**ctx)


def build_html_report(
    items: List[InventoryItem],
    stats: InventoryStats,
    seller_name: str = "",
) -> str:
    template = env.get_template(f"inventory_{REPORT_THEME}.html")
    colors = THEMES[REPORT_THEME]

    ctx = {
        "title": f"Inventory report – {seller_name}" if seller_name else "Inventory report",
        "seller_name": seller_name,
        "summary": _summary(stats),
        "items": _item_rows(items),
        "achievements": achievements(stats),
        "colors": colors,
    }

    return template.render(**ctx)
