# core/analysis.py
"""
Stand-in for photo analysis. There is no model behind this: it ticks a
progress counter for a few seconds and hands back a fixed product.
"""
import asyncio
import os
from typing import Any, Callable, Dict, Optional

from .editing import parse_amount
from .errors import ValidationError
from .logger import get_logger
from .models import PRICE_FIELDS, TEXT_FIELDS

logger = get_logger(__name__)

ANALYSIS_TICK_SECONDS = float(os.getenv("ANALYSIS_TICK_SECONDS", "0.1"))
PROGRESS_STEP = 2
STEP_EVERY_TICKS = 12

ANALYSIS_STEPS = [
    "Analyzing image content...",
    "Identifying product details...",
    "Researching market prices...",
    "Generating description...",
    "Finalizing analysis...",
]

CANNED_RESULT: Dict[str, str] = {
    "title": "Apple iPhone 14 Pro",
    "description": (
        "Premium smartphone with advanced camera system and A16 Bionic chip. "
        "Features ProRAW photography and Cinematic mode."
    ),
    "price": "899",
    "msrp": "999",
    "category": "Electronics",
    "condition": "Excellent",
    "brand": "Apple",
    "model": "iPhone 14 Pro",
    "color": "Deep Purple",
    "size": '6.1"',
    "weight": "206g",
    "dimensions": "5.81 × 2.81 × 0.31 in",
}

ProgressCallback = Callable[[int, str], None]


async def analyze_photo(
    image_ref: str,
    on_progress: Optional[ProgressCallback] = None,
    tick_seconds: Optional[float] = None,
) -> Dict[str, str]:
    """
    Run the simulated analysis for ``image_ref``. ``on_progress(percent, step)``
    is called on every tick, ending with 100.
    """
    tick = ANALYSIS_TICK_SECONDS if tick_seconds is None else tick_seconds
    logger.info("Analyzing photo %s", image_ref[:64])

    progress = 0
    ticks = 0
    while True:
        step = ANALYSIS_STEPS[(ticks // STEP_EVERY_TICKS) % len(ANALYSIS_STEPS)]
        if on_progress:
            on_progress(progress, step)
        if progress >= 100:
            break
        if tick > 0:
            await asyncio.sleep(tick)
        ticks += 1
        progress = min(100, progress + PROGRESS_STEP)

    logger.info("Analysis of %s complete: %s", image_ref[:64], CANNED_RESULT["title"])
    return dict(CANNED_RESULT)


def fields_from_analysis(data: Dict[str, Any]) -> Dict[str, Any]:
    """Turn analysis output into create_item fields; unparseable prices become 0."""
    out: Dict[str, Any] = {}
    for key in TEXT_FIELDS:
        if key in data:
            out[key] = str(data[key])
    for key in PRICE_FIELDS:
        try:
            out[key] = parse_amount(key, data.get(key))
        except ValidationError:
            logger.warning("Analysis returned unusable %s %r; using 0.", key, data.get(key))
            out[key] = 0.0
    return out
