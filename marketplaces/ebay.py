# marketplaces/ebay.py
from .base import StubLister


class EbayLister(StubLister):
    id = "ebay"
    name = "eBay"
    icon = "🛒"
    description = "Reach millions of buyers worldwide"
    listing_prefix = "ebay"
    post_delay = 1.5
    call_delay = 1.0
