# marketplaces/facebook.py
from .base import StubLister


class FacebookLister(StubLister):
    id = "facebook"
    name = "Facebook Marketplace"
    icon = "📘"
    description = "Sell locally in your community"
    listing_prefix = "fb"
    post_delay = 1.2
    call_delay = 1.0
