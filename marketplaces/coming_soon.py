# marketplaces/coming_soon.py
from .base import UnavailableLister


class MercariLister(UnavailableLister):
    id = "mercari"
    name = "Mercari"
    icon = "🛍️"
    description = "Mobile-first marketplace"


class PoshmarkLister(UnavailableLister):
    id = "poshmark"
    name = "Poshmark"
    icon = "👗"
    description = "Fashion and lifestyle marketplace"


class DepopLister(UnavailableLister):
    id = "depop"
    name = "Depop"
    icon = "✨"
    description = "Creative community marketplace"
