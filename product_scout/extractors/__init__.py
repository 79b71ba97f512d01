"""product_scout.extractors: static (HTTP + HTML) and dynamic (browser) page extractors."""

from product_scout.extractors.dynamic import DynamicExtractor
from product_scout.extractors.scroll import ScrollDiscovery, ScrollStats
from product_scout.extractors.static import StaticExtractor, extract_product_links

__all__ = [
    "DynamicExtractor",
    "ScrollDiscovery",
    "ScrollStats",
    "StaticExtractor",
    "extract_product_links",
]
