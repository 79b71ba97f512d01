# product_scout/classifier.py
"""
Structural product-URL classification.

A link is a product-detail URL when its path matches at least one registered
pattern. The pattern list is plain data: a new storefront convention is one
more entry, never a new branch.
"""
from __future__ import annotations

import re
from typing import Iterable, List, Pattern, Sequence, Union
from urllib.parse import urlsplit

__all__: Sequence[str] = (
    "PRODUCT_PATH_PATTERNS",
    "PRODUCT_PATH_MARKERS",
    "URLClassifier",
    "default_classifier",
    "is_product_url",
    "register_pattern",
    "has_product_marker",
)

PRODUCT_PATH_PATTERNS: Sequence[str] = (
    r"/product/",  # generic (Amazon, Best Buy, ...)
    r"/item/",  # eBay, Walmart
    r"/p/",  # Flipkart, AliExpress
    r"/products?/",  # Shopify, WooCommerce
    r"/dp/[A-Z0-9]+",  # Amazon ASIN
    r"/gp/product/[A-Z0-9]+",
    r"/prod/",
    r"/detail/",
    r"/details/",
    r"/sku/",
    r"/buy/",
    r"/store/products?/",
    r"/catalog/product/",  # Magento
    r"/shop/",  # WooCommerce, BigCommerce
    r"/product-page/",
    r"/view/[A-Za-z0-9_-]+",
    r"/goods/[0-9]+",  # Taobao, JD.com
    r"/offer/",
)

# Substring markers the rendered-page collector keeps.
PRODUCT_PATH_MARKERS: Sequence[str] = ("/product/", "/products/", "/dp/", "/p/")

_PatternT = Union[str, Pattern[str]]


def _path_of(link: str) -> str:
    """Path component of *link*; relative links are their own path."""
    parts = urlsplit(link.strip())
    return parts.path


class URLClassifier:
    """Boolean-OR over an ordered list of compiled path patterns."""

    def __init__(self, patterns: Iterable[_PatternT] = PRODUCT_PATH_PATTERNS) -> None:
        self._patterns: List[Pattern[str]] = []
        for pattern in patterns:
            self.register(pattern)

    @property
    def patterns(self) -> List[Pattern[str]]:
        return list(self._patterns)

    def register(self, pattern: _PatternT) -> Pattern[str]:
        """Add a pattern; existing matches are never affected."""
        compiled = re.compile(pattern) if isinstance(pattern, str) else pattern
        if compiled.pattern not in {p.pattern for p in self._patterns}:
            self._patterns.append(compiled)
        return compiled

    def is_product_url(self, link: object) -> bool:
        if not isinstance(link, str) or not link.strip():
            return False
        try:
            path = _path_of(link)
        except ValueError:
            # e.g. "http://[broken" – not a URL at all
            return False
        return any(p.search(path) for p in self._patterns)

    __call__ = is_product_url


default_classifier = URLClassifier()


def is_product_url(link: object) -> bool:
    """Return True if *link* looks like a product-detail URL."""
    return default_classifier.is_product_url(link)


def register_pattern(pattern: _PatternT) -> Pattern[str]:
    """Register a new storefront convention on the default classifier."""
    return default_classifier.register(pattern)


def has_product_marker(url: str) -> bool:
    """Cheap substring test used on anchors collected from a rendered DOM."""
    return any(marker in url for marker in PRODUCT_PATH_MARKERS)
