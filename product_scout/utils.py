# File: product_scout/utils.py
"""product_scout.utils: URL normalisation and small helpers shared by the job, store and report."""

from __future__ import annotations

import posixpath
from typing import Sequence
from urllib.parse import unquote, quote, urlparse, urlunparse

__all__: Sequence[str] = (
    "normalize_url",
    "is_valid_url",
    "domain_label",
)


def normalize_url(url: str) -> str:
    """Canonical identity of a domain URL.

    Lower-cases scheme and host, collapses ``.``/``..`` and duplicate slashes
    in the path, drops the fragment and strips the trailing slash
    (``https://Example.com/shop/`` → ``https://example.com/shop``).
    """
    parsed = urlparse(url.strip())
    scheme = parsed.scheme.lower()
    netloc = parsed.netloc.lower()
    path = unquote(parsed.path)
    if path:
        path = posixpath.normpath(path)
        if not path.startswith("/"):
            path = "/" + path
        if path.startswith("//"):
            path = "/" + path.lstrip("/")
    path = quote(path.rstrip("/"), safe="/%:@!$&'()*+,;=-._~")
    return urlunparse((scheme, netloc, path, "", parsed.query, ""))


def is_valid_url(url: str) -> bool:
    """Absolute http(s) URL with a host."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def domain_label(url: str) -> str:
    """Short storefront name: ``https://www.example.co.uk/x`` → ``example``."""
    host = (urlparse(url).hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]
    return host.split(".", 1)[0] if host else url

