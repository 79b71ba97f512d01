# product_scout/extractors/static.py
"""
Static extractor: one HTTP GET, parse the raw HTML, keep anchors that look
like product pages.

Transport errors, timeouts and non-2xx answers are expected on storefronts
and give an empty result; anything else propagates to the job.
"""
from __future__ import annotations

import asyncio
from typing import Callable, Optional, Set
from urllib.parse import urljoin, urlparse

from aiohttp import ClientError, ClientSession, ClientTimeout
from bs4 import BeautifulSoup
from bs4.element import Tag

from product_scout.classifier import is_product_url
from product_scout.config import CrawlerConfig
from product_scout.logger import get_logger

_SKIP_SCHEMES = ("mailto:", "javascript:", "tel:", "#")


def browser_headers(user_agent: str) -> dict[str, str]:
    return {
        "User-Agent": user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.5",
    }


def extract_product_links(
    html: str,
    page_url: str,
    classify: Callable[[str], bool] = is_product_url,
) -> Set[str]:
    """
    Resolve every ``<a href>`` of *html* against the page base and keep the
    product URLs. A ``<base href>`` element overrides *page_url*.
    """
    soup = BeautifulSoup(html, "lxml")
    base = page_url
    base_tag = soup.find("base", href=True)
    if isinstance(base_tag, Tag) and isinstance(base_tag.get("href"), str):
        base = urljoin(page_url, base_tag["href"].strip())

    found: Set[str] = set()
    for tag in soup.find_all("a", href=True):
        if not isinstance(tag, Tag):
            continue
        href_val = tag.get("href")
        if not isinstance(href_val, str):
            continue
        raw = href_val.strip()
        if not raw or raw.lower().startswith(_SKIP_SCHEMES):
            continue
        try:
            absolute = urljoin(base, raw)
        except ValueError:
            continue
        if urlparse(absolute).scheme not in ("http", "https"):
            continue
        if classify(absolute):
            found.add(absolute)
    return found


class StaticExtractor:
    """Fetches a page with a shared aiohttp session (open it with ``async with``)."""

    def __init__(self, config: CrawlerConfig, session: Optional[ClientSession] = None) -> None:
        self.config = config
        self.session = session
        self._owns_session = session is None
        self.logger = get_logger("static")

    async def __aenter__(self) -> StaticExtractor:
        if self.session is None:
            self.session = ClientSession(
                timeout=ClientTimeout(total=self.config.fetch_timeout),
                headers=browser_headers(self.config.user_agent),
                raise_for_status=False,
            )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()

    async def extract(self, page_url: str) -> Set[str]:
        if not self.session:
            raise RuntimeError("Session not initialized")
        try:
            async with self.session.get(
                page_url, timeout=ClientTimeout(total=self.config.fetch_timeout)
            ) as resp:
                if not 200 <= resp.status < 300:
                    self.logger.warning("Static fetch %s -> HTTP %s", page_url, resp.status)
                    return set()
                html = await resp.text(errors="replace")
                final_url = str(resp.url)
        except asyncio.TimeoutError:
            self.logger.warning("Static fetch %s timed out after %.1fs", page_url, self.config.fetch_timeout)
            return set()
        except ClientError as exc:
            self.logger.warning("Error scraping static page %s: %s", page_url, exc)
            return set()

        links = extract_product_links(html, final_url)
        self.logger.debug("Static extractor: %d product links on %s", len(links), page_url)
        return links
