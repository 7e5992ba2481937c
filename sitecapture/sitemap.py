"""Sitemap fetching and parsing utilities."""
from __future__ import annotations

import logging
from typing import Iterable

import requests
from bs4 import BeautifulSoup
from lxml import etree

from .schemas import SitemapFailure, SitemapResult

logger = logging.getLogger(__name__)

USER_AGENT = "SiteCaptureBot/1.0"
REQUEST_TIMEOUT = 10


class SitemapError(Exception):
    """A sitemap could not be fetched or does not look like a sitemap."""


def _fetch_document(url: str, timeout: int = REQUEST_TIMEOUT) -> bytes:
    try:
        response = requests.get(
            url,
            headers={"User-Agent": USER_AGENT},
            timeout=timeout,
            allow_redirects=True,
        )
        response.raise_for_status()
    except requests.RequestException as exc:
        raise SitemapError(f"fetch failed: {exc}") from exc
    return response.content


def _loc_values(parent, child_name: str) -> list[str]:
    values: list[str] = []
    for entry in parent.find_all(child_name, recursive=False):
        # recursive=False keeps image:loc / video:loc extensions out.
        loc = entry.find("loc", recursive=False)
        if loc is None:
            continue
        text = loc.get_text(strip=True)
        if text:
            values.append(text)
    return values


def _check_well_formed(xml: bytes) -> None:
    # bs4 drives lxml in recover mode, which silently keeps truncated documents.
    try:
        parser = etree.XMLParser(recover=False, resolve_entities=False, no_network=True)
        etree.fromstring(xml, parser=parser)
    except etree.XMLSyntaxError as exc:
        raise SitemapError(f"malformed XML: {exc}") from exc


def parse_sitemap(xml: str | bytes) -> tuple[str, list[str]]:
    """Return ``(kind, locs)`` for a sitemap document.

    ``kind`` is ``"urlset"`` or ``"sitemapindex"``; ``locs`` holds the page
    URLs or the nested sitemap URLs in document order. Anything else raises
    :class:`SitemapError`.
    """

    if isinstance(xml, str):
        xml = xml.encode("utf-8")
    if not xml.strip():
        raise SitemapError("empty document")
    _check_well_formed(xml)
    soup = BeautifulSoup(xml, "xml")
    root = soup.find(True)
    if root is None:
        raise SitemapError("no XML root element")
    if root.name == "urlset":
        return "urlset", _loc_values(root, "url")
    if root.name == "sitemapindex":
        return "sitemapindex", _loc_values(root, "sitemap")
    raise SitemapError(f"unexpected root element <{root.name}>")


def resolve_sitemap(url: str, timeout: int = REQUEST_TIMEOUT) -> SitemapResult:
    """Resolve a sitemap URL into page URLs, walking nested indexes depth-first.

    Failures never raise. A sitemap that cannot be fetched or parsed yields no
    URLs and is reported in ``SitemapResult.failures`` so callers decide how
    loudly to complain.

    Indexes are assumed to be acyclic. An index that references itself, directly
    or through another index, recurses until the interpreter gives up.
    """

    result = SitemapResult()
    try:
        kind, locs = parse_sitemap(_fetch_document(url, timeout=timeout))
    except SitemapError as exc:
        logger.warning("Skipping sitemap %s: %s", url, exc)
        result.failures.append(SitemapFailure(url=url, reason=str(exc)))
        return result

    if kind == "urlset":
        logger.info("Sitemap %s lists %d page(s)", url, len(locs))
        result.urls.extend(locs)
        return result

    logger.info("Sitemap index %s references %d sitemap(s)", url, len(locs))
    for nested in locs:
        result.extend(resolve_sitemap(nested, timeout=timeout))
    return result


def resolve_sitemaps(urls: Iterable[str], timeout: int = REQUEST_TIMEOUT) -> SitemapResult:
    """Concatenate the pages of several sitemap roots. Duplicates are kept."""
    combined = SitemapResult()
    for url in urls:
        combined.extend(resolve_sitemap(url, timeout=timeout))
    return combined
