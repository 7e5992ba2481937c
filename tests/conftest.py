"""Browser and sitemap fakes shared by the capture and batch tests."""
from __future__ import annotations

import os
import tempfile
from pathlib import Path

# sitecapture.main configures logging on import; keep its log file out of the checkout.
os.environ.setdefault("APP_LOG_DIR", tempfile.mkdtemp(prefix="sitecapture-logs-"))

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from sitecapture import sitemap

DEFAULT_UA = "Mozilla/5.0 (X11; Linux x86_64) HeadlessChrome/120.0.0.0 Safari/537.36"


class FakeCDPSession:
    def __init__(self, page: "FakePage") -> None:
        self.page = page
        self.calls: list[tuple[str, dict | None]] = []

    async def send(self, method: str, params: dict | None = None):
        self.calls.append((method, params))
        if method == "Emulation.setUserAgentOverride":
            self.page.user_agent = params["userAgent"]
        return {}

    def last(self, method: str) -> dict | None:
        for name, params in reversed(self.calls):
            if name == method:
                return params
        raise AssertionError(f"{method} was never sent")


class FakeContext:
    def __init__(self, page: "FakePage") -> None:
        self.page = page

    async def new_cdp_session(self, page):
        assert page is self.page
        return self.page.cdp


class FakePage:
    viewport_size = {"width": 1280, "height": 720}

    def __init__(self, browser: "FakeBrowser") -> None:
        self.browser = browser
        self.cdp = FakeCDPSession(self)
        self.context = FakeContext(self)
        self.user_agent = DEFAULT_UA
        self.current_url: str | None = None
        self.visits: list[tuple[str, str | None, int | None]] = []
        self.waits: list[int] = []
        self.screenshots: list[tuple[str, bool]] = []
        self.user_agents_at_screenshot: list[str] = []
        self.closed = False

    async def evaluate(self, script: str):
        if "navigator.userAgent" in script:
            return self.user_agent
        return [dict(item) for item in self.browser.headings.get(self.current_url, [])]

    async def goto(self, url: str, wait_until: str | None = None, timeout: int | None = None):
        if url in self.browser.failing:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded.")
        self.visits.append((url, wait_until, timeout))
        self.current_url = url

    async def wait_for_timeout(self, timeout: int) -> None:
        self.waits.append(timeout)

    async def screenshot(self, path: str, full_page: bool = False) -> bytes:
        self.screenshots.append((path, full_page))
        self.user_agents_at_screenshot.append(self.user_agent)
        data = b"\x89PNG\r\n\x1a\nfake"
        Path(path).write_bytes(data)
        return data

    async def close(self) -> None:
        self.closed = True


class FakeBrowser:
    def __init__(self, headings: dict | None = None, failing=()) -> None:
        self.headings = headings or {}
        self.failing = set(failing)
        self.pages: list[FakePage] = []
        self.closed = False

    async def new_page(self) -> FakePage:
        page = FakePage(self)
        self.pages.append(page)
        return page

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_browser_cls():
    return FakeBrowser


@pytest.fixture
def serve_sitemaps(monkeypatch):
    """Route sitemap fetches to an in-memory ``{url: xml}`` mapping."""

    def install(documents: dict[str, str]) -> list[str]:
        fetched: list[str] = []

        def fake_fetch(url: str, timeout: int = sitemap.REQUEST_TIMEOUT) -> str:
            fetched.append(url)
            if url not in documents:
                raise sitemap.SitemapError(f"fetch failed: 404 for {url}")
            return documents[url]

        monkeypatch.setattr(sitemap, "_fetch_document", fake_fetch)
        return fetched

    return install


def urlset(*locs: str) -> str:
    entries = "".join(f"<url><loc>{loc}</loc></url>" for loc in locs)
    return f'<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{entries}</urlset>'


def sitemapindex(*locs: str) -> str:
    entries = "".join(f"<sitemap><loc>{loc}</loc></sitemap>" for loc in locs)
    return f'<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{entries}</sitemapindex>'


@pytest.fixture
def xml_builders():
    return urlset, sitemapindex
