"""Batch orchestration: one site, one browser, every page in sequence."""
from __future__ import annotations

import asyncio
import logging
import re
import time
from pathlib import Path
from typing import Awaitable, Callable, Mapping, Sequence

from playwright.async_api import Browser

from .broadcaster import LogBroadcaster, report
from .capture import NAV_TIMEOUT_MS, SETTLE_DELAY_MS, capture_page
from .devices import DeviceTable
from .schemas import BatchResult, DeviceSpec
from .sitemap import REQUEST_TIMEOUT, resolve_sitemaps

logger = logging.getLogger(__name__)

BrowserLauncher = Callable[[], Awaitable[Browser]]

_SCHEME_RE = re.compile(r"https?://")


class UnknownSiteError(KeyError):
    """Raised when a batch is requested for a site key that is not configured."""

    def __init__(self, site_key: str) -> None:
        super().__init__(site_key)
        self.site_key = site_key

    def __str__(self) -> str:
        return f"Unknown site key: {self.site_key!r}"


def page_folder_name(url: str) -> str:
    """Folder name for a page: scheme dropped, every ``/`` replaced by ``_``."""
    return _SCHEME_RE.sub("", url, count=1).replace("/", "_")


def format_elapsed(seconds: float) -> str:
    """``"850 ms"``, ``"42.3 s"`` or ``"12m 05s"``."""
    if seconds < 1:
        return f"{max(seconds, 0) * 1000:.0f} ms"
    if seconds < 60:
        return f"{seconds:.1f} s"
    minutes, rest = divmod(int(round(seconds)), 60)
    return f"{minutes}m {rest:02d}s"


class BatchRunner:
    """Runs capture batches for configured sites.

    The browser is shared by every page of a batch and owned by exactly one
    batch at a time; concurrent ``run`` calls queue up on ``_lock``.
    """

    def __init__(
        self,
        sites: Mapping[str, Sequence[str]],
        devices: Sequence[DeviceSpec],
        table: DeviceTable,
        broadcaster: LogBroadcaster,
        launch_browser: BrowserLauncher,
        output_root: Path = Path("automation_outputs"),
        nav_timeout_ms: int = NAV_TIMEOUT_MS,
        settle_delay_ms: int = SETTLE_DELAY_MS,
        sitemap_timeout: int = REQUEST_TIMEOUT,
    ) -> None:
        self.sites = sites
        self.devices = tuple(devices)
        self.table = table
        self.broadcaster = broadcaster
        self.output_root = Path(output_root)
        self._launch_browser = launch_browser
        self._nav_timeout_ms = nav_timeout_ms
        self._settle_delay_ms = settle_delay_ms
        self._sitemap_timeout = sitemap_timeout
        self._lock = asyncio.Lock()

    @property
    def site_keys(self) -> list[str]:
        return sorted(self.sites)

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def _report(self, level: int, msg: str, *args: object) -> None:
        report(self.broadcaster, logger, level, msg, *args)

    async def run(self, site_key: str) -> BatchResult:
        if site_key not in self.sites:
            raise UnknownSiteError(site_key)

        if self._lock.locked():
            self._report(logging.INFO, "Another batch is running, %s is queued", site_key)
        async with self._lock:
            return await self._run_locked(site_key)

    async def _run_locked(self, site_key: str) -> BatchResult:
        start = time.perf_counter()
        batch_folder = self.output_root / site_key
        batch_folder.mkdir(parents=True, exist_ok=True)
        self._report(logging.INFO, "Starting batch for %s", site_key)

        browser = await self._launch_browser()
        try:
            resolved = await asyncio.to_thread(
                resolve_sitemaps, self.sites[site_key], self._sitemap_timeout
            )
            for failure in resolved.failures:
                self._report(logging.WARNING, "Sitemap skipped: %s (%s)", failure.url, failure.reason)
            self._report(logging.INFO, "Found %d page(s) for %s", len(resolved.urls), site_key)

            result = BatchResult(
                site_key=site_key,
                folder=batch_folder,
                urls=list(resolved.urls),
                sitemap_failures=list(resolved.failures),
            )
            total = len(resolved.urls)
            for index, url in enumerate(resolved.urls, start=1):
                page_folder = batch_folder / page_folder_name(url)
                page_folder.mkdir(parents=True, exist_ok=True)
                self._report(logging.INFO, "[%d/%d] Capturing %s", index, total, url)
                page_result = await capture_page(
                    url,
                    browser,
                    page_folder,
                    self.devices,
                    self.table,
                    broadcaster=self.broadcaster,
                    nav_timeout_ms=self._nav_timeout_ms,
                    settle_delay_ms=self._settle_delay_ms,
                )
                result.pages.append(page_result)
        finally:
            await browser.close()

        result.elapsed = time.perf_counter() - start
        self._report(
            logging.INFO,
            "Batch %s finished: %d page(s), %d failed, in %s",
            site_key,
            len(result.pages),
            len(result.failed_pages),
            format_elapsed(result.elapsed),
        )
        return result
