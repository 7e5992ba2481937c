"""Per-page, per-device capture of headings and full-page screenshots."""
from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Sequence

from playwright.async_api import Browser, CDPSession, Page
from playwright.async_api import Error as PlaywrightError

from .broadcaster import LogBroadcaster, report
from .devices import DeviceTable, EmulationMode, EmulationPlan
from .schemas import DeviceSpec, Heading, HeadingRecord, PageCaptureResult

logger = logging.getLogger(__name__)

NAV_TIMEOUT_MS = 20000
SETTLE_DELAY_MS = 1500
HEADINGS_FILENAME = "headings.json"

HEADINGS_SCRIPT = """() => Array.from(document.querySelectorAll("h1,h2,h3,h4,h5,h6")).map(el => ({
    level: el.tagName.toLowerCase(),
    text: (el.textContent || "").trim()
}))"""


def screenshot_filename(device_name: str) -> str:
    return re.sub(r"\s+", "_", device_name) + ".png"


def write_headings(folder: Path, records: Sequence[HeadingRecord]) -> Path:
    path = folder / HEADINGS_FILENAME
    with path.open("w", encoding="utf-8") as handle:
        json.dump([record.to_dict() for record in records], handle, indent=2, ensure_ascii=False)
    return path


def _headings_from_dom(raw: Any) -> list[Heading]:
    headings: list[Heading] = []
    for item in raw or []:
        headings.append(Heading(level=str(item.get("level", "")), text=str(item.get("text", ""))))
    return headings


async def apply_emulation(
    cdp: CDPSession,
    plan: EmulationPlan,
    default_user_agent: str,
    default_viewport: dict | None,
) -> None:
    """Switch the tab behind ``cdp`` to ``plan``.

    All three modes set every override so nothing leaks from the previous
    device on the same tab.
    """

    if plan.mode is EmulationMode.PROFILE and plan.profile is not None:
        profile = plan.profile
        user_agent = profile.user_agent or default_user_agent
        metrics = {
            "width": profile.width,
            "height": profile.height,
            "deviceScaleFactor": profile.device_scale_factor,
            "mobile": profile.is_mobile,
        }
        touch = profile.has_touch
    elif plan.mode is EmulationMode.VIEWPORT:
        user_agent = default_user_agent
        metrics = {
            "width": plan.device.width,
            "height": plan.device.height,
            "deviceScaleFactor": 1,
            "mobile": False,
        }
        touch = False
    else:
        user_agent = default_user_agent
        metrics = None
        if default_viewport:
            metrics = {
                "width": default_viewport["width"],
                "height": default_viewport["height"],
                "deviceScaleFactor": 1,
                "mobile": False,
            }
        touch = False

    await cdp.send("Emulation.setUserAgentOverride", {"userAgent": user_agent})
    if metrics is None:
        await cdp.send("Emulation.clearDeviceMetricsOverride")
    else:
        await cdp.send("Emulation.setDeviceMetricsOverride", metrics)
    await cdp.send("Emulation.setTouchEmulationEnabled", {"enabled": touch})


async def _announce_plan(page: Page, plan: EmulationPlan, broadcaster: LogBroadcaster | None) -> None:
    name = plan.device.name
    if plan.mode is EmulationMode.PROFILE:
        report(broadcaster, logger, logging.INFO, "Emulating device: %s", name)
        user_agent = await page.evaluate("() => navigator.userAgent")
        report(broadcaster, logger, logging.INFO, "User agent after emulation: %s", user_agent)
    elif plan.mode is EmulationMode.VIEWPORT:
        report(
            broadcaster,
            logger,
            logging.WARNING,
            "Using viewport fallback for: %s (%sx%s)",
            name,
            plan.device.width,
            plan.device.height,
        )
    else:
        report(broadcaster, logger, logging.WARNING, "Device not found: %s, skipping emulation", name)


async def capture_page(
    url: str,
    browser: Browser,
    folder: Path,
    devices: Sequence[DeviceSpec],
    table: DeviceTable,
    broadcaster: LogBroadcaster | None = None,
    nav_timeout_ms: int = NAV_TIMEOUT_MS,
    settle_delay_ms: int = SETTLE_DELAY_MS,
) -> PageCaptureResult:
    """Capture ``url`` once per device into ``folder``.

    A single tab is reused for every device and always closed on exit. Browser
    errors (navigation timeouts included) and filesystem errors abandon the
    rest of the page and are returned on the result instead of raised; other
    exceptions propagate to the batch.
    """

    result = PageCaptureResult(url=url, folder=folder)
    page = await browser.new_page()
    try:
        cdp = await page.context.new_cdp_session(page)
        default_user_agent = await page.evaluate("() => navigator.userAgent")
        default_viewport = page.viewport_size

        for device in devices:
            plan = table.plan(device)
            await apply_emulation(cdp, plan, default_user_agent, default_viewport)
            await _announce_plan(page, plan, broadcaster)

            await page.goto(url, wait_until="networkidle", timeout=nav_timeout_ms)
            await page.wait_for_timeout(settle_delay_ms)

            headings = _headings_from_dom(await page.evaluate(HEADINGS_SCRIPT))
            result.records.append(HeadingRecord(device=device.name, headings=headings))

            screenshot_path = folder / screenshot_filename(device.name)
            await page.screenshot(path=str(screenshot_path), full_page=True)
            result.screenshots.append(screenshot_path)
            report(broadcaster, logger, logging.INFO, "Screenshot saved: %s", screenshot_path)

        write_headings(folder, result.records)
    except (PlaywrightError, OSError) as exc:
        result.error = str(exc)
        report(broadcaster, logger, logging.ERROR, "Page automation error for %s: %s", url, exc)
    finally:
        await page.close()
    return result
