"""Shared data structures used across modules."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List


@dataclass(frozen=True, slots=True)
class DeviceSpec:
    name: str
    width: int | None = None
    height: int | None = None

    @property
    def has_dimensions(self) -> bool:
        return bool(self.width and self.height)


@dataclass(frozen=True, slots=True)
class EmulationProfile:
    name: str
    user_agent: str
    width: int
    height: int
    device_scale_factor: float = 1
    is_mobile: bool = False
    has_touch: bool = False


@dataclass(slots=True)
class Heading:
    level: str
    text: str


@dataclass(slots=True)
class HeadingRecord:
    device: str
    headings: List[Heading]

    def to_dict(self) -> dict:
        return {
            "device": self.device,
            "headings": [{"level": h.level, "text": h.text} for h in self.headings],
        }


@dataclass(slots=True)
class SitemapFailure:
    url: str
    reason: str


@dataclass(slots=True)
class SitemapResult:
    urls: List[str] = field(default_factory=list)
    failures: List[SitemapFailure] = field(default_factory=list)

    def extend(self, other: SitemapResult) -> None:
        self.urls.extend(other.urls)
        self.failures.extend(other.failures)


@dataclass(slots=True)
class PageCaptureResult:
    url: str
    folder: Path
    screenshots: List[Path] = field(default_factory=list)
    records: List[HeadingRecord] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class BatchResult:
    site_key: str
    folder: Path
    urls: List[str]
    pages: List[PageCaptureResult] = field(default_factory=list)
    sitemap_failures: List[SitemapFailure] = field(default_factory=list)
    elapsed: float = 0.0

    @property
    def failed_pages(self) -> List[PageCaptureResult]:
        return [page for page in self.pages if not page.ok]
