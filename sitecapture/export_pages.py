"""Write the page URLs behind a site's sitemaps to a JSON file."""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Sequence

from .config import ConfigError, get_settings, load_sites
from .logging_setup import configure_logging
from .sitemap import resolve_sitemap

logger = logging.getLogger(__name__)


def export_pages(sitemaps: Sequence[str], output: Path, timeout: int) -> list[str]:
    urls: list[str] = []
    for sitemap in sitemaps:
        logger.info("Fetching sitemap: %s", sitemap)
        result = resolve_sitemap(sitemap, timeout=timeout)
        logger.info("Found %d URLs in sitemap: %s", len(result.urls), sitemap)
        urls.extend(result.urls)

    with output.open("w", encoding="utf-8") as handle:
        json.dump(urls, handle, indent=2)
    logger.info("All URLs saved to %s (%d URLs)", output, len(urls))
    return urls


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Export the page URLs listed by sitemaps.")
    parser.add_argument("site_key", nargs="?", help="Site key from the site configuration")
    parser.add_argument(
        "--sitemap",
        action="append",
        default=[],
        help="Sitemap URL to resolve (repeatable, used instead of a site key)",
    )
    parser.add_argument("--output", "-o", type=Path, default=Path("pages.json"))
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(os.getenv("LOG_LEVEL"))
    settings = get_settings()

    sitemaps = list(args.sitemap)
    if args.site_key:
        try:
            sites = load_sites(settings.sites_path)
        except ConfigError as exc:
            logger.error("%s", exc)
            return 2
        if args.site_key not in sites:
            logger.error("Unknown site key %r (known: %s)", args.site_key, ", ".join(sorted(sites)))
            return 2
        sitemaps.extend(sites[args.site_key])

    if not sitemaps:
        logger.error("Nothing to export: give a site key or at least one --sitemap")
        return 2

    export_pages(sitemaps, args.output, settings.sitemap_timeout)
    return 0


if __name__ == "__main__":  # pragma: no cover - manual script usage
    sys.exit(main())
