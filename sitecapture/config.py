"""Environment settings and the site/device configuration documents."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping

from pydantic import BaseModel, Field, RootModel, ValidationError, field_validator

from .schemas import DeviceSpec

logger = logging.getLogger(__name__)


class ConfigError(RuntimeError):
    """Raised when a configuration document is missing or malformed."""


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, "") or default)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r", name, os.getenv(name))
        return default


@dataclass(frozen=True)
class Settings:
    sites_path: Path
    devices_path: Path
    output_root: Path
    headless: bool
    nav_timeout_ms: int
    settle_delay_ms: int
    sitemap_timeout: int


def load_settings() -> Settings:
    return Settings(
        sites_path=Path(os.getenv("SITES_CONFIG", "sites.json")),
        devices_path=Path(os.getenv("DEVICES_CONFIG", "devices.json")),
        output_root=Path(os.getenv("OUTPUT_ROOT", "automation_outputs")),
        headless=_env_bool("BROWSER_HEADLESS", True),
        nav_timeout_ms=_env_int("NAV_TIMEOUT_MS", 20000),
        settle_delay_ms=_env_int("SETTLE_DELAY_MS", 1500),
        sitemap_timeout=_env_int("SITEMAP_TIMEOUT", 10),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()


class SiteEntry(BaseModel):
    sitemaps: List[str] = Field(default_factory=list)

    @field_validator("sitemaps")
    @classmethod
    def strip_blank(cls, value: List[str]) -> List[str]:
        return [url.strip() for url in value if url and url.strip()]


class SitesDocument(RootModel[Dict[str, SiteEntry]]):
    pass


class DeviceEntry(BaseModel):
    name: str = Field(min_length=1)
    width: int | None = Field(default=None, gt=0)
    height: int | None = Field(default=None, gt=0)


class DevicesDocument(RootModel[List[DeviceEntry]]):
    pass


def _read_json(path: Path) -> object:
    try:
        with path.open(encoding="utf-8") as handle:
            return json.load(handle)
    except FileNotFoundError as exc:
        raise ConfigError(f"Configuration file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Configuration file {path} is not valid JSON: {exc}") from exc


def parse_sites(data: object) -> Mapping[str, tuple[str, ...]]:
    """Validate a site document into ``{site_key: (sitemap_url, ...)}``."""
    try:
        document = SitesDocument.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid site configuration: {exc}") from exc
    return MappingProxyType(
        {key: tuple(entry.sitemaps) for key, entry in document.root.items()}
    )


def parse_devices(data: object) -> tuple[DeviceSpec, ...]:
    try:
        document = DevicesDocument.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid device configuration: {exc}") from exc
    return tuple(
        DeviceSpec(name=entry.name, width=entry.width, height=entry.height)
        for entry in document.root
    )


def load_sites(path: Path) -> Mapping[str, tuple[str, ...]]:
    sites = parse_sites(_read_json(path))
    logger.info("Loaded %d site(s) from %s", len(sites), path)
    return sites


def load_devices(path: Path) -> tuple[DeviceSpec, ...]:
    devices = parse_devices(_read_json(path))
    logger.info("Loaded %d device(s) from %s", len(devices), path)
    return devices
