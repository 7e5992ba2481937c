"""Device emulation profiles.

Profiles come from two read-only tables: a small set of custom overrides kept
here and the device descriptors that ship with Playwright. Custom entries win
when both tables know a name.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from .schemas import DeviceSpec, EmulationProfile

logger = logging.getLogger(__name__)

CUSTOM_DEVICES: Mapping[str, EmulationProfile] = MappingProxyType(
    {
        "iPhone 13": EmulationProfile(
            name="iPhone 13",
            user_agent=(
                "Mozilla/5.0 (iPhone; CPU iPhone OS 15_0 like Mac OS X) AppleWebKit/605.1.15 "
                "(KHTML, like Gecko) Version/15.0 Mobile/15E148 Safari/604.1"
            ),
            width=390,
            height=844,
            device_scale_factor=3,
            is_mobile=True,
            has_touch=True,
        ),
        "iPad": EmulationProfile(
            name="iPad",
            user_agent=(
                "Mozilla/5.0 (iPad; CPU OS 15_0 like Mac OS X) AppleWebKit/605.1.15 "
                "(KHTML, like Gecko) Version/15.0 Mobile/15E148 Safari/604.1"
            ),
            width=768,
            height=1024,
            device_scale_factor=2,
            is_mobile=True,
            has_touch=True,
        ),
        "Desktop": EmulationProfile(
            name="Desktop",
            user_agent=(
                "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
                "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
            ),
            width=1920,
            height=1080,
            device_scale_factor=1,
            is_mobile=False,
            has_touch=False,
        ),
    }
)


def profile_from_descriptor(name: str, descriptor: Mapping[str, Any]) -> EmulationProfile:
    """Convert a Playwright device descriptor (``playwright.devices[name]``)."""
    viewport = descriptor.get("viewport") or {}
    return EmulationProfile(
        name=name,
        user_agent=descriptor.get("user_agent", ""),
        width=int(viewport.get("width", 0)),
        height=int(viewport.get("height", 0)),
        device_scale_factor=float(descriptor.get("device_scale_factor", 1) or 1),
        is_mobile=bool(descriptor.get("is_mobile", False)),
        has_touch=bool(descriptor.get("has_touch", False)),
    )


class EmulationMode(str, Enum):
    PROFILE = "profile"
    VIEWPORT = "viewport"
    DEFAULT = "default"


@dataclass(frozen=True, slots=True)
class EmulationPlan:
    device: DeviceSpec
    mode: EmulationMode
    profile: EmulationProfile | None = None

    @property
    def viewport(self) -> tuple[int, int] | None:
        if self.mode is EmulationMode.PROFILE and self.profile is not None:
            return self.profile.width, self.profile.height
        if self.mode is EmulationMode.VIEWPORT:
            return self.device.width, self.device.height
        return None


class DeviceTable:
    """Name -> :class:`EmulationProfile` lookup over custom and built-in tables."""

    def __init__(
        self,
        builtin: Mapping[str, Mapping[str, Any]] | None = None,
        custom: Mapping[str, EmulationProfile] = CUSTOM_DEVICES,
    ) -> None:
        self._custom = MappingProxyType(dict(custom))
        self._builtin = MappingProxyType(dict(builtin or {}))
        logger.debug(
            "Device table ready with %d custom and %d built-in profiles",
            len(self._custom),
            len(self._builtin),
        )

    def __contains__(self, name: object) -> bool:
        return name in self._custom or name in self._builtin

    def lookup(self, name: str) -> EmulationProfile | None:
        profile = self._custom.get(name)
        if profile is not None:
            return profile
        descriptor = self._builtin.get(name)
        if descriptor is not None:
            return profile_from_descriptor(name, descriptor)
        return None

    def plan(self, device: DeviceSpec) -> EmulationPlan:
        profile = self.lookup(device.name)
        if profile is not None:
            return EmulationPlan(device=device, mode=EmulationMode.PROFILE, profile=profile)
        if device.has_dimensions:
            return EmulationPlan(device=device, mode=EmulationMode.VIEWPORT)
        return EmulationPlan(device=device, mode=EmulationMode.DEFAULT)
