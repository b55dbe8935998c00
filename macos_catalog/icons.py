"""Bundle icon resolution: disk cache, then .icns conversion, then NSWorkspace batch."""

import base64
import logging
from pathlib import Path
from typing import Any

from macos_catalog.bridge import SystemBridge
from macos_catalog.icon_cache import IconCache

logger = logging.getLogger(__name__)

# Rasters at or below this size are empty or truncated conversions
MIN_ICON_BYTES = 100

PRIORITY_ICON_NAMES = ("icon.icns", "AppIcon.icns", "SharedAppIcon.icns")


def to_data_uri(png: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(png).decode("ascii")


class IconResolver:
    """
    Resolves a bundle path to a PNG data URI.

    Usage:
        resolver = IconResolver(bridge, IconCache(cache_dir))
        icon = await resolver.resolve("/Applications/Safari.app")
        # bundles left without an icon are collected and resolved in one go:
        icons = await resolver.resolve_batch(pending_paths)
    """

    def __init__(self, bridge: SystemBridge, cache: IconCache, size: int = 64):
        self.bridge = bridge
        self.cache = cache
        self.size = size

    async def resolve(self, bundle_path: str, metadata: dict[str, Any] | None = None) -> str | None:
        """
        Resolve an icon through the disk cache and the bundle's own icon files.

        Args:
            bundle_path: Path to the .app/.appex/.prefPane bundle
            metadata: Already-read Info.plist contents, if the caller has them

        Returns:
            Data URI, or None when the bundle needs the workspace batch pass
        """
        cached = self.cache.get(bundle_path)
        if cached:
            return cached

        icon = await self._icon_from_icns(bundle_path, metadata)
        if icon:
            self.cache.set(bundle_path, icon)
        return icon

    async def resolve_batch(self, bundle_paths: list[str]) -> dict[str, str]:
        """
        Resolve icons for many bundles with a single workspace lookup.

        Failures of the lookup as a whole are logged and yield an empty mapping.
        """
        unique_paths = list(dict.fromkeys(bundle_paths))
        if not unique_paths:
            return {}

        logger.info("Extracting %d icons via NSWorkspace", len(unique_paths))
        try:
            rasters = await self.bridge.lookup_workspace_icons(unique_paths, self.size)
        except Exception as e:
            logger.warning("Batch icon extraction via NSWorkspace failed: %s", e)
            return {}

        icons: dict[str, str] = {}
        for bundle_path, png in rasters.items():
            if not png or len(png) <= MIN_ICON_BYTES:
                continue
            icon = to_data_uri(png)
            icons[bundle_path] = icon
            self.cache.set(bundle_path, icon)
        return icons

    async def _icon_from_icns(self, bundle_path: str, metadata: dict[str, Any] | None) -> str | None:
        icon_file = await self._find_icon_file(bundle_path, metadata)
        if icon_file is None:
            return None

        png = await self.bridge.convert_icon_to_raster(icon_file, self.size)
        if not png or len(png) <= MIN_ICON_BYTES:
            logger.debug("Rejected icon conversion for %s", icon_file)
            return None
        return to_data_uri(png)

    async def _find_icon_file(self, bundle_path: str, metadata: dict[str, Any] | None) -> Path | None:
        resources = Path(bundle_path) / "Contents" / "Resources"

        if metadata is None:
            metadata = await self.bridge.read_bundle_metadata(bundle_path)

        icon_name = None
        if metadata:
            icon_name = metadata.get("CFBundleIconFile") or metadata.get("CFBundleIconName")

        if isinstance(icon_name, str) and icon_name:
            candidate = resources / icon_name
            if not candidate.exists() and not icon_name.endswith(".icns"):
                candidate = resources / f"{icon_name}.icns"
            if candidate.exists():
                return candidate

        try:
            files = sorted(entry.name for entry in resources.iterdir())
        except OSError:
            return None

        for name in PRIORITY_ICON_NAMES:
            if name in files:
                return resources / name

        any_icns = next((name for name in files if name.endswith(".icns")), None)
        return resources / any_icns if any_icns else None
