"""Tests for bundle icon resolution."""

import tempfile
import unittest
from pathlib import Path

from fakes import FakeBridge, make_bundle, png

from macos_catalog.icon_cache import IconCache
from macos_catalog.icons import IconResolver, to_data_uri


class TestIconResolver(unittest.IsolatedAsyncioTestCase):
    """Test the cache and .icns tiers of icon resolution."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)
        self.cache = IconCache(self.root / "icon-cache")

    def tearDown(self):
        self.temp_dir.cleanup()

    def resources(self, bundle: Path) -> Path:
        return bundle / "Contents" / "Resources"

    async def test_declared_icon_without_extension(self):
        """Test that CFBundleIconFile is tried with .icns appended."""
        bundle = make_bundle(self.root, "Editor.app", ("Custom.icns", "AppIcon.icns"))
        bridge = FakeBridge(rasters={
            str(self.resources(bundle) / "Custom.icns"): png("custom"),
            str(self.resources(bundle) / "AppIcon.icns"): png("generic"),
        })
        resolver = IconResolver(bridge, self.cache)

        icon = await resolver.resolve(str(bundle), {"CFBundleIconFile": "Custom"})

        self.assertEqual(icon, to_data_uri(png("custom")))
        self.assertEqual(self.cache.get(str(bundle)), icon)

    async def test_priority_names_then_any_icns(self):
        """Test the well-known icon names before other .icns files."""
        priority = make_bundle(self.root, "Priority.app", ("zzz.icns", "AppIcon.icns"))
        fallback = make_bundle(self.root, "Fallback.app", ("b.icns", "a.icns", "readme.txt"))
        bridge = FakeBridge(rasters={
            str(self.resources(priority) / "AppIcon.icns"): png("priority"),
            str(self.resources(fallback) / "a.icns"): png("fallback"),
        })
        resolver = IconResolver(bridge, self.cache)

        self.assertEqual(await resolver.resolve(str(priority)), to_data_uri(png("priority")))
        self.assertEqual(await resolver.resolve(str(fallback)), to_data_uri(png("fallback")))
        # metadata was not supplied, so it was read through the bridge
        self.assertEqual(bridge.calls["read_bundle_metadata"], [str(priority), str(fallback)])

    async def test_small_raster_rejected(self):
        """Test that truncated conversions are not used or cached."""
        bundle = make_bundle(self.root, "Tiny.app", ("AppIcon.icns",))
        bridge = FakeBridge(rasters={str(self.resources(bundle) / "AppIcon.icns"): png("x", size=100)})
        resolver = IconResolver(bridge, self.cache)

        self.assertIsNone(await resolver.resolve(str(bundle), {}))
        self.assertIsNone(self.cache.get(str(bundle)))

    async def test_bundle_without_resources(self):
        """Test a bundle with nothing to convert."""
        bundle = self.root / "Bare.app"
        bundle.mkdir()
        bridge = FakeBridge()
        resolver = IconResolver(bridge, self.cache)

        self.assertIsNone(await resolver.resolve(str(bundle), {}))
        self.assertEqual(bridge.calls["convert_icon_to_raster"], [])

    async def test_cache_hit_skips_conversion(self):
        """Test that a cached icon is returned without touching the bundle."""
        self.cache.set("/Applications/Safari.app", "data:image/png;base64,cached")
        bridge = FakeBridge()
        resolver = IconResolver(bridge, self.cache)

        icon = await resolver.resolve("/Applications/Safari.app")

        self.assertEqual(icon, "data:image/png;base64,cached")
        self.assertEqual(bridge.calls["read_bundle_metadata"], [])
        self.assertEqual(bridge.calls["convert_icon_to_raster"], [])

    async def test_resolution_is_idempotent(self):
        """Test that a second resolve is served from the cache."""
        bundle = make_bundle(self.root, "Notes.app", ("AppIcon.icns",))
        bridge = FakeBridge(rasters={str(self.resources(bundle) / "AppIcon.icns"): png("notes")})
        resolver = IconResolver(bridge, self.cache)

        first = await resolver.resolve(str(bundle), {})
        second = await resolver.resolve(str(bundle), {})

        self.assertEqual(first, second)
        self.assertEqual(len(bridge.calls["convert_icon_to_raster"]), 1)


class TestWorkspaceBatch(unittest.IsolatedAsyncioTestCase):
    """Test the batched workspace tier."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.cache = IconCache(Path(self.temp_dir.name) / "icon-cache")

    def tearDown(self):
        self.temp_dir.cleanup()

    async def test_batch_resolves_and_caches(self):
        """Test one lookup for de-duplicated paths; tiny rasters are dropped."""
        bridge = FakeBridge(workspace={
            "/Applications/A.app": png("a"),
            "/Applications/B.app": b"tiny",
        })
        resolver = IconResolver(bridge, self.cache)

        icons = await resolver.resolve_batch(["/Applications/A.app", "/Applications/A.app", "/Applications/B.app"])

        self.assertEqual(icons, {"/Applications/A.app": to_data_uri(png("a"))})
        self.assertEqual(bridge.calls["lookup_workspace_icons"], [["/Applications/A.app", "/Applications/B.app"]])
        self.assertEqual(self.cache.get("/Applications/A.app"), to_data_uri(png("a")))
        self.assertIsNone(self.cache.get("/Applications/B.app"))

    async def test_batch_failure_yields_nothing(self):
        """Test that a failed lookup is absorbed."""
        bridge = FakeBridge(workspace_error=TimeoutError("osascript timed out"))
        resolver = IconResolver(bridge, self.cache)

        with self.assertLogs("macos_catalog.icons", level="WARNING"):
            icons = await resolver.resolve_batch(["/Applications/A.app"])
        self.assertEqual(icons, {})

    async def test_empty_batch(self):
        """Test that no lookup happens without pending bundles."""
        bridge = FakeBridge()
        resolver = IconResolver(bridge, self.cache)

        self.assertEqual(await resolver.resolve_batch([]), {})
        self.assertEqual(bridge.calls["lookup_workspace_icons"], [])


if __name__ == "__main__":
    unittest.main()
