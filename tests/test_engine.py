"""Tests for catalog assembly."""

import hashlib
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from fakes import FakeBridge, make_bundle, png

from macos_catalog.builtins import SYSTEM_COMMANDS
from macos_catalog.config import Config
from macos_catalog.engine import (
    apply_overlays,
    build_catalog,
    drop_repeated_settings_icons,
    ensure_unique_ids,
)
from macos_catalog.icon_cache import IconCache
from macos_catalog.icons import IconResolver, to_data_uri
from macos_catalog.models import Category, CommandRecord

GENERIC_PANES = ("Accounts", "Battery", "Dock", "Energy", "Keyboard")


def settings_record(command_id: str, icon: str | None, subtitle: str | None = None) -> CommandRecord:
    return CommandRecord(
        id=command_id,
        title=command_id.title(),
        subtitle=subtitle,
        icon_ref=icon,
        category=Category.SETTINGS_PANE,
        target_path=command_id
    )


class TestBuildCatalog(unittest.IsolatedAsyncioTestCase):
    """Test the full assembly pipeline with a fake bridge."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)
        self.app_root = self.root / "Applications"
        self.pane_dir = self.root / "PreferencePanes"

        self.zeta = make_bundle(self.app_root, "Zeta.app", ("AppIcon.icns",))
        self.alpha = make_bundle(self.app_root, "alpha.app")
        rasters = {str(self.zeta / "Contents" / "Resources" / "AppIcon.icns"): png("zeta")}

        for name in GENERIC_PANES:
            pane = make_bundle(self.pane_dir, f"{name}.prefPane", ("AppIcon.icns",))
            rasters[str(pane / "Contents" / "Resources" / "AppIcon.icns")] = png("generic")
        sound = make_bundle(self.pane_dir, "Sound.prefPane", ("AppIcon.icns",))
        rasters[str(sound / "Contents" / "Resources" / "AppIcon.icns")] = png("sound")

        self.bridge = FakeBridge(rasters=rasters, workspace={str(self.alpha): png("alpha")})
        self.config = Config(
            icon_cache_dir=str(self.root / "icon-cache"),
            command_subtitles={"app-zeta": "Last letter", "script-hello": "Override"},
            command_aliases={"app-alpha": "first"}
        )
        self.resolver = IconResolver(self.bridge, IconCache(self.config.icon_cache_path))

        finder_patch = patch("macos_catalog.scanners.apps.FINDER_PATH", str(self.root / "NoFinder.app"))
        finder_patch.start()
        self.addCleanup(finder_patch.stop)

    def tearDown(self):
        self.temp_dir.cleanup()

    async def build(self, **kwargs):
        return await build_catalog(
            self.bridge,
            self.resolver,
            self.config,
            app_roots=[self.app_root],
            extension_dir=self.root / "Extensions",
            pref_pane_dirs=[self.pane_dir],
            **kwargs
        )

    async def test_assembly(self):
        """Test ordering, icon passes, overlays and provider records together."""
        def extensions():
            return [CommandRecord(id="ext-emoji", title="Emoji Picker", category=Category.SYSTEM_BUILTIN)]

        async def scripts():
            return [
                CommandRecord(id="script-hello", title="Hello", subtitle="Script", mode="fullOutput",
                              category=Category.SCRIPT_COMMAND),
                "not a command",
            ]

        snapshot = await self.build(extension_provider=extensions, script_provider=scripts)
        ids = [c.id for c in snapshot.commands]

        expected_settings = [f"settings-{name.lower()}" for name in (*GENERIC_PANES, "Sound")]
        self.assertEqual(ids[:2], ["app-alpha", "app-zeta"])
        self.assertEqual(ids[2:8], expected_settings)
        self.assertEqual(ids[8:10], ["ext-emoji", "script-hello"])
        self.assertEqual(ids[10:], [command_id for command_id, _, _ in SYSTEM_COMMANDS])

        alpha = snapshot.find("app-alpha")
        self.assertEqual(alpha.icon_ref, to_data_uri(png("alpha")))
        self.assertIn("first", alpha.keywords)
        self.assertEqual(self.bridge.calls["lookup_workspace_icons"], [[str(self.alpha)]])

        zeta = snapshot.find("app-zeta")
        self.assertEqual(zeta.icon_ref, to_data_uri(png("zeta")))
        self.assertEqual(zeta.subtitle, "Last letter")

        for name in GENERIC_PANES:
            self.assertIsNone(snapshot.find(f"settings-{name.lower()}").icon_ref)
        self.assertEqual(snapshot.find("settings-sound").icon_ref, to_data_uri(png("sound")))

        self.assertEqual(snapshot.find("ext-emoji").category, Category.EXTENSION_COMMAND)
        self.assertEqual(snapshot.find("script-hello").subtitle, "Script")

        self.assertTrue(all(c.scan_path is None for c in snapshot.commands))
        self.assertEqual(len(set(ids)), len(ids))

    async def test_provider_failure_is_isolated(self):
        """Test that a failing provider does not fail the build."""
        def broken():
            raise RuntimeError("extension index unreadable")

        with self.assertLogs("macos_catalog.engine", level="ERROR"):
            snapshot = await self.build(extension_provider=broken)

        self.assertEqual(snapshot.summary()["extensionCommand"], 0)
        self.assertEqual(snapshot.summary()["application"], 2)
        self.assertEqual(snapshot.summary()["systemBuiltin"], len(SYSTEM_COMMANDS))

    async def test_scanner_failure_propagates(self):
        """Test that a scanner error aborts the build."""
        async def failing_metadata(bundle_path):
            raise RuntimeError("plutil vanished")

        self.bridge.read_bundle_metadata = failing_metadata
        with self.assertRaises(RuntimeError):
            await self.build()


class TestAssemblyPasses(unittest.TestCase):
    """Test the individual post-processing passes."""

    def test_repeated_icons_threshold(self):
        """Test that an icon shared by fewer panes than the threshold survives."""
        commands = [settings_record(f"pane{i}", "data:generic") for i in range(4)]
        self.assertEqual(drop_repeated_settings_icons(commands, threshold=5), commands)

        commands.append(settings_record("pane4", "data:generic"))
        cleared = drop_repeated_settings_icons(commands, threshold=5)
        self.assertTrue(all(c.icon_ref is None for c in cleared))

    def test_repeated_icons_ignore_sub_commands(self):
        """Test that sub-commands neither count nor get cleared."""
        commands = [settings_record(f"pane{i}", "data:generic") for i in range(2)]
        commands += [settings_record(f"item{i}", "data:generic", subtitle="Pane0") for i in range(5)]

        result = drop_repeated_settings_icons(commands, threshold=5)

        self.assertEqual(result, commands)

    def test_repeated_icons_cleared_on_sub_commands(self):
        """Test that sub-commands lose a dropped icon together with their pane."""
        commands = [settings_record(f"pane{i}", "data:generic") for i in range(5)]
        commands += [
            settings_record("item-generic", "data:generic", subtitle="Pane0"),
            settings_record("item-own", "data:own", subtitle="Sound"),
        ]

        result = {c.id: c for c in drop_repeated_settings_icons(commands, threshold=5)}

        self.assertIsNone(result["item-generic"].icon_ref)
        self.assertEqual(result["item-own"].icon_ref, "data:own")
        self.assertTrue(all(result[f"pane{i}"].icon_ref is None for i in range(5)))

    def test_overlays(self):
        """Test subtitle overrides and aliases by id."""
        commands = [
            CommandRecord(id="script-inline", title="Inline", subtitle="Script", mode="inline",
                          category=Category.SCRIPT_COMMAND),
            CommandRecord(id="script-full", title="Full", subtitle="Script", mode="fullOutput",
                          category=Category.SCRIPT_COMMAND),
            CommandRecord(id="system-quit", title="Quit", category=Category.SYSTEM_BUILTIN),
        ]
        result = apply_overlays(
            commands,
            subtitles={"script-inline": "Mine", "script-full": "Mine", "system-quit": "  "},
            aliases={"system-quit": " Bye "}
        )

        self.assertEqual(result[0].subtitle, "Mine")
        self.assertEqual(result[1].subtitle, "Script")
        self.assertIsNone(result[2].subtitle)
        self.assertEqual(result[2].keywords, ["quit", "bye"])

    def test_ensure_unique_ids(self):
        """Test suffixing and dropping of duplicate ids."""
        def app(target):
            return CommandRecord(id="app-x", title="X", category=Category.APPLICATION, target_path=target)

        result = ensure_unique_ids([app("/A/X.app"), app("/B/X.app"), app("/B/X.app")])

        digest = hashlib.md5(b"/B/X.app").hexdigest()[:8]
        self.assertEqual([c.id for c in result], ["app-x", f"app-x-{digest}"])


if __name__ == "__main__":
    unittest.main()
