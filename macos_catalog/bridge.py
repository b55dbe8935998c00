"""Narrow interface to the OS utilities used by discovery and execution.

Scanners, the icon resolver and the launcher only talk to a ``SystemBridge``.
``MacOSBridge`` wires it to plutil, sips, mdfind, osascript and open; tests
substitute an in-memory fake.
"""

from pathlib import Path
from typing import Any, Protocol

from macos_catalog.collectors import opener, plist, sips, spotlight, workspace


class SystemBridge(Protocol):
    """Capabilities the catalog needs from the host OS."""

    async def read_plist(self, plist_path: str | Path) -> dict[str, Any] | None: ...

    async def read_bundle_metadata(self, bundle_path: str | Path) -> dict[str, Any] | None: ...

    async def convert_icon_to_raster(self, icon_path: str | Path, size: int) -> bytes | None: ...

    async def query_typed_index(self, predicate: str) -> list[str]: ...

    async def lookup_workspace_icons(self, bundle_paths: list[str], size: int) -> dict[str, bytes]: ...

    async def open(self, args: list[str]) -> bool: ...


class MacOSBridge:
    """SystemBridge backed by the stock macOS command-line tools."""

    def __init__(self, command_timeout: float = 10, workspace_timeout: float = 120, batch_size: int = 6):
        self.command_timeout = command_timeout
        self.workspace_timeout = workspace_timeout
        self.batch_size = batch_size

    async def read_plist(self, plist_path: str | Path) -> dict[str, Any] | None:
        return await plist.read_plist(plist_path, timeout=self.command_timeout)

    async def read_bundle_metadata(self, bundle_path: str | Path) -> dict[str, Any] | None:
        return await plist.read_bundle_metadata(bundle_path, timeout=self.command_timeout)

    async def convert_icon_to_raster(self, icon_path: str | Path, size: int) -> bytes | None:
        return await sips.convert_icon(icon_path, size, timeout=self.command_timeout)

    async def query_typed_index(self, predicate: str) -> list[str]:
        return await spotlight.query_typed_index(predicate, timeout=self.command_timeout)

    async def lookup_workspace_icons(self, bundle_paths: list[str], size: int) -> dict[str, bytes]:
        return await workspace.lookup_workspace_icons(
            bundle_paths,
            size,
            timeout=self.workspace_timeout,
            batch_size=self.batch_size,
            resize_timeout=self.command_timeout
        )

    async def open(self, args: list[str]) -> bool:
        return await opener.open_with(args, timeout=self.command_timeout)
