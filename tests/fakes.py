"""In-memory SystemBridge used by the tests; never spawns a process."""

from collections import defaultdict
from pathlib import Path
from typing import Any


def png(tag: str, size: int = 200) -> bytes:
    """Fake PNG payload, distinguishable by tag and above the sanity threshold."""
    body = tag.encode("utf-8")
    return (body * (size // max(len(body), 1) + 1))[:size]


def make_bundle(root: Path, relative: str, icon_files: tuple[str, ...] = ()) -> Path:
    """Create an on-disk bundle directory with optional Resources files."""
    bundle = root / relative
    resources = bundle / "Contents" / "Resources"
    resources.mkdir(parents=True, exist_ok=True)
    for name in icon_files:
        (resources / name).write_bytes(b"icns")
    return bundle


class FakeBridge:
    """Records every call; answers from dictionaries keyed by path strings."""

    def __init__(
        self,
        metadata: dict[str, dict[str, Any]] | None = None,
        plists: dict[str, dict[str, Any]] | None = None,
        rasters: dict[str, bytes] | None = None,
        index: list[str] | None = None,
        workspace: dict[str, bytes] | None = None,
        workspace_error: Exception | None = None,
        open_ok: set[str] | None = None
    ):
        self.metadata = metadata or {}
        self.plists = plists or {}
        self.rasters = rasters or {}
        self.index = index or []
        self.workspace = workspace or {}
        self.workspace_error = workspace_error
        self.open_ok = open_ok
        self.calls: dict[str, list] = defaultdict(list)

    async def read_plist(self, plist_path):
        self.calls["read_plist"].append(str(plist_path))
        return self.plists.get(str(plist_path))

    async def read_bundle_metadata(self, bundle_path):
        self.calls["read_bundle_metadata"].append(str(bundle_path))
        return self.metadata.get(str(bundle_path))

    async def convert_icon_to_raster(self, icon_path, size):
        self.calls["convert_icon_to_raster"].append(str(icon_path))
        return self.rasters.get(str(icon_path))

    async def query_typed_index(self, predicate):
        self.calls["query_typed_index"].append(predicate)
        return list(self.index)

    async def lookup_workspace_icons(self, bundle_paths, size):
        self.calls["lookup_workspace_icons"].append(list(bundle_paths))
        if self.workspace_error:
            raise self.workspace_error
        return {p: self.workspace[p] for p in bundle_paths if p in self.workspace}

    async def open(self, args):
        self.calls["open"].append(list(args))
        if self.open_ok is None:
            return True
        return " ".join(args) in self.open_ok
