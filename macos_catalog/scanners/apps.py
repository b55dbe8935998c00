"""Application scanner for macOS."""

import asyncio
import hashlib
import logging
import os
import re
from collections import Counter, deque
from pathlib import Path
from typing import Any

from macos_catalog.bridge import SystemBridge
from macos_catalog.collectors.spotlight import APPLICATION_BUNDLE_QUERY
from macos_catalog.icons import IconResolver
from macos_catalog.models import Category, CommandRecord

logger = logging.getLogger(__name__)

FINDER_PATH = "/System/Library/CoreServices/Finder.app"

APP_SUFFIX = ".app"

# Bundle types that are never applications and are not worth descending into
SKIPPED_SUFFIXES = (".appex", ".prefPane", ".bundle", ".plugin")

# Historical spellings of our own bundle, keyed by lower-cased alphanumerics
CANONICAL_TITLES = {
    "supercmd": "SuperCmd",
}


def default_app_roots() -> list[Path]:
    """Directories searched for application bundles."""
    return [
        Path("/Applications"),
        Path("/System/Applications"),
        Path("/System/Applications/Utilities"),
        Path.home() / "Applications",
    ]


def collect_app_bundles(root: Path | str, max_depth: int = 4) -> list[str]:
    """
    Breadth-first search for .app bundles below a directory.

    Args:
        root: Directory to start from
        max_depth: Deepest directory level (relative to root) that is listed

    Returns:
        Paths of .app bundles found, in traversal order
    """
    results: list[str] = []
    root = Path(root)
    if not root.is_dir():
        return results

    queue: deque[tuple[Path, int]] = deque([(root, 0)])
    visited: set[str] = set()

    while queue:
        directory, depth = queue.popleft()
        visit_key = os.path.realpath(directory)
        if visit_key in visited:
            continue
        visited.add(visit_key)

        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError:
            continue

        for entry in entries:
            try:
                # follows symlinks, so linked directories are traversed too
                is_dir = entry.is_dir()
            except OSError:
                continue
            if not is_dir:
                continue

            if entry.name.endswith(APP_SUFFIX):
                results.append(os.path.join(directory, entry.name))
                continue

            if entry.name.endswith(SKIPPED_SUFFIXES):
                continue

            if depth < max_depth:
                queue.append((Path(directory) / entry.name, depth + 1))

    return results


def is_path_inside_roots(target: str, roots: list[Path]) -> bool:
    """Check whether target equals or lies below one of the roots."""
    resolved = os.path.abspath(target)
    for root in roots:
        resolved_root = os.path.abspath(root)
        if resolved == resolved_root or resolved.startswith(resolved_root + os.sep):
            return True
    return False


async def discover_via_spotlight(bridge: SystemBridge, roots: list[Path]) -> list[str]:
    """Application bundles reported by Spotlight that lie inside the roots."""
    paths = await bridge.query_typed_index(APPLICATION_BUNDLE_QUERY)
    return [
        p for p in paths
        if p.endswith(APP_SUFFIX)
        and ".app/" not in p
        and os.path.exists(p)
        and is_path_inside_roots(p, roots)
    ]


async def discover_bundle_paths(
    bridge: SystemBridge,
    roots: list[Path] | None = None,
    max_depth: int = 4,
    finder_path: str | None = None
) -> list[str]:
    """
    Union of Spotlight results and directory walks, sorted and de-duplicated.
    """
    roots = roots if roots is not None else default_app_roots()
    finder_path = finder_path or FINDER_PATH

    paths: set[str] = set(await discover_via_spotlight(bridge, roots))
    for root in roots:
        paths.update(await asyncio.to_thread(collect_app_bundles, root, max_depth))

    if os.path.exists(finder_path):
        paths.add(finder_path)

    return sorted(paths)


def canonical_app_title(name: str) -> str:
    """Map known name variants to their display name."""
    key = re.sub(r"[^a-z0-9]+", "", name.lower())
    return CANONICAL_TITLES.get(key, name)


def slugify(text: str, fallback: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    return slug or fallback


def path_digest(path: str, length: int = 8) -> str:
    return hashlib.md5(path.encode("utf-8")).hexdigest()[:length]


def is_launchable(metadata: dict[str, Any] | None, is_finder: bool = False) -> bool:
    """
    Decide whether a bundle belongs in the application catalog.

    Missing metadata counts as launchable; only explicit flags exclude.
    """
    if not metadata:
        return True

    package_type = str(metadata.get("CFBundlePackageType") or "").strip()
    if package_type and package_type != "APPL" and not is_finder:
        return False

    for flag in ("LSUIElement", "NSUIElement", "LSBackgroundOnly"):
        if metadata.get(flag) is True:
            return False
    return True


async def scan_applications(
    bridge: SystemBridge,
    resolver: IconResolver,
    roots: list[Path] | None = None,
    max_depth: int = 4,
    batch_size: int = 6,
    finder_path: str | None = None
) -> list[CommandRecord]:
    """
    Enumerate launchable applications as catalog records.

    Bundles are processed in batches; each batch reads metadata and resolves
    icons concurrently. Records with the same title get their containing
    directory as subtitle.

    Returns:
        Application records in bundle-path order
    """
    finder_path = finder_path or FINDER_PATH
    bundle_paths = await discover_bundle_paths(bridge, roots, max_depth, finder_path)
    logger.debug("Found %d candidate application bundles", len(bundle_paths))

    async def inspect(bundle_path: str) -> tuple[str, str | None] | None:
        metadata = await bridge.read_bundle_metadata(bundle_path)
        if not is_launchable(metadata, is_finder=bundle_path == finder_path):
            return None
        icon = await resolver.resolve(bundle_path, metadata)
        return bundle_path, icon

    survivors: list[tuple[str, str | None]] = []
    for start in range(0, len(bundle_paths), batch_size):
        batch = bundle_paths[start:start + batch_size]
        for item in await asyncio.gather(*(inspect(p) for p in batch)):
            if item:
                survivors.append(item)

    records: list[CommandRecord] = []
    used_ids: set[str] = set()
    for bundle_path, icon in survivors:
        raw_name = Path(bundle_path).stem
        title = canonical_app_title(raw_name)
        key = " ".join(title.lower().split())

        base_id = f"app-{slugify(key, 'app')}"
        command_id = base_id if base_id not in used_ids else f"{base_id}-{path_digest(bundle_path)}"
        used_ids.add(command_id)

        records.append(CommandRecord(
            id=command_id,
            title=title,
            keywords=[key, raw_name],
            icon_ref=icon,
            category=Category.APPLICATION,
            target_path=bundle_path,
            scan_path=bundle_path
        ))

    return _disambiguate_titles(records)


def _disambiguate_titles(records: list[CommandRecord]) -> list[CommandRecord]:
    """Give every record sharing a title its parent directory as subtitle."""
    counts = Counter(r.title.lower() for r in records)
    return [
        r.model_copy(update={"subtitle": os.path.dirname(r.target_path)})
        if counts[r.title.lower()] > 1 and r.target_path else r
        for r in records
    ]
