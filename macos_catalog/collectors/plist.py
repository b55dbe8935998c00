"""Bundle metadata reader backed by plutil."""

import json
import logging
from pathlib import Path
from typing import Any

from macos_catalog.util.shell import run

logger = logging.getLogger(__name__)

PLUTIL = "/usr/bin/plutil"


async def read_plist(plist_path: str | Path, timeout: float = 10) -> dict[str, Any] | None:
    """
    Convert a property list to JSON with plutil and parse it.

    Args:
        plist_path: Path to any property list file (binary or XML)
        timeout: Maximum time to wait for plutil

    Returns:
        Parsed top-level dictionary, or None if the file is missing or
        cannot be converted. Never raises.

    Example:
        >>> info = await read_plist("/Applications/Safari.app/Contents/Info.plist")
        >>> info["CFBundleIdentifier"]
        'com.apple.Safari'
    """
    path = Path(plist_path)
    if not path.is_file():
        return None

    try:
        result = await run([PLUTIL, "-convert", "json", "-o", "-", str(path)], timeout=timeout)
    except (TimeoutError, OSError) as e:
        logger.debug("plutil failed for %s: %s", path, e)
        return None

    if not result.success:
        logger.debug("plutil exited %s for %s: %s", result.code, path, result.err[:120])
        return None

    try:
        data = json.loads(result.out)
    except ValueError:
        logger.debug("plutil produced invalid JSON for %s", path)
        return None

    # plutil happily converts a top-level array; callers expect a mapping
    if not isinstance(data, dict):
        return None
    return data


async def read_bundle_metadata(bundle_path: str | Path, timeout: float = 10) -> dict[str, Any] | None:
    """Read ``Contents/Info.plist`` of a bundle, or None when absent or unreadable."""
    return await read_plist(Path(bundle_path) / "Contents" / "Info.plist", timeout=timeout)
