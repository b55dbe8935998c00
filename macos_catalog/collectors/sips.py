"""Icon rasterisation using the macOS sips utility."""

import logging
import os
import tempfile
from pathlib import Path

from macos_catalog.util.shell import run

logger = logging.getLogger(__name__)

SIPS = "/usr/bin/sips"


async def convert_icon(icon_path: str | Path, size: int, timeout: float = 10) -> bytes | None:
    """
    Convert an icon file (usually .icns) to a square PNG.

    Args:
        icon_path: Source image readable by sips
        size: Edge length of the output raster in pixels
        timeout: Maximum time to wait for sips

    Returns:
        PNG bytes, or None if conversion failed. Never raises.
    """
    fd, tmp_png = tempfile.mkstemp(prefix="macos-catalog-icon-", suffix=".png")
    os.close(fd)

    try:
        result = await run(
            [SIPS, "-s", "format", "png", "-z", str(size), str(size), str(icon_path), "--out", tmp_png],
            timeout=timeout
        )
        if not result.success:
            logger.debug("sips exited %s for %s", result.code, icon_path)
            return None
        return Path(tmp_png).read_bytes()
    except (TimeoutError, OSError) as e:
        logger.debug("sips failed for %s: %s", icon_path, e)
        return None
    finally:
        try:
            os.unlink(tmp_png)
        except OSError:
            pass


async def resize_png(png_path: str | Path, size: int, timeout: float = 10) -> bytes | None:
    """Resize a PNG in place and return its bytes, or None on failure."""
    try:
        result = await run(
            [SIPS, "-z", str(size), str(size), str(png_path), "--out", str(png_path)],
            timeout=timeout
        )
        if not result.success:
            return None
        return Path(png_path).read_bytes()
    except (TimeoutError, OSError) as e:
        logger.debug("sips resize failed for %s: %s", png_path, e)
        return None
