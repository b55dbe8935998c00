"""Launch applications and deep links with the macOS open command."""

import logging

from macos_catalog.util.shell import run

logger = logging.getLogger(__name__)

OPEN = "/usr/bin/open"


async def open_with(args: list[str], timeout: float = 10) -> bool:
    """
    Run ``open`` with the given arguments.

    Returns:
        True if open exited 0, False otherwise (including timeouts).
    """
    try:
        result = await run([OPEN, *args], timeout=timeout)
    except (TimeoutError, OSError) as e:
        logger.debug("open %s failed: %s", args, e)
        return False

    if not result.success:
        logger.debug("open %s exited %s: %s", args, result.code, result.err[:120])
    return result.success
