"""Spotlight content-type index queries."""

import logging

from macos_catalog.util.shell import run

logger = logging.getLogger(__name__)

MDFIND = "/usr/bin/mdfind"

APPLICATION_BUNDLE_QUERY = "kMDItemContentTypeTree == 'com.apple.application-bundle'"


async def query_typed_index(predicate: str, timeout: float = 10) -> list[str]:
    """
    Run an mdfind query and return the matching paths.

    Args:
        predicate: Spotlight query expression
        timeout: Maximum time to wait for mdfind

    Returns:
        Non-empty result lines; an empty list when Spotlight is
        unavailable, disabled or slow.
    """
    try:
        result = await run([MDFIND, predicate], timeout=timeout)
    except (TimeoutError, OSError) as e:
        logger.debug("mdfind failed: %s", e)
        return []

    if not result.success:
        logger.debug("mdfind exited %s: %s", result.code, result.err[:120])
        return []

    return [line.strip() for line in result.out.split("\n") if line.strip()]
