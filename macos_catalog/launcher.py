"""Opening applications and System Settings panes."""

import logging

from macos_catalog.bridge import SystemBridge

logger = logging.getLogger(__name__)

SETTINGS_URL_SCHEME = "x-apple.systempreferences:"

SETTINGS_APPS = ("System Settings", "System Preferences")


async def open_application(bridge: SystemBridge, app_path: str) -> bool:
    """Ask the OS to launch the bundle at app_path."""
    return await bridge.open([app_path])


def settings_urls(identifier: str) -> list[str]:
    """
    Deep links to try for a settings pane, in order.

    Example:
        >>> settings_urls("Bluetooth")[1]
        'x-apple.systempreferences:com.apple.settings.Bluetooth'
    """
    return [
        f"{SETTINGS_URL_SCHEME}{identifier}",
        f"{SETTINGS_URL_SCHEME}com.apple.settings.{identifier}",
        f"{SETTINGS_URL_SCHEME}com.apple.preference.{identifier.lower()}",
    ]


async def open_settings_pane(bridge: SystemBridge, identifier: str) -> bool:
    """
    Open a settings pane, falling back to the settings app itself.

    Returns:
        True once any attempt succeeds, False if even the settings app
        could not be opened
    """
    for url in settings_urls(identifier):
        if await bridge.open([url]):
            return True

    for app_name in SETTINGS_APPS:
        if await bridge.open(["-a", app_name]):
            return True

    logger.error("Could not open System Settings for %s", identifier)
    return False
