"""Public entry point: list, invalidate and execute catalog commands."""

import inspect
import logging
from pathlib import Path
from typing import Awaitable, Callable, Union

from macos_catalog.bridge import MacOSBridge, SystemBridge
from macos_catalog.cache import CacheState, CatalogCache
from macos_catalog.config import Config
from macos_catalog.engine import CommandProvider, build_catalog
from macos_catalog.icon_cache import IconCache
from macos_catalog.icons import IconResolver
from macos_catalog.launcher import open_application, open_settings_pane
from macos_catalog.models import CatalogSnapshot, Category, CommandRecord

logger = logging.getLogger(__name__)

CommandHandler = Callable[[CommandRecord], Union[bool, Awaitable[bool]]]


class Catalog:
    """
    The command catalog served to the UI layer.

    Usage:
        catalog = Catalog(load_config())
        snapshot = await catalog.list_commands()
        await catalog.execute("app-safari")
    """

    def __init__(
        self,
        config: Config | None = None,
        bridge: SystemBridge | None = None,
        extension_provider: CommandProvider | None = None,
        script_provider: CommandProvider | None = None,
        app_roots: list[Path] | None = None,
        extension_dir: Path | None = None,
        pref_pane_dirs: list[Path] | None = None,
        clock: Callable[[], float] | None = None
    ):
        self.config = config or Config()
        self.bridge = bridge or MacOSBridge(
            command_timeout=self.config.command_timeout,
            workspace_timeout=self.config.workspace_timeout,
            batch_size=self.config.batch_size
        )
        self.icon_cache = IconCache(self.config.icon_cache_path, self.config.icon_cache_version)
        self.resolver = IconResolver(self.bridge, self.icon_cache, size=self.config.icon_size)

        self.extension_provider = extension_provider
        self.script_provider = script_provider
        self.app_roots = app_roots
        self.extension_dir = extension_dir
        self.pref_pane_dirs = pref_pane_dirs

        self._handlers: dict[Category, CommandHandler] = {}

        cache_kwargs = {"clock": clock} if clock is not None else {}
        self.cache = CatalogCache(
            self._build,
            ttl=self.config.cache_ttl,
            stale_refresh_cooldown=self.config.stale_refresh_cooldown,
            **cache_kwargs
        )

    async def _build(self) -> CatalogSnapshot:
        return await build_catalog(
            self.bridge,
            self.resolver,
            self.config,
            extension_provider=self.extension_provider,
            script_provider=self.script_provider,
            app_roots=self.app_roots,
            extension_dir=self.extension_dir,
            pref_pane_dirs=self.pref_pane_dirs
        )

    async def list_commands(self) -> CatalogSnapshot:
        """Current catalog snapshot (possibly stale, never blocking once built)."""
        return await self.cache.get()

    def invalidate(self) -> None:
        """Force the next list_commands() to rebuild, e.g. after an install."""
        self.cache.invalidate()

    @property
    def state(self) -> CacheState:
        return self.cache.state

    def register_handler(self, category: Category, handler: CommandHandler) -> None:
        """Route execution of a collaborator-owned category to its handler."""
        self._handlers[category] = handler

    async def execute(self, command_id: str) -> bool:
        """
        Run a command by id.

        Applications are launched, settings panes opened via deep link; other
        categories go to the handler registered for them.

        Returns:
            True on success, False for unknown ids or failed launches
        """
        snapshot = await self.list_commands()
        command = snapshot.find(command_id)
        if command is None:
            logger.error("Command not found: %s", command_id)
            return False

        try:
            if command.category == Category.APPLICATION:
                return await open_application(self.bridge, command.target_path)
            if command.category == Category.SETTINGS_PANE:
                return await open_settings_pane(self.bridge, command.target_path)

            handler = self._handlers.get(command.category)
            if handler is None:
                logger.error("No handler registered for %s command %s", command.category.value, command_id)
                return False
            result = handler(command)
            if inspect.isawaitable(result):
                result = await result
            return bool(result)
        except Exception:
            logger.exception("Failed to execute command %s", command_id)
            return False
