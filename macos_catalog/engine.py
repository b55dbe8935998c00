"""Catalog assembly: runs the scanners and merges every command source."""

import hashlib
import inspect
import logging
import time
from collections import Counter
from pathlib import Path
from typing import Awaitable, Callable, Iterable, Union

from macos_catalog.bridge import SystemBridge
from macos_catalog.builtins import system_commands
from macos_catalog.config import Config
from macos_catalog.icons import IconResolver
from macos_catalog.models import CatalogSnapshot, Category, CommandRecord
from macos_catalog.scanners.apps import scan_applications
from macos_catalog.scanners.settings import scan_settings

logger = logging.getLogger(__name__)

CommandProvider = Callable[[], Union[Iterable[CommandRecord], Awaitable[Iterable[CommandRecord]]]]

# Categories whose bundles can go through the workspace icon batch
BATCH_ICON_CATEGORIES = (Category.APPLICATION, Category.SETTINGS_PANE)


async def build_catalog(
    bridge: SystemBridge,
    resolver: IconResolver,
    config: Config | None = None,
    extension_provider: CommandProvider | None = None,
    script_provider: CommandProvider | None = None,
    app_roots: list[Path] | None = None,
    extension_dir: Path | None = None,
    pref_pane_dirs: list[Path] | None = None
) -> CatalogSnapshot:
    """
    Discover every command and assemble a new catalog snapshot.

    Applications and settings are scanned one after the other, never in
    parallel, to keep the number of live subprocesses small.

    Args:
        bridge: OS capability interface
        resolver: Icon resolver shared by both scanners and the batch pass
        config: Discovery settings and user overlays
        extension_provider: Returns installed extension commands
        script_provider: Returns script commands
        app_roots: Override of the application root directories
        extension_dir: Override of the ExtensionKit directory
        pref_pane_dirs: Override of the legacy preference pane directories

    Returns:
        The published snapshot

    Raises:
        Exception: Whatever a scanner raises; provider failures are logged instead
    """
    config = config or Config()
    started = time.monotonic()
    logger.info("Discovering applications and settings")

    apps = await scan_applications(
        bridge,
        resolver,
        roots=app_roots,
        max_depth=config.max_scan_depth,
        batch_size=config.batch_size
    )
    settings = await scan_settings(
        bridge,
        resolver,
        extension_dir=extension_dir,
        pref_pane_dirs=pref_pane_dirs,
        batch_size=config.batch_size,
        search_terms=config.settings_search_terms
    )

    apps.sort(key=lambda r: r.title.lower())
    settings.sort(key=lambda r: r.title.lower())

    extensions = await _collect_provider("extension", extension_provider, Category.EXTENSION_COMMAND)
    scripts = await _collect_provider("script", script_provider, Category.SCRIPT_COMMAND)

    commands = [*apps, *settings, *extensions, *scripts, *system_commands()]

    commands = await apply_workspace_icons(commands, resolver)
    commands = drop_repeated_settings_icons(commands, config.repeated_icon_threshold)
    commands = strip_internal_fields(commands)
    commands = apply_overlays(commands, config.command_subtitles, config.command_aliases)
    commands = ensure_unique_ids(commands)

    snapshot = CatalogSnapshot.create(commands)
    logger.info(
        "Discovered %d apps, %d settings, %d extension commands, %d script commands in %dms",
        len(apps), len(settings), len(extensions), len(scripts),
        int((time.monotonic() - started) * 1000)
    )
    return snapshot


async def _collect_provider(name: str, provider: CommandProvider | None, category: Category) -> list[CommandRecord]:
    if provider is None:
        return []

    try:
        result = provider()
        if inspect.isawaitable(result):
            result = await result
        records = list(result or [])
    except Exception:
        logger.exception("Failed to discover %s commands", name)
        return []

    collected = []
    for record in records:
        if not isinstance(record, CommandRecord):
            logger.warning("Ignoring %s command of type %s", name, type(record).__name__)
            continue
        if record.category != category:
            record = record.model_copy(update={"category": category})
        collected.append(record)
    return collected


async def apply_workspace_icons(commands: list[CommandRecord], resolver: IconResolver) -> list[CommandRecord]:
    """Fill missing bundle icons with one workspace batch lookup."""
    pending = [
        c.scan_path for c in commands
        if not c.icon_ref and c.scan_path and c.category in BATCH_ICON_CATEGORIES
    ]
    if not pending:
        return commands

    icons = await resolver.resolve_batch(pending)
    if not icons:
        return commands

    return [
        c.model_copy(update={"icon_ref": icons[c.scan_path]})
        if not c.icon_ref and c.scan_path in icons and c.category in BATCH_ICON_CATEGORIES else c
        for c in commands
    ]


def drop_repeated_settings_icons(commands: list[CommandRecord], threshold: int = 5) -> list[CommandRecord]:
    """
    Clear settings icons shared by ``threshold`` or more panes.

    Many settings bundles resolve to the same generic document icon; showing
    the UI's own placeholder is better than repeating it. Sub-commands (which
    carry a subtitle and inherit their pane's icon) are not counted, but lose
    the icon along with their pane.
    """
    def counted(c: CommandRecord) -> bool:
        return c.category == Category.SETTINGS_PANE and bool(c.icon_ref) and not c.subtitle

    counts = Counter(c.icon_ref for c in commands if counted(c))
    repeated = {icon for icon, n in counts.items() if n >= threshold}
    if not repeated:
        return commands

    logger.debug("Dropping %d repeated settings icon(s)", len(repeated))
    return [
        c.model_copy(update={"icon_ref": None})
        if c.category == Category.SETTINGS_PANE and c.icon_ref in repeated else c
        for c in commands
    ]


def strip_internal_fields(commands: list[CommandRecord]) -> list[CommandRecord]:
    """Remove scan-only data before records leave the assembler."""
    return [c.model_copy(update={"scan_path": None}) if c.scan_path else c for c in commands]


def apply_overlays(
    commands: list[CommandRecord],
    subtitles: dict[str, str] | None = None,
    aliases: dict[str, str] | None = None
) -> list[CommandRecord]:
    """
    Apply user metadata: subtitle overrides and search aliases, keyed by id.

    Script commands keep their own subtitle unless they run inline.
    """
    subtitles = subtitles or {}
    aliases = aliases or {}
    result = []

    for command in commands:
        subtitle = str(subtitles.get(command.id) or "").strip()
        if subtitle and not (command.category == Category.SCRIPT_COMMAND and command.mode != "inline"):
            command = command.model_copy(update={"subtitle": subtitle})

        alias = str(aliases.get(command.id) or "").strip()
        if alias:
            command = command.with_keywords(alias)

        result.append(command)
    return result


def ensure_unique_ids(commands: list[CommandRecord]) -> list[CommandRecord]:
    """
    Make ids unique within the list; first occurrence keeps its id.

    A later duplicate is suffixed with a hash of its target (or title); if that
    still collides the record is dropped.
    """
    used: set[str] = set()
    result = []

    for command in commands:
        if command.id in used:
            source = command.target_path or command.title
            new_id = f"{command.id}-{hashlib.md5(source.encode('utf-8')).hexdigest()[:8]}"
            if new_id in used:
                logger.warning("Dropping duplicate command id %s", command.id)
                continue
            command = command.model_copy(update={"id": new_id})
        used.add(command.id)
        result.append(command)
    return result
