"""System Settings pane scanner for macOS."""

import asyncio
import hashlib
import locale
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from macos_catalog.bridge import SystemBridge
from macos_catalog.icons import IconResolver
from macos_catalog.models import Category, CommandRecord
from macos_catalog.scanners.apps import slugify

logger = logging.getLogger(__name__)

EXTENSIONKIT_DIR = Path("/System/Library/ExtensionKit/Extensions")

SETTINGS_EXTENSION_POINT = "com.apple.Settings.extension.ui"

# Applied in order, each once. Best effort: localized or third-party pane
# names will not always match what System Settings shows.
TITLE_RULES: tuple[tuple[re.Pattern, str], ...] = (
    (re.compile(r"Pref$"), ""),
    (re.compile(r"\.prefPane$"), ""),
    (re.compile(r"SettingsExtension$"), ""),
    (re.compile(r"Settings$"), ""),
    (re.compile(r"Extension$"), ""),
    (re.compile(r"Intents$"), ""),
    (re.compile(r"IntentsExtension$"), ""),
    (re.compile(r"([a-z])([A-Z])"), r"\1 \2"),
    (re.compile(r"([A-Z]+)([A-Z][a-z])"), r"\1 \2"),
    (re.compile(r"\s+"), " "),
)

BASE_KEYWORDS = ("system settings", "preferences")

FALLBACK_LOCALES = ("en_US", "en_GB", "en")


def default_pref_pane_dirs() -> list[Path]:
    """Directories holding legacy .prefPane bundles."""
    return [
        Path("/System/Library/PreferencePanes"),
        Path("/Library/PreferencePanes"),
        Path.home() / "Library" / "PreferencePanes",
    ]


def clean_pane_name(raw: str) -> str:
    """
    Turn a bundle or section name into a display title.

    Example:
        >>> clean_pane_name("TouchIDPref")
        'Touch ID'
    """
    title = raw
    for pattern, replacement in TITLE_RULES:
        title = pattern.sub(replacement, title)
    return title.strip()


def settings_keywords(title: str, *extra: str | None) -> list[str]:
    """Search terms for a settings record: fixed terms, title and any extras."""
    return [*BASE_KEYWORDS, title, *(e for e in extra if e)]


@dataclass
class PaneInfo:
    """What we know about a settings bundle before building records."""

    bundle_path: str
    title: str
    target: str
    bundle_id: str | None = None
    legacy_bundle_id: str | None = None
    search_terms_name: str | None = None


def describe_extension(bundle_path: str, info: dict[str, Any] | None) -> PaneInfo | None:
    """
    Interpret an ExtensionKit bundle's Info.plist.

    Returns:
        PaneInfo for System Settings UI extensions, None for anything else
        (other extension points, intents/widget helpers, unnamed bundles)
    """
    if not info:
        return None

    ex_attrs = info.get("EXAppExtensionAttributes") or {}
    if not isinstance(ex_attrs, dict) or ex_attrs.get("EXExtensionPointIdentifier") != SETTINGS_EXTENSION_POINT:
        return None

    settings_attrs = ex_attrs.get("SettingsExtensionAttributes") or {}
    if not isinstance(settings_attrs, dict):
        settings_attrs = {}

    display_name = str(info.get("CFBundleDisplayName") or info.get("CFBundleName") or "")
    bundle_id = str(info.get("CFBundleIdentifier") or "")
    legacy_id = settings_attrs.get("legacyBundleIdentifier")
    legacy_id = legacy_id if isinstance(legacy_id, str) and legacy_id else None
    search_terms_name = settings_attrs.get("searchTermsFileName")
    search_terms_name = search_terms_name if isinstance(search_terms_name, str) else None

    # The pane-opening URL scheme expects the legacy identifier when there is one
    open_identifier = legacy_id or bundle_id

    if (
        not display_name
        or "Intents" in display_name
        or "Widget" in display_name
        or display_name.endswith("DeviceExpert")
        or "intents" in bundle_id
        or "widget" in bundle_id
        or not open_identifier
    ):
        return None

    return PaneInfo(
        bundle_path=bundle_path,
        title=clean_pane_name(display_name),
        target=open_identifier,
        bundle_id=bundle_id or None,
        legacy_bundle_id=legacy_id,
        search_terms_name=search_terms_name
    )


def describe_pref_pane(bundle_path: str, info: dict[str, Any] | None) -> PaneInfo:
    """Interpret a legacy .prefPane bundle; metadata is optional."""
    raw_name = Path(bundle_path).stem
    bundle_id = info.get("CFBundleIdentifier") if info else None
    bundle_id = bundle_id if isinstance(bundle_id, str) and bundle_id else None

    return PaneInfo(
        bundle_path=bundle_path,
        title=clean_pane_name(raw_name),
        target=bundle_id or raw_name,
        bundle_id=bundle_id
    )


def locale_candidates() -> list[str]:
    """
    Locales to try for localized resources, most specific first.

    OS locale, its language, $LANG, its language, then English variants.
    """
    candidates: list[str] = []

    try:
        os_locale = locale.getlocale()[0] or ""
    except ValueError:
        os_locale = ""
    env_lang = os.environ.get("LANG", "").split(".")[0]

    for value in (os_locale, env_lang):
        value = value.replace("-", "_").strip()
        if value:
            candidates.append(value)
            candidates.append(value.split("_")[0])

    candidates.extend(FALLBACK_LOCALES)
    return list(dict.fromkeys(c for c in candidates if c))


def resolve_search_terms_file(bundle_path: str, file_stem: str | None = None) -> Path | None:
    """Find the localized .searchTerms plist of a settings bundle, if any."""
    resources = Path(bundle_path) / "Contents" / "Resources"
    if not resources.is_dir():
        return None

    candidates = locale_candidates()
    stem = (file_stem or "").strip()
    if stem:
        for loc in candidates:
            candidate = resources / f"{loc}.lproj" / f"{stem}.searchTerms"
            if candidate.exists():
                return candidate

    for loc in candidates:
        lproj = resources / f"{loc}.lproj"
        if not lproj.is_dir():
            continue
        try:
            files = sorted(f.name for f in lproj.iterdir() if f.name.endswith(".searchTerms"))
        except OSError:
            continue
        if files:
            return lproj / files[0]

    return None


def split_search_keywords(value: str) -> list[str]:
    """Split a comma-separated index string into terms of two or more characters."""
    terms = (term.strip().lower() for term in str(value or "").split(","))
    return [term for term in terms if len(term) >= 2]


def _item_id(source: str) -> str:
    return "settings-item-" + hashlib.md5(source.encode("utf-8")).hexdigest()[:12]


async def search_term_commands(bridge: SystemBridge, pane: PaneInfo, parent: CommandRecord) -> list[CommandRecord]:
    """
    Flatten a pane's search-terms resource into searchable sub-commands.

    One record per section (unless it repeats the pane title) and one per row,
    each opening the parent pane and sharing its icon.
    """
    terms_file = resolve_search_terms_file(pane.bundle_path, pane.search_terms_name)
    if terms_file is None:
        return []

    data = await bridge.read_plist(terms_file)
    if not data:
        return []

    commands: list[CommandRecord] = []
    seen: set[str] = set()
    pane_title = parent.title.strip().lower()

    def add(title: str, extra_keywords: list[str], source_key: str) -> None:
        title = str(title or "").strip()
        if len(title) < 2:
            return
        dedupe_key = f"{pane.target}:{title.lower()}"
        if dedupe_key in seen:
            return
        seen.add(dedupe_key)

        commands.append(CommandRecord(
            id=_item_id(f"{dedupe_key}:{source_key}"),
            title=title,
            subtitle=parent.title,
            keywords=settings_keywords(title, pane.bundle_id, pane.legacy_bundle_id, *extra_keywords),
            icon_ref=parent.icon_ref,
            category=Category.SETTINGS_PANE,
            target_path=pane.target,
            scan_path=pane.bundle_path
        ))

    for section_raw, section_value in data.items():
        section_title = clean_pane_name(section_raw)
        section_key = section_raw.lower()

        if section_title and section_title.lower() != pane_title:
            add(section_title, [section_key], f"section:{section_raw}")

        rows = section_value.get("localizableStrings") if isinstance(section_value, dict) else None
        if not isinstance(rows, list):
            continue

        for row in rows:
            if not isinstance(row, dict):
                continue
            row_title = str(row.get("title") or "").strip()
            if not row_title:
                continue
            keywords = [section_key, section_title.lower(), *split_search_keywords(row.get("index", ""))]
            add(row_title, keywords, f"{section_raw}:{row_title}")

    return commands


def _list_bundles(directory: Path, suffix: str) -> list[str]:
    try:
        return sorted(str(entry) for entry in directory.iterdir() if entry.name.endswith(suffix))
    except OSError:
        return []


async def _scan_source(
    bridge: SystemBridge,
    resolver: IconResolver,
    bundle_paths: list[str],
    describe: Callable[[str, dict[str, Any] | None], PaneInfo | None],
    seen: set[str],
    batch_size: int,
    search_terms: bool
) -> list[CommandRecord]:
    records: list[CommandRecord] = []

    for start in range(0, len(bundle_paths), batch_size):
        batch = bundle_paths[start:start + batch_size]
        infos = await asyncio.gather(*(bridge.read_bundle_metadata(p) for p in batch))

        accepted: list[tuple[PaneInfo, dict[str, Any] | None]] = []
        for bundle_path, info in zip(batch, infos):
            pane = describe(bundle_path, info)
            if pane is None or len(pane.title) < 2:
                continue
            key = pane.title.lower()
            if key in seen:
                continue
            seen.add(key)
            accepted.append((pane, info))

        icons = await asyncio.gather(*(resolver.resolve(p.bundle_path, info) for p, info in accepted))

        for (pane, _), icon in zip(accepted, icons):
            record = CommandRecord(
                id=f"settings-{slugify(pane.title, 'pane')}",
                title=pane.title,
                keywords=settings_keywords(pane.title, pane.bundle_id, pane.legacy_bundle_id),
                icon_ref=icon,
                category=Category.SETTINGS_PANE,
                target_path=pane.target,
                scan_path=pane.bundle_path
            )
            records.append(record)
            if search_terms:
                records.extend(await search_term_commands(bridge, pane, record))

    return records


async def scan_settings(
    bridge: SystemBridge,
    resolver: IconResolver,
    extension_dir: Path | None = None,
    pref_pane_dirs: list[Path] | None = None,
    batch_size: int = 6,
    search_terms: bool = True
) -> list[CommandRecord]:
    """
    Enumerate System Settings panes.

    ExtensionKit settings extensions are read first, then legacy .prefPane
    bundles; a title seen once is not added again.

    Args:
        bridge: OS capability interface
        resolver: Icon resolver (tiers 1 and 2)
        extension_dir: ExtensionKit directory (default: system location)
        pref_pane_dirs: Legacy pane directories (default: system, shared, user)
        batch_size: Bundles processed concurrently
        search_terms: Also emit sub-commands from localized search terms

    Returns:
        Settings records, panes in discovery order followed by their sub-commands
    """
    extension_dir = extension_dir if extension_dir is not None else EXTENSIONKIT_DIR
    pref_pane_dirs = pref_pane_dirs if pref_pane_dirs is not None else default_pref_pane_dirs()
    seen: set[str] = set()

    records = await _scan_source(
        bridge, resolver, _list_bundles(extension_dir, ".appex"),
        describe_extension, seen, batch_size, search_terms
    )

    for directory in pref_pane_dirs:
        records.extend(await _scan_source(
            bridge, resolver, _list_bundles(directory, ".prefPane"),
            describe_pref_pane, seen, batch_size, search_terms
        ))

    logger.debug("Found %d settings records", len(records))
    return records
