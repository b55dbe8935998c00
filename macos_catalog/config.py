"""Configuration file management for macos-catalog."""

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from macos_catalog.errors import ConfigError


@dataclass
class Config:
    """Configuration for catalog discovery and caching."""

    # Catalog cache
    cache_ttl: float = 30 * 60
    stale_refresh_cooldown: float = 15

    # Discovery
    max_scan_depth: int = 4
    batch_size: int = 6
    settings_search_terms: bool = True

    # Icons
    icon_size: int = 64
    icon_cache_dir: str = "~/Library/Caches/macos-catalog/icon-cache"
    icon_cache_version: str = "v6"
    repeated_icon_threshold: int = 5

    # Subprocess ceilings (seconds)
    command_timeout: float = 10
    workspace_timeout: float = 120

    # User metadata overlays, keyed by command id
    command_subtitles: dict[str, str] = field(default_factory=dict)
    command_aliases: dict[str, str] = field(default_factory=dict)

    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        for name in ("cache_ttl", "stale_refresh_cooldown", "command_timeout", "workspace_timeout"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigError(f"{name} must be a number, got {value!r}")
            if value < 0:
                raise ConfigError(f"{name} must not be negative")

        for name in ("max_scan_depth", "batch_size", "icon_size", "repeated_icon_threshold"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigError(f"{name} must be an integer, got {value!r}")
            if value < 1:
                raise ConfigError(f"{name} must be at least 1")

        if not isinstance(self.settings_search_terms, bool):
            raise ConfigError(f"settings_search_terms must be true or false, got {self.settings_search_terms!r}")

        for name in ("icon_cache_dir", "icon_cache_version", "log_level"):
            if not isinstance(getattr(self, name), str):
                raise ConfigError(f"{name} must be a string, got {getattr(self, name)!r}")

        for name in ("command_subtitles", "command_aliases"):
            if not isinstance(getattr(self, name), dict):
                raise ConfigError(f"{name} must be a mapping of command id to text")

        version = self.icon_cache_version
        if not version or "/" in version or "\\" in version:
            raise ConfigError(f"Invalid icon_cache_version '{version}'")

        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ConfigError(f"Invalid log_level '{self.log_level}'")

    @property
    def icon_cache_path(self) -> Path:
        return Path(self.icon_cache_dir).expanduser()


def load_config(config_path: Path | str | None = None) -> Config:
    """
    Load configuration from file.

    Args:
        config_path: Path to config file. If None, checks default locations:
            1. ~/.macos-catalog.yaml
            2. ~/.macos-catalog.yml
            3. ~/.config/macos-catalog/config.yaml
            4. ~/.config/macos-catalog/config.yml

    Returns:
        Config object with loaded settings (or defaults if no config found)

    Raises:
        FileNotFoundError: If an explicit config_path does not exist
        ConfigError: If the file cannot be parsed or holds invalid values
    """
    if config_path:
        config_file = Path(config_path).expanduser()
        if not config_file.exists():
            raise FileNotFoundError(f"Config file not found: {config_file}")
    else:
        default_paths = [
            Path.home() / ".macos-catalog.yaml",
            Path.home() / ".macos-catalog.yml",
            Path.home() / ".config" / "macos-catalog" / "config.yaml",
            Path.home() / ".config" / "macos-catalog" / "config.yml",
        ]

        config_file = next((path for path in default_paths if path.exists()), None)
        if not config_file:
            return Config()

    try:
        with open(config_file, 'r') as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to load config from {config_file}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_file} must contain a mapping")

    try:
        return Config(**data)
    except TypeError as e:
        raise ConfigError(f"Unknown option in {config_file}: {e}") from e


def save_example_config(output_path: Path | str) -> None:
    """
    Save an example configuration file with all options documented.

    Args:
        output_path: Where to save the example config
    """
    example = """# macos-catalog configuration file
# Place at ~/.macos-catalog.yaml or ~/.config/macos-catalog/config.yaml

# Seconds a catalog is served without refresh
cache_ttl: 1800
# Minimum seconds between two background refreshes of a stale catalog
stale_refresh_cooldown: 15

# Maximum directory depth below each application root
max_scan_depth: 4
# Bundles processed concurrently per batch
batch_size: 6
# Expose rows of settings panes as separate commands
settings_search_terms: true

# Icon raster size in pixels
icon_size: 64
icon_cache_dir: ~/Library/Caches/macos-catalog/icon-cache
# Change to discard every cached icon
icon_cache_version: v6
# Settings icons shared by this many panes are treated as generic and dropped
repeated_icon_threshold: 5

# Subprocess ceilings in seconds
command_timeout: 10
workspace_timeout: 120

# Subtitle overrides, keyed by command id
command_subtitles:
  app-safari: Web browser

# Extra search alias per command id
command_aliases:
  app-visual-studio-code: vsc

# DEBUG, INFO, WARNING or ERROR
log_level: WARNING
"""

    path = Path(output_path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(example)
