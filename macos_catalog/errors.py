"""Exception types raised by macos-catalog."""


class CatalogError(Exception):
    """Base class for catalog errors."""


class ConfigError(CatalogError, ValueError):
    """Invalid or unreadable configuration."""
