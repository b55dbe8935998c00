"""Discovery and caching of launchable commands on macOS."""

__version__ = "0.1.0"
