"""Scanners turning installed bundles into catalog records."""

from .apps import scan_applications
from .settings import scan_settings

__all__ = ["scan_applications", "scan_settings"]
