"""Collectors wrapping the macOS command-line tools used for discovery."""

from .plist import read_plist, read_bundle_metadata
from .spotlight import query_typed_index, APPLICATION_BUNDLE_QUERY

__all__ = ["read_plist", "read_bundle_metadata", "query_typed_index", "APPLICATION_BUNDLE_QUERY"]
