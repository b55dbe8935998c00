"""On-disk icon cache keyed by a versioned hash of the bundle path."""

import hashlib
import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)

CACHE_SUFFIX = ".b64"


class IconCache:
    """
    Maps bundle paths to previously resolved icon data URIs.

    One file per entry, named ``<version>-<md5(bundle path)>.b64``. Entries
    never expire; changing ``version`` orphans every earlier entry.
    """

    def __init__(self, cache_dir: Path | str, version: str = "v6"):
        """Initialize the cache; the directory is created on first write."""
        self.path = Path(cache_dir).expanduser()
        self.version = version

    def key(self, bundle_path: str) -> str:
        """Cache key for a bundle path under the current version."""
        digest = hashlib.md5(bundle_path.encode("utf-8")).hexdigest()
        return f"{self.version}-{digest}"

    def _file_for(self, bundle_path: str) -> Path:
        return self.path / f"{self.key(bundle_path)}{CACHE_SUFFIX}"

    def get(self, bundle_path: str) -> str | None:
        """
        Return the cached payload for a bundle path.

        Returns:
            The stored data URI, or None on a miss or unreadable entry
        """
        cache_file = self._file_for(bundle_path)
        try:
            payload = cache_file.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.debug("Unreadable icon cache entry %s: %s", cache_file, e)
            return None
        return payload or None

    def set(self, bundle_path: str, payload: str) -> bool:
        """
        Persist a payload, replacing any previous entry atomically.

        Returns:
            True if the entry was written
        """
        try:
            self.path.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path, prefix=".tmp-", suffix=CACHE_SUFFIX)
        except OSError as e:
            logger.debug("Icon cache directory %s unusable: %s", self.path, e)
            return False

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, self._file_for(bundle_path))
            return True
        except OSError as e:
            logger.debug("Failed to write icon cache entry for %s: %s", bundle_path, e)
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            return False

    def clear(self) -> int:
        """Delete every cache entry (all versions). Returns the number removed."""
        if not self.path.is_dir():
            return 0

        removed = 0
        for entry in self.path.iterdir():
            if entry.is_file() and entry.suffix == CACHE_SUFFIX:
                try:
                    entry.unlink()
                    removed += 1
                except OSError as e:
                    logger.warning("Could not remove %s: %s", entry, e)
        return removed

    def count(self) -> int:
        """Get number of entries stored under the current version."""
        if not self.path.is_dir():
            return 0
        return sum(1 for entry in self.path.glob(f"{self.version}-*{CACHE_SUFFIX}"))
