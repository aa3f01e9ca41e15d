"""
Modified-times cache for config files.

Remembers the last-modified time of every config file seen by the last
reconciliation so that unchanged file trees can skip re-diffing. The cache
is advisory: it only saves work, it never replaces the diff.
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Protocol

from .loader import LocalFileSystem

logger = logging.getLogger(__name__)

CACHE_KEY = "project.config.files"
CACHE_DURATION = 2592000  # 30 days


class TTLCache(Protocol):
    """Key/value cache with per-entry time-to-live."""

    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, value: Any, ttl: int) -> None: ...


class CacheEntry:
    """Cached value with an expiry time.

    Attributes:
        value: Cached payload
        expires_at: Unix timestamp after which the entry is gone
    """

    def __init__(self, value: Any, ttl: float, now: Optional[float] = None):
        self.value = value
        self.expires_at = (now if now is not None else time.time()) + ttl

    def is_expired(self, now: Optional[float] = None) -> bool:
        return (now if now is not None else time.time()) >= self.expires_at


class MemoryTTLCache:
    """In-process TTL cache."""

    def __init__(self):
        self._entries: Dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired():
            del self._entries[key]
            return None
        return entry.value

    def set(self, key: str, value: Any, ttl: int) -> None:
        self._entries[key] = CacheEntry(value, ttl)


class FileTTLCache:
    """TTL cache persisted as a JSON file, shared between CLI runs."""

    def __init__(self, path: Path, fs: Optional[LocalFileSystem] = None):
        """
        Initialize file cache.

        Args:
            path: JSON file holding the cache entries
            fs: File system access
        """
        self.path = Path(path)
        self.fs = fs or LocalFileSystem()

    def _load(self) -> Dict[str, Dict[str, Any]]:
        contents = self.fs.read(self.path)
        if not contents:
            return {}
        try:
            data = json.loads(contents)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            # A broken cache only costs a re-diff
            logger.warning(f"Ignoring unreadable cache file {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str) -> Optional[Any]:
        entry = self._load().get(key)
        if not isinstance(entry, dict) or entry.get("expires_at", 0) <= time.time():
            return None
        return entry.get("value")

    def set(self, key: str, value: Any, ttl: int) -> None:
        data = self._load()
        data[key] = {"value": value, "expires_at": time.time() + ttl}
        self.fs.write(self.path, json.dumps(data, indent=2).encode("utf-8"))


class ModificationCache:
    """Tracks config file modification times across reconciliations."""

    def __init__(
        self,
        cache: TTLCache,
        fs: Optional[LocalFileSystem] = None,
        duration: int = CACHE_DURATION,
        key: str = CACHE_KEY
    ):
        """
        Initialize modification cache.

        Args:
            cache: Backing TTL cache
            fs: File system access
            duration: Time-to-live for cached times, in seconds
            key: Cache key
        """
        self.cache = cache
        self.fs = fs or LocalFileSystem()
        self.duration = duration
        self.key = key

    def is_stale(self, cached_times: Optional[Dict[str, float]], file_list: Iterable[Path]) -> bool:
        """
        Whether any config file changed since ``cached_times`` was taken.

        Stale when the cache is empty, an existing file is missing from it, a file was
        modified later than cached, or a cached file is gone from disk.
        """
        if not isinstance(cached_times, dict) or not cached_times:
            return True

        # Imports that do not exist on disk are never cached
        for file in file_list:
            if str(file) not in cached_times and self.fs.exists(Path(file)):
                return True

        for file, modified in cached_times.items():
            if not self.fs.exists(Path(file)) or self.fs.last_modified(Path(file)) > modified:
                return True

        return False

    def snapshot(self, file_list: Iterable[Path]) -> Dict[str, float]:
        """Current modification times of the existing files in ``file_list``."""
        return {
            str(file): self.fs.last_modified(file)
            for file in file_list
            if self.fs.exists(file)
        }

    def are_files_modified(self, file_list: Iterable[Path]) -> bool:
        """
        Check the config files against the cached times.

        An unchanged result refreshes the cache entry's TTL.
        """
        file_list = list(file_list)
        cached_times = self.cache.get(self.key)

        if self.is_stale(cached_times, file_list):
            logger.debug("Config files modified since last check")
            return True

        # Re-cache
        self.cache.set(self.key, cached_times, self.duration)
        return False

    def update(self, file_list: Iterable[Path]) -> Dict[str, float]:
        """Cache the current modification times of ``file_list``."""
        times = self.snapshot(file_list)
        self.cache.set(self.key, times, self.duration)
        logger.debug(f"Cached modification times for {len(times)} file(s)")
        return times
