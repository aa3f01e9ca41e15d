"""
Modified-times cache tests.
"""

import os
import time

from project_config.config.modification_cache import (
    CACHE_DURATION,
    CACHE_KEY,
    CacheEntry,
    FileTTLCache,
    MemoryTTLCache,
    ModificationCache,
)


def touch(path, mtime):
    os.utime(path, (mtime, mtime))


class TestTTLCaches:
    """Cache backends."""

    def test_memory_cache_round_trip(self):
        cache = MemoryTTLCache()
        cache.set("k", {"a": 1.0}, ttl=60)

        assert cache.get("k") == {"a": 1.0}
        assert cache.get("missing") is None

    def test_expired_entry(self):
        entry = CacheEntry("v", ttl=10, now=100.0)

        assert not entry.is_expired(now=105.0)
        assert entry.is_expired(now=110.0)

    def test_file_cache_persists(self, temp_config_dir):
        path = temp_config_dir / "state" / "cache.json"
        FileTTLCache(path).set("k", {"a": 1.5}, ttl=60)

        assert FileTTLCache(path).get("k") == {"a": 1.5}

    def test_file_cache_ignores_garbage(self, temp_config_dir):
        path = temp_config_dir / "cache.json"
        path.write_text("not json")

        assert FileTTLCache(path).get("k") is None


class TestModificationCache:
    """Staleness detection."""

    def test_defaults(self):
        assert CACHE_KEY == "project.config.files"
        assert CACHE_DURATION == 30 * 24 * 60 * 60

    def test_empty_cache_is_stale(self, write_yaml):
        root = write_yaml("project.yaml", {"a": 1})

        assert ModificationCache(MemoryTTLCache()).is_stale({}, [root])
        assert ModificationCache(MemoryTTLCache()).is_stale(None, [root])

    def test_unchanged_files_not_stale(self, write_yaml):
        root = write_yaml("project.yaml", {"a": 1})
        cache = ModificationCache(MemoryTTLCache())

        assert not cache.is_stale(cache.snapshot([root]), [root])

    def test_newer_file_is_stale(self, write_yaml):
        root = write_yaml("project.yaml", {"a": 1})
        touch(root, 1000)
        cache = ModificationCache(MemoryTTLCache())
        cached = cache.snapshot([root])

        touch(root, 2000)

        assert cache.is_stale(cached, [root])

    def test_uncached_file_is_stale(self, write_yaml):
        root = write_yaml("project.yaml", {"a": 1})
        other = write_yaml("other.yaml", {"b": 1})
        cache = ModificationCache(MemoryTTLCache())

        assert cache.is_stale(cache.snapshot([root]), [root, other])

    def test_deleted_file_is_stale(self, write_yaml):
        root = write_yaml("project.yaml", {"a": 1})
        other = write_yaml("other.yaml", {"b": 1})
        cache = ModificationCache(MemoryTTLCache())
        cached = cache.snapshot([root, other])

        other.unlink()

        assert cache.is_stale(cached, [root])

    def test_never_existing_import_not_stale(self, temp_config_dir, write_yaml):
        root = write_yaml("project.yaml", {"a": 1})
        cache = ModificationCache(MemoryTTLCache())

        assert not cache.is_stale(cache.snapshot([root]), [root, temp_config_dir / "missing.yaml"])

    def test_update_then_check(self, write_yaml):
        root = write_yaml("project.yaml", {"a": 1})
        backend = MemoryTTLCache()
        cache = ModificationCache(backend)

        assert cache.are_files_modified([root])

        cache.update([root])

        assert not cache.are_files_modified([root])
        assert backend.get(CACHE_KEY) == {str(root): os.path.getmtime(root)}

    def test_modified_after_update(self, write_yaml):
        root = write_yaml("project.yaml", {"a": 1})
        touch(root, time.time() - 100)
        cache = ModificationCache(MemoryTTLCache())
        cache.update([root])

        touch(root, time.time())

        assert cache.are_files_modified([root])
