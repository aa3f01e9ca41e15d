"""
Configuration subsystem for project config reconciliation.

Modules:
- loader: Parse YAML documents and resolve the import graph
- source_tracker: Map top-level nodes to their backing files
- modification_cache: Cache config file modified times
- diff: Compute pending changes between desired and stored config
- reconcile: Dispatch change events path by path
- file_watcher: Monitor config files for changes
"""

from .loader import ImportResolver, LocalFileSystem, YamlDocumentParser
from .source_tracker import ConfigMap
from .modification_cache import FileTTLCache, MemoryTTLCache, ModificationCache
from .diff import DiffEngine
from .reconcile import ReconcilePass
from .file_watcher import FileWatcher

__all__ = [
    "ImportResolver",
    "LocalFileSystem",
    "YamlDocumentParser",
    "ConfigMap",
    "FileTTLCache",
    "MemoryTTLCache",
    "ModificationCache",
    "DiffEngine",
    "ReconcilePass",
    "FileWatcher",
]
