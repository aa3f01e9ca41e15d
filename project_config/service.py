"""
Project config service.

Keeps the stored config (what subsystems last applied) in step with the
config files (project.yaml and its imports). Subsystems register handlers
for config paths and get add/update/remove events as the two converge.

Nothing is persisted until ``save_modified_config_data()`` is called; when
to call it is up to the caller.
"""

import copy
import json
import logging
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from .config.diff import DiffEngine
from .config.loader import ImportResolver, LocalFileSystem, YamlDocumentParser
from .config.modification_cache import FileTTLCache, ModificationCache, TTLCache
from .config.reconcile import ReconcilePass
from .config.source_tracker import ConfigMap
from .errors import ConfigLoadError, ErrorCode
from .events import ChangeHandler, EventBinding, EventRegistry
from .models import ChangeSet, ConfigEvent, EventKind, ProjectConfigSettings
from .state import ConfigurationState
from .storage import JsonFileRecordStore, RecordStore
from .tree import delete_value, get_value, prune_empty, set_value, split_path

logger = logging.getLogger(__name__)

DATE_MODIFIED_KEY = "dateModified"


class ProjectConfig:
    """Project config service."""

    def __init__(
        self,
        settings: ProjectConfigSettings,
        store: Optional[RecordStore] = None,
        cache: Optional[TTLCache] = None,
        parser: Optional[YamlDocumentParser] = None,
        fs: Optional[LocalFileSystem] = None,
        registry: Optional[EventRegistry] = None,
        clock: Optional[Callable[[], float]] = None
    ):
        """
        Initialize project config.

        Args:
            settings: Paths and behaviour switches
            store: Record store for the stored config and config map
            cache: TTL cache for config file modified times
            parser: Config document parser
            fs: File system access
            registry: Change handler registry
            clock: Returns the current unix time
        """
        self.settings = settings
        self.fs = fs or LocalFileSystem()
        self.parser = parser or YamlDocumentParser()
        state_dir = settings.resolved_state_dir
        self.store = store or JsonFileRecordStore(state_dir, self.fs)
        self.registry = registry or EventRegistry()
        self.clock = clock or time.time

        self.modification_cache = ModificationCache(
            cache if cache is not None else FileTTLCache(state_dir / "cache.json", self.fs),
            self.fs,
            duration=settings.cache_duration
        )
        self.diff_engine = DiffEngine()
        self.state = ConfigurationState()

        self.resolver = self._new_resolver()
        self._stored_config: Optional[Dict[str, Any]] = None
        self._emulated_config: Optional[Dict[str, Any]] = None
        self._config_map: Optional[ConfigMap] = None

        self._pass = ReconcilePass(
            self.registry,
            read_stored=lambda path: self.get(path),
            read_desired=lambda path: self.get(path, from_desired=True),
            write_stored=self._modify_stored_config
        )

        # Without config files, writes are compared against a copy of the stored config
        if not self.use_config_file:
            self._get_desired_config()

    # Properties

    @property
    def use_config_file(self) -> bool:
        return self.settings.use_config_file

    @property
    def root_file(self) -> Path:
        return self.settings.root_file

    @property
    def stored_config(self) -> Dict[str, Any]:
        return self._get_stored_config()

    @property
    def config_map(self) -> ConfigMap:
        return self._get_config_map()

    @property
    def processed_paths(self) -> Set[str]:
        return set(self._pass.processed)

    @property
    def dispatched(self) -> List[Tuple[EventKind, str]]:
        """Events fired in the current pass, as (kind, path) in dispatch order."""
        return list(self._pass.dispatched)

    # Reading and writing

    def get(self, path: str, from_desired: bool = False) -> Any:
        """
        Returns a config value by its path.

        Args:
            path: Dot-delimited config path
            from_desired: Read from the config files instead of the stored config

        Returns:
            Scalar or a copy of the subtree, or None if the path does not exist
        """
        source = self._get_desired_config() if from_desired else self._get_stored_config()
        value = get_value(source, path)

        # Changes go through save(); callers must not edit the live trees
        if isinstance(value, (dict, list)):
            return copy.deepcopy(value)
        return value

    def save(self, path: str, value: Any) -> Optional[ConfigEvent]:
        """
        Saves a value to the project config at a given path.

        The value is written to the config file owning the top-level node
        and the path is processed right away.

        Args:
            path: The config item path
            value: The config value; None removes the item

        Returns:
            The dispatched event, if anything changed
        """
        top_node = split_path(path)[0]

        if not self.state.timestamp_updated:
            self.state.timestamp_updated = True
            self.save(DATE_MODIFIED_KEY, int(self.clock()))

        if self.use_config_file:
            config_map = self._get_config_map()
            target_file = config_map.resolve(top_node)

            # For new top nodes, update the map
            if not config_map.is_mapped(top_node):
                config_map.map_node(top_node, self.root_file)
                self.state.update_config_map = True

            config = copy.deepcopy(self.resolver.parse_file(target_file))
            self._write_path(config, path, value)
            self.resolver.set_parsed(target_file, config)
        else:
            self._write_path(self._get_desired_config(), path, value)

        # Ensure that new data is processed
        self._pass.forget(path)
        return self.process_path(path)

    def remove(self, path: str) -> Optional[ConfigEvent]:
        """Removes an item from the config."""
        return self.save(path, None)

    @staticmethod
    def _write_path(config: Dict[str, Any], path: str, value: Any) -> None:
        if value is None:
            delete_value(config, path)
        else:
            set_value(config, path, copy.deepcopy(value))

    # Reconciliation

    def process_path(self, path: str) -> Optional[ConfigEvent]:
        """Processes config changes for a given path."""
        before = len(self._pass.dispatched)
        event = self._pass.process_path(path)
        self._record_events(before)
        return event

    def get_pending_changes(self) -> ChangeSet:
        """Diff the config files against the stored config."""
        return self.diff_engine.diff(self._get_desired_config(), self._get_stored_config())

    def apply_pending_changes(self, check_staleness: bool = False) -> ChangeSet:
        """
        Applies all pending changes.

        Args:
            check_staleness: Skip the pass when no config file changed since
                the modified times were last cached

        Returns:
            The change set that was processed
        """
        start_time = time.time()

        if check_staleness and self.use_config_file:
            if not self.modification_cache.are_files_modified(self.resolver.get_file_list()):
                logger.info("Config files unchanged since last check, nothing to apply")
                return ChangeSet()

        logger.info("Looking for pending changes")
        before = len(self._pass.dispatched)

        try:
            changes = self.get_pending_changes()

            # If we're parsing all the changes, we better work the actual config map
            if self.use_config_file:
                self._get_config_map().regenerate(self.resolver.get_file_list(), self.resolver)

            self._pass.run(changes)

            logger.info("Finalizing configuration parsing")
            self.registry.fire_after_apply()

        except Exception:
            self._record_events(before)
            self.state.record_pass(False, int((time.time() - start_time) * 1000))
            raise

        self._record_events(before)
        self.update_parsed_config_times_after_request()
        self.state.update_config_map = True

        duration_ms = int((time.time() - start_time) * 1000)
        self.state.record_pass(True, duration_ms)
        logger.info(f"Applied {len(self._pass.dispatched) - before} config change(s) in {duration_ms}ms")

        return changes

    def is_update_pending(self) -> bool:
        """
        Returns whether the config files have changes that still need applying.
        """
        if not self.use_config_file:
            return False

        # If the file does not exist, but should, generate it
        if not self.fs.exists(self.root_file):
            logger.info(f"{self.root_file} is missing, regenerating it from the stored config")
            self.regenerate_config_file_from_stored_config()
            self.save_modified_config_data()

        if self.modification_cache.are_files_modified(self.resolver.get_file_list()):
            if not self.get_pending_changes().is_empty:
                return True

            self.update_parsed_config_times()

        return False

    def get_pending_change_summary(self) -> Dict[str, Set[str]]:
        """
        Returns a summary of all pending config changes.

        Changes are reduced to their first two path segments
        (e.g. ``sections.news``); single-segment paths are left out.
        """
        summary: Dict[str, Set[str]] = {}

        for category, paths in self.get_pending_changes().by_category():
            summary[category.value] = set()
            for path in paths:
                parts = path.split(".")
                if len(parts) > 1:
                    summary[category.value].add(f"{parts[0]}.{parts[1]}")

        return summary

    def reset_pass(self) -> None:
        """
        Start a new reconciliation pass.

        Processed paths and the dateModified stamp are forgotten and config
        files will be re-read, unless there are unsaved file writes.
        """
        self._pass.reset()
        self.state.timestamp_updated = False

        if self.resolver.modified_files:
            logger.warning(
                f"Keeping parsed config files: {len(self.resolver.modified_files)} file(s) not saved yet"
            )
            return

        self.resolver = self._new_resolver()

    # Persistence

    def regenerate_config_file_from_stored_config(self) -> None:
        """Generates project.yaml based on the current stored config."""
        self.resolver.set_parsed(self.root_file, copy.deepcopy(self._get_stored_config()))
        self.update_parsed_config_times_after_request()

    def update_parsed_config_times_after_request(self) -> None:
        """Refresh the cached config file modified times on the next save."""
        if self.use_config_file:
            self.state.update_parsed_times = True

    def update_parsed_config_times(self) -> Dict[str, float]:
        """Updates cached config file modified times immediately."""
        return self.modification_cache.update(self.resolver.get_file_list())

    def save_modified_config_data(self) -> None:
        """
        Saves all the config data that has been modified up to now.

        Raises:
            OSError: If a config file or record cannot be written
        """
        if self.resolver.modified_files and self.use_config_file:
            for file in sorted(self.resolver.modified_files):
                data = prune_empty(copy.deepcopy(self.resolver.parse_file(file)))
                self.fs.write(file, self.parser.serialize(data))
                logger.info(f"Saved config file {file}")
            self.resolver.modified_files.clear()

        if self.state.update_config_map and self.use_config_file:
            config_map = self._get_config_map()
            self.store.save_config_map(config_map.to_bytes())
            config_map.dirty = False

        if self.state.update_config:
            payload = json.dumps(self._get_stored_config(), indent=2, default=str)
            self.store.save_snapshot(payload.encode("utf-8"))

        if self.state.update_parsed_times and self.use_config_file:
            self.update_parsed_config_times()

        self.state.clear_dirty()

    # Event registration

    def subscribe(self, kind: EventKind, path: str, handler: ChangeHandler, data: Any = None) -> EventBinding:
        return self.registry.subscribe(kind, path, handler, data)

    def on_add(self, path: str, handler: ChangeHandler, data: Any = None) -> EventBinding:
        """Attaches a handler for when an item is added to the config at a given path."""
        return self.registry.on_add(path, handler, data)

    def on_update(self, path: str, handler: ChangeHandler, data: Any = None) -> EventBinding:
        """Attaches a handler for when an item is updated in the config at a given path."""
        return self.registry.on_update(path, handler, data)

    def on_remove(self, path: str, handler: ChangeHandler, data: Any = None) -> EventBinding:
        """Attaches a handler for when an item is removed from the config at a given path."""
        return self.registry.on_remove(path, handler, data)

    def on_after_apply(self, callback: Callable[[], None]) -> None:
        """Attaches a callback fired once after all pending changes have been applied."""
        self.registry.on_after_apply(callback)

    # Internals

    def _new_resolver(self) -> ImportResolver:
        return ImportResolver(
            self.root_file,
            config_root=self.settings.config_dir,
            parser=self.parser,
            fs=self.fs,
            strict_imports=self.settings.strict_imports
        )

    def _record_events(self, since: int) -> None:
        for kind, _ in self._pass.dispatched[since:]:
            self.state.record_event(kind)

    def _modify_stored_config(self, path: str, value: Any) -> None:
        """Modify the stored config with new data."""
        stored = self._get_stored_config()
        if value is None:
            delete_value(stored, path)
        else:
            set_value(stored, path, copy.deepcopy(value))

        self.state.update_config = True
        self.update_parsed_config_times_after_request()

    def _get_desired_config(self) -> Dict[str, Any]:
        """Generate the desired config from the config files (or the emulated copy)."""
        if self.use_config_file:
            return self.resolver.get_desired_tree()

        if self._emulated_config is None:
            self._emulated_config = copy.deepcopy(self._get_stored_config())
        return self._emulated_config

    def _get_stored_config(self) -> Dict[str, Any]:
        """Get the stored config, loading it from the record store once."""
        if self._stored_config is not None:
            return self._stored_config

        payload = self.store.load_snapshot()
        if not payload:
            self._stored_config = {}
            return self._stored_config

        try:
            data = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ConfigLoadError("stored config", str(e), code=ErrorCode.SNAPSHOT_CORRUPT) from e

        if not isinstance(data, dict):
            raise ConfigLoadError("stored config", "expected a JSON object", code=ErrorCode.SNAPSHOT_CORRUPT)

        self._stored_config = data
        return self._stored_config

    def _get_config_map(self) -> ConfigMap:
        """Get the config map, loading it from the record store once."""
        if self._config_map is None:
            self._config_map = ConfigMap.from_bytes(self.root_file, self.store.load_config_map())
        return self._config_map
